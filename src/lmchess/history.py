"""
Branching undo/redo log over immutable positions.

Committing after an undo discards the undone future. Move lists and captured-piece
tallies live in the game, not here, and are not rewound by undo().
"""
from __future__ import annotations

from typing import List, Optional

from .rules import Position


class HistoryStore:
    def __init__(self, initial: Position | None = None):
        self._positions: List[Position] = [initial or Position.initial()]
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    @property
    def present(self) -> Position:
        return self._positions[self._current]

    @property
    def positions(self) -> tuple[Position, ...]:
        return tuple(self._positions)

    def __len__(self) -> int:
        return len(self._positions)

    @property
    def can_undo(self) -> bool:
        return self._current > 0

    @property
    def can_redo(self) -> bool:
        return self._current < len(self._positions) - 1

    def commit(self, position: Position) -> None:
        """Append position after the cursor, truncating any redo-able future. Duplicates are a no-op."""
        if position == self._positions[self._current]:
            return
        del self._positions[self._current + 1:]
        self._positions.append(position)
        self._current = len(self._positions) - 1

    def undo(self) -> Optional[Position]:
        if not self.can_undo:
            return None
        self._current -= 1
        return self._positions[self._current]

    def redo(self) -> Optional[Position]:
        if not self.can_redo:
            return None
        self._current += 1
        return self._positions[self._current]

    def reset(self, position: Position) -> None:
        self._positions = [position]
        self._current = 0
