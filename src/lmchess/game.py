"""
Single-game orchestration: human vs. an OpenAI-compatible move source.

- GameConfig: human side, pacing delay, fetch timeout and prompt template.
- GameOrchestrator: turn state machine over a HistoryStore.
  - Human moves are trial-applied and committed only when legal; pawn drops onto the
    last rank wait for a promotion choice before anything is committed.
  - Remote turns go fetch_raw_move -> resolve_move, and fall back to FallbackSelector
    when the source is unavailable or its reply matches no legal move.
  - Move list and captured pieces are forward-only logs: undo/redo move the history
    cursor but do not rewind them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import random
import time
from typing import Callable, Dict, List, Optional

from .connection import ConnectionState
from .errors import IllegalMove, MoveSourceUnavailable, UnresolvedMove
from .fallback import FallbackSelector, assess_move_quality
from .history import HistoryStore
from .llm_client import LLMClient, fetch_raw_move
from .move_validator import resolve_move
from .prompting import PromptConfig, build_move_prompt
from .rules import BLACK, COLOR_NAMES, PROMOTION_PIECES, WHITE, AppliedMove, MoveDescriptor, Position

SOURCE_REMOTE = "remote"
SOURCE_FALLBACK = "fallback"
SOURCE_LABELS = {
    SOURCE_REMOTE: "AI move: remote",
    SOURCE_FALLBACK: "AI move: fallback strategy",
}

PIECE_ORDER = "qrbnpk"


class GamePhase(str, Enum):
    HUMAN_TO_MOVE = "human_to_move"
    REMOTE_TO_MOVE = "remote_to_move"
    AWAITING_PROMOTION = "awaiting_promotion"
    GAME_OVER = "game_over"


def _color_letter(color: str) -> str:
    return BLACK if str(color).lower() in ("b", "black") else WHITE


@dataclass
class GameConfig:
    human_color: str = WHITE           # 'w'/'b' (also accepts 'white'/'black')
    ai_move_delay_s: float = 0.5        # pacing only
    move_timeout_s: float | None = None  # None -> SETTINGS.move_timeout_s
    prompt_cfg: PromptConfig = field(default_factory=PromptConfig)

    def __post_init__(self):
        self.human_color = _color_letter(self.human_color)


@dataclass(frozen=True)
class MoveRecord:
    san: str
    color: str  # 'white' | 'black'


@dataclass(frozen=True)
class PendingPromotion:
    from_square: str
    to_square: str


@dataclass(frozen=True)
class AIMoveReport:
    san: str
    source: str
    quality: str
    reasoning: str
    raw_text: Optional[str] = None
    error: Optional[str] = None

    @property
    def label(self) -> str:
        return SOURCE_LABELS[self.source]

    def to_dict(self) -> dict:
        return {
            "san": self.san,
            "source": self.source,
            "label": self.label,
            "quality": self.quality,
            "reasoning": self.reasoning,
            "raw_text": self.raw_text,
            "error": self.error,
        }


class CapturedPieces:
    """Captured piece counts keyed by the capturing side ('w' took black pieces)."""

    def __init__(self):
        self._counts: Dict[str, Dict[str, int]] = {WHITE: {}, BLACK: {}}

    def record(self, move: MoveDescriptor) -> None:
        if not move.captured:
            return
        side = self._counts[move.color]
        side[move.captured] = side.get(move.captured, 0) + 1

    def count(self, capturer: str, piece: str) -> int:
        return self._counts[capturer].get(piece, 0)

    def by_side(self, capturer: str) -> List[tuple[str, int]]:
        counts = self._counts[capturer]
        return sorted(counts.items(), key=lambda kv: PIECE_ORDER.index(kv[0]))

    def clear(self) -> None:
        for side in self._counts.values():
            side.clear()

    def to_dict(self) -> dict:
        return {
            side: [{"type": p, "count": n} for p, n in self.by_side(side)]
            for side in (WHITE, BLACK)
        }


class GameOrchestrator:
    def __init__(
        self,
        client: LLMClient,
        connection: Callable[[], ConnectionState] | None = None,
        cfg: GameConfig | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        start: Position | None = None,
    ):
        self.log = logging.getLogger("GameOrchestrator")
        self.client = client
        self.connection = connection or ConnectionState
        self.cfg = cfg or GameConfig()
        self.fallback = FallbackSelector(rng)
        self._sleep = sleep
        self.history = HistoryStore(start or Position.initial())
        self.move_log: List[MoveRecord] = []
        self.captured = CapturedPieces()
        self.last_ai_move: AIMoveReport | None = None
        self.pending_promotion: PendingPromotion | None = None
        self._phase = GamePhase.HUMAN_TO_MOVE
        self._sync_phase()

    # ---------------- State -----------------
    @property
    def position(self) -> Position:
        return self.history.present

    @property
    def phase(self) -> GamePhase:
        return self._phase

    def _sync_phase(self) -> None:
        self.pending_promotion = None
        pos = self.position
        if pos.is_game_over():
            self._phase = GamePhase.GAME_OVER
        elif pos.turn == self.cfg.human_color:
            self._phase = GamePhase.HUMAN_TO_MOVE
        else:
            self._phase = GamePhase.REMOTE_TO_MOVE

    def _commit(self, applied: AppliedMove) -> None:
        self.history.commit(applied.position)
        self.move_log.append(MoveRecord(san=applied.move.san, color=COLOR_NAMES[applied.move.color]))
        self.captured.record(applied.move)
        self._sync_phase()
        if self._phase == GamePhase.GAME_OVER:
            self.log.info("Game over: %s", self.status_text)

    # ---------------- Human input -----------------
    def _is_promotion_drop(self, from_square: str, to_square: str) -> bool:
        pos = self.position
        try:
            piece = pos.piece_at(from_square)
        except ValueError:
            return False
        if piece is None or piece != (pos.turn, "p"):
            return False
        return any(
            m.from_square == from_square and m.to_square == to_square and m.is_promotion
            for m in pos.legal_moves()
        )

    def submit_move(self, from_square: str, to_square: str) -> bool:
        """Handle a drop from one square to another. Returns False if rejected (state unchanged)."""
        if self._phase != GamePhase.HUMAN_TO_MOVE:
            self.log.info("Ignoring human move %s%s during %s", from_square, to_square, self._phase.value)
            return False
        if self._is_promotion_drop(from_square, to_square):
            self.pending_promotion = PendingPromotion(from_square, to_square)
            self._phase = GamePhase.AWAITING_PROMOTION
            return True
        try:
            applied = self.position.apply({"from": from_square, "to": to_square})
        except IllegalMove as e:
            self.log.info("Rejected human move: %s", e)
            return False
        self._commit(applied)
        return True

    def submit_san(self, text: str) -> bool:
        """Typed SAN/UCI input. A 4-character UCI pawn push to the last rank waits for a promotion choice."""
        text = (text or "").strip()
        if len(text) == 4 and self._phase == GamePhase.HUMAN_TO_MOVE and self._is_promotion_drop(text[:2], text[2:]):
            return self.submit_move(text[:2], text[2:])
        if self._phase != GamePhase.HUMAN_TO_MOVE:
            self.log.info("Ignoring human move %r during %s", text, self._phase.value)
            return False
        try:
            applied = self.position.apply(text)
        except IllegalMove as e:
            self.log.info("Rejected human move: %s", e)
            return False
        self._commit(applied)
        return True

    def choose_promotion(self, piece: str | None) -> bool:
        if self._phase != GamePhase.AWAITING_PROMOTION or self.pending_promotion is None:
            return False
        piece = (piece or "").lower()
        if piece not in PROMOTION_PIECES:
            self.log.info("Invalid promotion piece %r", piece)
            return False
        pending = self.pending_promotion
        try:
            applied = self.position.apply({"from": pending.from_square, "to": pending.to_square, "promotion": piece})
        except IllegalMove as e:
            self.log.error("Error during promotion: %s", e)
            return False
        self._commit(applied)
        return True

    def cancel_promotion(self) -> None:
        if self._phase == GamePhase.AWAITING_PROMOTION:
            self._sync_phase()

    # ---------------- Remote turn -----------------
    def play_remote_turn(self) -> AIMoveReport | None:
        """Play the non-human move: remote source first, fallback strategy on any failure."""
        if self._phase != GamePhase.REMOTE_TO_MOVE:
            return None
        if self.cfg.ai_move_delay_s > 0:
            self._sleep(self.cfg.ai_move_delay_s)

        position = self.position
        legal = position.legal_moves()
        prompt = build_move_prompt(position, self.cfg.prompt_cfg)
        model_id = self.connection().model_id
        raw: str | None = None
        try:
            raw = fetch_raw_move(
                self.client,
                prompt,
                model_id,
                timeout_s=self.cfg.move_timeout_s,
                system=self.cfg.prompt_cfg.system_instructions,
            )
            self.log.debug("Raw AI response: %r", raw)
            resolved = resolve_move(position, raw, legal)
            if resolved is None:
                raise UnresolvedMove(raw)
        except (MoveSourceUnavailable, UnresolvedMove) as e:
            self.log.warning("Using fallback strategy: %s", e)
            choice = self.fallback.select(position, legal)
            report = AIMoveReport(
                san=choice.move.san,
                source=SOURCE_FALLBACK,
                quality=choice.quality,
                reasoning=choice.reasoning,
                raw_text=raw,
                error=str(e),
            )
            applied = AppliedMove(move=choice.move, position=choice.position)
        else:
            quality, reasoning = assess_move_quality(resolved.move)
            report = AIMoveReport(
                san=resolved.move.san,
                source=SOURCE_REMOTE,
                quality=quality,
                reasoning=reasoning,
                raw_text=raw,
            )
            applied = AppliedMove(move=resolved.move, position=resolved.position)
            self.log.info("AI moved %s (stage %d from %r)", resolved.move.san, resolved.stage, raw)

        self._commit(applied)
        self.last_ai_move = report
        return report

    # ---------------- History -----------------
    def undo(self) -> bool:
        if self.history.undo() is None:
            return False
        self._sync_phase()
        return True

    def redo(self) -> bool:
        if self.history.redo() is None:
            return False
        self._sync_phase()
        return True

    def reset(self, position: Position | None = None) -> None:
        self.history.reset(position or Position.initial())
        self.move_log.clear()
        self.captured.clear()
        self.last_ai_move = None
        self._sync_phase()

    def load(self, fen: str) -> None:
        """Start over from a saved FEN. Raises InvalidPosition."""
        self.reset(Position(fen))

    # ---------------- Status -----------------
    @property
    def status_text(self) -> str:
        pos = self.position
        side = COLOR_NAMES[pos.turn].capitalize()
        if pos.is_checkmate():
            winner = "Black" if pos.turn == WHITE else "White"
            return f"Checkmate! {winner} wins!"
        if pos.is_draw():
            return "Draw!"
        if self._phase == GamePhase.AWAITING_PROMOTION:
            return "Choose a promotion piece"
        if pos.is_check():
            return f"{side} is in check!"
        return f"{side} to move"

    def snapshot(self) -> dict:
        pos = self.position
        pending = self.pending_promotion
        return {
            "fen": pos.fen,
            "turn": pos.turn,
            "human_color": self.cfg.human_color,
            "phase": self._phase.value,
            "status": self.status_text,
            "legal_moves": pos.legal_san(),
            "move_history": [{"san": r.san, "color": r.color} for r in self.move_log],
            "captured": self.captured.to_dict(),
            "last_ai_move": self.last_ai_move.to_dict() if self.last_ai_move else None,
            "pending_promotion": {"from": pending.from_square, "to": pending.to_square} if pending else None,
            "history_index": self.history.current,
            "history_length": len(self.history),
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
        }
