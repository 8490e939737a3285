"""Named saved games persisted as a JSON list: [{"name", "fen", "timestamp"}]."""
from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import logging
from pathlib import Path
import time
from typing import List

log = logging.getLogger("saved_games")


@dataclass(frozen=True)
class SavedGame:
    name: str
    fen: str
    timestamp: int  # epoch milliseconds

    @classmethod
    def now(cls, name: str, fen: str) -> "SavedGame":
        return cls(name=name, fen=fen, timestamp=int(time.time() * 1000))


class SavedGameStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> List[SavedGame]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.exception("Failed to load saved games from %s; starting fresh", self.path)
            return []
        if not isinstance(raw, list):
            return []
        games = []
        for item in raw:
            if not (isinstance(item, dict) and item.get("name") and item.get("fen")):
                log.warning("Skipping malformed saved game entry: %r", item)
                continue
            try:
                timestamp = int(item.get("timestamp") or 0)
            except (TypeError, ValueError):
                log.warning("Skipping saved game %r with bad timestamp %r", item["name"], item.get("timestamp"))
                continue
            games.append(SavedGame(name=str(item["name"]), fen=str(item["fen"]), timestamp=timestamp))
        return games

    def _write(self, games: List[SavedGame]) -> None:
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps([asdict(g) for g in games], indent=2), encoding="utf-8")

    def list(self) -> List[SavedGame]:
        return self._read()

    def save(self, record: SavedGame) -> None:
        games = self._read()
        games.append(record)
        self._write(games)
        log.info("Saved game %r", record.name)

    def get(self, index: int) -> SavedGame:
        games = self._read()
        if not 0 <= index < len(games):
            raise IndexError(f"No saved game at index {index}")
        return games[index]

    def delete(self, index: int) -> SavedGame:
        games = self._read()
        if not 0 <= index < len(games):
            raise IndexError(f"No saved game at index {index}")
        removed = games.pop(index)
        self._write(games)
        log.info("Deleted saved game %r", removed.name)
        return removed
