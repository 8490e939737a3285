"""
Move parsing/validation helpers for LLM replies.

resolve_move() maps free text to a legal move in stages, first match wins:
1. apply the cleaned first token directly (SAN, or UCI);
2. case-insensitive SAN match against the legal moves;
3. piece letter + destination match (e.g. "nf3"), or a bare destination
   square that exactly one legal move lands on (e.g. "f3" -> Nf3).
Matches from stages 2 and 3 are re-applied by their canonical SAN.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Sequence

from .errors import IllegalMove
from .rules import AppliedMove, MoveDescriptor, Position

log = logging.getLogger("move_validator")

CASTLE_ZERO = {"0-0": "O-O", "0-0-0": "O-O-O", "o-o": "O-O", "o-o-o": "O-O-O"}
SQUARE_RE = re.compile(r"^[a-h][1-8]$")
_DROP_CHARS = re.compile(r"[\"'`.:,;\r]")
_WRAP_CHARS = "()[]{}*<>"

STAGE_DIRECT = 1
STAGE_SAN_MATCH = 2
STAGE_PIECE_DEST = 3


@dataclass(frozen=True)
class ResolvedMove:
    move: MoveDescriptor
    position: Position
    stage: int
    token: str


def _strip_code_fence(text: str) -> str:
    """Remove simple ``` fences if present."""
    text = text.strip()
    if text.startswith("```") and text.endswith("```"):
        inner = text.split("\n", 1)
        if len(inner) == 2:
            return inner[1].rsplit("\n", 1)[0].strip()
    return text


def clean_move_token(raw_text: str) -> str:
    """Reduce a reply to its first move-looking token ("  Nf3.\\n" -> "Nf3")."""
    if not raw_text:
        return ""
    text = _DROP_CHARS.sub("", _strip_code_fence(raw_text))
    tokens = text.split()
    if not tokens:
        return ""
    token = tokens[0].strip(_WRAP_CHARS).rstrip("!?")
    return CASTLE_ZERO.get(token, CASTLE_ZERO.get(token.lower(), token))


def _try_apply(position: Position, text: str) -> AppliedMove | None:
    try:
        return position.apply(text)
    except IllegalMove:
        return None


def _find_descriptor(token: str, legal_moves: Sequence[MoveDescriptor]) -> tuple[MoveDescriptor | None, int]:
    wanted = token.lower()
    for m in legal_moves:
        if m.san.lower() == wanted:
            return m, STAGE_SAN_MATCH
    for m in legal_moves:
        if (m.piece + m.to_square).lower() == wanted:
            return m, STAGE_PIECE_DEST
    if SQUARE_RE.match(wanted):
        landing = [m for m in legal_moves if m.to_square == wanted]
        if len(landing) == 1:
            return landing[0], STAGE_PIECE_DEST
        if landing:
            log.debug("Destination %s is ambiguous (%d legal moves)", wanted, len(landing))
    return None, 0


def resolve_move(position: Position, raw_text: str, legal_moves: Sequence[MoveDescriptor] | None = None) -> ResolvedMove | None:
    """Map a raw reply to a legal move in position, or None. Never raises; position is not modified."""
    token = clean_move_token(raw_text or "")
    if not token:
        log.debug("Empty reply after cleaning: %r", raw_text)
        return None

    applied = _try_apply(position, token)
    if applied is not None:
        return ResolvedMove(move=applied.move, position=applied.position, stage=STAGE_DIRECT, token=token)
    log.debug("Direct apply failed for %r, trying variations", token)

    if legal_moves is None:
        legal_moves = position.legal_moves()
    found, stage = _find_descriptor(token, legal_moves)
    if found is None:
        log.debug("No legal move matches %r (raw %r)", token, raw_text)
        return None

    applied = _try_apply(position, found.san)
    if applied is None:
        log.warning("Re-validation failed for %s (matched from %r)", found.san, token)
        return None
    return ResolvedMove(move=applied.move, position=applied.position, stage=stage, token=token)


__all__ = [
    "ResolvedMove",
    "clean_move_token",
    "resolve_move",
    "STAGE_DIRECT",
    "STAGE_SAN_MATCH",
    "STAGE_PIECE_DEST",
]
