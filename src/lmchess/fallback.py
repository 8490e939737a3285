"""
FallbackSelector: priority-bucketed legal move choice used when the move source is unusable.

Bucket order is fixed (check > capture > promotion > develop > other); only the choice
inside the winning bucket is random, through an injectable random.Random.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import random
from typing import Dict, List, Sequence

from .errors import IllegalMove, InternalInconsistency, NoLegalMoves
from .rules import MoveDescriptor, Position, piece_name

log = logging.getLogger("fallback")

BUCKET_CHECK = "check"
BUCKET_CAPTURE = "capture"
BUCKET_PROMOTION = "promotion"
BUCKET_DEVELOP = "develop"
BUCKET_OTHER = "other"

BUCKET_PRIORITY = (BUCKET_CHECK, BUCKET_CAPTURE, BUCKET_PROMOTION, BUCKET_DEVELOP, BUCKET_OTHER)

# bucket -> (quality, reasoning)
BUCKET_LABELS: Dict[str, tuple[str, str]] = {
    BUCKET_CHECK: ("excellent", "Fallback: Puts king in check."),
    BUCKET_CAPTURE: ("good", "Fallback: Captures a piece."),
    BUCKET_PROMOTION: ("excellent", "Fallback: Promotes a pawn."),
    BUCKET_DEVELOP: ("good", "Fallback: Develops a piece."),
    BUCKET_OTHER: ("fair", "Fallback: Basic move selection."),
}

PIECE_VALUES = {"p": 1, "n": 3, "b": 3, "r": 5, "q": 9, "k": 0}


@dataclass(frozen=True)
class FallbackChoice:
    move: MoveDescriptor
    position: Position
    bucket: str
    quality: str
    reasoning: str


def partition(legal_moves: Sequence[MoveDescriptor]) -> Dict[str, List[MoveDescriptor]]:
    """Split moves into buckets. A move can sit in several; 'other' holds all of them."""
    buckets: Dict[str, List[MoveDescriptor]] = {name: [] for name in BUCKET_PRIORITY}
    for m in legal_moves:
        if m.gives_check:
            buckets[BUCKET_CHECK].append(m)
        if m.is_capture:
            buckets[BUCKET_CAPTURE].append(m)
        if m.is_promotion:
            buckets[BUCKET_PROMOTION].append(m)
        if m.piece in ("n", "b") and not m.is_capture:
            buckets[BUCKET_DEVELOP].append(m)
        buckets[BUCKET_OTHER].append(m)
    return buckets


def pick_bucket(buckets: Dict[str, List[MoveDescriptor]]) -> str | None:
    for name in BUCKET_PRIORITY:
        if buckets.get(name):
            return name
    return None


class FallbackSelector:
    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def select(self, position: Position, legal_moves: Sequence[MoveDescriptor] | None = None) -> FallbackChoice:
        if legal_moves is None:
            legal_moves = position.legal_moves()
        buckets = partition(legal_moves)
        bucket = pick_bucket(buckets)
        if bucket is None:
            raise NoLegalMoves(f"No legal moves in {position.fen}")
        chosen = self.rng.choice(buckets[bucket])
        quality, reasoning = BUCKET_LABELS[bucket]
        try:
            applied = position.apply(chosen.san)
        except IllegalMove as e:
            log.critical("Fallback move %s from the legal set failed to apply in %s", chosen.san, position.fen)
            raise InternalInconsistency(f"Fallback move {chosen.san} failed to apply in {position.fen}") from e
        log.info("Fallback move %s (%s, %s)", applied.move.san, bucket, quality)
        return FallbackChoice(
            move=applied.move,
            position=applied.position,
            bucket=bucket,
            quality=quality,
            reasoning=reasoning,
        )


def assess_move_quality(move: MoveDescriptor) -> tuple[str, str]:
    """Heuristic (quality, reasoning) commentary for a move; not an evaluation."""
    if move.gives_check:
        return "excellent", "Puts the king in check."
    if move.captured:
        captured_value = PIECE_VALUES.get(move.captured, 0)
        moving_value = PIECE_VALUES.get(move.piece, 0)
        name = piece_name(move.captured)
        if captured_value > moving_value:
            return "excellent", f"Captures a higher value piece ({name})."
        if captured_value == moving_value:
            return "good", f"Exchanges pieces of equal value ({name})."
        return "fair", f"Captures a lower value piece ({name})."
    if move.promotion:
        return "excellent", f"Promotes a pawn to {piece_name(move.promotion)}."
    if move.is_castle:
        return "good", "Castles, improving king safety."
    if move.piece in ("n", "b"):
        return "good", f"Develops the {piece_name(move.piece)}."
    return "fair", f"Moves the {piece_name(move.piece)}."
