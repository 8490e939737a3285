"""Error taxonomy for move acquisition, resolution and game play."""
from __future__ import annotations


class LMChessError(Exception):
    """Base class for lmchess errors."""


class MoveSourceUnavailable(LMChessError):
    """Every supported request shape against the move source failed.

    Recovered by the fallback selector; never surfaced as a hard failure.
    """

    def __init__(self, message: str, last_error: BaseException | None = None):
        super().__init__(message)
        self.last_error = last_error


class UnresolvedMove(LMChessError):
    """The move source replied, but the text matches no legal move."""

    def __init__(self, raw_text: str):
        super().__init__(f"No legal move matches {raw_text!r}")
        self.raw_text = raw_text


class IllegalMove(LMChessError, ValueError):
    """A move specifier is not legal in the given position."""


class InvalidPosition(LMChessError, ValueError):
    """A FEN string does not describe a valid position."""


class NoLegalMoves(LMChessError):
    """Move selection was requested for a terminal position."""


class InternalInconsistency(LMChessError, RuntimeError):
    """A move drawn from the legal set failed to apply. Programming error; fatal."""
