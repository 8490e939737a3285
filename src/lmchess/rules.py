"""
Rules oracle: immutable positions and verbose move descriptors on top of python-chess.

- Position: frozen FEN value. apply() is a trial apply that returns a new Position,
  so callers never copy or roll back boards themselves.
- MoveDescriptor: SAN/UCI, endpoints, piece kinds and chess.js-style flags for a legal move.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import chess

from .errors import IllegalMove, InvalidPosition

WHITE = "w"
BLACK = "b"
COLOR_NAMES = {WHITE: "white", BLACK: "black"}

# Flag letters: n normal, b pawn double push, e en passant, c capture,
# p promotion, k king-side castle, q queen-side castle.
FLAG_NORMAL = "n"
FLAG_BIG_PAWN = "b"
FLAG_EN_PASSANT = "e"
FLAG_CAPTURE = "c"
FLAG_PROMOTION = "p"
FLAG_KSIDE_CASTLE = "k"
FLAG_QSIDE_CASTLE = "q"

PROMOTION_PIECES = ("q", "r", "b", "n")


def color_letter(turn: chess.Color) -> str:
    return WHITE if turn == chess.WHITE else BLACK


def piece_name(letter: str | None) -> str:
    """'n' -> 'knight'; unknown or empty -> 'piece'."""
    if not letter:
        return "piece"
    try:
        return chess.piece_name(chess.PIECE_SYMBOLS.index(letter.lower()))
    except ValueError:
        return "piece"


@dataclass(frozen=True)
class MoveDescriptor:
    san: str
    uci: str
    from_square: str
    to_square: str
    piece: str
    color: str
    captured: str | None = None
    promotion: str | None = None
    flags: str = FLAG_NORMAL

    @property
    def gives_check(self) -> bool:
        return self.san.endswith("+") or self.san.endswith("#")

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    @property
    def is_castle(self) -> bool:
        return FLAG_KSIDE_CASTLE in self.flags or FLAG_QSIDE_CASTLE in self.flags

    def to_dict(self) -> dict:
        return {
            "san": self.san,
            "uci": self.uci,
            "from": self.from_square,
            "to": self.to_square,
            "piece": self.piece,
            "color": self.color,
            "captured": self.captured,
            "promotion": self.promotion,
            "flags": self.flags,
        }


def describe_move(board: chess.Board, mv: chess.Move) -> MoveDescriptor:
    """Build the descriptor for a legal move *before* it is pushed on board."""
    piece_type = board.piece_type_at(mv.from_square)
    captured = None
    flags = ""
    if board.is_en_passant(mv):
        captured = "p"
        flags += FLAG_EN_PASSANT
    elif board.is_capture(mv):
        captured = chess.piece_symbol(board.piece_type_at(mv.to_square))
        flags += FLAG_CAPTURE
    if piece_type == chess.PAWN and abs(chess.square_rank(mv.to_square) - chess.square_rank(mv.from_square)) == 2:
        flags += FLAG_BIG_PAWN
    if mv.promotion:
        flags += FLAG_PROMOTION
    if board.is_kingside_castling(mv):
        flags += FLAG_KSIDE_CASTLE
    elif board.is_queenside_castling(mv):
        flags += FLAG_QSIDE_CASTLE
    return MoveDescriptor(
        san=board.san(mv),
        uci=mv.uci(),
        from_square=chess.square_name(mv.from_square),
        to_square=chess.square_name(mv.to_square),
        piece=chess.piece_symbol(piece_type) if piece_type else "?",
        color=color_letter(board.turn),
        captured=captured,
        promotion=chess.piece_symbol(mv.promotion) if mv.promotion else None,
        flags=flags or FLAG_NORMAL,
    )


@dataclass(frozen=True)
class AppliedMove:
    move: MoveDescriptor
    position: "Position"


@dataclass(frozen=True)
class Position:
    """Immutable board snapshot. Equality is FEN equality."""

    fen: str = chess.STARTING_FEN

    def __post_init__(self):
        try:
            board = chess.Board(self.fen)
        except ValueError as e:
            raise InvalidPosition(f"Invalid FEN {self.fen!r}: {e}") from e
        if not board.is_valid():
            raise InvalidPosition(f"Invalid FEN {self.fen!r}: {board.status()!r}")

    @classmethod
    def initial(cls) -> "Position":
        return cls(chess.STARTING_FEN)

    def board(self) -> chess.Board:
        """Return a fresh, disposable python-chess board for this position."""
        return chess.Board(self.fen)

    # ---------------- Queries -----------------
    @property
    def turn(self) -> str:
        return WHITE if self.fen.split()[1] == "w" else BLACK

    def piece_at(self, square: str) -> tuple[str, str] | None:
        """Return (color, piece letter) on square, or None."""
        piece = self.board().piece_at(chess.parse_square(square))
        if piece is None:
            return None
        return color_letter(piece.color), chess.piece_symbol(piece.piece_type)

    def legal_moves(self) -> list[MoveDescriptor]:
        board = self.board()
        return [describe_move(board, mv) for mv in board.legal_moves]

    def legal_san(self) -> list[str]:
        board = self.board()
        return [board.san(mv) for mv in board.legal_moves]

    def is_check(self) -> bool:
        return self.board().is_check()

    def is_checkmate(self) -> bool:
        return self.board().is_checkmate()

    def is_stalemate(self) -> bool:
        return self.board().is_stalemate()

    def is_draw(self) -> bool:
        board = self.board()
        return board.is_stalemate() or board.is_insufficient_material() or board.is_fifty_moves()

    def is_game_over(self) -> bool:
        return self.is_checkmate() or self.is_draw()

    # ---------------- Trial apply -----------------
    def apply(self, spec: "str | chess.Move | Mapping[str, str | None]") -> AppliedMove:
        """Apply a move on a scratch board and return the descriptor plus the new Position.

        spec may be SAN or UCI text, a chess.Move, or a {"from", "to", "promotion"} mapping.
        Raises IllegalMove; self is never modified.
        """
        board = self.board()
        mv = self._parse(board, spec)
        desc = describe_move(board, mv)
        board.push(mv)
        return AppliedMove(move=desc, position=Position(board.fen()))

    @staticmethod
    def _parse(board: chess.Board, spec) -> chess.Move:
        if isinstance(spec, chess.Move):
            mv = spec
        elif isinstance(spec, Mapping):
            try:
                mv = chess.Move(
                    chess.parse_square(str(spec.get("from"))),
                    chess.parse_square(str(spec.get("to"))),
                    promotion=chess.PIECE_SYMBOLS.index(spec["promotion"].lower()) if spec.get("promotion") else None,
                )
            except ValueError as e:
                raise IllegalMove(f"Bad move specifier {dict(spec)!r}") from e
        elif isinstance(spec, str):
            text = spec.strip()
            if not text:
                raise IllegalMove("Empty move")
            try:
                mv = board.parse_san(text)
            except ValueError:
                try:
                    mv = chess.Move.from_uci(text.lower())
                except ValueError as e:
                    raise IllegalMove(f"Not a legal move: {text!r}") from e
        else:
            raise IllegalMove(f"Unsupported move specifier: {spec!r}")
        if not mv or mv not in board.legal_moves:
            raise IllegalMove(f"Not a legal move: {mv.uci()}")
        return mv
