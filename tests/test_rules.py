import unittest

import chess

from lmchess.errors import IllegalMove, InvalidPosition
from lmchess.rules import Position, piece_name


class PositionTests(unittest.TestCase):
    def test_apply_returns_new_position_and_leaves_source_untouched(self):
        start = Position.initial()
        applied = start.apply("e4")
        self.assertEqual(start.fen, chess.STARTING_FEN)
        self.assertNotEqual(applied.position, start)
        self.assertEqual(applied.move.san, "e4")
        self.assertEqual(applied.move.uci, "e2e4")
        self.assertEqual(applied.move.piece, "p")
        self.assertEqual(applied.move.color, "w")
        self.assertIn("b", applied.move.flags)
        self.assertEqual(applied.position.turn, "b")

    def test_apply_accepts_uci_and_square_mapping(self):
        start = Position.initial()
        self.assertEqual(start.apply("g1f3").move.san, "Nf3")
        self.assertEqual(start.apply({"from": "g1", "to": "f3"}).move.san, "Nf3")

    def test_illegal_moves_raise(self):
        start = Position.initial()
        for spec in ("Qh5", "e2e5", "", "xyz", {"from": "e2", "to": "e5"}, {"from": None, "to": "e4"}):
            with self.assertRaises(IllegalMove):
                start.apply(spec)

    def test_null_moves_raise(self):
        for fen in (Position.initial().fen, "4k3/8/8/8/8/8/8/4K2r w - - 0 1"):
            pos = Position(fen)
            for spec in ("--", "0000", "Z0", chess.Move.null(), {"from": "a1", "to": "a1"}):
                with self.assertRaises(IllegalMove):
                    pos.apply(spec)

    def test_capture_and_check_descriptors(self):
        pos = Position("rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 2")
        move = pos.apply("exd5").move
        self.assertEqual(move.captured, "p")
        self.assertTrue(move.is_capture)
        self.assertIn("c", move.flags)

        checking = Position("4k3/8/8/8/8/8/8/R3K3 w - - 0 1").apply("Ra8").move
        self.assertEqual(checking.san, "Ra8+")
        self.assertTrue(checking.gives_check)

    def test_promotion_and_castle_flags(self):
        promo = Position("8/P7/8/8/8/7k/8/2K5 w - - 0 1").apply({"from": "a7", "to": "a8", "promotion": "n"}).move
        self.assertEqual(promo.promotion, "n")
        self.assertIn("p", promo.flags)
        castle = Position("4k3/8/8/8/8/8/8/4K2R w K - 0 1").apply("O-O").move
        self.assertTrue(castle.is_castle)
        self.assertIn("k", castle.flags)

    def test_en_passant_records_pawn_capture(self):
        pos = Position("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2")
        move = pos.apply("exd6").move
        self.assertEqual(move.captured, "p")
        self.assertIn("e", move.flags)

    def test_invalid_fen(self):
        with self.assertRaises(InvalidPosition):
            Position("not a fen")
        with self.assertRaises(InvalidPosition):
            Position("8/8/8/8/8/8/8/8 w - - 0 1")

    def test_terminal_queries(self):
        mate = Position("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
        self.assertTrue(mate.is_checkmate())
        self.assertTrue(mate.is_game_over())
        self.assertEqual(mate.legal_moves(), [])
        stalemate = Position("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
        self.assertTrue(stalemate.is_stalemate())
        self.assertTrue(stalemate.is_draw())
        self.assertFalse(Position.initial().is_game_over())

    def test_piece_at_and_names(self):
        start = Position.initial()
        self.assertEqual(start.piece_at("g1"), ("w", "n"))
        self.assertIsNone(start.piece_at("e4"))
        self.assertEqual(piece_name("n"), "knight")
        self.assertEqual(piece_name(None), "piece")
        self.assertEqual(len(start.legal_moves()), 20)


if __name__ == "__main__":
    unittest.main()
