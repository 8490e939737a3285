import random
import unittest
from unittest.mock import patch

from lmchess.errors import IllegalMove, InternalInconsistency, NoLegalMoves
from lmchess.fallback import (
    BUCKET_CAPTURE,
    BUCKET_CHECK,
    BUCKET_DEVELOP,
    BUCKET_OTHER,
    BUCKET_PROMOTION,
    FallbackSelector,
    assess_move_quality,
    partition,
)
from lmchess.rules import MoveDescriptor, Position

CHECK_AND_CAPTURE = "4k3/8/8/8/8/8/1p6/R2NK3 w - - 0 1"
CAPTURE_ONLY = "rnbqkbnr/ppp1pppp/8/3p4/4P3/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 2"
PROMOTION_ONLY = "8/P7/8/8/8/7k/8/2K5 w - - 0 1"


class FallbackSelectorTests(unittest.TestCase):
    def test_check_beats_capture_for_every_seed(self):
        pos = Position(CHECK_AND_CAPTURE)
        buckets = partition(pos.legal_moves())
        self.assertEqual([m.san for m in buckets[BUCKET_CHECK]], ["Ra8+"])
        self.assertEqual([m.san for m in buckets[BUCKET_CAPTURE]], ["Nxb2"])
        for seed in range(25):
            choice = FallbackSelector(random.Random(seed)).select(pos)
            self.assertEqual(choice.move.san, "Ra8+")
            self.assertEqual(choice.bucket, BUCKET_CHECK)
            self.assertEqual(choice.quality, "excellent")

    def test_capture_bucket(self):
        choice = FallbackSelector(random.Random(1)).select(Position(CAPTURE_ONLY))
        self.assertEqual(choice.move.san, "exd5")
        self.assertEqual(choice.bucket, BUCKET_CAPTURE)
        self.assertEqual(choice.quality, "good")

    def test_promotion_bucket(self):
        choice = FallbackSelector(random.Random(3)).select(Position(PROMOTION_ONLY))
        self.assertEqual(choice.bucket, BUCKET_PROMOTION)
        self.assertIn(choice.move.promotion, ("q", "r", "b", "n"))
        self.assertEqual(choice.quality, "excellent")

    def test_developing_bucket_from_start(self):
        choice = FallbackSelector(random.Random(7)).select(Position.initial())
        self.assertEqual(choice.bucket, BUCKET_DEVELOP)
        self.assertIn(choice.move.san, ("Na3", "Nc3", "Nf3", "Nh3"))
        self.assertEqual(choice.reasoning, "Fallback: Develops a piece.")

    def test_other_bucket(self):
        pos = Position("4k3/8/8/8/8/8/P7/4K3 w - - 0 1")
        choice = FallbackSelector(random.Random(0)).select(pos)
        self.assertEqual(choice.bucket, BUCKET_OTHER)
        self.assertEqual(choice.quality, "fair")

    def test_same_seed_same_choice(self):
        pos = Position.initial()
        a = FallbackSelector(random.Random(42)).select(pos)
        b = FallbackSelector(random.Random(42)).select(pos)
        self.assertEqual(a.move, b.move)

    def test_always_legal_over_played_out_games(self):
        rng = random.Random(2024)
        selector = FallbackSelector(rng)
        for _ in range(3):
            pos = Position.initial()
            for _ in range(80):
                legal = pos.legal_moves()
                if not legal:
                    break
                choice = selector.select(pos, legal)
                self.assertIn(choice.move, legal)
                pos = choice.position

    def test_no_legal_moves(self):
        mate = Position("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
        with self.assertRaises(NoLegalMoves):
            FallbackSelector().select(mate)

    def test_apply_failure_is_internal_inconsistency(self):
        with patch.object(Position, "apply", side_effect=IllegalMove("boom")):
            with self.assertLogs("fallback", level="CRITICAL"):
                with self.assertRaises(InternalInconsistency):
                    FallbackSelector(random.Random(0)).select(Position.initial())


def _mv(san, piece="p", captured=None, promotion=None, flags="n"):
    return MoveDescriptor(san=san, uci="a1a2", from_square="a1", to_square="a2", piece=piece,
                          color="w", captured=captured, promotion=promotion, flags=flags)


class AssessMoveQualityTests(unittest.TestCase):
    def test_labels(self):
        self.assertEqual(assess_move_quality(_mv("Qxf7#", piece="q", captured="p"))[0], "excellent")
        self.assertEqual(assess_move_quality(_mv("exd5", captured="n")), ("excellent", "Captures a higher value piece (knight)."))
        self.assertEqual(assess_move_quality(_mv("Nxc6", piece="n", captured="b"))[0], "good")
        self.assertEqual(assess_move_quality(_mv("Qxd5", piece="q", captured="p"))[0], "fair")
        self.assertEqual(assess_move_quality(_mv("a8=Q", promotion="q")), ("excellent", "Promotes a pawn to queen."))
        self.assertEqual(assess_move_quality(_mv("O-O", piece="k", flags="k"))[0], "good")
        self.assertEqual(assess_move_quality(_mv("Bc4", piece="b")), ("good", "Develops the bishop."))
        self.assertEqual(assess_move_quality(_mv("Rd1", piece="r")), ("fair", "Moves the rook."))


if __name__ == "__main__":
    unittest.main()
