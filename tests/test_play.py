import io
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

from lmchess import play


class PlayMainTests(unittest.TestCase):
    @patch("lmchess.play.ConnectionMonitor")
    @patch("lmchess.play.LLMClient")
    def test_invalid_start_fen_reports_and_exits(self, client_cls, monitor_cls):
        client_cls.return_value.base_url = "http://localhost:1234/v1"
        out = io.StringIO()
        with redirect_stdout(out), patch("builtins.input") as ask:
            play.main(["--fen", "not a fen"])
        self.assertIn("Error loading game", out.getvalue())
        ask.assert_not_called()
        monitor_cls.return_value.start.assert_not_called()

    @patch("lmchess.play.ConnectionMonitor")
    @patch("lmchess.play.LLMClient")
    def test_quit_stops_monitor(self, client_cls, monitor_cls):
        client_cls.return_value.base_url = "http://localhost:1234/v1"
        with redirect_stdout(io.StringIO()), patch("builtins.input", return_value="quit"):
            play.main(["--human", "white", "--saved-games", "unused.json"])
        monitor_cls.return_value.start.assert_called_once()
        monitor_cls.return_value.stop.assert_called_once()


if __name__ == "__main__":
    unittest.main()
