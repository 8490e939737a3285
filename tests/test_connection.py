import time
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx

from lmchess.connection import ConnectionMonitor, ConnectionState, probe


def fake_client():
    client = MagicMock()
    client.base_url = "http://localhost:1234/v1"
    return client


class ProbeTests(unittest.TestCase):
    def test_models_listing_wins(self):
        client = fake_client()
        client.list_models.return_value = ["llama-3.2", "qwen"]
        state = probe(client, timeout_s=0.5)
        self.assertEqual(state, ConnectionState(connected=True, model_id="llama-3.2"))
        client.list_models.assert_called_once_with(timeout=0.5)
        client.chat.assert_not_called()
        client.complete.assert_not_called()

    def test_empty_model_list_falls_through_to_chat(self):
        client = fake_client()
        client.list_models.return_value = []
        client.chat.return_value = SimpleNamespace(model="qwen2.5", choices=[])
        state = probe(client, timeout_s=0.5)
        self.assertTrue(state.connected)
        self.assertEqual(state.model_id, "qwen2.5")
        client.complete.assert_not_called()

    def test_legacy_completions_only_server(self):
        client = fake_client()
        client.list_models.side_effect = httpx.ReadTimeout("timed out")
        client.chat.side_effect = httpx.HTTPStatusError(
            "404 Not Found",
            request=httpx.Request("POST", "http://localhost:1234/v1/chat/completions"),
            response=httpx.Response(404),
        )
        client.complete.return_value = SimpleNamespace(choices=[SimpleNamespace(text="Hello")])
        state = probe(client, timeout_s=0.5)
        self.assertTrue(state.connected)
        self.assertEqual(state.model_id, "Unknown")
        self.assertIsNone(state.error)

    def test_all_checks_fail(self):
        client = fake_client()
        client.list_models.side_effect = httpx.ConnectError("refused")
        client.chat.side_effect = httpx.ConnectError("refused")
        client.complete.side_effect = httpx.ConnectError("refused")
        state = probe(client, timeout_s=0.5)
        self.assertFalse(state.connected)
        self.assertIsNone(state.model_id)
        for endpoint in ("/models", "/chat/completions", "/completions"):
            self.assertIn(endpoint, state.error)


class ConnectionMonitorTests(unittest.TestCase):
    def test_refresh_updates_state(self):
        client = fake_client()
        client.list_models.return_value = ["m1"]
        monitor = ConnectionMonitor(client, interval_s=60, timeout_s=0.1)
        self.assertFalse(monitor.state.connected)
        self.assertEqual(monitor.refresh().model_id, "m1")
        self.assertEqual(monitor.state.model_id, "m1")

    def test_start_probes_and_stop_ends_thread(self):
        client = fake_client()
        client.list_models.return_value = ["m1"]
        monitor = ConnectionMonitor(client, interval_s=60, timeout_s=0.1)
        monitor.start()
        monitor.start()
        try:
            deadline = time.time() + 2.0
            while not monitor.state.connected and time.time() < deadline:
                time.sleep(0.01)
            self.assertTrue(monitor.state.connected)
            self.assertTrue(monitor.running)
        finally:
            monitor.stop(timeout=2.0)
        self.assertFalse(monitor.running)
        self.assertEqual(client.list_models.call_count, 1)

    def test_stop_without_start(self):
        monitor = ConnectionMonitor(fake_client(), interval_s=60)
        monitor.stop()
        self.assertFalse(monitor.running)


if __name__ == "__main__":
    unittest.main()
