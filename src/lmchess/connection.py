"""
Endpoint probing and the process-wide connection state.

probe() checks /models, then /chat/completions, then /completions, stopping at the first
that answers. ConnectionMonitor re-probes on a fixed interval on its own thread and only
ever writes ConnectionState; games read it through the `state` accessor.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import Optional

from .config import SETTINGS
from .llm_client import DEFAULT_MODEL, LLMClient, response_model_id

log = logging.getLogger("connection")

PROBE_PROMPT = "Say hello"
PROBE_MAX_TOKENS = 5


@dataclass(frozen=True)
class ConnectionState:
    connected: bool = False
    model_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"connected": self.connected, "model_id": self.model_id, "error": self.error}


def probe(client: LLMClient, timeout_s: float | None = None) -> ConnectionState:
    """Return the first successful reachability check, or a disconnected state listing every failure."""
    timeout = timeout_s if timeout_s is not None else SETTINGS.probe_timeout_s
    errors: list[str] = []

    # 1. /models (newer servers)
    try:
        models = client.list_models(timeout=timeout)
        if models:
            log.info("Connected via /models; active model %s", models[0])
            return ConnectionState(connected=True, model_id=models[0])
        errors.append("/models: no models listed")
    except Exception as e:
        errors.append(f"/models: {e}")
        log.info("Error fetching /models, trying other methods: %s", e)

    # 2. /chat/completions
    try:
        rsp = client.chat(
            [{"role": "user", "content": PROBE_PROMPT}],
            model=DEFAULT_MODEL,
            timeout=timeout,
            max_tokens=PROBE_MAX_TOKENS,
        )
        if rsp is not None:
            model_id = response_model_id(rsp) or "Unknown"
            log.info("Connected via /chat/completions; model %s", model_id)
            return ConnectionState(connected=True, model_id=model_id)
        errors.append("/chat/completions: empty response")
    except Exception as e:
        errors.append(f"/chat/completions: {e}")
        log.info("Error with chat completions, trying /completions: %s", e)

    # 3. /completions (older servers)
    try:
        rsp = client.complete(PROBE_PROMPT, model=DEFAULT_MODEL, timeout=timeout, max_tokens=PROBE_MAX_TOKENS)
        if rsp is not None:
            model_id = response_model_id(rsp) or "Unknown"
            log.info("Connected via /completions; model %s", model_id)
            return ConnectionState(connected=True, model_id=model_id)
        errors.append("/completions: empty response")
    except Exception as e:
        errors.append(f"/completions: {e}")
        log.info("Error with completions endpoint: %s", e)

    log.warning("Failed to connect to %s after trying all methods", client.base_url)
    return ConnectionState(
        connected=False,
        model_id=None,
        error="Failed to connect after trying multiple endpoints. " + "; ".join(errors),
    )


class ConnectionMonitor:
    """Owns the latest ConnectionState; start() begins interval probing, stop() ends it."""

    def __init__(self, client: LLMClient, interval_s: float | None = None, timeout_s: float | None = None):
        self.client = client
        self.interval_s = interval_s if interval_s is not None else SETTINGS.probe_interval_s
        self.timeout_s = timeout_s
        self._state = ConnectionState()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    def refresh(self) -> ConnectionState:
        """Probe synchronously and store the result."""
        state = probe(self.client, timeout_s=self.timeout_s)
        with self._lock:
            self._state = state
        return state

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="connection-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.refresh()
            except Exception as e:
                # probe() already folds endpoint errors into the state; this is anything else
                log.exception("Connection probe crashed")
                with self._lock:
                    self._state = ConnectionState(connected=False, model_id=None, error=str(e))
            self._stop.wait(self.interval_s)
