from __future__ import annotations
"""
LLM client facade over any OpenAI-compatible server (LM Studio, Ollama, ...; base URL configurable).

The rest of the code should not care which response dialect the server speaks. This
module exposes the three raw calls the probe and the move fetcher need, plus
fetch_raw_move(), which tries the chat shape first and the legacy completion shape second.
"""
from typing import Any, Dict, List, Optional
import logging

from openai import OpenAI

from .config import SETTINGS
from .errors import MoveSourceUnavailable

log = logging.getLogger("llm_client")

SYSTEM = (
    "You are a chess engine. You will analyze the board position and make the best move possible "
    "based on chess principles. Respond with only a valid chess move in standard algebraic notation. "
    "Do not include any explanations or additional text."
)

DEFAULT_MODEL = "default"

# Biased toward a single short move token: verbose replies defeat the move parser.
MOVE_SAMPLING: Dict[str, Any] = {
    "temperature": 0.5,
    "max_tokens": 20,
    "stop": ["\n", ".", ",", " ", ":", ";"],
    "top_p": 0.95,
    "frequency_penalty": 1.0,
    "presence_penalty": 1.0,
}


class LLMClient:
    """Thin transport around the OpenAI SDK; no retries beyond what callers do explicitly."""

    def __init__(self, base_url: str | None = None, api_key: str | None = None, client: OpenAI | None = None):
        self.base_url = (base_url or SETTINGS.api_base).rstrip("/")
        self._client = client or OpenAI(
            api_key=api_key or SETTINGS.api_key or "lm-studio",
            base_url=self.base_url,
            max_retries=0,
        )

    def list_models(self, timeout: float) -> List[str]:
        """GET /models. Accepts both {"models": [...]} and the OpenAI {"data": [...]} shape."""
        raw = self._client.models.with_raw_response.list(timeout=timeout)
        payload = raw.http_response.json()
        if not isinstance(payload, dict):
            return []
        entries = payload.get("models") or payload.get("data") or []
        ids: List[str] = []
        for entry in entries:
            if isinstance(entry, dict):
                ids.append(str(entry.get("id") or "Unknown"))
            elif isinstance(entry, str):
                ids.append(entry)
        return ids

    def chat(self, messages: List[Dict[str, str]], model: str, timeout: float, **params: Any):
        """POST /chat/completions."""
        return self._client.chat.completions.create(
            model=model,
            messages=messages,
            stream=False,
            timeout=timeout,
            **params,
        )

    def complete(self, prompt: str, model: str, timeout: float, **params: Any):
        """POST /completions (legacy text completion)."""
        return self._client.completions.create(
            model=model,
            prompt=prompt,
            stream=False,
            timeout=timeout,
            **params,
        )


# ------------------------- Response extraction -------------------------
def _first_choice(rsp):
    choices = getattr(rsp, "choices", None)
    if isinstance(rsp, dict):
        choices = rsp.get("choices")
    if not choices:
        return None
    return choices[0]


def _field(obj, name: str):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_chat_text(rsp) -> str:
    """Return choices[0].message.content (string or list of text parts), else ""."""
    choice = _first_choice(rsp)
    if choice is None:
        return ""
    msg = _field(choice, "message")
    if msg is None:
        return ""
    content = _field(msg, "content")
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for c in content:
            t = _field(c, "text")
            if isinstance(t, str):
                parts.append(t)
        return "\n".join(parts).strip()
    return ""


def extract_completion_text(rsp) -> str:
    """Return choices[0].text, else ""."""
    choice = _first_choice(rsp)
    if choice is None:
        return ""
    text = _field(choice, "text")
    return text.strip() if isinstance(text, str) else ""


def response_model_id(rsp) -> Optional[str]:
    model = _field(rsp, "model")
    return model if isinstance(model, str) and model else None


# ------------------------- Move fetch -------------------------
def fetch_raw_move(
    client: LLMClient,
    prompt: str,
    model_id: Optional[str],
    timeout_s: float | None = None,
    system: str = SYSTEM,
) -> str:
    """Ask the move source for a move, chat shape first, legacy completion second.

    Raises MoveSourceUnavailable carrying the last underlying error when both shapes fail.
    """
    model = model_id or DEFAULT_MODEL
    timeout = timeout_s if timeout_s is not None else SETTINGS.move_timeout_s
    log.info("Fetching AI move using model: %s", model)

    last_error: BaseException | None = None
    try:
        rsp = client.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            model=model,
            timeout=timeout,
            **MOVE_SAMPLING,
        )
        text = extract_chat_text(rsp)
        if text:
            log.debug("Extracted move text from chat/completions: %r", text)
            return text
        last_error = ValueError("chat/completions returned no message content")
        log.info("No usable content in chat/completions response; trying /completions")
    except Exception as e:
        last_error = e
        log.warning("chat/completions failed (%s); trying /completions", e)

    try:
        rsp = client.complete(prompt, model=model, timeout=timeout, **MOVE_SAMPLING)
        text = extract_completion_text(rsp)
        if text:
            log.debug("Extracted move text from completions: %r", text)
            return text
        last_error = ValueError("completions returned no text")
    except Exception as e:
        last_error = e
        log.warning("completions failed: %s", e)

    raise MoveSourceUnavailable(
        f"Failed to get AI move after trying both endpoints. Last error: {last_error}",
        last_error=last_error,
    ) from last_error
