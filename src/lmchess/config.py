"""
Configuration and environment loading for lmchess.

- Loads .env (python-dotenv) and settings.yml (YAML) from the repo root if present.
- Lookup order per key: settings.yml > environment variable > default.
- Exposes SETTINGS with the endpoint, timeouts and pacing knobs used across the project.
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")


def _repo_root() -> str:
    # this file: src/lmchess/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        log.exception("Failed to read %s; using environment only", path)
        return {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.environ.get("LMCHESS_SETTINGS_FILE") or os.path.join(_repo_root(), "settings.yml"))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


@dataclass(frozen=True)
class Settings:
    # OpenAI-compatible move source (LM Studio, Ollama, ...)
    api_base: str
    api_key: str

    # Timeouts / pacing
    probe_timeout_s: float
    move_timeout_s: float
    probe_interval_s: float
    ai_move_delay_s: float

    # Game / persistence
    human_color: str
    saved_games_path: str


SETTINGS = Settings(
    api_base=_get("LMCHESS_BASE_URL", "http://localhost:11434/v1"),
    api_key=_get("LMCHESS_API_KEY", "lm-studio"),
    probe_timeout_s=float(_get("LMCHESS_PROBE_TIMEOUT_S", 5.0, cast=float)),
    move_timeout_s=float(_get("LMCHESS_MOVE_TIMEOUT_S", 15.0, cast=float)),
    probe_interval_s=float(_get("LMCHESS_PROBE_INTERVAL_S", 15.0, cast=float)),
    ai_move_delay_s=float(_get("LMCHESS_AI_MOVE_DELAY_S", 0.5, cast=float)),
    human_color=str(_get("LMCHESS_HUMAN_COLOR", "white")).lower(),
    saved_games_path=_get("LMCHESS_SAVED_GAMES_PATH", "saved_games.json"),
)
