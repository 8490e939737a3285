"""
Prompt builders and config for LLM move requests using a modular template.

The user prompt embeds the FEN, the side to move and the enumerated legal moves,
and asks for exactly one move token.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .llm_client import SYSTEM
from .rules import COLOR_NAMES, Position

DEFAULT_SYSTEM_INSTRUCTIONS = SYSTEM
DEFAULT_TEMPLATE = """Current board FEN: {FEN}
You are playing {SIDE_TO_MOVE}.
Legal moves: {LEGAL_MOVES}
Choose the best move from the list.
CRITICAL: Your entire response must be ONLY the chosen move from the list (e.g., e5 or Nf6 or O-O). No other text or explanation."""


@dataclass
class PromptConfig:
    """Configuration for shaping move prompts using a custom template."""

    system_instructions: str = DEFAULT_SYSTEM_INSTRUCTIONS
    template: str = DEFAULT_TEMPLATE


def render_custom_prompt(template: str, values: Dict[str, str]) -> str:
    """Replace known placeholders in the template. Unknown tokens are left intact."""
    rendered = template or ""
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def build_move_prompt(position: Position, prompt_cfg: PromptConfig | None = None) -> str:
    cfg = prompt_cfg or PromptConfig()
    values = {
        "FEN": position.fen,
        "SIDE_TO_MOVE": COLOR_NAMES[position.turn],
        "LEGAL_MOVES": ", ".join(position.legal_san()),
    }
    return render_custom_prompt(cfg.template, values)
