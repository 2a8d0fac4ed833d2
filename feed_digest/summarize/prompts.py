"""Prompt loading and rendering helpers for article summaries."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..core.types import SummaryLength


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"

PROMPT_HEADER = "Summarize this article:\n\n"
SEED_HEADER = "Preview/context from feed:\n"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def instructions_for(length: SummaryLength) -> str:
    return _load_template(f"instructions_{SummaryLength(length).value}")


def build_summary_prompt(excerpt: str, seed_text: str | None = None, seed_chars: int = 900) -> str:
    """Assemble the user prompt for one summary stage.

    The feed's own preview, when present, goes ahead of the excerpt so the
    model sees the publisher's framing first.
    """
    parts = [PROMPT_HEADER]
    seed = (seed_text or "").strip()
    if seed:
        parts.append(f"{SEED_HEADER}{seed[:seed_chars]}\n\n")
    parts.append(excerpt)
    return "".join(parts)
