"""Google Gemini provider streaming through ``streamGenerateContent``."""

from __future__ import annotations

from typing import Any

from ...errors import ProviderError
from .base import HttpStreamingModel


class GeminiProvider(HttpStreamingModel):
    """Gemini-backed streaming summarizer."""

    name = "gemini"

    def _build_request(self, instructions: str, prompt: str):
        url = f"{self.cfg.base_url.rstrip('/')}/v1beta/models/{self.cfg.model}:streamGenerateContent"
        params = {"alt": "sse", "key": self.api_key or ""}
        payload = {
            "systemInstruction": {"parts": [{"text": instructions}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.cfg.temperature},
        }
        return url, params, {}, payload

    def _parse_delta(self, event: Any) -> str:
        if not isinstance(event, dict):
            return ""
        if "error" in event:
            error = event["error"] or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderError(f"gemini error: {message}")
        return _extract_text(event)


def _extract_text(data: dict[str, Any]) -> str:
    """Join the non-thought text parts of the first candidate."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    texts = [
        part.get("text", "")
        for part in parts
        if isinstance(part, dict) and not part.get("thought")
    ]
    return "".join(texts)
