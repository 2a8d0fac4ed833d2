"""OpenAI-compatible provider streaming through ``/chat/completions``."""

from __future__ import annotations

from typing import Any

from ...errors import ProviderError
from .base import HttpStreamingModel


class OpenAICompatibleProvider(HttpStreamingModel):
    """Streaming summarizer for any server speaking the OpenAI chat API."""

    name = "openai_compatible"

    def _build_request(self, instructions: str, prompt: str):
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {
            "model": self.cfg.model,
            "stream": True,
            "temperature": self.cfg.temperature,
            "messages": [
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
        }
        return url, {}, headers, payload

    def _parse_delta(self, event: Any) -> str:
        if not isinstance(event, dict):
            return ""
        if event.get("error"):
            raise ProviderError(f"openai_compatible error: {event['error']}")
        try:
            content = event["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
        return content or ""
