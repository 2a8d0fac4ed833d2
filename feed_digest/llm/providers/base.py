"""Abstract interfaces for streaming language model backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
import json
from typing import Any, AsyncIterator

import httpx

from ...config import ProviderConfig
from ...errors import ProviderError
from ...utils.logging import truncate_text


class LanguageModel(ABC):
    """A model that streams a growing completion for one prompt."""

    name = "base"

    def is_available(self) -> bool:
        """Return False when the model cannot be used (e.g. missing credentials)."""
        return True

    @abstractmethod
    def stream(self, instructions: str, prompt: str) -> AsyncIterator[str]:
        """Yield the cumulative completion text as it grows.

        Each yielded value is the full text so far, not a delta.

        Raises:
            ProviderError: On transport failure or an unusable response
        """
        raise NotImplementedError


class HttpStreamingModel(LanguageModel):
    """Shared plumbing for providers that stream over Server-Sent Events."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        client: httpx.AsyncClient | None = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self._client = client

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def stream(self, instructions: str, prompt: str) -> AsyncIterator[str]:
        url, params, headers, payload = self._build_request(instructions, prompt)
        text = ""
        async with self._client_context() as client:
            try:
                async with client.stream(
                    "POST", url, params=params, headers=headers, json=payload
                ) as resp:
                    if not resp.is_success:
                        body = (await resp.aread()).decode("utf-8", errors="replace")
                        raise ProviderError(
                            f"{self.name} HTTP {resp.status_code}: {truncate_text(body, 500)}"
                        )
                    async for data in iter_sse_data(resp):
                        delta = self._parse_delta(_decode_event(data, self.name))
                        if delta:
                            text += delta
                            yield text
            except httpx.HTTPError as exc:
                raise ProviderError(f"{type(exc).__name__}: {exc}") from exc

    @abstractmethod
    def _build_request(
        self, instructions: str, prompt: str
    ) -> tuple[str, dict[str, str], dict[str, str], dict[str, Any]]:
        """Return (url, query params, headers, JSON body)."""
        raise NotImplementedError

    @abstractmethod
    def _parse_delta(self, event: Any) -> str:
        """Return the text added by one decoded stream event."""
        raise NotImplementedError

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        timeout = httpx.Timeout(self.cfg.timeout_seconds, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout, trust_env=self.cfg.trust_env) as client:
            yield client


async def iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    """Yield the ``data`` payload of each Server-Sent Event in a response."""
    buffer: list[str] = []
    async for line in response.aiter_lines():
        if not line:
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if line.startswith(":"):
            continue
        if line.startswith("data:"):
            value = line[5:]
            buffer.append(value[1:] if value.startswith(" ") else value)
    if buffer:
        yield "\n".join(buffer)


def _decode_event(data: str, provider: str) -> Any:
    if data.strip() == "[DONE]":
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise ProviderError(f"{provider} sent an undecodable stream event: {truncate_text(data, 200)}") from exc
