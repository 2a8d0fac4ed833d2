"""Provider factory and registry for hot-swappable model backends."""

from __future__ import annotations

import httpx

from ...config import ProviderConfig, get_api_key
from .base import HttpStreamingModel
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


ProviderBuilder = type[HttpStreamingModel]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    provider_cfg: ProviderConfig,
    client: httpx.AsyncClient | None = None,
) -> HttpStreamingModel:
    """Build a provider instance from runtime config.

    A provider without an API key is still returned; it reports itself
    unavailable and the summary pipeline yields nothing for it.
    """
    name = provider_cfg.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")
    api_key = get_api_key(provider_cfg)
    return builder(provider_cfg, api_key, client=client)
