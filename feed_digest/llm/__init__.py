"""Streaming language model backends and observability."""

from .providers.base import LanguageModel
from .providers.factory import available_providers, create_provider
from .providers.gemini import GeminiProvider
from .providers.openai_compatible import OpenAICompatibleProvider
from .tracing import setup_langfuse, flush, start_span, set_span_output, record_span_error

__all__ = [
    "LanguageModel",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "create_provider",
    "available_providers",
    "setup_langfuse",
    "flush",
    "start_span",
    "set_span_output",
    "record_span_error",
]
