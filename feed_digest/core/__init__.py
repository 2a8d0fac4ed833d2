"""
Core domain models and concurrency primitives.

This package contains data types and the admission/timeout helpers that
the refresh orchestrator and summary pipeline build on.
"""

from .gate import ConcurrencyGate
from .timeouts import with_timeout
from .types import (
    ArticleRef,
    CachedImage,
    FeedRef,
    RefreshStats,
    SummaryLength,
    SummaryRecord,
    ThumbnailEntry,
    summary_key,
)

__all__ = [
    "ArticleRef",
    "CachedImage",
    "ConcurrencyGate",
    "FeedRef",
    "RefreshStats",
    "SummaryLength",
    "SummaryRecord",
    "ThumbnailEntry",
    "summary_key",
    "with_timeout",
]
