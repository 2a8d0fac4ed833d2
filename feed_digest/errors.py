"""Exception types raised across feed-digest."""

from __future__ import annotations

import asyncio


class FeedDigestError(Exception):
    """Base class for feed-digest failures."""


class ProviderError(FeedDigestError):
    """A language model request failed or returned an unusable response."""


class FeedSourceError(FeedDigestError):
    """A feed document could not be fetched or parsed."""


class OperationTimeout(FeedDigestError, asyncio.TimeoutError):
    """An operation exceeded its time budget."""

    def __init__(self, seconds: float, label: str | None = None):
        self.seconds = seconds
        self.label = label
        what = label or "operation"
        super().__init__(f"{what} timed out after {seconds:g}s")
