"""
Core data types for feed-digest.

This module defines the fundamental data structures shared by the refresh
orchestrator, the summary pipeline and the caches:
- FeedRef: A feed to refresh
- ArticleRef: One feed item; its link keys every cache
- SummaryLength: Requested summary size
- SummaryRecord: Cached summary text plus its expansion state
- ThumbnailEntry / CachedImage: Persisted and decoded thumbnail data
- RefreshStats: Counters mutated in place during a refresh run
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PIL import Image


RGB = tuple[float, float, float]


@dataclass(frozen=True)
class FeedRef:
    """A feed the orchestrator refreshes.

    Attributes:
        id: Stable identifier (defaults to the feed URL)
        title: Display title
        url: Feed document URL
        icon_url: Optional icon for the source
    """
    id: str
    title: str
    url: str
    icon_url: str | None = None


@dataclass(frozen=True)
class ArticleRef:
    """An item published by a feed.

    Attributes:
        id: Identifier from the feed (guid), or the link when absent
        title: The article headline
        link: The article URL, primary key for every cache
        published_at: Publish time if the feed carries one
        summary: Plain-text preview from the feed, used as summary context
        thumbnail_url: Image advertised by the feed for this item
        source_id: Id of the feed this article came from
        source_title: Title of the feed this article came from
        source_icon_url: Icon of the feed this article came from
    """
    id: str
    title: str
    link: str
    source_id: str
    source_title: str
    published_at: datetime | None = None
    summary: str | None = None
    thumbnail_url: str | None = None
    source_icon_url: str | None = None


class SummaryLength(str, Enum):
    SHORT = "short"
    LONG = "long"


def summary_key(url: str, length: SummaryLength) -> str:
    """Serialize a (link, length) pair as ``"<link>#<length>"``."""
    return f"{url}#{SummaryLength(length).value}"


@dataclass
class SummaryRecord:
    text: str
    expanded: bool = False


@dataclass
class ThumbnailEntry:
    """A persisted thumbnail.

    Attributes:
        data: JPEG bytes
        timestamp: Seconds since the epoch when the image was stored
        dominant_color: Mean RGB of the bottom half in [0, 1], None for legacy entries
    """
    data: bytes
    timestamp: float
    dominant_color: RGB | None = None


@dataclass
class CachedImage:
    image: "Image.Image"
    dominant_color: RGB | None


@dataclass
class RefreshStats:
    """Counters for one refresh run.

    The orchestrator mutates a single instance in place so progress
    observers see each increment as it happens.

    Attributes:
        total: Feeds in the run
        completed: Feeds finished, successfully or not
        articles_cached: Articles whose text was fetched and stored
        articles_skipped: Articles whose text was already cached
    """
    total: int = 0
    completed: int = 0
    articles_cached: int = 0
    articles_skipped: int = 0
