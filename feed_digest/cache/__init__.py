"""
Bounded caches for article text, summaries and thumbnails.

Each cache keeps its state in memory and persists it through a
KeyValueStore blob.
"""

from .store import DebouncedWriter, FileStore, KeyValueStore, MemoryStore
from .summary_store import SummaryStore
from .text_cache import ArticleTextCache
from .thumbnails import ThumbnailCache, dominant_color, thumbnail_key

__all__ = [
    "ArticleTextCache",
    "DebouncedWriter",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "SummaryStore",
    "ThumbnailCache",
    "dominant_color",
    "thumbnail_key",
]
