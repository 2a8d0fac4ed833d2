"""Bounded cache of extracted article text, keyed by article link."""

from __future__ import annotations

import asyncio
import logging

from ..utils.logging import get_logger, log_event
from .store import (
    DebouncedWriter,
    KeyValueStore,
    dump_json_blob,
    load_json_blob,
    prune_first_keys,
)


class ArticleTextCache:
    """Article link -> readable text, persisted as one debounced JSON blob.

    Capacity is enforced by dropping the earliest-inserted links, both on
    load and whenever an insert overflows. All mutations go through a
    single ``asyncio.Lock``.
    """

    STORE_KEY = "article_text_cache"

    def __init__(
        self,
        store: KeyValueStore,
        max_entries: int = 500,
        debounce_seconds: float = 0.3,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.max_entries = max(1, max_entries)
        self.logger = logger or get_logger("cache")
        self._lock = asyncio.Lock()
        self._writer = DebouncedWriter(store, self.STORE_KEY, debounce_seconds, self.logger)
        self._entries = self._load()

    def _load(self) -> dict[str, str]:
        raw = load_json_blob(self.store, self.STORE_KEY, dict, self.logger) or {}
        entries = {
            str(url): text for url, text in raw.items() if isinstance(text, str) and text
        }
        pruned = prune_first_keys(entries, self.max_entries)
        if pruned:
            log_event(
                self.logger,
                "Text cache pruned on load",
                event="text_cache_pruned",
                removed=len(pruned),
            )
        return entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    async def get(self, url: str) -> str | None:
        async with self._lock:
            return self._entries.get(url)

    async def put(self, url: str, text: str) -> None:
        """Store text for a link; empty text is ignored."""
        if not text:
            return
        async with self._lock:
            self._entries[url] = text
            prune_first_keys(self._entries, self.max_entries)
            self._writer.schedule(dump_json_blob(self._entries))

    async def clear(self) -> None:
        async with self._lock:
            self._entries = {}
            self._writer.cancel()
            try:
                self.store.delete(self.STORE_KEY)
            except OSError as exc:
                log_event(
                    self.logger,
                    "Cache delete failed",
                    level=logging.WARNING,
                    event="cache_delete_failed",
                    key=self.STORE_KEY,
                    error=f"{type(exc).__name__}: {exc}",
                )

    async def flush(self) -> None:
        async with self._lock:
            await self._writer.flush()
