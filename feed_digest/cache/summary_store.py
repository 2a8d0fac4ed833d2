"""
Persistent summary cache with per-summary expansion state.

Summaries are keyed by ``"<link>#<length>"``. Expansion state is stored in
a separate set under the same keys so a reader's "expanded" choice
survives regenerating or removing the summary text. A thread-safe key set
mirrors the map so UI code can ask ``has_cached_summary`` without
awaiting anything.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from ..core.types import SummaryLength, SummaryRecord, summary_key
from ..utils.logging import get_logger, log_event
from .store import (
    DebouncedWriter,
    KeyValueStore,
    dump_json_blob,
    load_json_blob,
    prune_first_keys,
)


class SummaryStore:
    SUMMARY_KEY = "summary_cache"
    EXPANDED_KEY = "summary_expanded"

    def __init__(
        self,
        store: KeyValueStore,
        max_entries: int = 1000,
        debounce_seconds: float = 0.3,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.max_entries = max(1, max_entries)
        self.logger = logger or get_logger("cache")
        self._lock = asyncio.Lock()
        self._keys_lock = threading.Lock()
        self._summary_writer = DebouncedWriter(store, self.SUMMARY_KEY, debounce_seconds, self.logger)
        self._expanded_writer = DebouncedWriter(store, self.EXPANDED_KEY, debounce_seconds, self.logger)

        raw = load_json_blob(store, self.SUMMARY_KEY, dict, self.logger) or {}
        self._summaries: dict[str, str] = {
            str(key): text for key, text in raw.items() if isinstance(text, str) and text.strip()
        }
        pruned = prune_first_keys(self._summaries, self.max_entries)
        if pruned:
            log_event(
                self.logger,
                "Summary cache pruned on load",
                event="summary_cache_pruned",
                removed=len(pruned),
            )
        expanded = load_json_blob(store, self.EXPANDED_KEY, list, self.logger) or []
        self._expanded: set[str] = {str(key) for key in expanded}
        self._known_keys: set[str] = set(self._summaries)

    def has_cached_summary(self, url: str, length: SummaryLength) -> bool:
        """Synchronous membership check; safe to call from any thread."""
        key = summary_key(url, length)
        with self._keys_lock:
            return key in self._known_keys

    async def get(self, url: str, length: SummaryLength) -> str | None:
        async with self._lock:
            return self._summaries.get(summary_key(url, length))

    async def get_record(self, url: str, length: SummaryLength) -> SummaryRecord | None:
        key = summary_key(url, length)
        async with self._lock:
            text = self._summaries.get(key)
            if text is None:
                return None
            return SummaryRecord(text=text, expanded=key in self._expanded)

    async def put(self, url: str, length: SummaryLength, text: str) -> None:
        """Store a summary; empty or whitespace-only text is ignored."""
        if not text or not text.strip():
            return
        key = summary_key(url, length)
        async with self._lock:
            self._summaries[key] = text
            prune_first_keys(self._summaries, self.max_entries)
            self._sync_keys()
            self._summary_writer.schedule(dump_json_blob(self._summaries))

    async def remove(self, url: str, length: SummaryLength, clear_expanded: bool = False) -> None:
        key = summary_key(url, length)
        async with self._lock:
            if self._summaries.pop(key, None) is not None:
                self._sync_keys()
                self._summary_writer.schedule(dump_json_blob(self._summaries))
            if clear_expanded and key in self._expanded:
                self._expanded.discard(key)
                self._expanded_writer.schedule(dump_json_blob(sorted(self._expanded)))

    async def is_expanded(self, url: str, length: SummaryLength) -> bool:
        async with self._lock:
            return summary_key(url, length) in self._expanded

    async def set_expanded(self, expanded: bool, url: str, length: SummaryLength) -> None:
        key = summary_key(url, length)
        async with self._lock:
            if expanded == (key in self._expanded):
                return
            if expanded:
                self._expanded.add(key)
            else:
                self._expanded.discard(key)
            self._expanded_writer.schedule(dump_json_blob(sorted(self._expanded)))

    async def clear_cache(self) -> None:
        """Wipe summaries and expansion state, in memory and on disk."""
        async with self._lock:
            self._summaries = {}
            self._expanded = set()
            self._sync_keys()
            for writer in (self._summary_writer, self._expanded_writer):
                writer.cancel()
                try:
                    self.store.delete(writer.key)
                except OSError as exc:
                    log_event(
                        self.logger,
                        "Cache delete failed",
                        level=logging.WARNING,
                        event="cache_delete_failed",
                        key=writer.key,
                        error=f"{type(exc).__name__}: {exc}",
                    )

    async def flush(self) -> None:
        async with self._lock:
            await self._summary_writer.flush()
            await self._expanded_writer.flush()

    def __len__(self) -> int:
        return len(self._summaries)

    def _sync_keys(self) -> None:
        with self._keys_lock:
            self._known_keys = set(self._summaries)
