"""
Blob storage and debounced persistence for the caches.

Each cache keeps its authoritative state in memory and persists it as a
single JSON blob under a fixed key. Stores only move bytes around; the
caches own encoding. DebouncedWriter coalesces bursts of mutations into
one write after a quiet period.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import json
import logging
import os
from pathlib import Path
import re

from ..utils.logging import get_logger, log_event


_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """Byte blobs addressed by short string keys."""

    @abstractmethod
    def read(self, key: str) -> bytes | None:
        """Return the stored blob, or None when the key is absent."""
        raise NotImplementedError

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError


class FileStore(KeyValueStore):
    """One file per key under a root directory.

    Writes go to a temporary sibling first and are moved into place with
    ``os.replace``, so a crash never leaves a half-written blob behind.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser()

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.root / f"{key}.json"

    def read(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f"{path.name}.tmp")
        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class MemoryStore(KeyValueStore):
    """Process-local store; used for tests and ephemeral runs."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.writes = 0

    def read(self, key: str) -> bytes | None:
        return self.blobs.get(key)

    def write(self, key: str, data: bytes) -> None:
        self.writes += 1
        self.blobs[key] = data

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


class DebouncedWriter:
    """Write the latest snapshot for one key after ``delay`` seconds of quiet.

    Every ``schedule()`` replaces the pending snapshot and re-arms the
    timer. Save failures are logged and dropped; the in-memory cache stays
    authoritative and the next mutation schedules another attempt.

    Attributes:
        store: Destination store
        key: Blob key written by this writer
        delay: Quiet period in seconds
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        delay: float,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.key = key
        self.delay = delay
        self.logger = logger or get_logger("cache")
        self._pending: bytes | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, data: bytes) -> None:
        self._pending = data
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._write_pending)

    async def flush(self) -> None:
        """Write any pending snapshot immediately."""
        self._write_pending()

    def cancel(self) -> None:
        """Drop the pending snapshot without writing it."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None

    def _write_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        data = self._pending
        if data is None:
            return
        self._pending = None
        try:
            self.store.write(self.key, data)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Cache save failed",
                level=logging.WARNING,
                event="cache_save_failed",
                key=self.key,
                error=f"{type(exc).__name__}: {exc}",
            )


def load_json_blob(
    store: KeyValueStore,
    key: str,
    expected: type,
    logger: logging.Logger | None = None,
):
    """Read and decode a JSON blob, returning None when absent or corrupt."""
    try:
        blob = store.read(key)
        if blob is None:
            return None
        value = json.loads(blob.decode("utf-8"))
    except (OSError, ValueError) as exc:
        log_event(
            logger or get_logger("cache"),
            "Cache load failed",
            level=logging.WARNING,
            event="cache_load_failed",
            key=key,
            error=f"{type(exc).__name__}: {exc}",
        )
        return None
    if not isinstance(value, expected):
        return None
    return value


def dump_json_blob(value) -> bytes:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def prune_first_keys(entries: dict, max_entries: int) -> list:
    """Drop the earliest-inserted keys until ``entries`` fits ``max_entries``.

    This is insertion order, not recency: re-storing a key does not move it.
    Returns the removed keys.
    """
    overflow = len(entries) - max_entries
    if overflow <= 0:
        return []
    victims = list(entries)[:overflow]
    for key in victims:
        del entries[key]
    return victims
