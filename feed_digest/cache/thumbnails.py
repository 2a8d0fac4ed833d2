"""
Thumbnail image cache.

Feed thumbnails are downscaled, re-encoded as JPEG and kept in a bounded
map together with the dominant color of the image's bottom half, which
callers use to tint text drawn over the picture. When the cache is full,
the oldest image by store time is evicted.

All access is serialized by one ``threading.Lock`` so the cache can be
used from worker threads as well as from the event loop.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
import io
import logging
import threading
import time
from typing import Any, Callable
from urllib.parse import urlsplit

import httpx
from PIL import Image, ImageStat

from ..config import ThumbnailConfig
from ..core.types import RGB, CachedImage, ThumbnailEntry
from ..fetch.fetcher import image_headers
from ..utils.logging import get_logger, log_event
from .store import KeyValueStore, dump_json_blob, load_json_blob


def thumbnail_key(url: str) -> str:
    """First 16 bytes of SHA-256(url), hex encoded."""
    return hashlib.sha256(url.encode("utf-8")).digest()[:16].hex()


def dominant_color(image: Image.Image) -> RGB | None:
    """Mean color of the bottom half of an image, channels in [0, 1].

    Falls back to averaging the whole image down to a single pixel when
    the bottom-half statistics cannot be computed. Returns None for an
    empty image.
    """
    rgb = image if image.mode == "RGB" else image.convert("RGB")
    width, height = rgb.size
    if width == 0 or height == 0:
        return None
    try:
        bottom = rgb.crop((0, height // 2, width, height))
        mean = ImageStat.Stat(bottom).mean
        r, g, b = mean[:3]
    except (ValueError, ZeroDivisionError):
        pixel = rgb.resize((1, 1), Image.Resampling.BOX).getpixel((0, 0))
        r, g, b = pixel[:3]
    return (r / 255.0, g / 255.0, b / 255.0)


class ThumbnailCache:
    STORE_KEY = "thumbnail_cache"

    def __init__(
        self,
        store: KeyValueStore,
        cfg: ThumbnailConfig | None = None,
        clock: Callable[[], float] = time.time,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        self.store = store
        self.cfg = cfg or ThumbnailConfig()
        self.clock = clock
        self.logger = logger or get_logger("thumbnails")
        self._client = client
        self._lock = threading.Lock()
        self._entries: dict[str, ThumbnailEntry] = self._load()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def save(self, image: Image.Image, url: str) -> str:
        """Downscale, encode and store an image; returns its cache key."""
        prepared = image.copy()
        # thumbnail() only ever shrinks.
        prepared.thumbnail((self.cfg.max_dimension, self.cfg.max_dimension))
        if prepared.mode != "RGB":
            prepared = prepared.convert("RGB")
        buffer = io.BytesIO()
        prepared.save(buffer, format="JPEG", quality=self.cfg.quality)
        entry = ThumbnailEntry(
            data=buffer.getvalue(),
            timestamp=self.clock(),
            dominant_color=dominant_color(prepared),
        )

        key = thumbnail_key(url)
        with self._lock:
            self._entries[key] = entry
            self._evict()
            self._persist()
        return key

    def load(self, url: str) -> Image.Image | None:
        with self._lock:
            entry = self._entries.get(thumbnail_key(url))
        if entry is None:
            return None
        return _decode(entry.data)

    def load_with_color(self, url: str) -> CachedImage | None:
        """Load an image and its dominant color, backfilling the color if missing."""
        key = thumbnail_key(url)
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        image = _decode(entry.data)
        if image is None:
            return None
        color = entry.dominant_color
        if color is None:
            color = dominant_color(image)
            with self._lock:
                current = self._entries.get(key)
                if current is not None:
                    current.dominant_color = color
                    self._persist()
        return CachedImage(image=image, dominant_color=color)

    def has_image(self, url: str) -> bool:
        with self._lock:
            return thumbnail_key(url) in self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries = {}
            try:
                self.store.delete(self.STORE_KEY)
            except OSError as exc:
                self._log_store_error("Thumbnail cache delete failed", exc)

    async def download_and_cache(self, url: str) -> bool:
        """Fetch an image and store it; True when the image ends up cached.

        SVG images are never cached. Already-cached images are not
        downloaded again.
        """
        if urlsplit(url).path.lower().endswith(".svg"):
            return False
        if self.load(url) is not None:
            return True

        headers = image_headers(url, self.cfg.user_agent)
        timeouts = self.cfg.attempt_timeouts or [15.0]
        for attempt, timeout in enumerate(timeouts):
            if attempt:
                await asyncio.sleep(self.cfg.retry_delay_seconds)
            try:
                resp = await self._get(url, headers, timeout)
            except httpx.HTTPError as exc:
                self._log_download_failure(url, attempt, f"{type(exc).__name__}: {exc}")
                continue
            if not resp.is_success:
                self._log_download_failure(url, attempt, f"HTTP {resp.status_code}")
                continue
            if "svg" in resp.headers.get("content-type", "").lower():
                return False
            image = _decode(resp.content)
            if image is None:
                self._log_download_failure(url, attempt, "undecodable image")
                continue
            await asyncio.to_thread(self.save, image, url)
            log_event(self.logger, "Thumbnail cached", event="thumbnail_cached", url=url)
            return True
        return False

    async def _get(self, url: str, headers: dict[str, str], timeout: float) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await client.get(url, headers=headers)

    def _evict(self) -> None:
        while len(self._entries) > self.cfg.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
            del self._entries[oldest]

    def _load(self) -> dict[str, ThumbnailEntry]:
        raw = load_json_blob(self.store, self.STORE_KEY, dict, self.logger) or {}
        entries: dict[str, ThumbnailEntry] = {}
        for key, item in raw.items():
            entry = _entry_from_json(item)
            if entry is not None:
                entries[str(key)] = entry
        return entries

    def _persist(self) -> None:
        payload = {key: _entry_to_json(entry) for key, entry in self._entries.items()}
        try:
            self.store.write(self.STORE_KEY, dump_json_blob(payload))
        except OSError as exc:
            self._log_store_error("Thumbnail cache save failed", exc)

    def _log_store_error(self, message: str, exc: Exception) -> None:
        log_event(
            self.logger,
            message,
            level=logging.WARNING,
            event="cache_save_failed",
            key=self.STORE_KEY,
            error=f"{type(exc).__name__}: {exc}",
        )

    def _log_download_failure(self, url: str, attempt: int, error: str) -> None:
        log_event(
            self.logger,
            "Thumbnail download failed",
            level=logging.DEBUG,
            event="thumbnail_download_failed",
            url=url,
            attempt=attempt + 1,
            error=error,
        )


def _decode(data: bytes) -> Image.Image | None:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError):
        return None
    return image


def _entry_to_json(entry: ThumbnailEntry) -> dict[str, Any]:
    return {
        "data": base64.b64encode(entry.data).decode("ascii"),
        "timestamp": entry.timestamp,
        "color": list(entry.dominant_color) if entry.dominant_color is not None else None,
    }


def _entry_from_json(item: Any) -> ThumbnailEntry | None:
    if not isinstance(item, dict):
        return None
    try:
        data = base64.b64decode(item["data"], validate=True)
        timestamp = float(item.get("timestamp", 0.0))
    except (KeyError, TypeError, ValueError, binascii.Error):
        return None
    color = item.get("color")
    dominant: RGB | None = None
    if isinstance(color, list) and len(color) == 3:
        dominant = (float(color[0]), float(color[1]), float(color[2]))
    return ThumbnailEntry(data=data, timestamp=timestamp, dominant_color=dominant)
