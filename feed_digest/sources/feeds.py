"""
Feed sources: turn a FeedRef into the list of articles it currently lists.

FeedparserSource downloads the feed document with httpx and parses it
with feedparser, which handles RSS 0.9x/1.0/2.0 and Atom alike.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from bs4 import BeautifulSoup
import feedparser
import httpx

from ..config import FetchConfig
from ..core.types import ArticleRef, FeedRef
from ..errors import FeedSourceError


class FeedSource(ABC):
    @abstractmethod
    async def fetch_items(self, feed: FeedRef) -> list[ArticleRef]:
        """Return the feed's current items in feed order.

        Raises:
            FeedSourceError: If the feed cannot be fetched or parsed
        """
        raise NotImplementedError


class FeedparserSource(FeedSource):
    """HTTP + feedparser implementation of FeedSource."""

    def __init__(self, cfg: FetchConfig | None = None, client: httpx.AsyncClient | None = None):
        self.cfg = cfg or FetchConfig()
        self._client = client

    async def fetch_items(self, feed: FeedRef) -> list[ArticleRef]:
        headers = {
            "User-Agent": self.cfg.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
        }
        try:
            if self._client is not None:
                resp = await self._client.get(
                    feed.url, headers=headers, timeout=self.cfg.timeout_seconds, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self.cfg.timeout_seconds,
                    follow_redirects=True,
                    trust_env=self.cfg.trust_env,
                ) as client:
                    resp = await client.get(feed.url, headers=headers)
        except httpx.HTTPError as exc:
            raise FeedSourceError(f"{feed.url}: {type(exc).__name__}: {exc}") from exc
        if not resp.is_success:
            raise FeedSourceError(f"{feed.url}: HTTP {resp.status_code}")
        return parse_feed(resp.content, feed)


def parse_feed(content: bytes | str, feed: FeedRef) -> list[ArticleRef]:
    """Parse a feed document into ArticleRefs; entries without a link are skipped."""
    parsed = feedparser.parse(content)
    if parsed.bozo and not parsed.entries:
        raise FeedSourceError(f"{feed.url}: {parsed.get('bozo_exception') or 'unparseable feed'}")

    articles: list[ArticleRef] = []
    for entry in parsed.entries:
        link = (entry.get("link") or "").strip()
        if not link:
            continue
        articles.append(
            ArticleRef(
                id=str(entry.get("id") or link),
                title=_clean_html(entry.get("title")) or link,
                link=link,
                source_id=feed.id,
                source_title=feed.title,
                published_at=_entry_time(entry),
                summary=_clean_html(entry.get("summary")),
                thumbnail_url=_entry_thumbnail(entry),
                source_icon_url=feed.icon_url,
            )
        )
    return articles


def _clean_html(value: Any) -> str | None:
    if not value:
        return None
    text = BeautifulSoup(str(value), "html.parser").get_text(separator=" ")
    text = " ".join(text.split())
    return text or None


def _entry_time(entry: Any) -> datetime | None:
    for attr in ("published_parsed", "updated_parsed"):
        value = entry.get(attr)
        if value:
            try:
                return datetime(*value[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return None


def _entry_thumbnail(entry: Any) -> str | None:
    for item in entry.get("media_thumbnail") or []:
        if item.get("url"):
            return item["url"]
    for item in entry.get("media_content") or []:
        medium = item.get("medium") or ""
        mime = item.get("type") or ""
        if item.get("url") and (medium == "image" or mime.startswith("image/")):
            return item["url"]
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and (link.get("type") or "").startswith("image/"):
            return link.get("href")
    return None
