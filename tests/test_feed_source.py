from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from feed_digest.core.types import FeedRef
from feed_digest.errors import FeedSourceError
from feed_digest.sources.feeds import FeedparserSource, parse_feed

FEED = FeedRef(
    id="example",
    title="Example News",
    url="https://news.example.com/rss",
    icon_url="https://news.example.com/icon.png",
)

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example News</title>
    <link>https://news.example.com/</link>
    <item>
      <title>Markets &lt;b&gt;rally&lt;/b&gt;</title>
      <link>https://news.example.com/markets</link>
      <guid>markets-1</guid>
      <pubDate>Tue, 03 Jun 2025 10:30:00 GMT</pubDate>
      <description>&lt;p&gt;Stocks rose &lt;em&gt;sharply&lt;/em&gt; today.&lt;/p&gt;</description>
      <media:thumbnail url="https://img.example.com/markets.jpg" />
    </item>
    <item>
      <title>Weather</title>
      <link>https://news.example.com/weather</link>
      <enclosure url="https://img.example.com/weather.png" type="image/png" length="100" />
    </item>
    <item>
      <title>No link here</title>
      <description>Dropped.</description>
    </item>
  </channel>
</rss>
"""


def test_parse_feed_maps_entries():
    articles = parse_feed(RSS, FEED)

    assert [a.link for a in articles] == [
        "https://news.example.com/markets",
        "https://news.example.com/weather",
    ]
    first = articles[0]
    assert first.id == "markets-1"
    assert first.title == "Markets rally"
    assert first.summary == "Stocks rose sharply today."
    assert first.published_at == datetime(2025, 6, 3, 10, 30, tzinfo=timezone.utc)
    assert first.thumbnail_url == "https://img.example.com/markets.jpg"
    assert first.source_id == "example"
    assert first.source_title == "Example News"
    assert first.source_icon_url == "https://news.example.com/icon.png"


def test_parse_feed_falls_back_to_link_and_enclosure():
    weather = parse_feed(RSS, FEED)[1]

    assert weather.id == "https://news.example.com/weather"
    assert weather.thumbnail_url == "https://img.example.com/weather.png"
    assert weather.published_at is None


def test_parse_feed_rejects_garbage():
    with pytest.raises(FeedSourceError):
        parse_feed(b"\x00\x01 this is not a feed <<<", FEED)


def _fetch(handler):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await FeedparserSource(client=client).fetch_items(FEED)

    return asyncio.run(scenario())


def test_source_fetches_and_parses():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=RSS, headers={"content-type": "application/rss+xml"})

    articles = _fetch(handler)

    assert len(articles) == 2
    assert seen[0].url == FEED.url
    assert "application/rss+xml" in seen[0].headers["Accept"]


def test_source_raises_on_http_error_status():
    with pytest.raises(FeedSourceError, match="HTTP 404"):
        _fetch(lambda request: httpx.Response(404))


def test_source_raises_on_transport_error():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    with pytest.raises(FeedSourceError, match="ConnectTimeout"):
        _fetch(handler)
