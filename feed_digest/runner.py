"""
Feed refresh orchestration for feed-digest.

This module coordinates one refresh run:
1. Process at most ``feed_concurrency`` feeds at once; each holds its feed
   permit while its item list is fetched and its articles are prefetched
2. Keep the newest ``max_articles_per_feed`` items of each feed
3. Prefetch and extract article text in small batches, each article under
   the article gate and its own timeout
4. Store non-empty text in the article text cache

The whole run is bounded by a global timeout; when it fires, in-flight
work is cancelled and both gates are reset so the next run starts clean.
Runs are refused while one is active and during a short cooldown after
one ends. Per-feed and per-article failures are logged and never surface.

The orchestrator is also the single entry point the reader side uses for
cached text, cached summaries, streaming summaries and thumbnails.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, Iterable

import httpx
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .cache.store import FileStore, KeyValueStore
from .cache.summary_store import SummaryStore
from .cache.text_cache import ArticleTextCache
from .cache.thumbnails import ThumbnailCache
from .config import AppConfig
from .core.gate import ConcurrencyGate
from .core.timeouts import with_timeout
from .core.types import ArticleRef, CachedImage, FeedRef, RefreshStats, SummaryLength
from .errors import OperationTimeout
from .fetch.extractor import extract_text
from .fetch.fetcher import fetch_html
from .llm.providers.base import LanguageModel
from .llm.providers.factory import create_provider
from .llm.tracing import flush, set_span_output, setup_langfuse, start_span
from .sources.feeds import FeedparserSource, FeedSource
from .summarize.pipeline import SummaryPipeline
from .utils.logging import get_logger, log_event, setup_logging


ProgressCallback = Callable[[RefreshStats], None]


class RefreshOrchestrator:
    """Bounded, timeout-guarded refresh of feeds into the article text cache.

    Attributes:
        feed_gate: Admission gate for whole-feed processing (fetch and prefetch)
        article_gate: Admission gate for article prefetches
        stats: Counters of the current or most recent run
        is_refreshing: True while a run is active
    """

    def __init__(
        self,
        cfg: AppConfig,
        feed_source: FeedSource,
        text_cache: ArticleTextCache,
        pipeline: SummaryPipeline,
        thumbnails: ThumbnailCache,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
        on_progress: ProgressCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cfg = cfg
        self.feed_source = feed_source
        self.text_cache = text_cache
        self.pipeline = pipeline
        self.thumbnails = thumbnails
        self.client = client
        self.logger = logger or get_logger("refresh")
        self.on_progress = on_progress
        self.clock = clock
        self.feed_gate = ConcurrencyGate(cfg.refresh.feed_concurrency)
        self.article_gate = ConcurrencyGate(cfg.refresh.article_concurrency)
        self.stats = RefreshStats()
        self.is_refreshing = False
        self._cooldown_until = 0.0

    async def refresh_feeds(self, feeds: Iterable[FeedRef]) -> RefreshStats | None:
        """Run one refresh over ``feeds``.

        Returns:
            The run's stats, or None when a run is already active or the
            cooldown after the previous run has not elapsed
        """
        if self.is_refreshing:
            log_event(self.logger, "Refresh already running", event="refresh_skipped", reason="running")
            return None
        if self.clock() < self._cooldown_until:
            log_event(self.logger, "Refresh in cooldown", event="refresh_skipped", reason="cooldown")
            return None

        feeds = list(feeds)
        self.is_refreshing = True
        self.feed_gate.reset()
        self.article_gate.reset()
        stats = RefreshStats(total=len(feeds))
        self.stats = stats
        self._notify()
        log_event(self.logger, "Refresh start", event="refresh_start", feeds=len(feeds))

        try:
            with start_span("feed_digest.refresh", kind="chain", input_value={"feeds": len(feeds)}) as span:
                try:
                    await with_timeout(
                        self.cfg.refresh.global_timeout_seconds,
                        self._refresh_all,
                        feeds,
                        stats,
                        label="refresh",
                    )
                except OperationTimeout as exc:
                    log_event(
                        self.logger,
                        "Refresh timed out",
                        level=logging.WARNING,
                        event="refresh_timeout",
                        seconds=exc.seconds,
                        completed=stats.completed,
                        total=stats.total,
                    )
                    self.feed_gate.reset()
                    self.article_gate.reset()
                set_span_output(span, _stats_payload(stats))
            await self.text_cache.flush()
        finally:
            self.is_refreshing = False
            self._cooldown_until = self.clock() + self.cfg.refresh.cooldown_seconds

        log_event(self.logger, "Refresh complete", event="refresh_complete", **_stats_payload(stats))
        return stats

    async def _refresh_all(self, feeds: list[FeedRef], stats: RefreshStats) -> None:
        tasks = [asyncio.create_task(self._refresh_feed(feed, stats)) for feed in feeds]
        try:
            for finished in asyncio.as_completed(tasks):
                await finished
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def _refresh_feed(self, feed: FeedRef, stats: RefreshStats) -> None:
        refresh_cfg = self.cfg.refresh
        try:
            async with self.feed_gate.permit():
                items = await self.feed_source.fetch_items(feed)
                items = items[: refresh_cfg.max_articles_per_feed]
                batch_size = max(1, refresh_cfg.batch_size)
                for start in range(0, len(items), batch_size):
                    if start:
                        await asyncio.sleep(refresh_cfg.batch_pause_seconds)
                    batch = items[start : start + batch_size]
                    await asyncio.gather(*(self._prefetch_article(article, stats) for article in batch))
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                "Feed refresh failed",
                level=logging.WARNING,
                event="feed_failed",
                feed=feed.url,
                error=f"{type(exc).__name__}: {exc}",
            )
        stats.completed += 1
        self._notify()

    async def _prefetch_article(self, article: ArticleRef, stats: RefreshStats) -> None:
        async with self.article_gate.permit():
            if await self.text_cache.get(article.link):
                stats.articles_skipped += 1
                self._notify()
                return
            try:
                stored = await with_timeout(
                    self.cfg.refresh.item_timeout_seconds,
                    self._fetch_article_text,
                    article,
                    label="article",
                )
            except OperationTimeout:
                log_event(
                    self.logger,
                    "Article prefetch timed out",
                    level=logging.DEBUG,
                    event="article_timeout",
                    url=article.link,
                )
                return
            except Exception as exc:  # noqa: BLE001
                log_event(
                    self.logger,
                    "Article prefetch failed",
                    level=logging.DEBUG,
                    event="article_failed",
                    url=article.link,
                    error=f"{type(exc).__name__}: {exc}",
                )
                return
        if stored:
            stats.articles_cached += 1
            self._notify()

    async def _fetch_article_text(self, article: ArticleRef) -> bool:
        fetch_cfg = self.cfg.fetch
        result = await fetch_html(
            article.link,
            timeout=fetch_cfg.timeout_seconds,
            retries=fetch_cfg.retries,
            user_agent=fetch_cfg.user_agent,
            trust_env=fetch_cfg.trust_env,
            client=self.client,
        )
        if not result.ok:
            log_event(
                self.logger,
                "Article fetch failed",
                level=logging.DEBUG,
                event="article_fetch_failed",
                url=article.link,
                status_code=result.status_code,
                error=result.error,
            )
            return False
        html = (result.text or "")[: fetch_cfg.max_html_chars]
        text = await asyncio.to_thread(
            extract_text, html, self.cfg.extract.primary, self.cfg.extract.fallback
        )
        if not text:
            return False
        await self.text_cache.put(article.link, text)
        return True

    async def cache_thumbnails(self, articles: Iterable[ArticleRef]) -> int:
        """Download article thumbnails and source icons; returns how many are cached."""
        urls: list[str] = []
        for article in articles:
            for url in (article.thumbnail_url, article.source_icon_url):
                if url and url not in urls:
                    urls.append(url)

        async def _download(url: str) -> bool:
            async with self.article_gate.permit():
                return await self.thumbnails.download_and_cache(url)

        results = await asyncio.gather(*(_download(url) for url in urls))
        return sum(1 for ok in results if ok)

    def summarize(
        self,
        url: str,
        length: SummaryLength = SummaryLength.SHORT,
        seed_text: str | None = None,
    ) -> AsyncIterator[str]:
        return self.pipeline.summarize(url, length, seed_text)

    async def get_cached_text(self, url: str) -> str | None:
        return await self.text_cache.get(url)

    async def get_cached_summary(self, url: str, length: SummaryLength) -> str | None:
        return await self.pipeline.cached_summary(url, length)

    def get_thumbnail(self, url: str) -> CachedImage | None:
        return self.thumbnails.load_with_color(url)

    async def flush(self) -> None:
        await self.text_cache.flush()
        await self.pipeline.summaries.flush()

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.stats)


def build_orchestrator(
    cfg: AppConfig,
    store: KeyValueStore | None = None,
    feed_source: FeedSource | None = None,
    model: LanguageModel | None = None,
    client: httpx.AsyncClient | None = None,
    on_progress: ProgressCallback | None = None,
) -> RefreshOrchestrator:
    """Wire caches, model, feed source and pipeline from config.

    Anything not passed in is built from ``cfg``; the cache store defaults
    to a FileStore under ``cfg.cache.dir``.
    """
    store = store or FileStore(cfg.cache_dir)
    text_cache = ArticleTextCache(store, cfg.cache.text_max_entries, cfg.cache.debounce_seconds)
    summaries = SummaryStore(store, cfg.cache.summary_max_entries, cfg.cache.debounce_seconds)
    thumbnails = ThumbnailCache(store, cfg.thumbnails, client=client)
    model = model or create_provider(cfg.provider, client=client)
    pipeline = SummaryPipeline(
        model,
        text_cache,
        summaries,
        cfg=cfg.summary,
        fetch_cfg=cfg.fetch,
        extract_cfg=cfg.extract,
        client=client,
    )
    return RefreshOrchestrator(
        cfg,
        feed_source or FeedparserSource(cfg.fetch, client=client),
        text_cache,
        pipeline,
        thumbnails,
        client=client,
        on_progress=on_progress,
    )


def run_refresh(
    feeds: list[FeedRef],
    cfg: AppConfig,
    show_progress: bool = True,
    cache_thumbnails: bool = False,
    console: Console | None = None,
) -> RefreshStats | None:
    """Run one refresh from synchronous code, optionally with a progress bar.

    Args:
        feeds: Feeds to refresh
        cfg: Application configuration
        show_progress: Whether to display a rich progress bar
        cache_thumbnails: Whether to also download thumbnails for fetched items
        console: Rich console for output (creates default if None)

    Returns:
        The run's stats, or None if the run was refused
    """
    console = console or Console()
    setup_logging(cfg.logging, cfg.cache_dir if cfg.logging.file else None)
    setup_langfuse(cfg.langfuse)

    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("cached={task.fields[cached]} skipped={task.fields[skipped]}"),
        TimeElapsedColumn(),
        console=console,
        disable=not show_progress,
    )

    async def _run() -> RefreshStats | None:
        task_id = progress.add_task("Refresh feeds", total=len(feeds), cached=0, skipped=0)

        def _on_progress(stats: RefreshStats) -> None:
            progress.update(
                task_id,
                completed=stats.completed,
                cached=stats.articles_cached,
                skipped=stats.articles_skipped,
            )

        timeout = httpx.Timeout(cfg.fetch.timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, trust_env=cfg.fetch.trust_env) as client:
            orchestrator = build_orchestrator(cfg, client=client, on_progress=_on_progress)
            if cache_thumbnails:
                orchestrator.feed_source = _RecordingSource(
                    orchestrator.feed_source, cfg.refresh.max_articles_per_feed
                )
            stats = await orchestrator.refresh_feeds(feeds)
            if stats is not None and cache_thumbnails:
                thumbs_task = progress.add_task("Thumbnails", total=None, cached="-", skipped="-")
                count = await orchestrator.cache_thumbnails(orchestrator.feed_source.seen)
                progress.update(thumbs_task, total=count, completed=count)
            await orchestrator.flush()
            return stats

    with progress:
        stats = asyncio.run(_run())
    if stats is not None:
        _render_refresh_stats(stats, console)
    flush()
    return stats


class _RecordingSource(FeedSource):
    """Remembers every article a wrapped source returned."""

    def __init__(self, inner: FeedSource, per_feed: int):
        self.inner = inner
        self.per_feed = per_feed
        self.seen: list[ArticleRef] = []

    async def fetch_items(self, feed: FeedRef) -> list[ArticleRef]:
        items = await self.inner.fetch_items(feed)
        self.seen.extend(items[: self.per_feed])
        return items


def _stats_payload(stats: RefreshStats) -> dict[str, int]:
    return {
        "total": stats.total,
        "completed": stats.completed,
        "articles_cached": stats.articles_cached,
        "articles_skipped": stats.articles_skipped,
    }


def _render_refresh_stats(stats: RefreshStats, console: Console) -> None:
    console.print(
        "[bold]Refresh summary[/bold]: "
        f"feeds={stats.completed}/{stats.total}, cached={stats.articles_cached}, "
        f"skipped={stats.articles_skipped}"
    )
