"""
Two-stage streaming article summaries.

``SummaryPipeline.summarize`` is an async generator of revealed-so-far
summary strings for one (link, length) key:

1. A cached summary is yielded once and nothing else happens.
2. Otherwise the article text comes from the text cache, or is fetched,
   extracted and cached.
3. A primer summary is streamed from the opening paragraphs and cached as
   soon as it completes.
4. If the primer is already long enough, the run ends there. Otherwise a
   second pass over a structure-aware excerpt streams the final summary,
   which overwrites the primer in the cache.

Model output is re-revealed a couple of characters at a time so readers
see steady typing rather than bursts. Closing or cancelling the generator
stops both the reveal and the model request; a stage that did not
complete is never cached.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from dataclasses import dataclass
import logging
from typing import AsyncIterator

import httpx

from ..cache.summary_store import SummaryStore
from ..cache.text_cache import ArticleTextCache
from ..config import ExtractConfig, FetchConfig, SummaryConfig
from ..core.types import SummaryLength
from ..fetch.extractor import extract_text
from ..fetch.fetcher import fetch_html
from ..llm.providers.base import LanguageModel
from ..llm.tracing import record_span_error, set_span_output, start_span
from ..utils.logging import get_logger, log_event
from .prompts import build_summary_prompt, instructions_for
from .slicer import primer_slice, structure_aware_slice


@dataclass
class StageResult:
    """Outcome of one streamed stage; ``completed`` is False on model failure."""
    text: str = ""
    completed: bool = False


class SummaryPipeline:
    def __init__(
        self,
        model: LanguageModel,
        text_cache: ArticleTextCache,
        summaries: SummaryStore,
        cfg: SummaryConfig | None = None,
        fetch_cfg: FetchConfig | None = None,
        extract_cfg: ExtractConfig | None = None,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ):
        self.model = model
        self.text_cache = text_cache
        self.summaries = summaries
        self.cfg = cfg or SummaryConfig()
        self.fetch_cfg = fetch_cfg or FetchConfig()
        self.extract_cfg = extract_cfg or ExtractConfig()
        self.client = client
        self.logger = logger or get_logger("summary")

    async def summarize(
        self,
        url: str,
        length: SummaryLength = SummaryLength.SHORT,
        seed_text: str | None = None,
    ) -> AsyncIterator[str]:
        length = SummaryLength(length)

        cached = await self.summaries.get(url, length)
        if cached:
            log_event(self.logger, "Summary cache hit", event="summary_cache_hit", url=url, length=length.value)
            yield cached
            return

        if not self.model.is_available():
            log_event(
                self.logger,
                "Summary model unavailable",
                level=logging.WARNING,
                event="summary_model_unavailable",
                url=url,
            )
            return

        text = await self.article_text(url)
        if not text:
            return

        primer = StageResult()
        excerpt = primer_slice(text, self.cfg.primer_chars(length))
        async with aclosing(self._stream_stage("primer", url, length, excerpt, seed_text, primer)) as stream:
            async for partial in stream:
                yield partial
        if not primer.completed:
            return
        await self.summaries.put(url, length, primer.text)

        if len(primer.text) >= self.cfg.finish_threshold(length):
            log_event(
                self.logger,
                "Summary finished after primer",
                event="summary_early_finish",
                url=url,
                length=length.value,
                chars=len(primer.text),
            )
            return

        full = StageResult()
        excerpt = structure_aware_slice(text, self.cfg.full_chars(length))
        async with aclosing(self._stream_stage("full", url, length, excerpt, seed_text, full)) as stream:
            async for partial in stream:
                yield partial
        if full.completed:
            await self.summaries.put(url, length, full.text)

    async def article_text(self, url: str) -> str | None:
        """Return cached article text, fetching and extracting it on a miss."""
        text = await self.text_cache.get(url)
        if not text:
            result = await fetch_html(
                url,
                timeout=self.fetch_cfg.timeout_seconds,
                retries=self.fetch_cfg.retries,
                user_agent=self.fetch_cfg.user_agent,
                trust_env=self.fetch_cfg.trust_env,
                client=self.client,
            )
            if not result.ok:
                log_event(
                    self.logger,
                    "Article fetch failed",
                    level=logging.WARNING,
                    event="summary_fetch_failed",
                    url=url,
                    status_code=result.status_code,
                    error=result.error,
                )
                return None
            text = await asyncio.to_thread(
                extract_text, result.text or "", self.extract_cfg.primary, self.extract_cfg.fallback
            )
            if not text:
                log_event(
                    self.logger,
                    "No readable text",
                    level=logging.WARNING,
                    event="summary_text_empty",
                    url=url,
                )
                return None
            await self.text_cache.put(url, text)
        return text[: self.cfg.max_text_chars]

    async def _stream_stage(
        self,
        stage: str,
        url: str,
        length: SummaryLength,
        excerpt: str,
        seed_text: str | None,
        result: StageResult,
    ) -> AsyncIterator[str]:
        prompt = build_summary_prompt(excerpt, seed_text, self.cfg.seed_chars)
        step = max(1, self.cfg.reveal_step)
        revealed = 0
        latest = ""

        with start_span(
            f"summary.{stage}",
            kind="llm",
            input_value=prompt,
            attributes={"summary.length": length.value, "article.url": url},
        ) as span:
            try:
                async with aclosing(self.model.stream(instructions_for(length), prompt)) as stream:
                    async for partial in stream:
                        latest = partial
                        if len(partial) <= revealed:
                            continue
                        for end in range(revealed + step, len(partial), step):
                            yield partial[:end]
                            await asyncio.sleep(self.cfg.reveal_delay_seconds)
                        yield partial
                        revealed = len(partial)
            except Exception as exc:  # noqa: BLE001
                record_span_error(span, exc)
                log_event(
                    self.logger,
                    "Summary stage failed",
                    level=logging.WARNING,
                    event="summary_stage_failed",
                    stage=stage,
                    url=url,
                    error=f"{type(exc).__name__}: {exc}",
                )
                return
            set_span_output(span, latest)

        result.text = latest.strip()
        result.completed = True
        log_event(
            self.logger,
            "Summary stage done",
            event="summary_stage_done",
            stage=stage,
            url=url,
            length=length.value,
            chars=len(result.text),
        )

    async def cached_summary(self, url: str, length: SummaryLength) -> str | None:
        return await self.summaries.get(url, length)

    def has_cached_summary(self, url: str, length: SummaryLength) -> bool:
        return self.summaries.has_cached_summary(url, length)

    async def is_expanded(self, url: str, length: SummaryLength) -> bool:
        return await self.summaries.is_expanded(url, length)

    async def set_expanded(self, expanded: bool, url: str, length: SummaryLength) -> None:
        await self.summaries.set_expanded(expanded, url, length)

    async def remove_summary(self, url: str, length: SummaryLength, clear_expanded: bool = False) -> None:
        await self.summaries.remove(url, length, clear_expanded=clear_expanded)

    async def clear_cache(self) -> None:
        await self.summaries.clear_cache()
