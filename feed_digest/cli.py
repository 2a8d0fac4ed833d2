"""
Command-line interface for feed-digest.

Uses Typer to provide commands for refreshing feeds into the cache,
streaming a summary for one article, inspecting cached data and clearing
caches. Loads a .env file for API key configuration.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from dotenv import load_dotenv
import httpx
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text
import typer

from .cache.store import FileStore
from .cache.summary_store import SummaryStore
from .cache.text_cache import ArticleTextCache
from .cache.thumbnails import ThumbnailCache
from .config import AppConfig, load_config, load_feeds
from .core.types import SummaryLength
from .llm.tracing import flush, setup_langfuse
from .runner import build_orchestrator, run_refresh
from .utils.logging import setup_logging

app = typer.Typer(add_completion=False, help="Refresh feeds, cache article text and stream AI summaries.")
console = Console()


def _load(config: Path | None, log_level: str | None = None, api_key: str | None = None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    if api_key:
        cfg.provider.api_key = api_key
    return cfg


@app.command()
def refresh(
    feeds: Path = typer.Option(..., "--feeds", "-f", exists=True, readable=True, help="YAML feed list."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    thumbnails: bool = typer.Option(False, "--thumbnails/--no-thumbnails", help="Also cache thumbnails."),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Override cache directory."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Refresh every feed and prefetch article text into the cache."""
    cfg = _load(config, log_level)
    if cache_dir is not None:
        cfg.cache.dir = str(cache_dir)
    feed_list = load_feeds(feeds)
    stats = run_refresh(
        feed_list,
        cfg,
        show_progress=progress,
        cache_thumbnails=thumbnails,
        console=console,
    )
    if stats is None:
        console.print("[yellow]Refresh skipped[/yellow]")
        raise typer.Exit(code=1)


@app.command()
def summarize(
    url: str = typer.Argument(..., help="Article URL."),
    length: SummaryLength = typer.Option(SummaryLength.SHORT, "--length", "-l"),
    seed: str | None = typer.Option(None, "--seed", help="Feed preview text used as extra context."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Override cache directory."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="Override provider API key (default: the provider's api_key_env, also read from .env).",
    ),
):
    """Stream a summary for one article, using and filling the caches."""
    cfg = _load(config, log_level, api_key)
    if cache_dir is not None:
        cfg.cache.dir = str(cache_dir)
    setup_logging(cfg.logging, cfg.cache_dir if cfg.logging.file else None)
    setup_langfuse(cfg.langfuse)

    async def _run() -> str:
        final = ""
        async with httpx.AsyncClient(follow_redirects=True, trust_env=cfg.fetch.trust_env) as client:
            orchestrator = build_orchestrator(cfg, client=client)
            with Live(Text(""), console=console, refresh_per_second=20) as live:
                async for partial in orchestrator.summarize(url, length, seed):
                    final = partial
                    live.update(Text(partial))
            await orchestrator.flush()
        return final

    final = asyncio.run(_run())
    flush()
    if not final:
        console.print("[red]No summary available[/red]")
        raise typer.Exit(code=1)


@app.command()
def show(
    url: str = typer.Argument(..., help="Article URL."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Override cache directory."),
    chars: int = typer.Option(600, "--chars", help="Characters of article text to print."),
):
    """Print what the caches hold for one article."""
    cfg = _load(config)
    if cache_dir is not None:
        cfg.cache.dir = str(cache_dir)
    store = FileStore(cfg.cache_dir)

    async def _read() -> tuple[str | None, dict[SummaryLength, str | None]]:
        text_cache = ArticleTextCache(store, cfg.cache.text_max_entries)
        summaries = SummaryStore(store, cfg.cache.summary_max_entries)
        text = await text_cache.get(url)
        found = {length: await summaries.get(url, length) for length in SummaryLength}
        return text, found

    text, found = asyncio.run(_read())
    console.print(Panel(Text(text[:chars] if text else "(not cached)"), title="Article text"))
    for length, summary in found.items():
        console.print(Panel(Text(summary or "(not cached)"), title=f"Summary ({length.value})"))
    thumbs = ThumbnailCache(store, cfg.thumbnails)
    cached = thumbs.load_with_color(url)
    if cached is not None:
        r, g, b = cached.dominant_color or (0.0, 0.0, 0.0)
        console.print(f"Thumbnail: {cached.image.size[0]}x{cached.image.size[1]} color=({r:.2f}, {g:.2f}, {b:.2f})")


@app.command()
def clear(
    text: bool = typer.Option(False, "--text", help="Clear cached article text."),
    summaries: bool = typer.Option(False, "--summaries", help="Clear cached summaries."),
    thumbnails: bool = typer.Option(False, "--thumbnails", help="Clear cached thumbnails."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Override cache directory."),
):
    """Clear the selected caches (all of them when none is selected)."""
    cfg = _load(config)
    if cache_dir is not None:
        cfg.cache.dir = str(cache_dir)
    if not (text or summaries or thumbnails):
        text = summaries = thumbnails = True
    store = FileStore(cfg.cache_dir)

    async def _clear() -> None:
        if text:
            await ArticleTextCache(store).clear()
        if summaries:
            await SummaryStore(store).clear_cache()

    asyncio.run(_clear())
    if thumbnails:
        ThumbnailCache(store, cfg.thumbnails).clear()
    cleared = [name for name, on in (("text", text), ("summaries", summaries), ("thumbnails", thumbnails)) if on]
    console.print(f"Cleared: {', '.join(cleared)}")


if __name__ == "__main__":
    app()
