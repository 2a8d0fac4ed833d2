from __future__ import annotations

import asyncio

from typer.testing import CliRunner

from feed_digest import cli as cli_module
from feed_digest.cache.store import FileStore
from feed_digest.cache.summary_store import SummaryStore
from feed_digest.cache.text_cache import ArticleTextCache
from feed_digest.core.types import RefreshStats, SummaryLength

runner = CliRunner()
URL = "https://news.example.com/markets"


def _seed_cache(cache_dir, text="Stocks rose sharply today.", summary=None):
    store = FileStore(cache_dir)

    async def write():
        text_cache = ArticleTextCache(store)
        await text_cache.put(URL, text)
        await text_cache.flush()
        if summary:
            summaries = SummaryStore(store)
            await summaries.put(URL, SummaryLength.SHORT, summary)
            await summaries.flush()

    asyncio.run(write())
    return store


def _feeds_file(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text("feeds:\n  - url: https://news.example.com/rss\n    title: News\n", encoding="utf-8")
    return path


def test_refresh_invokes_runner_with_loaded_feeds(tmp_path, monkeypatch):
    captured = {}

    def fake_run_refresh(feeds, cfg, show_progress=True, cache_thumbnails=False, console=None):
        captured.update(feeds=feeds, cfg=cfg, show_progress=show_progress, thumbs=cache_thumbnails)
        return RefreshStats(total=1, completed=1, articles_cached=2)

    monkeypatch.setattr(cli_module, "run_refresh", fake_run_refresh)

    result = runner.invoke(
        cli_module.app,
        [
            "refresh",
            "--feeds",
            str(_feeds_file(tmp_path)),
            "--no-progress",
            "--thumbnails",
            "--cache-dir",
            str(tmp_path / "cache"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert [f.title for f in captured["feeds"]] == ["News"]
    assert captured["show_progress"] is False
    assert captured["thumbs"] is True
    assert captured["cfg"].cache.dir == str(tmp_path / "cache")


def test_refused_refresh_exits_nonzero(tmp_path, monkeypatch):
    monkeypatch.setattr(cli_module, "run_refresh", lambda *args, **kwargs: None)

    result = runner.invoke(cli_module.app, ["refresh", "--feeds", str(_feeds_file(tmp_path)), "--no-progress"])

    assert result.exit_code == 1
    assert "Refresh skipped" in result.output


def test_show_prints_cached_text_and_summary(tmp_path):
    cache_dir = tmp_path / "cache"
    _seed_cache(cache_dir, summary="Markets rallied.")

    result = runner.invoke(cli_module.app, ["show", URL, "--cache-dir", str(cache_dir)])

    assert result.exit_code == 0, result.output
    assert "Stocks rose sharply today." in result.output
    assert "Markets rallied." in result.output
    assert "(not cached)" in result.output


def test_summarize_serves_cached_summary(tmp_path, monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    cache_dir = tmp_path / "cache"
    _seed_cache(cache_dir, summary="Markets rallied.")

    result = runner.invoke(cli_module.app, ["summarize", URL, "--cache-dir", str(cache_dir)])

    assert result.exit_code == 0, result.output
    assert "Markets rallied." in result.output


def test_summarize_without_key_or_cache_exits_nonzero(tmp_path, monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    cache_dir = tmp_path / "cache"
    _seed_cache(cache_dir)

    result = runner.invoke(
        cli_module.app,
        ["summarize", URL, "--length", "long", "--cache-dir", str(cache_dir)],
    )

    assert result.exit_code == 1
    assert "No summary available" in result.output


def test_clear_without_flags_clears_everything(tmp_path):
    cache_dir = tmp_path / "cache"
    store = _seed_cache(cache_dir, summary="Markets rallied.")
    assert store.read(ArticleTextCache.STORE_KEY) is not None

    result = runner.invoke(cli_module.app, ["clear", "--cache-dir", str(cache_dir)])

    assert result.exit_code == 0, result.output
    assert "Cleared: text, summaries, thumbnails" in result.output
    assert store.read(ArticleTextCache.STORE_KEY) is None
    assert store.read(SummaryStore.SUMMARY_KEY) is None


def test_clear_text_only_keeps_summaries(tmp_path):
    cache_dir = tmp_path / "cache"
    store = _seed_cache(cache_dir, summary="Markets rallied.")

    result = runner.invoke(cli_module.app, ["clear", "--text", "--cache-dir", str(cache_dir)])

    assert result.exit_code == 0, result.output
    assert "Cleared: text" in result.output
    assert store.read(ArticleTextCache.STORE_KEY) is None
    assert store.read(SummaryStore.SUMMARY_KEY) is not None


def test_google_key_in_environment_does_not_override_other_providers(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "google-secret")
    monkeypatch.delenv("DIGEST_LLM_KEY", raising=False)
    config = tmp_path / "config.yaml"
    config.write_text(
        "provider:\n"
        "  name: openai_compatible\n"
        "  base_url: https://llm.example.com/v1\n"
        "  api_key_env: DIGEST_LLM_KEY\n",
        encoding="utf-8",
    )
    cache_dir = tmp_path / "cache"
    _seed_cache(cache_dir)
    built = []
    real_build = cli_module.build_orchestrator

    def recording_build(cfg, **kwargs):
        orchestrator = real_build(cfg, **kwargs)
        built.append(orchestrator)
        return orchestrator

    monkeypatch.setattr(cli_module, "build_orchestrator", recording_build)

    result = runner.invoke(
        cli_module.app,
        ["summarize", URL, "--config", str(config), "--cache-dir", str(cache_dir)],
    )

    assert result.exit_code == 1
    model = built[0].pipeline.model
    assert model.api_key is None
    assert not model.is_available()
