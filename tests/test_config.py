from __future__ import annotations

import pytest

from feed_digest.config import (
    AppConfig,
    ProviderConfig,
    get_api_key,
    load_config,
    load_feeds,
)
from feed_digest.core.types import SummaryLength


def test_defaults_without_file():
    cfg = load_config(None)

    assert cfg.refresh.feed_concurrency == 2
    assert cfg.refresh.article_concurrency == 3
    assert cfg.refresh.max_articles_per_feed == 6
    assert cfg.refresh.global_timeout_seconds == 30.0
    assert cfg.cache.text_max_entries == 500
    assert cfg.cache.summary_max_entries == 1000
    assert cfg.thumbnails.max_entries == 100
    assert cfg.thumbnails.max_dimension == 300
    assert cfg.extract.primary == "heuristic"


def test_summary_budgets_depend_on_length():
    summary = AppConfig().summary

    assert summary.primer_chars(SummaryLength.SHORT) == 1000
    assert summary.primer_chars(SummaryLength.LONG) == 1400
    assert summary.full_chars(SummaryLength.SHORT) == 6000
    assert summary.full_chars(SummaryLength.LONG) == 12000
    assert summary.finish_threshold(SummaryLength.SHORT) == 120
    assert summary.finish_threshold(SummaryLength.LONG) == 160


def test_yaml_overrides_merge_with_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "refresh:\n"
        "  article_concurrency: 5\n"
        "  not_a_field: 1\n"
        "provider:\n"
        "  name: openai\n"
        "  base_url: https://llm.example.com/v1\n"
        "unknown_section:\n"
        "  x: 1\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.refresh.article_concurrency == 5
    assert cfg.refresh.feed_concurrency == 2
    assert cfg.provider.name == "openai"
    assert cfg.provider.model == "gemini-2.5-flash"
    assert not hasattr(cfg.refresh, "not_a_field")


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(str(path)) == AppConfig()


def test_cache_dir_expands_user(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    cfg = AppConfig()
    cfg.cache.dir = "~/digest-cache"

    assert cfg.cache_dir == tmp_path / "digest-cache"


def test_api_key_prefers_inline_value(monkeypatch):
    monkeypatch.setenv("DIGEST_KEY", "from-env")

    assert get_api_key(ProviderConfig(api_key_env="DIGEST_KEY")) == "from-env"
    assert get_api_key(ProviderConfig(api_key="inline", api_key_env="DIGEST_KEY")) == "inline"


def test_load_feeds_accepts_mapping_strings_and_dicts(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text(
        "feeds:\n"
        "  - https://a.example.com/rss\n"
        "  - url: https://b.example.com/atom\n"
        "    title: Site B\n"
        "    id: b\n"
        "    icon_url: https://b.example.com/icon.png\n",
        encoding="utf-8",
    )

    feeds = load_feeds(path)

    assert feeds[0].id == "https://a.example.com/rss"
    assert feeds[0].title == "https://a.example.com/rss"
    assert feeds[1].id == "b"
    assert feeds[1].title == "Site B"
    assert feeds[1].icon_url == "https://b.example.com/icon.png"


def test_load_feeds_accepts_top_level_list(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text("- https://a.example.com/rss\n", encoding="utf-8")

    assert [f.url for f in load_feeds(path)] == ["https://a.example.com/rss"]


def test_load_feeds_rejects_entry_without_url(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text("- title: nothing\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing a url"):
        load_feeds(path)


def test_load_feeds_rejects_scalar(tmp_path):
    path = tmp_path / "feeds.yaml"
    path.write_text("just a string\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must be a YAML list"):
        load_feeds(path)
