"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ProviderConfig: Language model provider settings
- FetchConfig: HTTP fetching settings
- ExtractConfig: Readable-text extraction settings
- RefreshConfig: Concurrency, batching and timeout limits for feed refresh
- SummaryConfig: Prompt slice sizes and streaming reveal pacing
- CacheConfig: Cache directory, capacities and write debounce
- ThumbnailConfig: Thumbnail sizing, encoding and download retries
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml

from .core.types import FeedRef, SummaryLength


_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class ProviderConfig:
    """Configuration for the language model provider.

    Attributes:
        name: Provider name ("gemini", "openai" or "openai_compatible")
        model: Model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Read timeout for a streaming generation request
        temperature: Sampling temperature sent with every request
    """

    name: str = "gemini"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GOOGLE_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 60.0
    temperature: float = 0.2


@dataclass
class FetchConfig:
    """Configuration for article HTML fetching.

    Attributes:
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
        max_html_chars: HTML prefix handed to the extractor during refresh
    """

    timeout_seconds: float = 10.0
    retries: int = 0
    trust_env: bool = True
    user_agent: str = _BROWSER_USER_AGENT
    max_html_chars: int = 160_000


@dataclass
class ExtractConfig:
    """Configuration for HTML content extraction.

    Attributes:
        primary: Primary extraction method ("heuristic", "trafilatura" or "bs4")
        fallback: List of fallback methods to try if primary yields nothing
    """

    primary: str = "heuristic"
    fallback: list[str] = field(default_factory=list)


@dataclass
class RefreshConfig:
    """Configuration for the feed refresh orchestrator.

    Attributes:
        feed_concurrency: Feeds fetched at the same time
        article_concurrency: Articles fetched at the same time across all feeds
        max_articles_per_feed: Newest items per feed whose text is prefetched
        batch_size: Articles started together within one feed
        batch_pause_seconds: Pause between consecutive batches of one feed
        item_timeout_seconds: Budget for fetching and extracting one article
        global_timeout_seconds: Budget for a whole refresh run
        cooldown_seconds: Quiet period after a run during which refresh is refused
    """

    feed_concurrency: int = 2
    article_concurrency: int = 3
    max_articles_per_feed: int = 6
    batch_size: int = 3
    batch_pause_seconds: float = 0.15
    item_timeout_seconds: float = 5.0
    global_timeout_seconds: float = 30.0
    cooldown_seconds: float = 1.5


@dataclass
class SummaryConfig:
    """Configuration for two-stage streaming summaries.

    Attributes:
        primer_chars_short: Primer slice budget for short summaries
        primer_chars_long: Primer slice budget for long summaries
        full_chars_short: Structure-aware slice budget for short summaries
        full_chars_long: Structure-aware slice budget for long summaries
        finish_threshold_short: Primer length that ends a short summary early
        finish_threshold_long: Primer length that ends a long summary early
        max_text_chars: Article text considered at all
        seed_chars: Feed preview characters included as context
        reveal_step: Characters revealed per tick while streaming
        reveal_delay_seconds: Pause between reveal ticks
    """

    primer_chars_short: int = 1000
    primer_chars_long: int = 1400
    full_chars_short: int = 6000
    full_chars_long: int = 12000
    finish_threshold_short: int = 120
    finish_threshold_long: int = 160
    max_text_chars: int = 150_000
    seed_chars: int = 900
    reveal_step: int = 2
    reveal_delay_seconds: float = 0.03

    def primer_chars(self, length: SummaryLength) -> int:
        if length is SummaryLength.LONG:
            return self.primer_chars_long
        return self.primer_chars_short

    def full_chars(self, length: SummaryLength) -> int:
        if length is SummaryLength.LONG:
            return self.full_chars_long
        return self.full_chars_short

    def finish_threshold(self, length: SummaryLength) -> int:
        if length is SummaryLength.LONG:
            return self.finish_threshold_long
        return self.finish_threshold_short


@dataclass
class CacheConfig:
    """Configuration for the persistent caches.

    Attributes:
        dir: Directory holding the persisted cache blobs
        text_max_entries: Capacity of the article text cache
        summary_max_entries: Capacity of the summary cache
        debounce_seconds: Quiet period before a dirty cache is written
    """

    dir: str = "~/.cache/feed-digest"
    text_max_entries: int = 500
    summary_max_entries: int = 1000
    debounce_seconds: float = 0.3


@dataclass
class ThumbnailConfig:
    """Configuration for the thumbnail image cache.

    Attributes:
        max_entries: Images kept before the oldest is evicted
        max_dimension: Longest side after downscaling, in pixels
        quality: JPEG quality (1-95)
        attempt_timeouts: Timeout per download attempt, one entry per attempt
        retry_delay_seconds: Pause between download attempts
        user_agent: User-Agent sent when downloading images
    """

    max_entries: int = 100
    max_dimension: int = 300
    quality: int = 50
    attempt_timeouts: list[float] = field(default_factory=lambda: [15.0, 20.0])
    retry_delay_seconds: float = 0.5
    user_agent: str = (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/17.0 Mobile/15E148 Safari/604.1"
    )


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file inside the cache directory
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "feed-digest.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls_authors"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    thumbnails: ThumbnailConfig = field(default_factory=ThumbnailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)

    @property
    def cache_dir(self) -> Path:
        return Path(self.cache.dir).expanduser()


_SECTIONS: dict[str, type] = {
    "provider": ProviderConfig,
    "fetch": FetchConfig,
    "extract": ExtractConfig,
    "refresh": RefreshConfig,
    "summary": SummaryConfig,
    "cache": CacheConfig,
    "thumbnails": ThumbnailConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig.

    Unknown sections and unknown keys inside a section are ignored so an
    older config file keeps loading after fields are renamed.
    """
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = {k: v for k, v in value.items() if k in data[key]}
            data[key].update(known)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {name: asdict(getattr(cfg, name)) for name in _SECTIONS}


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(**{name: cls(**data.get(name, {})) for name, cls in _SECTIONS.items()})


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def load_feeds(path: str | Path) -> list[FeedRef]:
    """Load the feed list from a YAML file.

    The file holds either a top-level list or a mapping with a ``feeds`` key.
    Each item needs a ``url``; ``title``, ``id`` and ``icon_url`` are optional.

    Raises:
        ValueError: If the file does not describe a list of feeds
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or []

    if isinstance(raw, dict):
        raw = raw.get("feeds") or []
    if not isinstance(raw, list):
        raise ValueError(f"Feed list must be a YAML list: {path}")

    feeds: list[FeedRef] = []
    for item in raw:
        if isinstance(item, str):
            item = {"url": item}
        if not isinstance(item, dict) or not item.get("url"):
            raise ValueError(f"Feed entry is missing a url: {item!r}")
        url = str(item["url"]).strip()
        feeds.append(
            FeedRef(
                id=str(item.get("id") or url),
                title=str(item.get("title") or url),
                url=url,
                icon_url=item.get("icon_url"),
            )
        )
    return feeds
