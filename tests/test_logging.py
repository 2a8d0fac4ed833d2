from __future__ import annotations

import json
import logging

from feed_digest.cache.store import MemoryStore
from feed_digest.cache.text_cache import ArticleTextCache
from feed_digest.utils.logging import JsonlFormatter, get_logger, log_event, redact_text, truncate_text


def test_get_logger_nests_under_package_logger():
    assert get_logger().name == "feed_digest"
    assert get_logger("cache").name == "feed_digest.cache"


def test_components_default_to_area_loggers():
    cache = ArticleTextCache(MemoryStore())

    assert cache.logger is get_logger("cache")


def test_jsonl_formatter_includes_event_fields():
    logger = get_logger("test")
    records: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = _Collect()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        log_event(logger, "Refresh complete", event="refresh_complete", completed=2)
    finally:
        logger.removeHandler(handler)

    payload = json.loads(JsonlFormatter().format(records[0]))
    assert payload["message"] == "Refresh complete"
    assert payload["logger"] == "feed_digest.test"
    assert payload["event"] == "refresh_complete"
    assert payload["completed"] == 2


def test_redaction_and_truncation():
    assert redact_text("see https://example.com/x now", "redact_urls_authors") == "see [REDACTED_URL] now"
    assert truncate_text("abcdef", 3) == "abc...(truncated)"
