"""Tests for the summary cache and expansion state."""

from __future__ import annotations

import asyncio
import json

from feed_digest.cache.store import MemoryStore
from feed_digest.cache.summary_store import SummaryStore
from feed_digest.core.types import SummaryLength, summary_key

URL = "https://example.com/post"


def test_summary_key_format():
    assert summary_key(URL, SummaryLength.LONG) == f"{URL}#long"


def test_has_cached_summary_is_synchronous_and_length_specific():
    store = SummaryStore(MemoryStore())

    asyncio.run(store.put(URL, SummaryLength.SHORT, "A short summary."))

    assert store.has_cached_summary(URL, SummaryLength.SHORT)
    assert not store.has_cached_summary(URL, SummaryLength.LONG)


def test_whitespace_summary_is_not_stored():
    store = SummaryStore(MemoryStore())

    asyncio.run(store.put(URL, SummaryLength.SHORT, "   \n"))

    assert not store.has_cached_summary(URL, SummaryLength.SHORT)


def test_expanded_flag_survives_removal_unless_cleared():
    async def scenario():
        store = SummaryStore(MemoryStore())
        await store.put(URL, SummaryLength.LONG, "Long summary text.")
        await store.set_expanded(True, URL, SummaryLength.LONG)
        await store.remove(URL, SummaryLength.LONG)
        kept = await store.is_expanded(URL, SummaryLength.LONG)
        text = await store.get(URL, SummaryLength.LONG)
        await store.remove(URL, SummaryLength.LONG, clear_expanded=True)
        cleared = await store.is_expanded(URL, SummaryLength.LONG)
        return kept, text, cleared

    kept, text, cleared = asyncio.run(scenario())

    assert kept is True
    assert text is None
    assert cleared is False


def test_get_record_reports_expansion():
    async def scenario():
        store = SummaryStore(MemoryStore())
        await store.put(URL, SummaryLength.SHORT, "Short.")
        await store.set_expanded(True, URL, SummaryLength.SHORT)
        return await store.get_record(URL, SummaryLength.SHORT)

    record = asyncio.run(scenario())

    assert record.text == "Short."
    assert record.expanded is True


def test_clear_cache_wipes_summaries_and_expansion_everywhere():
    backing = MemoryStore()

    async def scenario():
        store = SummaryStore(backing)
        await store.put(URL, SummaryLength.SHORT, "Short.")
        await store.set_expanded(True, URL, SummaryLength.SHORT)
        await store.flush()
        await store.clear_cache()
        return store, await store.is_expanded(URL, SummaryLength.SHORT)

    store, expanded = asyncio.run(scenario())

    assert not store.has_cached_summary(URL, SummaryLength.SHORT)
    assert expanded is False
    assert SummaryStore.SUMMARY_KEY not in backing.blobs
    assert SummaryStore.EXPANDED_KEY not in backing.blobs


def test_load_filters_empty_values_and_prunes_to_capacity():
    backing = MemoryStore()
    summaries = {f"https://example.com/{i}#short": f"summary {i}" for i in range(4)}
    summaries["https://example.com/blank#short"] = "  "
    backing.blobs[SummaryStore.SUMMARY_KEY] = json.dumps(summaries).encode("utf-8")
    backing.blobs[SummaryStore.EXPANDED_KEY] = json.dumps(["https://example.com/3#short"]).encode("utf-8")

    store = SummaryStore(backing, max_entries=2)

    assert len(store) == 2
    assert not store.has_cached_summary("https://example.com/blank", SummaryLength.SHORT)
    assert not store.has_cached_summary("https://example.com/0", SummaryLength.SHORT)
    assert store.has_cached_summary("https://example.com/3", SummaryLength.SHORT)
    assert asyncio.run(store.is_expanded("https://example.com/3", SummaryLength.SHORT))


def test_summaries_persist_across_instances():
    backing = MemoryStore()

    async def write():
        store = SummaryStore(backing)
        await store.put(URL, SummaryLength.SHORT, "Persisted.")
        await store.flush()

    asyncio.run(write())

    assert SummaryStore(backing).has_cached_summary(URL, SummaryLength.SHORT)
