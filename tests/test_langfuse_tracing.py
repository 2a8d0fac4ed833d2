"""Tests for Langfuse tracing setup behavior."""

from __future__ import annotations

import sys
import types

import pytest

from feed_digest.config import LangfuseConfig
from feed_digest.llm import tracing


class _DummySpan:
    def __init__(self):
        self.updates: list[dict] = []

    def update(self, **kwargs):
        self.updates.append(kwargs)


class _DummyLangfuse:
    instances: list["_DummyLangfuse"] = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.spans: list[tuple[str, dict]] = []
        self.flushed = False
        _DummyLangfuse.instances.append(self)

    def start_as_current_span(self, name, input=None, metadata=None):
        span = _DummySpan()
        self.spans.append((name, {"input": input, "metadata": metadata, "span": span}))

        class _Cm:
            def __enter__(self_inner):
                return span

            def __exit__(self_inner, *exc):
                return False

        return _Cm()

    def flush(self):
        self.flushed = True


@pytest.fixture
def fake_langfuse(monkeypatch):
    _DummyLangfuse.instances = []
    monkeypatch.setitem(sys.modules, "langfuse", types.SimpleNamespace(Langfuse=_DummyLangfuse))
    yield _DummyLangfuse
    tracing.setup_langfuse(LangfuseConfig(enabled=False))


def test_setup_langfuse_reads_keys_from_environment(monkeypatch, fake_langfuse):
    monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "pk-test")
    monkeypatch.setenv("LANGFUSE_SECRET_KEY", "sk-test")
    monkeypatch.setenv("LANGFUSE_HOST", "https://us.cloud.langfuse.com")

    tracing.setup_langfuse(LangfuseConfig(enabled=True, release="1.2.3"))

    captured = fake_langfuse.instances[0].kwargs
    assert captured["public_key"] == "pk-test"
    assert captured["secret_key"] == "sk-test"
    assert captured["host"] == "https://us.cloud.langfuse.com"
    assert captured["release"] == "1.2.3"
    assert tracing.get_tracer() is fake_langfuse.instances[0]


def test_setup_langfuse_disables_tracer_when_keys_missing(monkeypatch, fake_langfuse):
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
    monkeypatch.delenv("LANGFUSE_SECRET_KEY", raising=False)

    tracing.setup_langfuse(LangfuseConfig(enabled=True))

    assert tracing.get_tracer() is None
    assert fake_langfuse.instances == []


def test_start_span_yields_none_when_disabled():
    tracing.setup_langfuse(LangfuseConfig(enabled=False))

    with tracing.start_span("summary.primer", kind="llm", input_value="prompt") as span:
        assert span is None
    tracing.set_span_output(span, "ignored")
    tracing.flush()


def test_span_payloads_are_redacted_and_truncated(fake_langfuse):
    tracing.setup_langfuse(
        LangfuseConfig(enabled=True, public_key="pk", secret_key="sk", max_text_chars=40)
    )

    with tracing.start_span(
        "summary.full",
        kind="llm",
        input_value="see https://example.com/private/article for details " * 3,
        attributes={"summary.length": "short", "skip": None},
    ) as span:
        tracing.set_span_output(span, "done")
        tracing.record_span_error(span, RuntimeError("boom"))
    tracing.flush()

    tracer = fake_langfuse.instances[0]
    name, recorded = tracer.spans[0]
    assert name == "summary.full"
    assert "https://example.com" not in recorded["input"]
    assert recorded["input"].endswith("...(truncated)")
    assert len(recorded["input"]) == 40 + len("...(truncated)")
    assert recorded["metadata"] == {"summary.length": "short", "span.kind": "llm"}
    assert recorded["span"].updates[0] == {"output": "done"}
    assert recorded["span"].updates[1]["level"] == "ERROR"
    assert tracer.flushed
