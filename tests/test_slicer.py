"""Tests for primer and structure-aware prompt slicing."""

from __future__ import annotations

from feed_digest.summarize.slicer import (
    is_heading,
    primer_slice,
    split_paragraphs,
    structure_aware_slice,
)


def _body(i: int) -> str:
    return f"body paragraph number {i:02d} keeps describing the event in plain words."


def test_split_paragraphs_normalizes_blank_lines():
    assert split_paragraphs("a\r\n\r\n\r\nb\n\n  \n\nc") == ["a", "b", "c"]


def test_primer_takes_first_three_substantive_paragraphs():
    paragraphs = [_body(i) for i in range(5)]
    text = "\n\n".join(["tiny"] + paragraphs)

    assert primer_slice(text, 1000) == "\n\n".join(paragraphs[:3])


def test_primer_stops_at_budget():
    p = "x" * 50
    text = "\n\n".join([p, p, p])

    result = primer_slice(text, 105)

    assert result == f"{p}\n\n{p}"
    assert len(result) == 102


def test_primer_truncates_oversized_first_paragraph():
    long_paragraph = "y" * 200

    assert primer_slice(long_paragraph, 100) == "y" * 100


def test_primer_falls_back_to_raw_prefix_without_substantive_paragraphs():
    assert primer_slice("short\n\ntiny", 8) == "short\n\nt"


def test_primer_handles_empty_input():
    assert primer_slice("", 100) == ""
    assert primer_slice("some text", 0) == ""


def test_is_heading_rules():
    assert is_heading("Results:")
    assert is_heading("How The Market Reacted To News")
    assert is_heading("SECTION TITLE IN CAPS")
    assert not is_heading("the quick brown fox jumps over the lazy dog")
    assert not is_heading(_body(1))


def test_structure_slice_keeps_ends_and_heading_neighbors():
    paragraphs = [_body(i) for i in range(8)]
    paragraphs[4] = "what the team found after the long review:"
    selected = [0, 1, 3, 4, 5, 7]
    target = sum(len(paragraphs[i]) + 2 for i in selected)

    result = structure_aware_slice("\n\n".join(paragraphs), target)

    assert result == "\n\n".join(paragraphs[i] for i in selected)


def test_structure_slice_fills_with_strided_body_paragraphs():
    paragraphs = [_body(i) for i in range(20)]
    size = len(paragraphs[0]) + 2
    target = 5 * size

    result = structure_aware_slice("\n\n".join(paragraphs), target)

    assert result == "\n\n".join(paragraphs[i] for i in (0, 1, 2, 4, 19))


def test_structure_slice_drops_boilerplate():
    paragraphs = [
        _body(0),
        "subscribe to our newsletter for more updates every day",
        _body(1),
        "advertisement: buy the best widgets money can buy today",
        _body(2),
    ]

    result = structure_aware_slice("\n\n".join(paragraphs), 10_000)

    assert "newsletter" not in result
    assert "widgets" not in result
    assert result == "\n\n".join([_body(0), _body(1), _body(2)])


def test_structure_slice_never_exceeds_target():
    text = "\n\n".join(_body(i) for i in range(30))

    assert len(structure_aware_slice(text, 50)) == 50


def test_structure_slice_falls_back_to_raw_prefix():
    assert structure_aware_slice("too short\n\nalso short", 5) == "too s"
