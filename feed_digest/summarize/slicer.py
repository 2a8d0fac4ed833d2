"""
Extractive prompt slicing.

Language model prompts are kept small by sending a representative excerpt
of the article instead of the whole text. Two slicers are provided:

- ``primer_slice``: the first few substantive paragraphs, for a fast
  first-pass summary.
- ``structure_aware_slice``: opening, closing, headings with their
  neighbors, then evenly spaced body paragraphs until a character target
  is met, for the fuller second pass.

Both work on blank-line separated paragraphs and always return at most
the requested number of characters.
"""

from __future__ import annotations

import re


MIN_PARAGRAPH_CHARS = 30
MAX_PARAGRAPH_CHARS = 1200
PRIMER_PARAGRAPHS = 3
MAX_STRUCTURE_PARAGRAPHS = 60
HEADING_MAX_CHARS = 80
SEPARATOR = "\n\n"

BOILERPLATE_MARKERS = (
    "related posts",
    "read more",
    "subscribe",
    "newsletter",
    "sponsored",
    "advertisement",
)

_BLANK_LINES_RE = re.compile(r"\n{2,}")


def split_paragraphs(text: str) -> list[str]:
    """Split text into trimmed, non-empty paragraphs on blank lines."""
    normalized = text.replace("\r\n", "\n")
    normalized = _BLANK_LINES_RE.sub(SEPARATOR, normalized)
    parts = (part.strip() for part in normalized.split(SEPARATOR))
    return [part for part in parts if part]


def _substantive(paragraph: str) -> bool:
    return MIN_PARAGRAPH_CHARS <= len(paragraph) <= MAX_PARAGRAPH_CHARS


def primer_slice(text: str, max_chars: int) -> str:
    """Return up to the first three substantive paragraphs within ``max_chars``.

    Falls back to the raw prefix when no paragraph qualifies, and to a
    truncated first paragraph when even that one is over budget.
    """
    if not text or max_chars <= 0:
        return ""

    paragraphs = [p for p in split_paragraphs(text) if _substantive(p)]
    if not paragraphs:
        return text[:max_chars]

    picked: list[str] = []
    total = 0
    for paragraph in paragraphs[:PRIMER_PARAGRAPHS]:
        extra = len(paragraph) + (len(SEPARATOR) if picked else 0)
        if total + extra > max_chars:
            break
        picked.append(paragraph)
        total += extra

    if not picked:
        return paragraphs[0][:max_chars]
    return SEPARATOR.join(picked)[:max_chars]


def is_heading(paragraph: str) -> bool:
    """Guess whether a paragraph is a section heading.

    A paragraph counts as a heading when it is a short line ending in a
    colon, when at least half of its words are capitalized (ignoring
    words of two letters or fewer), or when it is short and mostly
    uppercase.
    """
    if len(paragraph) <= HEADING_MAX_CHARS and paragraph.endswith(":"):
        return True

    words = paragraph.split()
    if words:
        capitalized = sum(1 for w in words if len(w) > 2 and w[0].isupper())
        if capitalized * 2 >= len(words):
            return True

    letters = [c for c in paragraph if c.isalpha()]
    if letters and len(letters) <= HEADING_MAX_CHARS:
        upper = sum(1 for c in letters if c.isupper())
        if upper * 3 >= len(letters) * 2:
            return True
    return False


def _is_boilerplate(paragraph: str) -> bool:
    lowered = paragraph.lower()
    return any(marker in lowered for marker in BOILERPLATE_MARKERS)


def structure_aware_slice(text: str, target_chars: int) -> str:
    """Pick paragraphs that outline the article, up to ``target_chars``.

    Selection always includes the first two and the last paragraph plus
    every heading with its immediate neighbors. If that is still short of
    the target, body paragraphs are added at an even stride. The result
    keeps the original paragraph order.
    """
    if not text or target_chars <= 0:
        return ""

    paragraphs = [
        p for p in split_paragraphs(text) if _substantive(p) and not _is_boilerplate(p)
    ][:MAX_STRUCTURE_PARAGRAPHS]
    if not paragraphs:
        return text[:target_chars]

    n = len(paragraphs)
    selected: set[int] = {0}
    if n >= 2:
        selected.add(1)
    if n >= 3:
        selected.add(n - 1)
    for i, paragraph in enumerate(paragraphs):
        if is_heading(paragraph):
            selected.update(j for j in (i - 1, i, i + 1) if 0 <= j < n)

    length = sum(len(paragraphs[i]) + len(SEPARATOR) for i in selected)
    if length < target_chars:
        for i in _fill_candidates(n, selected):
            if length >= target_chars:
                break
            selected.add(i)
            length += len(paragraphs[i]) + len(SEPARATOR)

    joined = SEPARATOR.join(paragraphs[i] for i in sorted(selected))
    return joined[:target_chars]


def _fill_candidates(n: int, selected: set[int]) -> list[int]:
    candidates: list[int] = []
    if n > 4:
        start, end = 2, n - 2
        step = max(1, (end - start) // 8)
        candidates = [i for i in range(start, end, step) if i not in selected]
    if not candidates:
        candidates = [i for i in range(n) if i not in selected]
    return candidates
