"""
HTML readable-text extraction with pluggable strategies.

The default strategy is a fast regex heuristic that never raises on
malformed markup: it narrows to the first ``<article>`` block when one
exists, drops page chrome and scripts, strips tags and decodes entities.
Heavier strategies can be chained after it as fallbacks:
1. heuristic: Regex stripping (default)
2. trafilatura: Purpose-built article content extraction
3. bs4: BeautifulSoup plain text extraction (last resort)
"""

from __future__ import annotations

import html as html_lib
import re
from typing import Callable

from bs4 import BeautifulSoup
import trafilatura


MAX_HTML_CHARS = 200_000

_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_ARTICLE_RE = re.compile(r"<article[\s\S]*?</article>")
_CHROME_RES = [
    re.compile(rf"<{tag}[\s\S]*?</{tag}>", re.IGNORECASE)
    for tag in ("nav", "header", "footer", "aside", "script", "style")
]
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def extract_readable_text(html: str) -> str:
    """Reduce an HTML document to a single line of readable text.

    Args:
        html: Raw HTML; only the first 200,000 characters are considered

    Returns:
        Whitespace-collapsed text, possibly empty
    """
    if not html:
        return ""
    text = html[:MAX_HTML_CHARS]
    text = _COMMENT_RE.sub("", text)

    match = _ARTICLE_RE.search(text)
    if match:
        text = match.group(0)

    for pattern in _CHROME_RES:
        text = pattern.sub(" ", text)

    text = _TAG_RE.sub(" ", text)
    text = html_lib.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def extract_text(html: str, primary: str = "heuristic", fallback: list[str] | None = None) -> str | None:
    """Extract plain text from HTML using a chain of extractors.

    Tries each extraction method in order until one produces non-empty
    output.

    Args:
        html: The HTML content to extract text from
        primary: Name of the primary extraction method to try first
        fallback: List of fallback method names to try if primary fails

    Returns:
        Extracted plain text with leading/trailing whitespace stripped,
        or None if all methods fail

    Examples:
        >>> extract_text(html, "heuristic", ["trafilatura"])
        "Article content here..."
    """
    order = [primary] + [name for name in (fallback or []) if name != primary]
    for method in order:
        extractor = _get_extractor(method)
        if not extractor:
            continue
        text = extractor(html)
        if text and text.strip():
            return text.strip()
    return None


def available_extractors() -> list[str]:
    return sorted(_EXTRACTORS)


def _get_extractor(name: str) -> Callable[[str], str | None] | None:
    return _EXTRACTORS.get(name)


def _extract_trafilatura(html: str) -> str | None:
    """Extract article content using trafilatura.

    Trafilatura handles navigation, footers, ads, etc. on its own and
    keeps paragraph breaks, which the structure-aware slicer can use.
    """
    return trafilatura.extract(html)


def _extract_bs4(html: str) -> str | None:
    """Extract plain text from HTML using BeautifulSoup.

    Removes script/style tags and returns the remaining non-empty lines.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    cleaned = "\n".join([line.strip() for line in text.splitlines() if line.strip()])
    return cleaned if cleaned else None


_EXTRACTORS: dict[str, Callable[[str], str | None]] = {
    "heuristic": extract_readable_text,
    "trafilatura": _extract_trafilatura,
    "bs4": _extract_bs4,
}
