"""
Article fetching and extraction.

This package handles HTTP fetching and readable-text extraction for
article pages and thumbnail images.
"""

from .extractor import extract_readable_text, extract_text
from .fetcher import FetchResult, fetch_html, image_headers

__all__ = [
    "fetch_html",
    "FetchResult",
    "image_headers",
    "extract_readable_text",
    "extract_text",
]
