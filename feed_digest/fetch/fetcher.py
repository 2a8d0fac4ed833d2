"""
HTTP fetching for article pages and thumbnail images.

Article HTML is fetched with cache-bypassing headers so a refresh always
sees the live page; transport errors never raise and are reported through
FetchResult instead. Both helpers accept an injected ``httpx.AsyncClient``
so callers can share a connection pool (or a mock transport in tests).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx


IMAGE_ACCEPT = "image/png,image/jpeg,image/webp,image/*;q=0.8,*/*;q=0.5"


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The response body text, or None on error
        error: Error message if fetch failed, None on success
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def page_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }


def image_headers(url: str, user_agent: str) -> dict[str, str]:
    """Headers that make image hosts treat the request like a browser's."""
    headers = {
        "User-Agent": user_agent,
        "Accept": IMAGE_ACCEPT,
        "Accept-Language": "en-US,en;q=0.9",
    }
    host = urlsplit(url).hostname
    if host:
        headers["Referer"] = f"https://{host}/"
    return headers


async def fetch_html(
    url: str,
    timeout: float,
    retries: int,
    user_agent: str,
    trust_env: bool = True,
    client: httpx.AsyncClient | None = None,
) -> FetchResult:
    """Fetch a page with retry logic, bypassing HTTP caches.

    Follows redirects. A non-2xx response counts as a failed attempt.

    Args:
        url: The URL to fetch
        timeout: Request timeout in seconds
        retries: Number of retry attempts after initial failure
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment
        client: Optional shared client; a private one is opened otherwise

    Returns:
        FetchResult with text on success or error message on failure
    """
    headers = page_headers(user_agent)
    last_error: str | None = None
    last_status: int | None = None

    for attempt in range(retries + 1):
        try:
            if client is not None:
                resp = await client.get(url, headers=headers, timeout=timeout, follow_redirects=True)
            else:
                async with httpx.AsyncClient(
                    timeout=timeout,
                    follow_redirects=True,
                    trust_env=trust_env,
                ) as own_client:
                    resp = await own_client.get(url, headers=headers)
            last_status = resp.status_code
            if resp.is_success:
                return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)
            last_error = f"HTTPStatusError: {resp.status_code}"
        except Exception as exc:  # noqa: BLE001
            last_error = f"{type(exc).__name__}: {exc}"
        if attempt < retries:
            # Linear backoff: 0.5s, 1.0s, 1.5s...
            await asyncio.sleep(0.5 * (attempt + 1))

    return FetchResult(url=url, status_code=last_status, text=None, error=last_error)
