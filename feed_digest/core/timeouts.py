"""Deadline helper shared by per-article and whole-run timeouts."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from ..errors import OperationTimeout

T = TypeVar("T")


async def with_timeout(
    seconds: float,
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    label: str | None = None,
) -> T:
    """Run ``fn(*args)`` against a timer; whichever finishes first wins.

    The loser is cancelled. Expiry raises OperationTimeout, which is also an
    ``asyncio.TimeoutError``.
    """
    try:
        return await asyncio.wait_for(fn(*args), timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise OperationTimeout(seconds, label) from exc
