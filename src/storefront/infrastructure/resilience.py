"""Retry and fallback wrappers, applied around (never inside) the cache."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Run operation up to max_retries times with exponential backoff.

    Waits delay * 2 ** (attempt - 1) seconds between attempts. Exceptions not
    listed in retry_on propagate immediately; the last retryable error is
    re-raised once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_retries:
                logger.error("Operation failed after %d attempts: %s", attempt, exc)
                raise
            wait = delay * 2 ** (attempt - 1)
            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.2fs", attempt, max_retries, exc, wait
            )
            await asyncio.sleep(wait)
            attempt += 1


async def with_fallback(
    operation: Callable[[], Awaitable[T]],
    fallback: T,
    context: str,
) -> T:
    """Return operation's result, or fallback when it raises (the error is logged)."""
    try:
        return await operation()
    except Exception:
        logger.exception("[%s] falling back to default value", context)
        return fallback
