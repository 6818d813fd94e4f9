"""Tests for retry and fallback wrappers."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from storefront.infrastructure.resilience import with_fallback, with_retry


async def test_with_retry_returns_first_success() -> None:
    operation = AsyncMock(side_effect=[RuntimeError("boom"), "ok"])
    with patch("storefront.infrastructure.resilience.asyncio.sleep", new=AsyncMock()):
        assert await with_retry(operation, max_retries=3, delay=1.0) == "ok"
    assert operation.await_count == 2


async def test_with_retry_exponential_backoff() -> None:
    operation = AsyncMock(side_effect=RuntimeError("boom"))
    sleep = AsyncMock()
    with patch("storefront.infrastructure.resilience.asyncio.sleep", new=sleep):
        with pytest.raises(RuntimeError, match="boom"):
            await with_retry(operation, max_retries=3, delay=1.0)

    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


async def test_with_retry_does_not_retry_other_errors() -> None:
    operation = AsyncMock(side_effect=KeyError("nope"))
    with pytest.raises(KeyError):
        await with_retry(operation, max_retries=3, delay=0, retry_on=(RuntimeError,))
    assert operation.await_count == 1


async def test_with_fallback_returns_result() -> None:
    assert await with_fallback(AsyncMock(return_value=[1]), [], "ctx") == [1]


async def test_with_fallback_returns_default_on_error() -> None:
    operation = AsyncMock(side_effect=RuntimeError("down"))
    assert await with_fallback(operation, [], "ctx") == []
