"""Shared pytest fixtures for the storefront test suite."""
from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def mock_monotonic() -> Iterator[MagicMock]:
    """Patch the cache module's clock; set .monotonic.return_value to move time."""
    with patch("storefront.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = 1000.0
        yield mock_time
