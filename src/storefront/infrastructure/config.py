"""Centralized configuration: all env vars in one place."""
from __future__ import annotations

import os
from dataclasses import dataclass

from storefront.domain.exceptions import ConfigurationError
from storefront.infrastructure.cache import DEFAULT_CAPACITY, DEFAULT_TTL
from storefront.infrastructure.supabase_client import DEFAULT_TIMEOUT


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    supabase_url: str = ""
    supabase_anon_key: str = ""
    cache_capacity: int = DEFAULT_CAPACITY
    cache_default_ttl: float = DEFAULT_TTL
    http_timeout: float = DEFAULT_TIMEOUT
    retry_attempts: int = 3
    retry_delay: float = 1.0  # seconds; doubled after each failed attempt

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL", "").rstrip("/"),
            supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            cache_capacity=int(os.environ.get("CACHE_CAPACITY", str(DEFAULT_CAPACITY))),
            cache_default_ttl=float(os.environ.get("CACHE_DEFAULT_TTL", str(DEFAULT_TTL))),
            http_timeout=float(os.environ.get("HTTP_TIMEOUT", str(DEFAULT_TIMEOUT))),
            retry_attempts=int(os.environ.get("RETRY_ATTEMPTS", "3")),
            retry_delay=float(os.environ.get("RETRY_DELAY", "1.0")),
        )

    def validate(self) -> None:
        """Raise ConfigurationError naming every missing required env var."""
        missing = [
            var
            for var, value in (
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_ANON_KEY", self.supabase_anon_key),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
