from __future__ import annotations


class StorefrontError(Exception):
    """Base exception for all storefront errors."""


class NotFoundError(StorefrontError):
    """Raised when a product or category slug resolves to zero rows."""


class ApiError(StorefrontError):
    """Raised when the upstream Supabase API returns an unexpected HTTP error status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"Upstream API error ({status_code})")


class ConfigurationError(StorefrontError):
    """Raised when required settings are missing at startup."""


class ValidationError(StorefrontError):
    """Raised when input parameters fail validation before any network call."""
