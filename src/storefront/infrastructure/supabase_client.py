from __future__ import annotations

from typing import Any

import httpx

from storefront.domain.exceptions import ApiError
from storefront.infrastructure.headers import make_headers

DEFAULT_TIMEOUT = 15.0  # seconds

PRODUCTS_VIEW = "products_full"
CATEGORIES_TABLE = "categories"


class SupabaseClient:
    """Async client for the Supabase PostgREST API.

    A single httpx.AsyncClient instance is used throughout the process lifetime
    so that connections are pooled. This client does not cache; callers wrap
    its methods with TTLCache.with_cache.
    """

    def __init__(self, base_url: str, api_key: str, http_client: httpx.AsyncClient) -> None:
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._api_key = api_key
        self._http = http_client

    async def fetch_products(
        self, offset: int, limit: int, category: str | None = None
    ) -> tuple[list[dict[str, Any]], int]:
        """GET /products_full — newest first, one page, with the exact total count."""
        params: dict[str, Any] = {
            "select": "*",
            "order": "created_at.desc",
            "offset": offset,
            "limit": limit,
        }
        if category:
            params["category_slug"] = f"eq.{category}"
        response = await self._request(PRODUCTS_VIEW, params, count=True)
        return response.json(), _total_from_content_range(response)

    async def fetch_featured(self, limit: int) -> list[dict[str, Any]]:
        """GET /products_full — best rated first."""
        params: dict[str, Any] = {
            "select": "*",
            "order": "review_rating.desc.nullslast,created_at.desc",
            "limit": limit,
        }
        return (await self._request(PRODUCTS_VIEW, params)).json()  # type: ignore[no-any-return]

    async def fetch_product(self, slug: str) -> dict[str, Any] | None:
        """GET /products_full?slug=eq.{slug} — None when no row matches."""
        params: dict[str, Any] = {"select": "*", "slug": f"eq.{slug}", "limit": 1}
        rows: list[dict[str, Any]] = (await self._request(PRODUCTS_VIEW, params)).json()
        return rows[0] if rows else None

    async def fetch_categories(self) -> list[dict[str, Any]]:
        """GET /categories — active categories in display order."""
        params: dict[str, Any] = {
            "select": "*",
            "is_active": "eq.true",
            "order": "display_order.asc",
        }
        return (await self._request(CATEGORIES_TABLE, params)).json()  # type: ignore[no-any-return]

    async def fetch_category(self, slug: str) -> dict[str, Any] | None:
        """GET /categories?slug=eq.{slug} — None when no active row matches."""
        params: dict[str, Any] = {
            "select": "*",
            "slug": f"eq.{slug}",
            "is_active": "eq.true",
            "limit": 1,
        }
        rows: list[dict[str, Any]] = (await self._request(CATEGORIES_TABLE, params)).json()
        return rows[0] if rows else None

    async def search_products(self, query: str, limit: int) -> list[dict[str, Any]]:
        """GET /products_full — websearch full-text match on the fts column."""
        params: dict[str, Any] = {
            "select": "*",
            "fts": f"wfts(english).{query}",
            "limit": limit,
        }
        return (await self._request(PRODUCTS_VIEW, params)).json()  # type: ignore[no-any-return]

    async def _request(
        self, resource: str, params: dict[str, Any], count: bool = False
    ) -> httpx.Response:
        """Internal GET helper: send headers, raise ApiError on non-2xx."""
        url = f"{self._rest_url}/{resource}"
        response = await self._http.get(
            url, params=params, headers=make_headers(self._api_key, count=count)
        )
        self._raise_for_status(response)
        return response

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise ApiError for non-2xx responses."""
        if response.status_code == 404:
            raise ApiError(404, f"Resource not found (404): {response.url}")
        if response.status_code >= 400:
            raise ApiError(response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


def _total_from_content_range(response: httpx.Response) -> int:
    """Parse the total from a PostgREST Content-Range header ("0-11/57" or "*/0")."""
    content_range = response.headers.get("content-range", "")
    _, _, total = content_range.partition("/")
    try:
        return int(total)
    except ValueError:
        return 0
