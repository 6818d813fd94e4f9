from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

import httpx
from mcp import types
from mcp.server.fastmcp import FastMCP

from storefront.application.catalog_service import CatalogService
from storefront.domain.entities import Product
from storefront.domain.exceptions import ApiError, NotFoundError, ValidationError
from storefront.domain.services import (
    get_best_deal,
    get_discount_percentage,
    is_flash_sale_active,
)
from storefront.infrastructure.cache import TTLCache

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

_RESULT_URI = "mcp://storefront/result"


def _as_resource(json_str: str) -> list[types.EmbeddedResource]:
    """Wrap a JSON string as an embedded resource so the LLM does not narrate it."""
    return [
        types.EmbeddedResource(
            type="resource",
            resource=types.TextResourceContents(
                uri=_RESULT_URI,  # type: ignore[arg-type]
                mimeType="application/json",
                text=json_str,
            ),
        )
    ]


def _error_json(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def _to_json(payload: Any) -> str:
    return json.dumps(payload, default=str, ensure_ascii=False)


def _handle_exception(exc: Exception) -> list[types.EmbeddedResource]:
    if isinstance(exc, (NotFoundError, ValidationError)):
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, ApiError):
        if exc.status_code == 404:
            return _as_resource(_error_json("Resource not found."))
        if exc.status_code == 429:
            return _as_resource(_error_json("Too many requests. Please try again later."))
        if exc.status_code >= 500:
            return _as_resource(
                _error_json(f"Upstream API error ({exc.status_code}). Please try again later.")
            )
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, httpx.TimeoutException):
        return _as_resource(_error_json("Request timed out. Please try again."))
    logger.exception("Unexpected error in MCP tool: %s", exc)
    return _as_resource(_error_json("An unexpected error occurred."))


def _validate_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


def _product_detail(product: Product) -> dict[str, Any]:
    """Serialize a product plus the derived deal fields shown on the detail page."""
    best = get_best_deal(product)
    return {
        "product": dataclasses.asdict(product),
        "bestDeal": dataclasses.asdict(best) if best else None,
        "discountPercentage": get_discount_percentage(product),
        "flashSaleActive": is_flash_sale_active(product.flash_sale_end),
    }


def register_tools(mcp: FastMCP, catalog_svc: CatalogService, cache: TTLCache) -> None:
    """Bind all @mcp.tool decorators. Called once during server setup."""

    @mcp.tool()
    async def list_products(
        page: int = 1,
        limit: int = 12,
        category: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """List products, newest first.

        Args:
            page: 1-based page number.
            limit: Products per page (1-100, default 12).
            category: Optional category slug filter, e.g. "headphones".
        """
        try:
            _validate_paging(page, limit)
            result = await catalog_svc.get_products(page, limit, category or None, strict=True)
            return _as_resource(
                _to_json(
                    {
                        "products": [dataclasses.asdict(p) for p in result.products],
                        "total": result.total,
                        "hasMore": result.has_more,
                        "page": page,
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_product(slug: str) -> list[types.EmbeddedResource]:
        """Get full product detail including review, scores and shop offers.

        Args:
            slug: Product slug, e.g. "sony-wh-1000xm5".
        """
        try:
            if not slug.strip():
                return _as_resource(_error_json("slug cannot be empty"))
            product = await catalog_svc.get_product(slug.strip(), strict=True)
            if product is None:
                raise NotFoundError(f"Product not found: {slug.strip()}")
            return _as_resource(_to_json(_product_detail(product)))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def search_products(query: str, limit: int = 10) -> list[types.EmbeddedResource]:
        """Full-text product search.

        Args:
            query: Search terms (websearch syntax, e.g. "wireless -sport").
            limit: Maximum number of results (1-100, default 10).
        """
        try:
            if not query.strip():
                return _as_resource(_error_json("query cannot be empty"))
            _validate_paging(1, limit)
            products = await catalog_svc.search_products(query, limit, strict=True)
            return _as_resource(
                _to_json(
                    {
                        "query": query.strip(),
                        "products": [dataclasses.asdict(p) for p in products],
                        "count": len(products),
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def list_categories() -> list[types.EmbeddedResource]:
        """List active product categories in display order."""
        try:
            categories = await catalog_svc.get_categories(strict=True)
            return _as_resource(_to_json([dataclasses.asdict(c) for c in categories]))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_category(slug: str, limit: int = 12) -> list[types.EmbeddedResource]:
        """Get a category and its products.

        Args:
            slug: Category slug.
            limit: Maximum number of products (1-100, default 12).
        """
        try:
            if not slug.strip():
                return _as_resource(_error_json("slug cannot be empty"))
            _validate_paging(1, limit)
            category = await catalog_svc.get_category(slug.strip(), strict=True)
            if category is None:
                raise NotFoundError(f"Category not found: {slug.strip()}")
            products = await catalog_svc.get_products_by_category(category.slug, limit, strict=True)
            return _as_resource(
                _to_json(
                    {
                        "category": dataclasses.asdict(category),
                        "products": [dataclasses.asdict(p) for p in products],
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def cache_stats() -> list[types.EmbeddedResource]:
        """Report current cache size and capacity."""
        return _as_resource(_to_json(dataclasses.asdict(cache.get_stats())))

    @mcp.tool()
    async def invalidate_cache(pattern: str) -> list[types.EmbeddedResource]:
        """Drop every cache entry whose key contains pattern, e.g. "products:".

        Args:
            pattern: Literal substring matched against cache keys.
        """
        if not pattern:
            return _as_resource(_error_json("pattern cannot be empty"))
        removed = cache.invalidate_pattern(pattern)
        return _as_resource(_to_json({"pattern": pattern, "removed": removed}))

    @mcp.tool()
    async def warm_cache() -> list[types.EmbeddedResource]:
        """Prefetch the first listing pages, featured products and categories."""
        await catalog_svc.warm_cache()
        return _as_resource(_to_json(dataclasses.asdict(cache.get_stats())))
