"""Tests for MCP tool functions — input validation, success and error paths."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from storefront.application.catalog_service import CatalogService
from storefront.domain.entities import AffiliateLink, Category, Product, ProductListItem, ProductPage
from storefront.domain.exceptions import ApiError, ValidationError
from storefront.infrastructure.cache import TTLCache
from storefront.mcp.tools import _handle_exception, _validate_paging, register_tools


def make_item(slug: str = "sony-wh-1000xm5") -> ProductListItem:
    return ProductListItem(id=f"id-{slug}", slug=slug, title="Sony", description="", price=349.0)


def make_product() -> Product:
    return Product(
        id="p1",
        slug="sony-wh-1000xm5",
        title="Sony",
        description="",
        price=349.0,
        flash_sale_end="2000-01-01T00:00:00Z",
        affiliate_links=[
            AffiliateLink(
                id="l1",
                shop_name="Shop",
                price=300.0,
                original_price=400.0,
                affiliate_url="https://shop.example/l1",
            )
        ],
    )


def make_mock_service() -> MagicMock:
    svc = MagicMock()
    svc.get_products = AsyncMock(return_value=ProductPage(products=[make_item()], total=1, has_more=False))
    svc.get_product = AsyncMock(return_value=make_product())
    svc.search_products = AsyncMock(return_value=[make_item()])
    svc.get_categories = AsyncMock(return_value=[Category(id="c1", name="Audio", slug="audio")])
    svc.get_category = AsyncMock(return_value=Category(id="c1", name="Audio", slug="audio"))
    svc.get_products_by_category = AsyncMock(return_value=[make_item()])
    svc.warm_cache = AsyncMock(return_value=None)
    return svc


def build_tool_functions(catalog_svc: MagicMock, cache: TTLCache) -> dict:  # type: ignore[type-arg]
    """Register tools on a mock MCP and extract the tool functions."""
    registered: dict = {}  # type: ignore[type-arg]

    class MockMcp:
        def tool(self, meta: dict | None = None):  # type: ignore[type-arg]
            def decorator(fn):  # type: ignore[type-arg]
                registered[fn.__name__] = fn
                return fn
            return decorator

    register_tools(MockMcp(), catalog_svc, cache)  # type: ignore[arg-type]
    return registered


def payload(result: list) -> dict:  # type: ignore[type-arg]
    return json.loads(result[0].resource.text)  # type: ignore[no-any-return]


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 101)])
def test_validate_paging_rejects(page: int, limit: int) -> None:
    with pytest.raises(ValidationError):
        _validate_paging(page, limit)


def test_handle_exception_maps_api_errors() -> None:
    assert "try again later" in payload(_handle_exception(ApiError(503)))["error"]
    assert payload(_handle_exception(ApiError(429)))["error"].startswith("Too many requests")
    assert payload(_handle_exception(ApiError(404)))["error"] == "Resource not found."


def test_handle_exception_timeout() -> None:
    result = _handle_exception(httpx.ReadTimeout("slow"))
    assert payload(result)["error"] == "Request timed out. Please try again."


def test_handle_exception_unexpected_hides_details() -> None:
    result = _handle_exception(RuntimeError("secret internals"))
    assert payload(result)["error"] == "An unexpected error occurred."


# ---------------------------------------------------------------------------
# tools
# ---------------------------------------------------------------------------

async def test_list_products_success() -> None:
    svc = make_mock_service()
    tools = build_tool_functions(svc, TTLCache())

    data = payload(await tools["list_products"](page=1, limit=12, category="audio"))

    svc.get_products.assert_awaited_once_with(1, 12, "audio", strict=True)
    assert data["total"] == 1
    assert data["hasMore"] is False
    assert data["products"][0]["slug"] == "sony-wh-1000xm5"


async def test_list_products_invalid_limit() -> None:
    svc = make_mock_service()
    tools = build_tool_functions(svc, TTLCache())

    data = payload(await tools["list_products"](page=1, limit=500))

    assert "limit" in data["error"]
    svc.get_products.assert_not_awaited()


async def test_get_product_includes_deal_fields() -> None:
    tools = build_tool_functions(make_mock_service(), TTLCache())

    data = payload(await tools["get_product"](slug="sony-wh-1000xm5"))

    assert data["product"]["slug"] == "sony-wh-1000xm5"
    assert data["bestDeal"]["id"] == "l1"
    assert data["discountPercentage"] == 25
    assert data["flashSaleActive"] is False


async def test_get_product_not_found() -> None:
    svc = make_mock_service()
    svc.get_product = AsyncMock(return_value=None)
    tools = build_tool_functions(svc, TTLCache())

    data = payload(await tools["get_product"](slug="missing"))

    assert data["error"] == "Product not found: missing"


async def test_get_product_empty_slug() -> None:
    tools = build_tool_functions(make_mock_service(), TTLCache())
    data = payload(await tools["get_product"](slug="  "))
    assert data["error"] == "slug cannot be empty"


async def test_search_products_empty_query() -> None:
    svc = make_mock_service()
    tools = build_tool_functions(svc, TTLCache())

    data = payload(await tools["search_products"](query=""))

    assert data["error"] == "query cannot be empty"
    svc.search_products.assert_not_awaited()


async def test_search_products_success() -> None:
    tools = build_tool_functions(make_mock_service(), TTLCache())
    data = payload(await tools["search_products"](query=" sony ", limit=5))
    assert data["query"] == "sony"
    assert data["count"] == 1


async def test_list_categories() -> None:
    tools = build_tool_functions(make_mock_service(), TTLCache())
    data = payload(await tools["list_categories"]())
    assert data[0]["slug"] == "audio"


async def test_get_category_with_products() -> None:
    svc = make_mock_service()
    tools = build_tool_functions(svc, TTLCache())

    data = payload(await tools["get_category"](slug="audio", limit=4))

    svc.get_products_by_category.assert_awaited_once_with("audio", 4, strict=True)
    assert data["category"]["name"] == "Audio"
    assert len(data["products"]) == 1


async def test_get_category_not_found() -> None:
    svc = make_mock_service()
    svc.get_category = AsyncMock(return_value=None)
    tools = build_tool_functions(svc, TTLCache())

    data = payload(await tools["get_category"](slug="nope"))

    assert data["error"] == "Category not found: nope"


async def test_cache_stats_and_invalidate() -> None:
    cache = TTLCache(capacity=10)
    cache.set("products:1:12:all", 1)
    cache.set("categories", 2)
    tools = build_tool_functions(make_mock_service(), cache)

    assert payload(await tools["cache_stats"]()) == {"size": 2, "capacity": 10}
    assert payload(await tools["invalidate_cache"](pattern="products:")) == {
        "pattern": "products:",
        "removed": 1,
    }
    assert payload(await tools["invalidate_cache"](pattern=""))["error"] == "pattern cannot be empty"


async def test_warm_cache_tool() -> None:
    svc = make_mock_service()
    tools = build_tool_functions(svc, TTLCache(capacity=10))

    data = payload(await tools["warm_cache"]())

    svc.warm_cache.assert_awaited_once()
    assert data["capacity"] == 10


# ---------------------------------------------------------------------------
# upstream failures through a real CatalogService
# ---------------------------------------------------------------------------

def make_failing_service(error: Exception) -> CatalogService:
    client = MagicMock()
    client.fetch_product = AsyncMock(side_effect=error)
    client.fetch_products = AsyncMock(side_effect=error)
    client.fetch_categories = AsyncMock(side_effect=error)
    return CatalogService(client, TTLCache(), retry_attempts=1, retry_delay=0)


async def test_get_product_upstream_outage_is_not_reported_as_missing() -> None:
    cache = TTLCache()
    tools = build_tool_functions(make_failing_service(ApiError(503)), cache)  # type: ignore[arg-type]

    data = payload(await tools["get_product"](slug="sony"))

    assert "try again later" in data["error"]
    assert "not found" not in data["error"]


async def test_list_products_rate_limited() -> None:
    tools = build_tool_functions(make_failing_service(ApiError(429)), TTLCache())  # type: ignore[arg-type]

    data = payload(await tools["list_products"]())

    assert data["error"] == "Too many requests. Please try again later."


async def test_list_categories_timeout() -> None:
    tools = build_tool_functions(make_failing_service(httpx.ReadTimeout("slow")), TTLCache())  # type: ignore[arg-type]

    data = payload(await tools["list_categories"]())

    assert data["error"] == "Request timed out. Please try again."
