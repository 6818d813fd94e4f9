from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from storefront.domain.entities import (
    AffiliateLink,
    Category,
    ListingOffer,
    Product,
    ProductImage,
    ProductListItem,
    ProductPage,
    ProductReview,
    ProductScore,
    ProductSEO,
    ProductTag,
)
from storefront.domain.exceptions import ApiError, NotFoundError
from storefront.domain.value_objects import Availability
from storefront.infrastructure import cache_keys
from storefront.infrastructure.cache import TTLCache
from storefront.infrastructure.resilience import with_fallback, with_retry
from storefront.infrastructure.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upstream failures worth another attempt; NotFoundError is an answer, not a failure.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (ApiError, httpx.TransportError)


class CatalogService:
    """Cached storefront reads: products, categories and search.

    Each read is layered as fetch (retried) -> TTLCache.with_cache -> fallback,
    so failures are never cached and callers always get a usable value.
    """

    def __init__(
        self,
        client: SupabaseClient,
        cache: TTLCache,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        self._client = client
        self._cache = cache
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay

    async def get_products(
        self,
        page: int = 1,
        limit: int = 12,
        category: str | None = None,
        strict: bool = False,
    ) -> ProductPage:
        """Return one page of the product listing, newest first.

        has_more is True when rows exist beyond this page. With strict=True
        upstream errors propagate instead of yielding an empty page.
        """
        offset = (page - 1) * limit

        async def fetch() -> ProductPage:
            rows, total = await self._client.fetch_products(offset, limit, category)
            return ProductPage(
                products=[self._map_list_item(r) for r in rows],
                total=total,
                has_more=total > offset + limit,
            )

        return await self._read(
            lambda: self._cached(cache_keys.products(page, limit, category), fetch, cache_keys.TTL_PRODUCTS),
            ProductPage(products=[], total=0, has_more=False),
            "get_products",
            strict,
        )

    async def get_featured_products(self, limit: int = 6, strict: bool = False) -> list[ProductListItem]:
        async def fetch() -> list[ProductListItem]:
            return [self._map_list_item(r) for r in await self._client.fetch_featured(limit)]

        return await self._read(
            lambda: self._cached(cache_keys.featured_products(limit), fetch, cache_keys.TTL_FEATURED),
            [],
            "get_featured_products",
            strict,
        )

    async def get_products_by_category(
        self, category: str, limit: int = 12, strict: bool = False
    ) -> list[ProductListItem]:
        async def fetch() -> list[ProductListItem]:
            rows, _ = await self._client.fetch_products(0, limit, category)
            return [self._map_list_item(r) for r in rows]

        return await self._read(
            lambda: self._cached(
                cache_keys.products_by_category(category, limit),
                fetch,
                cache_keys.TTL_PRODUCTS_BY_CATEGORY,
            ),
            [],
            "get_products_by_category",
            strict,
        )

    async def get_product(self, slug: str, strict: bool = False) -> Product | None:
        """Return full product detail, or None when the slug is unknown.

        Fetch failures also yield None unless strict=True. Unknown slugs are
        not cached, so a product published later shows up on the next request.
        """

        async def fetch() -> Product:
            row = await self._client.fetch_product(slug)
            if row is None:
                raise NotFoundError(f"Product not found: {slug}")
            return self._map_product(row)

        async def lookup() -> Product | None:
            try:
                return await self._cached(cache_keys.product(slug), fetch, cache_keys.TTL_PRODUCT)
            except NotFoundError:
                return None

        return await self._read(lookup, None, "get_product", strict)

    async def get_categories(self, strict: bool = False) -> list[Category]:
        async def fetch() -> list[Category]:
            return [self._map_category(r) for r in await self._client.fetch_categories()]

        return await self._read(
            lambda: self._cached(cache_keys.categories(), fetch, cache_keys.TTL_CATEGORIES),
            [],
            "get_categories",
            strict,
        )

    async def get_category(self, slug: str, strict: bool = False) -> Category | None:
        """Return an active category by slug, or None."""

        async def fetch() -> Category:
            row = await self._client.fetch_category(slug)
            if row is None:
                raise NotFoundError(f"Category not found: {slug}")
            return self._map_category(row)

        async def lookup() -> Category | None:
            try:
                return await self._cached(cache_keys.category(slug), fetch, cache_keys.TTL_CATEGORIES)
            except NotFoundError:
                return None

        return await self._read(lookup, None, "get_category", strict)

    async def search_products(
        self, query: str, limit: int = 10, strict: bool = False
    ) -> list[ProductListItem]:
        """Full-text product search. A blank query returns [] without a fetch."""
        query = query.strip()
        if not query:
            return []

        async def fetch() -> list[ProductListItem]:
            return [self._map_list_item(r) for r in await self._client.search_products(query, limit)]

        return await self._read(
            lambda: self._cached(cache_keys.search(query, limit), fetch, cache_keys.TTL_SEARCH),
            [],
            "search_products",
            strict,
        )

    def invalidate_products(self) -> int:
        """Drop every cached product listing: pages, featured and per-category lists."""
        return sum(
            self._cache.invalidate_pattern(prefix)
            for prefix in (
                cache_keys.PRODUCTS_PREFIX,
                cache_keys.FEATURED_PREFIX,
                cache_keys.PRODUCTS_BY_CATEGORY_PREFIX,
            )
        )

    def invalidate_product(self, slug: str) -> None:
        """Drop a single product's detail entry."""
        self._cache.delete(cache_keys.product(slug))

    def invalidate_categories(self) -> int:
        """Drop the category list, single categories and per-category listings."""
        return self._cache.invalidate_pattern("categor")

    async def warm_cache(self) -> None:
        """Prefetch the most requested pages. Never raises."""
        logger.info("Cache warming started...")
        try:
            await self.get_products(1, 12)
            await self.get_products(2, 12)
            await self.get_featured_products(6)
            await self.get_categories()
        except Exception:
            logger.exception("Cache warming failed")
            return
        logger.info("Cache warming completed (%d entries)", self._cache.get_stats().size)

    async def _read(
        self, operation: Callable[[], Awaitable[T]], fallback: T, context: str, strict: bool
    ) -> T:
        """Run operation, falling back to fallback on error unless strict."""
        if strict:
            return await operation()
        return await with_fallback(operation, fallback, context)

    async def _cached(self, key: str, fetch: Callable[[], Awaitable[T]], ttl: int) -> T:
        """Read through the cache; retries apply to the fetch only."""
        return await self._cache.with_cache(
            key,
            lambda: with_retry(
                fetch,
                max_retries=self._retry_attempts,
                delay=self._retry_delay,
                retry_on=RETRYABLE_ERRORS,
            ),
            ttl,
        )

    def _map_list_item(self, raw: dict[str, Any]) -> ProductListItem:
        """Map a products_full row to a product card.

        Only rating/total_reviews of the review and price/is_best_deal of each
        affiliate link are kept.
        """
        review = None
        if raw.get("review_rating"):
            review = ProductReview(
                rating=raw["review_rating"],
                total_reviews=raw.get("review_total_reviews") or 0,
            )
        return ProductListItem(
            id=raw.get("id", ""),
            slug=raw.get("slug", ""),
            title=raw.get("title", ""),
            description=raw.get("description", ""),
            price=float(raw.get("price") or 0.0),
            category_id=raw.get("category_id"),
            flash_sale_end=raw.get("flash_sale_end"),
            category=self._map_embedded_category(raw),
            images=[self._map_image(i) for i in raw.get("images") or []],
            review=review,
            affiliate_links=[
                ListingOffer(price=float(link.get("price") or 0.0), is_best_deal=link.get("is_best_deal", False))
                for link in raw.get("affiliate_links") or []
            ],
        )

    def _map_product(self, raw: dict[str, Any]) -> Product:
        """Map a products_full row to the full Product entity.

        Key mappings:
        - category_name/category_slug/category_icon → category (None without category_name)
        - review_* → review (None without review_rating)
        - score_* → scores (None when score_price is null)
        - seo_* → seo (None without seo_meta_title)
        """
        review = None
        if raw.get("review_rating"):
            review = ProductReview(
                rating=raw["review_rating"],
                total_reviews=raw.get("review_total_reviews") or 0,
                content=raw.get("review_content"),
                pros=raw.get("review_pros") or [],
                cons=raw.get("review_cons") or [],
                verdict=raw.get("review_verdict"),
                overall_score=raw.get("review_overall_score"),
            )

        scores = None
        if raw.get("score_price") is not None:
            scores = ProductScore(
                score_price=raw["score_price"],
                score_quality=raw.get("score_quality") or 0,
                score_brand=raw.get("score_brand") or 0,
                score_warranty=raw.get("score_warranty") or 0,
            )

        seo = None
        if raw.get("seo_meta_title"):
            seo = ProductSEO(
                meta_title=raw["seo_meta_title"],
                meta_description=raw.get("seo_meta_description"),
                keywords=raw.get("seo_keywords") or [],
                canonical_url=raw.get("seo_canonical_url"),
            )

        return Product(
            id=raw.get("id", ""),
            slug=raw.get("slug", ""),
            title=raw.get("title", ""),
            description=raw.get("description", ""),
            price=float(raw.get("price") or 0.0),
            category_id=raw.get("category_id"),
            flash_sale_end=raw.get("flash_sale_end"),
            created_at=raw.get("created_at", ""),
            updated_at=raw.get("updated_at"),
            category=self._map_embedded_category(raw),
            images=[self._map_image(i) for i in raw.get("images") or []],
            tags=[
                ProductTag(id=t.get("id", ""), name=t.get("name", ""), slug=t.get("slug", ""))
                for t in raw.get("tags") or []
            ],
            review=review,
            scores=scores,
            seo=seo,
            affiliate_links=[self._map_affiliate_link(link) for link in raw.get("affiliate_links") or []],
        )

    def _map_embedded_category(self, raw: dict[str, Any]) -> Category | None:
        """Build the category flattened into a products_full row."""
        if not raw.get("category_name"):
            return None
        return Category(
            id=raw.get("category_id") or "",
            name=raw["category_name"],
            slug=raw.get("category_slug", ""),
            icon=raw.get("category_icon"),
        )

    def _map_category(self, raw: dict[str, Any]) -> Category:
        return Category(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            slug=raw.get("slug", ""),
            description=raw.get("description"),
            icon=raw.get("icon"),
            display_order=raw.get("display_order", 0),
            is_active=raw.get("is_active", True),
            created_at=raw.get("created_at", ""),
            updated_at=raw.get("updated_at", ""),
        )

    def _map_image(self, raw: dict[str, Any]) -> ProductImage:
        return ProductImage(
            id=raw.get("id", ""),
            url=raw.get("url", ""),
            alt_text=raw.get("alt_text"),
            width=raw.get("width"),
            height=raw.get("height"),
            is_primary=raw.get("is_primary", False),
            display_order=raw.get("display_order", 0),
        )

    def _map_affiliate_link(self, raw: dict[str, Any]) -> AffiliateLink:
        try:
            availability = Availability(raw.get("availability", Availability.IN_STOCK.value))
        except ValueError:
            availability = Availability.OUT_OF_STOCK
        return AffiliateLink(
            id=raw.get("id", ""),
            shop_name=raw.get("shop_name", ""),
            price=float(raw.get("price") or 0.0),
            affiliate_url=raw.get("affiliate_url", ""),
            shop_logo_url=raw.get("shop_logo_url"),
            original_price=raw.get("original_price"),
            voucher=raw.get("voucher"),
            flash_sale_end=raw.get("flash_sale_end"),
            availability=availability,
            is_best_deal=raw.get("is_best_deal", False),
        )
