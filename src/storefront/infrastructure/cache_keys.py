"""Cache key builders and TTLs for storefront reads.

Keys include every parameter that changes the result so distinct queries never
share a key. Each family has its own prefix so it can be dropped as a whole
with TTLCache.invalidate_pattern.
"""
from __future__ import annotations

# TTL values per query kind (in seconds)
TTL_PRODUCTS = 300
TTL_PRODUCT = 600
TTL_FEATURED = 900
TTL_CATEGORIES = 3600  # Categories change rarely
TTL_SEARCH = 300
TTL_PRODUCTS_BY_CATEGORY = 600

PRODUCTS_PREFIX = "products:"
FEATURED_PREFIX = "featured:"
PRODUCTS_BY_CATEGORY_PREFIX = "products-by-category:"


def products(page: int, limit: int, category: str | None = None) -> str:
    return f"{PRODUCTS_PREFIX}{page}:{limit}:{category or 'all'}"


def product(slug: str) -> str:
    return f"product:{slug}"


def featured_products(limit: int) -> str:
    return f"{FEATURED_PREFIX}{limit}"


def categories() -> str:
    return "categories"


def category(slug: str) -> str:
    return f"category:{slug}"


def search(query: str, limit: int) -> str:
    return f"search:{query}:{limit}"


def products_by_category(category: str, limit: int) -> str:
    return f"{PRODUCTS_BY_CATEGORY_PREFIX}{category}:{limit}"
