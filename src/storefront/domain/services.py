from __future__ import annotations

from datetime import datetime

from storefront.domain.entities import AffiliateLink, Product
from storefront.domain.value_objects import Availability
from storefront.infrastructure.time_utils import now_utc, parse_timestamp


def get_best_deal(product: Product) -> AffiliateLink | None:
    """Return the cheapest in-stock affiliate link, or None when nothing is in stock."""
    in_stock = [
        link for link in product.affiliate_links if link.availability == Availability.IN_STOCK
    ]
    if not in_stock:
        return None
    return min(in_stock, key=lambda link: link.price)


def get_discount_percentage(product: Product) -> int:
    """Return the best deal's discount off its original price, rounded to whole percent.

    Returns 0 when there is no best deal, no original price, or the original
    price is not above the deal price.
    """
    best = get_best_deal(product)
    if best is None or not best.original_price or best.original_price <= best.price:
        return 0
    return round((best.original_price - best.price) / best.original_price * 100)


def is_flash_sale_active(end: str | None, now: datetime | None = None) -> bool:
    """Return True when the flash sale end timestamp lies in the future.

    Empty or unparseable timestamps count as no active sale.
    """
    if not end:
        return False
    try:
        end_dt = parse_timestamp(end)
    except ValueError:
        return False
    return end_dt > (now if now is not None else now_utc())
