from __future__ import annotations

from dataclasses import dataclass, field

from storefront.domain.value_objects import Availability


@dataclass
class Category:
    """A product category (categories table)."""

    id: str
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    display_order: int = 0
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""


@dataclass
class ProductImage:
    id: str
    url: str
    alt_text: str | None = None
    width: int | None = None
    height: int | None = None
    is_primary: bool = False
    display_order: int = 0


@dataclass
class ProductTag:
    id: str
    name: str
    slug: str


@dataclass
class ProductReview:
    """Editorial review summary. List views only carry rating and total_reviews."""

    rating: float
    total_reviews: int
    content: str | None = None
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    verdict: str | None = None
    overall_score: float | None = None


@dataclass
class ProductScore:
    score_price: float
    score_quality: float
    score_brand: float
    score_warranty: float


@dataclass
class ProductSEO:
    meta_title: str | None
    meta_description: str | None
    keywords: list[str] = field(default_factory=list)
    canonical_url: str | None = None


@dataclass
class AffiliateLink:
    """A shop offer for a product."""

    id: str
    shop_name: str
    price: float
    affiliate_url: str
    shop_logo_url: str | None = None
    original_price: float | None = None  # Pre-discount price, if the shop shows one
    voucher: str | None = None
    flash_sale_end: str | None = None  # ISO 8601 timestamp
    availability: Availability = Availability.IN_STOCK
    is_best_deal: bool = False


@dataclass
class Product:
    """Full product detail, one row of the products_full view."""

    id: str
    slug: str
    title: str
    description: str
    price: float
    category_id: str | None = None
    flash_sale_end: str | None = None
    created_at: str = ""
    updated_at: str | None = None
    category: Category | None = None
    images: list[ProductImage] = field(default_factory=list)
    tags: list[ProductTag] = field(default_factory=list)
    review: ProductReview | None = None
    scores: ProductScore | None = None
    seo: ProductSEO | None = None
    affiliate_links: list[AffiliateLink] = field(default_factory=list)


@dataclass
class ListingOffer:
    """The slice of an affiliate link shown on a product card."""

    price: float
    is_best_deal: bool = False


@dataclass
class ProductListItem:
    """Product card data for listings and search results."""

    id: str
    slug: str
    title: str
    description: str
    price: float
    category_id: str | None = None
    flash_sale_end: str | None = None
    category: Category | None = None
    images: list[ProductImage] = field(default_factory=list)
    review: ProductReview | None = None
    affiliate_links: list[ListingOffer] = field(default_factory=list)


@dataclass
class ProductPage:
    """One page of a product listing."""

    products: list[ProductListItem]
    total: int
    has_more: bool
