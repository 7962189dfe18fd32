"""Listing sync domain model and typed credential accessors"""

from .models import (
    Category,
    CategoryPlatformMapping,
    ConnectionStatus,
    ListingStatus,
    MarketplaceConnection,
    Platform,
    PlatformListing,
    Product,
    ProductImage,
    ProductPlatformOverride,
    ProductTemplate,
    ProductVariant,
    SalesChannel,
    TemplateField,
    TemplatePlatformMapping,
)

__all__ = [
    "Category",
    "CategoryPlatformMapping",
    "ConnectionStatus",
    "ListingStatus",
    "MarketplaceConnection",
    "Platform",
    "PlatformListing",
    "Product",
    "ProductImage",
    "ProductPlatformOverride",
    "ProductTemplate",
    "ProductVariant",
    "SalesChannel",
    "TemplateField",
    "TemplatePlatformMapping",
]
