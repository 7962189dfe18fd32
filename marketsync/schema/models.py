"""
Listing Sync Domain Model
=========================
Dataclasses for everything the sync layer reads and persists: products,
sales channels, marketplace connections, platform listings, overrides and
the category/template mapping records.

JSON-shaped maps (credentials, settings, platform_data, field mappings)
stay plain dicts; adapters read them through the typed accessors in
schema.credentials.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum
from datetime import datetime, timedelta


class Platform(Enum):
    """Marketplaces a sales channel can be backed by"""
    SHOPIFY = "shopify"
    EBAY = "ebay"
    AMAZON = "amazon"
    ETSY = "etsy"
    WALMART = "walmart"
    WOOCOMMERCE = "woocommerce"
    BIGCOMMERCE = "bigcommerce"
    LOCAL = "local"

    @property
    def display_name(self) -> str:
        return PLATFORM_DISPLAY_NAMES[self]

    @classmethod
    def from_value(cls, value: Any) -> Optional["Platform"]:
        """Lenient lookup; returns None for unknown keys"""
        if isinstance(value, Platform):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


PLATFORM_DISPLAY_NAMES = {
    Platform.SHOPIFY: "Shopify",
    Platform.EBAY: "eBay",
    Platform.AMAZON: "Amazon",
    Platform.ETSY: "Etsy",
    Platform.WALMART: "Walmart",
    Platform.WOOCOMMERCE: "WooCommerce",
    Platform.BIGCOMMERCE: "BigCommerce",
    Platform.LOCAL: "In Store",
}


class ListingStatus(Enum):
    """Canonical listing status vocabulary"""
    DRAFT = "draft"
    PENDING = "pending"
    LISTED = "listed"
    ACTIVE = "active"
    ENDED = "ended"
    ERROR = "error"


class ConnectionStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ERROR = "error"


# ============================================================================
# CATALOG
# ============================================================================

@dataclass
class Category:
    """Internal store category; parent_id None marks a root"""
    id: int
    name: str
    parent_id: Optional[int] = None


@dataclass
class ProductImage:
    url: str
    position: int = 0
    alt: Optional[str] = None


@dataclass
class ProductVariant:
    """Sellable variant; the first variant carries the listing price"""
    id: int
    sku: Optional[str] = None
    price: Optional[float] = None
    quantity: int = 0
    barcode: Optional[str] = None
    compare_at_price: Optional[float] = None
    weight: Optional[float] = None
    options: Dict[str, str] = field(default_factory=dict)


@dataclass
class TemplateField:
    """One field of a product template"""
    name: str
    label: str = ""
    type: str = "text"
    is_private: bool = False
    options: List[Dict[str, str]] = field(default_factory=list)  # [{"value", "label"}]
    id: Optional[int] = None

    def option_label(self, value: Any) -> Any:
        """Display label for a stored select value, or the value itself"""
        for option in self.options:
            if str(option.get("value")) == str(value):
                return option.get("label", value)
        return value


@dataclass
class ProductTemplate:
    id: int
    name: str
    fields: List[TemplateField] = field(default_factory=list)

    def get_field(self, name: str) -> Optional[TemplateField]:
        for template_field in self.fields:
            if template_field.name == name:
                return template_field
        return None

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


@dataclass
class Product:
    """
    Product as seen by the listing layer.

    attribute_values holds template field values keyed by field name.
    legacy_images is the older flat image list used when images is empty.
    """
    id: int
    title: str
    description: str = ""
    store_id: Optional[int] = None
    category_id: Optional[int] = None
    template_id: Optional[int] = None
    handle: Optional[str] = None
    brand: Optional[str] = None
    condition: Optional[str] = None
    upc: Optional[str] = None
    ean: Optional[str] = None
    mpn: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: str = "lb"
    tags: List[str] = field(default_factory=list)
    images: List[ProductImage] = field(default_factory=list)
    legacy_images: List[str] = field(default_factory=list)
    variants: List[ProductVariant] = field(default_factory=list)
    attribute_values: Dict[str, Any] = field(default_factory=dict)

    @property
    def first_variant(self) -> Optional[ProductVariant]:
        return self.variants[0] if self.variants else None

    @property
    def total_quantity(self) -> int:
        """Sum of quantity over every variant"""
        return sum(v.quantity or 0 for v in self.variants)

    @property
    def price(self) -> Optional[float]:
        variant = self.first_variant
        return variant.price if variant else None

    def image_urls(self) -> List[str]:
        """Structured images in position order, else the legacy list"""
        if self.images:
            return [img.url for img in sorted(self.images, key=lambda i: i.position)]
        return list(self.legacy_images)


# ============================================================================
# CHANNELS & CONNECTIONS
# ============================================================================

@dataclass
class MarketplaceConnection:
    """
    One authenticated link to an external marketplace for one store.

    credentials holds the platform-specific keys (seller id, consumer secret,
    business policy ids, ...); settings holds operator preferences.
    """
    id: int
    platform: str
    store_id: Optional[int] = None
    name: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    credentials: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    status: str = ConnectionStatus.PENDING.value
    shop_domain: Optional[str] = None
    external_store_id: Optional[str] = None
    last_sync_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def platform_enum(self) -> Optional[Platform]:
        return Platform.from_value(self.platform)

    @property
    def is_active(self) -> bool:
        return self.status == ConnectionStatus.ACTIVE.value

    def token_expired(self, now: Optional[datetime] = None) -> bool:
        if self.token_expires_at is None:
            return False
        return self.token_expires_at <= (now or datetime.now())


@dataclass
class SalesChannel:
    """A sellable destination: local/in-store, or backed by a connection"""
    id: int
    name: str
    type: str
    store_id: Optional[int] = None
    is_local: bool = False
    connection_id: Optional[int] = None
    is_active: bool = True
    settings: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# LISTINGS
# ============================================================================

@dataclass
class PlatformListing:
    """The external representation of one product on one sales channel"""
    id: Optional[int]
    product_id: int
    sales_channel_id: int
    connection_id: Optional[int] = None
    external_listing_id: Optional[str] = None
    listing_url: Optional[str] = None
    status: str = ListingStatus.DRAFT.value
    platform_price: Optional[float] = None
    platform_quantity: Optional[int] = None
    platform_data: Dict[str, Any] = field(default_factory=dict)
    last_synced_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def status_enum(self) -> Optional[ListingStatus]:
        try:
            return ListingStatus(self.status)
        except ValueError:
            return None


@dataclass
class ProductPlatformOverride:
    """
    Per (product, connection) overrides. None always means "not overridden";
    a price or quantity of 0 is a real override.
    """
    product_id: int
    connection_id: int
    id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    compare_at_price: Optional[float] = None
    quantity: Optional[int] = None
    category_id: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# MAPPINGS
# ============================================================================

ITEM_SPECIFICS_TTL = timedelta(days=7)


@dataclass
class CategoryPlatformMapping:
    """
    External category for one (internal category, connection) pair.

    field_mappings maps platform aspect name -> template field name;
    default_values maps platform aspect name -> literal value.
    """
    category_id: int
    connection_id: int
    primary_category_id: Optional[str] = None
    id: Optional[int] = None
    primary_category_name: Optional[str] = None
    secondary_category_id: Optional[str] = None
    secondary_category_name: Optional[str] = None
    field_mappings: Dict[str, str] = field(default_factory=dict)
    default_values: Dict[str, Any] = field(default_factory=dict)
    item_specifics: List[Dict[str, Any]] = field(default_factory=list)
    item_specifics_synced_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def needs_item_specifics_sync(self, platform: Any, now: Optional[datetime] = None) -> bool:
        """
        eBay aspects are cached for a week; other platforms have none to sync.
        """
        if Platform.from_value(platform) != Platform.EBAY:
            return False
        if self.item_specifics_synced_at is None:
            return True
        return (now or datetime.now()) - self.item_specifics_synced_at > ITEM_SPECIFICS_TTL


@dataclass
class TemplatePlatformMapping:
    """
    Saved template -> platform field mapping.

    metafield_mappings: template field -> {"namespace", "key", "enabled"}
    """
    template_id: int
    platform: str
    id: Optional[int] = None
    field_mappings: Dict[str, str] = field(default_factory=dict)
    default_values: Dict[str, Any] = field(default_factory=dict)
    metafield_mappings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    excluded_metafields: List[str] = field(default_factory=list)
    is_ai_generated: bool = False
