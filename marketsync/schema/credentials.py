"""
Typed Credential Accessors
==========================
Narrow, per-platform views over a MarketplaceConnection's free-form
credentials/settings maps. Each adapter reads its connection only through
one of these, so a platform's key names live in exactly one place.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional, Tuple

from ..config import Config
from .models import MarketplaceConnection


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class PlatformCredentials:
    """Base accessor. REQUIRED lists the fields a usable connection needs."""

    REQUIRED = ("access_token",)
    SECRET_FIELDS = ("access_token", "refresh_token")

    def missing(self) -> List[str]:
        return [name for name in self.REQUIRED if not getattr(self, name, None)]

    @property
    def is_complete(self) -> bool:
        return not self.missing()

    def secrets(self) -> Tuple[str, ...]:
        """Secret values for redaction"""
        names = {f.name for f in fields(self)}
        return tuple(
            str(getattr(self, name))
            for name in self.SECRET_FIELDS
            if name in names and getattr(self, name)
        )


@dataclass(frozen=True)
class ShopifyCredentials(PlatformCredentials):
    shop_domain: Optional[str]
    access_token: Optional[str]
    refresh_token: Optional[str] = None
    api_version: str = "2024-01"
    location_id: Optional[str] = None

    REQUIRED = ("access_token", "shop_domain")

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "ShopifyCredentials":
        creds = connection.credentials or {}
        settings = connection.settings or {}
        domain = _first(connection.shop_domain, creds.get("shop_domain"))
        if domain:
            domain = str(domain).replace("https://", "").replace("http://", "").rstrip("/")
        return cls(
            shop_domain=domain,
            access_token=connection.access_token,
            refresh_token=connection.refresh_token,
            api_version=_first(settings.get("api_version"), Config.SHOPIFY_API_VERSION),
            location_id=_first(settings.get("location_id"), creds.get("location_id")),
        )


@dataclass(frozen=True)
class EbayCredentials(PlatformCredentials):
    access_token: Optional[str]
    refresh_token: Optional[str] = None
    sandbox: bool = False
    marketplace_id: str = "EBAY_US"
    currency: str = "USD"
    merchant_location_key: Optional[str] = None
    fulfillment_policy_id: Optional[str] = None
    payment_policy_id: Optional[str] = None
    return_policy_id: Optional[str] = None

    @property
    def base_url(self) -> str:
        return "https://api.sandbox.ebay.com" if self.sandbox else "https://api.ebay.com"

    @property
    def has_business_policies(self) -> bool:
        return bool(self.fulfillment_policy_id and self.payment_policy_id and self.return_policy_id)

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "EbayCredentials":
        creds = connection.credentials or {}
        settings = connection.settings or {}
        sandbox = creds.get("sandbox")
        return cls(
            access_token=connection.access_token,
            refresh_token=connection.refresh_token,
            sandbox=Config.EBAY_SANDBOX if sandbox is None else bool(sandbox),
            marketplace_id=_first(creds.get("marketplace_id"), "EBAY_US"),
            currency=_first(settings.get("currency"), "USD"),
            merchant_location_key=_first(
                settings.get("merchant_location_key"), creds.get("merchant_location_key")
            ),
            fulfillment_policy_id=creds.get("fulfillment_policy_id"),
            payment_policy_id=creds.get("payment_policy_id"),
            return_policy_id=creds.get("return_policy_id"),
        )


AMAZON_REGIONS = {
    "na": "https://sellingpartnerapi-na.amazon.com",
    "eu": "https://sellingpartnerapi-eu.amazon.com",
    "fe": "https://sellingpartnerapi-fe.amazon.com",
}


@dataclass(frozen=True)
class AmazonCredentials(PlatformCredentials):
    access_token: Optional[str]
    seller_id: Optional[str]
    refresh_token: Optional[str] = None
    marketplace_id: str = "ATVPDKIKX0DER"
    region: str = "na"
    language_tag: str = "en_US"
    currency: str = "USD"
    product_type: str = "PRODUCT"
    fulfillment_channel: str = "DEFAULT"
    price_markup: float = 0.0

    REQUIRED = ("access_token", "seller_id")

    @property
    def base_url(self) -> str:
        return AMAZON_REGIONS.get(self.region, AMAZON_REGIONS["na"])

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "AmazonCredentials":
        creds = connection.credentials or {}
        settings = connection.settings or {}
        return cls(
            access_token=connection.access_token,
            seller_id=_first(creds.get("seller_id"), connection.external_store_id),
            refresh_token=connection.refresh_token,
            marketplace_id=_first(creds.get("marketplace_id"), "ATVPDKIKX0DER"),
            region=str(_first(creds.get("region"), "na")).lower(),
            language_tag=_first(settings.get("language_tag"), "en_US"),
            currency=_first(settings.get("currency"), "USD"),
            product_type=_first(settings.get("product_type"), "PRODUCT"),
            fulfillment_channel=_first(settings.get("fulfillment_channel"), "DEFAULT"),
            price_markup=float(settings.get("price_markup") or 0),
        )


@dataclass(frozen=True)
class EtsyCredentials(PlatformCredentials):
    access_token: Optional[str]
    shop_id: Optional[str]
    api_key: Optional[str] = None
    refresh_token: Optional[str] = None
    currency: str = "USD"
    who_made: str = "someone_else"
    when_made: Optional[str] = None
    taxonomy_id: Optional[int] = None
    shipping_profile_id: Optional[int] = None
    return_policy_id: Optional[int] = None

    REQUIRED = ("access_token", "shop_id")
    SECRET_FIELDS = ("access_token", "refresh_token", "api_key")

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "EtsyCredentials":
        creds = connection.credentials or {}
        settings = connection.settings or {}
        return cls(
            access_token=connection.access_token,
            shop_id=_first(connection.external_store_id, creds.get("shop_id")),
            api_key=_first(creds.get("api_key"), Config.ETSY_API_KEY),
            refresh_token=connection.refresh_token,
            currency=_first(settings.get("currency"), "USD"),
            who_made=_first(settings.get("who_made"), "someone_else"),
            when_made=settings.get("when_made"),
            taxonomy_id=settings.get("taxonomy_id"),
            shipping_profile_id=settings.get("shipping_profile_id"),
            return_policy_id=settings.get("return_policy_id"),
        )


@dataclass(frozen=True)
class WalmartCredentials(PlatformCredentials):
    access_token: Optional[str]
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    base_url: str = "https://marketplace.walmartapis.com"

    SECRET_FIELDS = ("access_token", "client_secret")

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "WalmartCredentials":
        creds = connection.credentials or {}
        return cls(
            access_token=connection.access_token,
            client_id=creds.get("client_id"),
            client_secret=creds.get("client_secret"),
            base_url=_first(creds.get("base_url"), "https://marketplace.walmartapis.com"),
        )


@dataclass(frozen=True)
class WooCommerceCredentials(PlatformCredentials):
    site_url: Optional[str]
    consumer_key: Optional[str]
    consumer_secret: Optional[str]

    REQUIRED = ("site_url", "consumer_key", "consumer_secret")
    SECRET_FIELDS = ("consumer_key", "consumer_secret")

    @property
    def api_base(self) -> str:
        return f"{self.site_url}/wp-json/wc/v3"

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "WooCommerceCredentials":
        creds = connection.credentials or {}
        site_url = _first(creds.get("site_url"), connection.shop_domain)
        if site_url and not str(site_url).startswith("http"):
            site_url = f"https://{site_url}"
        return cls(
            site_url=str(site_url).rstrip("/") if site_url else None,
            consumer_key=creds.get("consumer_key"),
            consumer_secret=creds.get("consumer_secret"),
        )


@dataclass(frozen=True)
class BigCommerceCredentials(PlatformCredentials):
    store_hash: Optional[str]
    access_token: Optional[str]
    api_version: str = "v3"

    REQUIRED = ("store_hash", "access_token")
    SECRET_FIELDS = ("access_token",)

    @property
    def api_base(self) -> str:
        return f"https://api.bigcommerce.com/stores/{self.store_hash}/{self.api_version}"

    @classmethod
    def from_connection(cls, connection: MarketplaceConnection) -> "BigCommerceCredentials":
        creds = connection.credentials or {}
        return cls(
            store_hash=_first(connection.external_store_id, creds.get("store_hash")),
            access_token=_first(connection.access_token, creds.get("access_token")),
            api_version=Config.BIGCOMMERCE_API_VERSION,
        )


def secrets_for(connection: Optional[MarketplaceConnection]) -> Tuple[str, ...]:
    """Every secret-looking value on a connection, whatever its platform"""
    if connection is None:
        return ()
    values = [connection.access_token, connection.refresh_token]
    creds: Dict[str, Any] = connection.credentials or {}
    for key in ("api_key", "client_secret", "consumer_key", "consumer_secret", "access_token"):
        values.append(creds.get(key))
    return tuple(str(v) for v in values if v)
