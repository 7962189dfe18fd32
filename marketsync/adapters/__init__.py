"""Marketplace adapters behind one listing-operations contract"""

from .base_adapter import AdapterResult, Capability, PlatformAdapter
from .amazon_adapter import AmazonAdapter
from .bigcommerce_adapter import BigCommerceAdapter
from .ebay_adapter import EbayAdapter
from .etsy_adapter import EtsyAdapter
from .local_adapter import LocalAdapter
from .shopify_adapter import ShopifyAdapter
from .walmart_adapter import WalmartAdapter
from .woocommerce_adapter import WooCommerceAdapter
from .factory import AdapterFactory

__all__ = [
    "AdapterResult",
    "Capability",
    "PlatformAdapter",
    "AmazonAdapter",
    "BigCommerceAdapter",
    "EbayAdapter",
    "EtsyAdapter",
    "LocalAdapter",
    "ShopifyAdapter",
    "WalmartAdapter",
    "WooCommerceAdapter",
    "AdapterFactory",
]
