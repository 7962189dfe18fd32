"""
Adapter Factory
===============
Resolves which adapter backs a sales channel:

1. local channel            -> LocalAdapter
2. linked connection         -> the connection's platform
3. otherwise                 -> the channel's own declared type

Unknown platform keys raise ConfigurationError; there is no default adapter.
"""

from typing import Callable, Dict, Optional, Type

import requests

from .base_adapter import PlatformAdapter, TokenRefresher
from .amazon_adapter import AmazonAdapter
from .bigcommerce_adapter import BigCommerceAdapter
from .ebay_adapter import EbayAdapter
from .etsy_adapter import EtsyAdapter
from .local_adapter import LocalAdapter
from .shopify_adapter import ShopifyAdapter
from .walmart_adapter import WalmartAdapter
from .woocommerce_adapter import WooCommerceAdapter
from ..exceptions import ConfigurationError
from ..schema.models import MarketplaceConnection, Platform, SalesChannel

AdapterConstructor = Callable[..., PlatformAdapter]

DEFAULT_ADAPTERS: Dict[Platform, Type[PlatformAdapter]] = {
    Platform.SHOPIFY: ShopifyAdapter,
    Platform.EBAY: EbayAdapter,
    Platform.AMAZON: AmazonAdapter,
    Platform.ETSY: EtsyAdapter,
    Platform.WALMART: WalmartAdapter,
    Platform.WOOCOMMERCE: WooCommerceAdapter,
    Platform.BIGCOMMERCE: BigCommerceAdapter,
    Platform.LOCAL: LocalAdapter,
}


class AdapterFactory:
    """
    Builds adapters wired to the shared store, payload builder, HTTP session
    and token refresher.
    """

    def __init__(
        self,
        store,
        builder=None,
        session: Optional[requests.Session] = None,
        token_refresher: Optional[TokenRefresher] = None,
    ):
        if builder is None:
            from ..publisher.listing_builder import ListingBuilderService
            builder = ListingBuilderService(store)

        self.store = store
        self.builder = builder
        self.session = session
        self.token_refresher = token_refresher
        self._registry: Dict[str, AdapterConstructor] = {
            platform.value: cls for platform, cls in DEFAULT_ADAPTERS.items()
        }

    def register(self, platform_key, constructor: AdapterConstructor) -> None:
        """
        Register an adapter under a platform key (new or replacing).

        Args:
            platform_key: Platform enum value or plain string key
            constructor: Adapter class or callable with the adapter signature
        """
        key = platform_key.value if isinstance(platform_key, Platform) else str(platform_key).lower()
        self._registry[key] = constructor

    def registered_platforms(self):
        return sorted(self._registry)

    def make(self, channel: SalesChannel) -> PlatformAdapter:
        """
        Resolve and construct the adapter for a sales channel.

        Raises:
            ConfigurationError: If no adapter is registered for the platform
        """
        if channel.is_local:
            return self._construct(Platform.LOCAL.value, channel, None)

        connection = None
        if channel.connection_id is not None:
            connection = self.store.get_connection(channel.connection_id)

        key = connection.platform if connection is not None else channel.type
        return self._construct(key, channel, connection)

    def make_for_connection(self, connection: MarketplaceConnection,
                            channel: Optional[SalesChannel] = None) -> PlatformAdapter:
        """Adapter for account-level work (connect, policy sync, aspects)"""
        return self._construct(connection.platform, channel, connection)

    def _construct(self, key, channel, connection) -> PlatformAdapter:
        normalized = str(key or "").strip().lower()
        constructor = self._registry.get(normalized)
        if constructor is None:
            raise ConfigurationError(f"No marketplace adapter registered for platform '{key}'")

        return constructor(
            channel=channel,
            connection=connection,
            store=self.store,
            builder=self.builder,
            session=self.session,
            token_refresher=self.token_refresher,
        )
