"""
Publish-All
===========
Publishes one product to every eligible sales channel of its store.

A channel is eligible when it is active and is either local or backed by an
active marketplace connection, and the product is not already listed (or
in flight) there. Each payload is validated first; a channel with hard
errors is reported as failed and its adapter is never called.
"""

from typing import Any, Dict, List, Optional

from ..adapters.factory import AdapterFactory
from ..exceptions import ConfigurationError, RecordNotFoundError
from ..schema.models import ListingStatus, PlatformListing, Product, SalesChannel
from ..utils.logger import get_logger, log_with_context
from .listing_builder import ListingBuilderService
from .listing_manager import ListingManager

logger = get_logger(__name__)

PUBLISH_ALL_JOB = "publish_all"

SKIP_STATUSES = (
    ListingStatus.LISTED.value,
    ListingStatus.ACTIVE.value,
    ListingStatus.PENDING.value,
)


class ListingPublisher:
    """
    Coordinates publishing one product across channels.

    Usage:
        publisher = ListingPublisher(store)
        summary = publisher.publish_all(product)
        print(summary["message"])
    """

    def __init__(
        self,
        store,
        adapter_factory: Optional[AdapterFactory] = None,
        builder: Optional[ListingBuilderService] = None,
        job_dispatcher=None,
    ):
        self.store = store
        self.builder = builder or ListingBuilderService(store)
        self.adapter_factory = adapter_factory or AdapterFactory(store, builder=self.builder)
        self._job_dispatcher = job_dispatcher

    @property
    def job_dispatcher(self):
        if self._job_dispatcher is None:
            from ..workers.job_manager import get_job_manager
            self._job_dispatcher = get_job_manager()
        return self._job_dispatcher

    def eligible_channels(self, product: Product) -> List[SalesChannel]:
        """Active channels the product can still be published to"""
        channels = []
        for channel in self.store.get_channels_for_store(product.store_id):
            if not channel.is_active:
                continue
            if not channel.is_local:
                connection = (
                    self.store.get_connection(channel.connection_id)
                    if channel.connection_id is not None else None
                )
                if connection is None or not connection.is_active:
                    continue

            existing = self.store.find_listing(product.id, channel.id)
            if existing is not None and existing.status in SKIP_STATUSES:
                continue
            channels.append(channel)
        return channels

    def publish_all(self, product: Product) -> Dict[str, Any]:
        """
        Publish the product to every eligible channel.

        Returns:
            {"success": bool, "message": str,
             "published": [{"channel_id", "channel_name", "listing_id",
                            "external_listing_id", "listing_url", "warnings"}],
             "failed": [{"channel_id", "channel_name", "errors"}]}
        """
        channels = self.eligible_channels(product)
        if not channels:
            return {
                "success": True,
                "message": "Product is already listed on all connected channels.",
                "published": [],
                "failed": [],
            }

        published: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []

        for channel in channels:
            try:
                outcome = self._publish_to_channel(product, channel)
            except (ConfigurationError, RecordNotFoundError) as e:
                log_with_context(
                    logger, "ERROR", "Channel cannot be published to",
                    product_id=product.id, channel_id=channel.id, error=str(e),
                )
                outcome = {"errors": [str(e)]}

            if "errors" in outcome:
                failed.append({"channel_id": channel.id, "channel_name": channel.name, **outcome})
            else:
                published.append({"channel_id": channel.id, "channel_name": channel.name, **outcome})

        message = (
            f"Published to {len(published)} channel(s)."
            if published else "No channels were published to."
        )
        if failed:
            message += f" {len(failed)} failed."

        log_with_context(
            logger, "INFO", "Publish-all finished",
            product_id=product.id, published=len(published), failed=len(failed),
        )
        return {
            "success": bool(published),
            "message": message,
            "published": published,
            "failed": failed,
        }

    def _publish_to_channel(self, product: Product, channel: SalesChannel) -> Dict[str, Any]:
        connection = None
        if not channel.is_local and channel.connection_id is not None:
            connection = self.store.get_connection(channel.connection_id)

        validation = self.builder.validate_listing(product, connection)
        if not validation["valid"]:
            return {"errors": validation["errors"]}

        listing = self.store.find_listing(product.id, channel.id)
        if listing is None:
            listing = self.store.save_listing(PlatformListing(
                id=None,
                product_id=product.id,
                sales_channel_id=channel.id,
                connection_id=channel.connection_id,
            ))

        manager = ListingManager(listing, self.store, self.adapter_factory)
        result = manager.publish()
        if not result.success:
            return {"errors": [result.message]}

        return {
            "listing_id": manager.listing.id,
            "external_listing_id": manager.listing.external_listing_id,
            "listing_url": manager.listing.listing_url,
            "warnings": validation["warnings"],
        }

    def dispatch_publish_all(self, product: Product) -> str:
        """Queue publish_all on the job queue; returns the job id"""
        return self.job_dispatcher.dispatch(PUBLISH_ALL_JOB, {"product_id": product.id})
