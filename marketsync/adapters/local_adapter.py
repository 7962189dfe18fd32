"""
Local (in-store) channel adapter.

There is no external system behind an in-store channel, so every operation
succeeds immediately and echoes the product's live price and quantity.
"""

from typing import Any, Dict

from .base_adapter import AdapterResult, PlatformAdapter
from ..schema.models import ListingStatus, Platform, PlatformListing


class LocalAdapter(PlatformAdapter):
    """In-store availability; never makes a network call"""

    PLATFORM = Platform.LOCAL

    def is_connected(self) -> bool:
        return True

    def ensure_valid_token(self) -> None:
        return None

    def linkage_id(self, listing: PlatformListing) -> str:
        return listing.external_listing_id or self._local_id(listing)

    @staticmethod
    def _local_id(listing: PlatformListing) -> str:
        return f"local-{listing.id if listing.id is not None else listing.product_id}"

    def _live_data(self, listing: PlatformListing, **extra) -> Dict[str, Any]:
        product = self._get_product(listing)
        data: Dict[str, Any] = {
            "price": product.price,
            "quantity": product.total_quantity,
        }
        data.update(extra)
        return data

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        return AdapterResult.created(
            external_id=self.linkage_id(listing),
            message="Listed in store",
            data=self._live_data(listing, status=ListingStatus.LISTED.value),
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        return AdapterResult.succeeded("Removed from store")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        return AdapterResult.succeeded("Removed from store")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        return AdapterResult.succeeded("Refreshed from store", self._live_data(listing))
