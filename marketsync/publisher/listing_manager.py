"""
Listing Manager
===============
Owns the lifecycle of one PlatformListing:

    draft/pending -> listed/active   (publish success)
    listed        -> ended           (unpublish / end)
    any           -> error           (publish / unpublish / end failure)

Every operation calls the channel's adapter and persists the outcome in one
store transaction. The adapter's result is returned unchanged; the manager
never raises on an adapter failure.

Precondition failures (not connected, no external id yet) only record
last_error; the stored status is left as it was.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..adapters.base_adapter import AdapterResult, PlatformAdapter
from ..adapters.factory import AdapterFactory
from ..exceptions import ListingValidationError, RecordNotFoundError
from ..schema.models import ListingStatus, PlatformListing, SalesChannel

PUBLISHED_STATUSES = (ListingStatus.LISTED.value, ListingStatus.ACTIVE.value)
UNPUBLISHED_STATUSES = (ListingStatus.DRAFT.value, ListingStatus.PENDING.value)


class ListingManager:
    """
    Lifecycle operations for one listing.

    Usage:
        manager = ListingManager(listing, store)
        result = manager.publish()
        if not result.success:
            print(result.message)
    """

    def __init__(
        self,
        listing: PlatformListing,
        store,
        adapter_factory: Optional[AdapterFactory] = None,
    ):
        """
        Args:
            listing: Listing to manage
            store: ListingStore used for persistence
            adapter_factory: Resolves the adapter (defaults to AdapterFactory(store))
        """
        self.listing = listing
        self.store = store
        self.adapter_factory = adapter_factory or AdapterFactory(store)
        self._adapter: Optional[PlatformAdapter] = None
        self._channel: Optional[SalesChannel] = None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @property
    def channel(self) -> SalesChannel:
        if self._channel is None:
            self._channel = self.store.get_channel(self.listing.sales_channel_id)
            if self._channel is None:
                raise RecordNotFoundError("SalesChannel", self.listing.sales_channel_id)
        return self._channel

    def get_adapter(self) -> PlatformAdapter:
        """
        Raises:
            ConfigurationError: If the channel's platform has no adapter
        """
        if self._adapter is None:
            self._adapter = self.adapter_factory.make(self.channel)
        return self._adapter

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def publish(self, enforce_validation: bool = False) -> AdapterResult:
        """
        Create or update the external listing.

        Args:
            enforce_validation: Validate the payload first; hard errors fail
                the call without contacting the marketplace

        Returns:
            AdapterResult from the adapter (or the validation failure)
        """
        adapter = self.get_adapter()

        if enforce_validation:
            result = self._validation_failure(adapter)
            if result is not None:
                self._persist(last_error=result.message)
                return result

        previous_status = self.listing.status
        if adapter.is_connected():
            # Visible to concurrent readers while the call is in flight
            self._persist(status=ListingStatus.PENDING.value)

        result = adapter.publish(self.listing)

        if result.success:
            self._persist(**self._succeeded(**self._pushed_fields(result), published_at=self._now()))
        elif result.is_precondition_failure:
            self._persist(status=previous_status, last_error=result.message)
        else:
            self._persist(status=ListingStatus.ERROR.value, last_error=result.message)
        return result

    def unpublish(self) -> AdapterResult:
        """Deactivate the external listing without deleting it"""
        return self._run(
            lambda adapter: adapter.unpublish(self.listing),
            on_success=lambda result: {"status": ListingStatus.ENDED.value},
            error_status=True,
        )

    def end(self) -> AdapterResult:
        """Permanently remove the external listing"""
        return self._run(
            lambda adapter: adapter.end(self.listing),
            on_success=lambda result: {"status": ListingStatus.ENDED.value},
            error_status=True,
        )

    def update_price(self, price: float) -> AdapterResult:
        return self._run(
            lambda adapter: adapter.update_price(self.listing, price),
            on_success=lambda result: {"platform_price": float(price)},
        )

    def update_inventory(self, quantity: Optional[int] = None) -> AdapterResult:
        """
        Push a quantity; defaults to the product's total quantity across
        variants.
        """
        if quantity is None:
            product = self.store.get_product(self.listing.product_id)
            quantity = product.total_quantity if product else 0

        return self._run(
            lambda adapter: adapter.update_inventory(self.listing, quantity),
            on_success=lambda result: {"platform_quantity": int(quantity)},
        )

    def sync(self) -> AdapterResult:
        """Re-send the full payload through the adapter's upsert path"""
        return self._run(
            lambda adapter: adapter.sync(self.listing),
            on_success=self._pushed_fields,
        )

    def refresh(self) -> AdapterResult:
        """Pull external state and store it"""
        return self._run(
            lambda adapter: adapter.refresh(self.listing),
            on_success=self._refreshed_fields,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_published(self) -> bool:
        return self.listing.status in PUBLISHED_STATUSES

    def is_draft(self) -> bool:
        return self.listing.status == ListingStatus.DRAFT.value

    def is_ended(self) -> bool:
        return self.listing.status == ListingStatus.ENDED.value

    def get_platform_name(self) -> str:
        channel = self.store.get_channel(self.listing.sales_channel_id)
        return channel.name if channel else "Unknown"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self,
        call: Callable[[PlatformAdapter], AdapterResult],
        on_success: Callable[[AdapterResult], Dict[str, Any]],
        error_status: bool = False,
    ) -> AdapterResult:
        adapter = self.get_adapter()
        result = call(adapter)

        if result.success:
            self._persist(**self._succeeded(**on_success(result)))
        elif error_status and not result.is_precondition_failure:
            self._persist(status=ListingStatus.ERROR.value, last_error=result.message)
        else:
            self._persist(last_error=result.message)
        return result

    def _pushed_fields(self, result: AdapterResult) -> Dict[str, Any]:
        """Listing updates after a successful publish or sync"""
        data = result.data or {}
        status = (
            ListingStatus.PENDING.value
            if data.get("status") == ListingStatus.PENDING.value
            else ListingStatus.LISTED.value
        )
        fields: Dict[str, Any] = {"status": status}
        if result.external_id:
            fields["external_listing_id"] = result.external_id
        if result.external_url:
            fields["listing_url"] = result.external_url
        if data.get("platform_data"):
            fields["platform_data"] = {**(self.listing.platform_data or {}), **data["platform_data"]}
        return fields

    def _refreshed_fields(self, result: AdapterResult) -> Dict[str, Any]:
        data = result.data or {}
        fields: Dict[str, Any] = {}
        status = data.get("status")
        if status and not (self.listing.status == ListingStatus.ENDED.value and status in UNPUBLISHED_STATUSES):
            # only a fresh publish leaves ended
            fields["status"] = status
        if data.get("price") is not None:
            fields["platform_price"] = float(data["price"])
        if data.get("quantity") is not None:
            fields["platform_quantity"] = int(data["quantity"])
        if data.get("url"):
            fields["listing_url"] = data["url"]
        if data.get("external_id"):
            fields["external_listing_id"] = str(data["external_id"])
        if data.get("platform_data"):
            fields["platform_data"] = {**(self.listing.platform_data or {}), **data["platform_data"]}
        return fields

    def _validation_failure(self, adapter: PlatformAdapter) -> Optional[AdapterResult]:
        product = self.store.get_product(self.listing.product_id)
        if product is None:
            raise RecordNotFoundError("Product", self.listing.product_id)

        validation = adapter.builder.validate_listing(product, adapter.connection)
        if validation["valid"]:
            return None

        error = ListingValidationError(validation["errors"], validation["warnings"])
        return AdapterResult.failed(
            "Listing has validation errors: " + "; ".join(validation["errors"]),
            error,
            data={"errors": validation["errors"], "warnings": validation["warnings"]},
        )

    def _persist(self, **fields) -> None:
        """Apply fields to the listing and save them atomically"""
        with self.store.transaction():
            for name, value in fields.items():
                setattr(self.listing, name, value)
            self.listing = self.store.save_listing(self.listing)

    def _succeeded(self, **fields) -> Dict[str, Any]:
        fields.setdefault("last_error", None)
        fields.setdefault("last_synced_at", self._now())
        return fields

    @staticmethod
    def _now() -> datetime:
        return datetime.now()
