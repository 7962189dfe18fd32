"""
Background job handlers.

    sync_item_specifics  {"mapping_id"}  -> fetch and cache category aspects
    publish_all          {"product_id"}  -> ListingPublisher.publish_all
"""

from datetime import datetime
from typing import Any, Dict, Optional

from ..adapters.base_adapter import Capability
from ..adapters.factory import AdapterFactory
from ..exceptions import RecordNotFoundError, UpstreamError
from ..mapping.category_mapper import SYNC_ITEM_SPECIFICS_JOB
from ..publisher.bulk_publisher import PUBLISH_ALL_JOB, ListingPublisher
from ..utils.logger import get_logger, log_with_context
from .job_manager import SimpleJobManager, get_job_manager

logger = get_logger(__name__)


def sync_item_specifics(store, adapter_factory: AdapterFactory, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fetch item specifics for a category mapping's platform category and
    store them with the sync time.

    Raises:
        RecordNotFoundError: If the mapping or its connection is gone
        UpstreamError: If the platform call failed
    """
    mapping = store.get_category_mapping_by_id(data["mapping_id"])
    if mapping is None:
        raise RecordNotFoundError("CategoryPlatformMapping", data["mapping_id"])

    connection = store.get_connection(mapping.connection_id)
    if connection is None:
        raise RecordNotFoundError("MarketplaceConnection", mapping.connection_id)

    adapter = adapter_factory.make_for_connection(connection)
    if not adapter.supports(Capability.ITEM_SPECIFICS):
        return {"mapping_id": mapping.id, "skipped": True}

    result = adapter.fetch_item_specifics(mapping.primary_category_id)
    if not result.success:
        raise UpstreamError(result.message)

    mapping.item_specifics = result.data["item_specifics"]
    mapping.item_specifics_synced_at = datetime.now()
    store.save_category_mapping(mapping)

    log_with_context(
        logger, "INFO", "Item specifics synced",
        mapping_id=mapping.id, platform_category_id=mapping.primary_category_id,
        count=len(mapping.item_specifics),
    )
    return {"mapping_id": mapping.id, "count": len(mapping.item_specifics)}


def publish_all(store, publisher: ListingPublisher, data: Dict[str, Any]) -> Dict[str, Any]:
    product = store.get_product(data["product_id"])
    if product is None:
        raise RecordNotFoundError("Product", data["product_id"])
    return publisher.publish_all(product)


def register_jobs(
    store,
    manager: Optional[SimpleJobManager] = None,
    adapter_factory: Optional[AdapterFactory] = None,
) -> SimpleJobManager:
    """
    Register the listing job handlers on a job manager.

    Args:
        store: ListingStore the handlers read and write
        manager: Job manager (defaults to the global one)
        adapter_factory: Factory used by handlers (defaults to AdapterFactory(store))

    Returns:
        The job manager
    """
    manager = manager or get_job_manager()
    factory = adapter_factory or AdapterFactory(store)
    publisher = ListingPublisher(store, adapter_factory=factory, builder=factory.builder, job_dispatcher=manager)

    manager.register_handler(SYNC_ITEM_SPECIFICS_JOB, lambda data: sync_item_specifics(store, factory, data))
    manager.register_handler(PUBLISH_ALL_JOB, lambda data: publish_all(store, publisher, data))
    return manager
