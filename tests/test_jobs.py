"""
Tests for background job handlers.
"""

import pytest

from marketsync.exceptions import RecordNotFoundError, UpstreamError
from marketsync.schema.models import CategoryPlatformMapping
from marketsync.workers.job_manager import JobStatus, SimpleJobManager
from marketsync.workers.jobs import register_jobs, sync_item_specifics


@pytest.fixture
def ebay_mapping(store, categories, ebay_connection):
    """Unsynced eBay category mapping."""
    return store.save_category_mapping(CategoryPlatformMapping(
        category_id=categories[0].id,
        connection_id=ebay_connection.id,
        primary_category_id="11450",
    ))


def test_sync_item_specifics_stores_aspects(store, factory, http, make_response, ebay_mapping):
    """Test that fetched aspects are cached on the mapping."""
    http.request.side_effect = [
        make_response(200, {"categoryTreeId": "0"}),
        make_response(200, {"aspects": [{
            "localizedAspectName": "Size",
            "aspectConstraint": {"aspectRequired": True, "itemToAspectCardinality": "SINGLE"},
            "aspectValues": [{"localizedValue": "M"}],
        }]}),
    ]

    result = sync_item_specifics(store, factory, {"mapping_id": ebay_mapping.id})

    assert result == {"mapping_id": ebay_mapping.id, "count": 1}
    saved = store.get_category_mapping_by_id(ebay_mapping.id)
    assert saved.item_specifics[0]["name"] == "Size"
    assert saved.item_specifics[0]["required"] is True
    assert saved.item_specifics_synced_at is not None


def test_sync_item_specifics_upstream_failure(store, factory, http, make_response, ebay_mapping):
    """Test that a failed fetch fails the job."""
    http.request.return_value = make_response(500, text="down")

    with pytest.raises(UpstreamError):
        sync_item_specifics(store, factory, {"mapping_id": ebay_mapping.id})
    assert store.get_category_mapping_by_id(ebay_mapping.id).item_specifics_synced_at is None


def test_sync_item_specifics_skips_other_platforms(store, factory, http, categories, shopify_connection):
    """Test platforms without aspect definitions."""
    mapping = store.save_category_mapping(CategoryPlatformMapping(
        category_id=categories[0].id,
        connection_id=shopify_connection.id,
        primary_category_id="123",
    ))

    result = sync_item_specifics(store, factory, {"mapping_id": mapping.id})

    assert result == {"mapping_id": mapping.id, "skipped": True}
    http.request.assert_not_called()


def test_sync_item_specifics_missing_mapping(store, factory):
    """Test a job for a deleted mapping."""
    with pytest.raises(RecordNotFoundError):
        sync_item_specifics(store, factory, {"mapping_id": 404})


def test_registered_jobs_run_through_manager(store, factory, product, local_channel):
    """Test publish-all dispatched as a job."""
    manager = register_jobs(store, SimpleJobManager(run_inline=True), factory)

    job_id = manager.dispatch("publish_all", {"product_id": product.id})

    job = manager.get_job(job_id)
    assert job["status"] == JobStatus.COMPLETED.value
    assert job["result"]["published"][0]["channel_id"] == local_channel.id
    assert store.find_listing(product.id, local_channel.id).status == "listed"


def test_registered_publish_all_missing_product(store, factory):
    """Test publish-all for a product that no longer exists."""
    manager = register_jobs(store, SimpleJobManager(run_inline=True), factory)

    job_id = manager.dispatch("publish_all", {"product_id": 12345})

    job = manager.get_job(job_id)
    assert job["status"] == JobStatus.FAILED.value
    assert job["error"] == "Product 12345 not found"
