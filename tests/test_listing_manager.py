"""
Tests for the listing lifecycle manager.
"""

import pytest

from marketsync.exceptions import ListingValidationError, RecordNotFoundError
from marketsync.publisher.listing_manager import ListingManager
from marketsync.schema.models import PlatformListing


@pytest.fixture
def manage(store, factory):
    """Build a manager for a listing."""
    def _manage(listing):
        return ListingManager(listing, store, factory)
    return _manage


def test_publish_local_success(store, manage, product, local_channel, make_listing):
    """Test a successful publish marks the listing listed."""
    listing = make_listing(product, local_channel)

    result = manage(listing).publish()

    assert result.success is True
    saved = store.get_listing(listing.id)
    assert saved.status == "listed"
    assert saved.external_listing_id == f"local-{listing.id}"
    assert saved.last_error is None
    assert saved.last_synced_at is not None
    assert saved.published_at is not None


def test_publish_not_connected_leaves_status(store, manage, http, product, make_connection, make_channel,
                                             make_listing):
    """Test that a disconnected publish only records the error."""
    connection = make_connection("shopify", shop_domain="demo.myshopify.com")
    channel = make_channel("Shopify", connection)
    listing = make_listing(product, channel)

    result = manage(listing).publish()

    assert result.success is False
    saved = store.get_listing(listing.id)
    assert saved.status == "draft"
    assert "not connected" in saved.last_error
    http.request.assert_not_called()


def test_publish_failure_sets_error(store, manage, http, make_response, product, shopify_channel, make_listing):
    """Test that an upstream failure moves the listing to error."""
    http.request.return_value = make_response(500, text="Internal Server Error")
    listing = make_listing(product, shopify_channel)

    result = manage(listing).publish()

    assert result.success is False
    saved = store.get_listing(listing.id)
    assert saved.status == "error"
    assert "Shopify API error (500)" in saved.last_error


def test_publish_is_pending_while_in_flight(store, manage, http, make_response, product, shopify_channel,
                                            make_listing):
    """Test that pending is visible while the marketplace call runs."""
    listing = make_listing(product, shopify_channel)
    seen = []

    def respond(*args, **kwargs):
        seen.append(store.get_listing(listing.id).status)
        return make_response(201, {"product": {"id": 987, "handle": "jacket"}})

    http.request.side_effect = respond

    manage(listing).publish()

    assert seen == ["pending"]
    assert store.get_listing(listing.id).status == "listed"


def test_publish_pending_result_keeps_pending(store, manage, http, make_response, product, make_connection,
                                              make_channel, make_listing):
    """Test that an asynchronous platform leaves the listing pending."""
    connection = make_connection("amazon", access_token="amz-token", credentials={"seller_id": "A1SELLER"})
    channel = make_channel("Amazon", connection)
    http.request.return_value = make_response(200, {"status": "ACCEPTED", "submissionId": "sub-1"})
    listing = make_listing(product, channel)

    result = manage(listing).publish()

    assert result.success is True
    saved = store.get_listing(listing.id)
    assert saved.status == "pending"
    assert saved.external_listing_id == "DJ-001"
    assert saved.platform_data["submission_id"] == "sub-1"


def test_publish_enforced_validation(store, manage, http, product, shopify_channel, make_listing):
    """Test that hard validation errors stop the publish before any call."""
    product.images = []
    store.save_product(product)
    listing = make_listing(product, shopify_channel)

    result = manage(listing).publish(enforce_validation=True)

    assert result.success is False
    assert isinstance(result.error, ListingValidationError)
    assert result.message == "Listing has validation errors: At least one product image is required"
    assert result.data["errors"] == ["At least one product image is required"]
    saved = store.get_listing(listing.id)
    assert saved.status == "draft"
    assert saved.last_error == result.message
    http.request.assert_not_called()


def test_end_marks_ended(store, manage, product, local_channel, make_listing):
    """Test ending a listing."""
    listing = make_listing(product, local_channel, status="listed", external_listing_id="local-1")
    manager = manage(listing)

    result = manager.end()

    assert result.success is True
    assert manager.is_ended()
    assert store.get_listing(listing.id).status == "ended"


def test_end_without_linkage_keeps_status(store, manage, product, shopify_channel, make_listing):
    """Test that a precondition failure on end does not mark the listing error."""
    listing = make_listing(product, shopify_channel, status="listed")

    result = manage(listing).end()

    assert result.success is False
    saved = store.get_listing(listing.id)
    assert saved.status == "listed"
    assert saved.last_error == "No product ID found for this listing"


def test_unpublish_failure_sets_error(store, manage, http, make_response, product, shopify_channel,
                                      make_listing):
    """Test that an upstream unpublish failure moves the listing to error."""
    http.request.return_value = make_response(503, text="Service Unavailable")
    listing = make_listing(product, shopify_channel, status="listed", external_listing_id="987")

    manage(listing).unpublish()

    assert store.get_listing(listing.id).status == "error"


def test_update_price_zero(store, manage, product, local_channel, make_listing):
    """Test that a price of zero is stored, not ignored."""
    listing = make_listing(product, local_channel, status="listed", external_listing_id="local-1")

    result = manage(listing).update_price(0)

    assert result.success is True
    assert store.get_listing(listing.id).platform_price == 0.0


def test_update_price_failure_keeps_status(store, manage, http, make_response, product, shopify_channel,
                                           make_listing):
    """Test that a failed price update records only the error."""
    http.request.return_value = make_response(500, text="boom")
    listing = make_listing(product, shopify_channel, status="listed", external_listing_id="987")

    result = manage(listing).update_price(19.99)

    assert result.success is False
    saved = store.get_listing(listing.id)
    assert saved.status == "listed"
    assert saved.platform_price is None
    assert saved.last_error == result.message


def test_update_inventory_defaults_to_product_total(store, manage, product, local_channel, make_listing):
    """Test that inventory defaults to the sum over variants."""
    listing = make_listing(product, local_channel, status="listed", external_listing_id="local-1")

    result = manage(listing).update_inventory()

    assert result.success is True
    assert result.data == {"quantity": 5}
    assert store.get_listing(listing.id).platform_quantity == 5


def test_sync_is_idempotent(store, manage, http, make_response, product, shopify_channel, make_listing):
    """Test that syncing twice leaves the same stored state."""
    http.request.return_value = make_response(200, {"product": {"id": 987, "handle": "jacket"}})
    listing = make_listing(product, shopify_channel, status="listed", external_listing_id="987")

    manage(listing).sync()
    first = store.get_listing(listing.id)
    manage(first).sync()
    second = store.get_listing(listing.id)

    assert len(store.get_listings_for_product(product.id)) == 1
    for name in ("status", "external_listing_id", "listing_url", "platform_data", "last_error"):
        assert getattr(first, name) == getattr(second, name)
    assert second.status == "listed"


def test_refresh_unknown_status_preserved(store, manage, http, make_response, product, shopify_channel,
                                          make_listing):
    """Test that refresh keeps the status when the native one is unknown."""
    http.request.return_value = make_response(200, {"product": {
        "status": "under_review",
        "handle": "jacket",
        "variants": [{"price": "59.00", "inventory_quantity": 4}],
    }})
    listing = make_listing(product, shopify_channel, status="listed", external_listing_id="987")

    manage(listing).refresh()

    saved = store.get_listing(listing.id)
    assert saved.status == "listed"
    assert saved.platform_price == 59.0
    assert saved.platform_quantity == 4
    assert saved.listing_url == "https://demo.myshopify.com/products/jacket"


def test_refresh_archived_is_ended(store, manage, http, make_response, product, shopify_channel, make_listing):
    """Test status mapping on refresh."""
    http.request.return_value = make_response(200, {"product": {"status": "archived", "variants": []}})
    listing = make_listing(product, shopify_channel, status="listed", external_listing_id="987")

    manage(listing).refresh()

    assert store.get_listing(listing.id).status == "ended"


@pytest.mark.parametrize("platform,refreshed", [
    ("shopify", {"product": {"status": "draft", "variants": []}}),
    ("woocommerce", {"id": 31, "status": "draft"}),
])
def test_refresh_after_unpublish_stays_ended(store, manage, http, make_response, product, make_connection,
                                             make_channel, make_listing, platform, refreshed):
    """Test that a native draft after unpublish does not move an ended listing back."""
    connection = make_connection(platform, access_token="tok", shop_domain="demo.myshopify.com", credentials={
        "site_url": "https://shop.example.com", "consumer_key": "ck_1", "consumer_secret": "cs_1",
    })
    channel = make_channel(platform.title(), connection)
    listing = make_listing(product, channel, status="listed", external_listing_id="31")
    manager = manage(listing)

    http.request.return_value = make_response(200, {})
    assert manager.unpublish().success is True
    assert store.get_listing(listing.id).status == "ended"

    http.request.return_value = make_response(200, refreshed)
    assert manager.refresh().success is True

    assert store.get_listing(listing.id).status == "ended"
    assert manager.is_ended()


def test_publish_leaves_ended(store, manage, product, local_channel, make_listing):
    """Test that republishing an ended listing lists it again."""
    listing = make_listing(product, local_channel, status="ended", external_listing_id="local-1")

    manage(listing).publish()

    assert store.get_listing(listing.id).status == "listed"


def test_missing_channel_raises(store, manage, product):
    """Test that a listing on a deleted channel cannot resolve an adapter."""
    listing = store.save_listing(PlatformListing(id=None, product_id=product.id, sales_channel_id=999))
    manager = manage(listing)

    with pytest.raises(RecordNotFoundError):
        manager.publish()
    assert manager.get_platform_name() == "Unknown"


def test_status_queries(manage, product, local_channel, make_listing):
    """Test the status helpers."""
    draft = manage(make_listing(product, local_channel))

    assert draft.is_draft()
    assert not draft.is_published()
    assert draft.get_platform_name() == "In Store"
