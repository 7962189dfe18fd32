"""
Tests for category -> platform category mapping.
"""

import logging
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from marketsync.mapping.category_mapper import SYNC_ITEM_SPECIFICS_JOB, CategoryMappingService
from marketsync.schema.models import Category, CategoryPlatformMapping, Product
from marketsync.workers import job_manager


@pytest.fixture
def mock_dispatcher():
    """Mock job dispatcher."""
    return Mock()


@pytest.fixture
def category_mapper(store, mock_dispatcher):
    return CategoryMappingService(store, job_dispatcher=mock_dispatcher)


def test_resolve_inherits_nearest_ancestor(category_mapper, product, categories, shopify_connection):
    """Test resolution up the category tree."""
    root, middle, _ = categories
    category_mapper.save_mapping(root.id, shopify_connection, "root-cat")

    assert category_mapper.resolve_category(product, shopify_connection).primary_category_id == "root-cat"

    category_mapper.save_mapping(middle.id, shopify_connection, "middle-cat", secondary_category_id="alt")
    resolved = category_mapper.resolve_category(product, shopify_connection)

    assert resolved.primary_category_id == "middle-cat"
    assert resolved.secondary_category_id == "alt"
    assert resolved.mapping.category_id == middle.id


def test_resolve_after_delete_is_empty(category_mapper, product, categories, shopify_connection):
    """Test that removing the only mapping leaves nothing to inherit."""
    root = categories[0]
    category_mapper.save_mapping(root.id, shopify_connection, "root-cat")

    assert category_mapper.delete_mapping(root.id, shopify_connection) is True
    resolved = category_mapper.resolve_category(product, shopify_connection)

    assert resolved.to_dict() == {
        "primary_category_id": None,
        "secondary_category_id": None,
        "mapping": None,
    }
    assert category_mapper.delete_mapping(root.id, shopify_connection) is False


def test_resolve_is_per_connection(category_mapper, product, categories, shopify_connection, ebay_connection):
    """Test that one connection's mapping is invisible to another."""
    category_mapper.save_mapping(categories[0].id, shopify_connection, "root-cat")

    assert category_mapper.resolve_category(product, ebay_connection).primary_category_id is None


def test_resolve_stops_on_cycle(store, category_mapper, shopify_connection):
    """Test that a corrupt parent loop terminates."""
    first = store.save_category(Category(id=None, name="A"))
    second = store.save_category(Category(id=None, name="B", parent_id=first.id))
    first.parent_id = second.id
    store.save_category(first)
    product = Product(id=1, title="Loop", category_id=second.id)

    assert category_mapper.resolve_category(product, shopify_connection).primary_category_id is None


def test_resolve_without_category(category_mapper, shopify_connection):
    """Test a product with no category."""
    assert category_mapper.resolve_category(Product(id=1, title="x"), shopify_connection).mapping is None


def test_save_ebay_mapping_queues_sync(category_mapper, mock_dispatcher, categories, ebay_connection):
    """Test that a fresh eBay mapping queues an item specifics sync."""
    mapping = category_mapper.save_mapping(categories[0].id, ebay_connection, "11450", "Clothing")

    mock_dispatcher.dispatch.assert_called_once_with(SYNC_ITEM_SPECIFICS_JOB, {"mapping_id": mapping.id})


def test_save_with_default_dispatcher(monkeypatch, caplog, store, categories, ebay_connection):
    """Test that a save on a fresh job manager without handlers still returns the mapping."""
    monkeypatch.setattr(job_manager, "_job_manager", None)
    service = CategoryMappingService(store)

    with caplog.at_level(logging.WARNING):
        mapping = service.save_mapping(categories[0].id, ebay_connection, "11450")

    assert mapping.id is not None
    assert store.get_category_mapping(categories[0].id, ebay_connection.id).primary_category_id == "11450"
    warning = [r for r in caplog.records if r.getMessage() == "Could not queue item specifics sync"]
    assert warning[0].levelname == "WARNING"
    assert warning[0].extra_data["mapping_id"] == mapping.id


def test_dispatch_failure_does_not_fail_save(store, category_mapper, mock_dispatcher, categories,
                                             ebay_connection):
    """Test that a queue failure leaves the saved mapping in place."""
    mock_dispatcher.dispatch.side_effect = RuntimeError("queue unavailable")

    mapping = category_mapper.save_mapping(categories[0].id, ebay_connection, "11450")

    assert store.get_category_mapping_by_id(mapping.id).primary_category_id == "11450"


def test_save_shopify_mapping_no_sync(category_mapper, mock_dispatcher, categories, shopify_connection):
    """Test that platforms without aspects queue nothing."""
    category_mapper.save_mapping(categories[0].id, shopify_connection, "root-cat")

    mock_dispatcher.dispatch.assert_not_called()


def test_recent_sync_not_requeued(store, category_mapper, mock_dispatcher, categories, ebay_connection):
    """Test that fresh item specifics are not fetched again."""
    store.save_category_mapping(CategoryPlatformMapping(
        category_id=categories[0].id,
        connection_id=ebay_connection.id,
        primary_category_id="11450",
        item_specifics=[{"name": "Brand"}],
        item_specifics_synced_at=datetime.now() - timedelta(days=1),
    ))

    mapping = category_mapper.save_mapping(categories[0].id, ebay_connection, "11450", "Clothing")

    assert mapping.item_specifics == [{"name": "Brand"}]
    mock_dispatcher.dispatch.assert_not_called()


def test_changing_category_clears_item_specifics(store, category_mapper, mock_dispatcher, categories,
                                                 ebay_connection):
    """Test that a new platform category invalidates cached aspects."""
    store.save_category_mapping(CategoryPlatformMapping(
        category_id=categories[0].id,
        connection_id=ebay_connection.id,
        primary_category_id="11450",
        item_specifics=[{"name": "Brand"}],
        item_specifics_synced_at=datetime.now(),
    ))

    mapping = category_mapper.save_mapping(categories[0].id, ebay_connection, "57988")

    assert mapping.item_specifics == []
    assert mapping.item_specifics_synced_at is None
    assert len(category_mapper.get_mappings_for_category(categories[0].id)) == 1
    mock_dispatcher.dispatch.assert_called_once()


def test_build_aspects(category_mapper, product, template):
    """Test aspects from field mappings and defaults."""
    mapping = CategoryPlatformMapping(
        category_id=1,
        connection_id=1,
        field_mappings={"Color": "color", "Size": "size"},
        default_values={"Department": "Men", "Color": "Blue", "Style": ""},
    )

    aspects = category_mapper.build_aspects(product, mapping, template)

    assert aspects == {"Color": ["Red"], "Department": ["Men"]}
    assert category_mapper.build_aspects(product, None, template) == {}


def test_item_specifics_ttl():
    """Test the weekly aspect refresh rule."""
    mapping = CategoryPlatformMapping(category_id=1, connection_id=1)
    now = datetime(2026, 1, 10)

    assert mapping.needs_item_specifics_sync("ebay", now) is True
    mapping.item_specifics_synced_at = now - timedelta(days=3)
    assert mapping.needs_item_specifics_sync("ebay", now) is False
    mapping.item_specifics_synced_at = now - timedelta(days=8)
    assert mapping.needs_item_specifics_sync("ebay", now) is True
    assert mapping.needs_item_specifics_sync("etsy", now) is False
