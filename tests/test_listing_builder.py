"""
Tests for listing payload building and validation.
"""

from unittest.mock import Mock

import pytest

from marketsync.exceptions import ListingValidationError
from marketsync.mapping.category_mapper import CategoryMappingService
from marketsync.publisher.listing_builder import ListingBuilderService, map_ebay_condition, truncate
from marketsync.schema.models import CategoryPlatformMapping, TemplatePlatformMapping


@pytest.fixture
def builder(store):
    """Builder with a mocked job dispatcher."""
    return ListingBuilderService(store, category_mapper=CategoryMappingService(store, job_dispatcher=Mock()))


def test_truncate():
    """Test truncation with ellipsis."""
    assert truncate("short", 80) == "short"
    assert truncate("x" * 95, 80) == "x" * 77 + "..."
    assert truncate(None, 80) is None


def test_map_ebay_condition():
    """Test condition id mapping."""
    assert map_ebay_condition("new") == 1000
    assert map_ebay_condition("Like New") == 2750
    assert map_ebay_condition("something else") == 3000
    assert map_ebay_condition(None) == 1000


def test_base_payload(builder, product, categories):
    """Test the platform-neutral payload."""
    listing = builder.build_listing(product, None)

    assert listing["title"] == "Vintage Denim Jacket"
    assert listing["price"] == 49.99
    assert listing["quantity"] == 3
    assert listing["sku"] == "DJ-001"
    assert listing["category"] == "Denim Jackets"
    assert listing["images"] == [
        "https://cdn.example.com/jacket-1.jpg",
        "https://cdn.example.com/jacket-2.jpg",
    ]


def test_legacy_images_used_when_no_structured_images(builder, store, product):
    """Test fallback to the legacy image list."""
    product.images = []
    product.legacy_images = ["https://cdn.example.com/old.jpg"]

    assert builder.build_listing(product, None)["images"] == ["https://cdn.example.com/old.jpg"]


def test_ebay_title_truncated(builder, product, ebay_connection):
    """Test eBay's 80 character title limit."""
    product.title = "A" * 95

    listing = builder.build_listing(product, ebay_connection)

    assert len(listing["title"]) == 80
    assert listing["title"] == "A" * 77 + "..."
    assert listing["condition_id"] == 3000


def test_ebay_category_aspects_inherited(builder, store, product, categories, ebay_connection):
    """Test that a root category mapping supplies the category and aspects."""
    store.save_category_mapping(CategoryPlatformMapping(
        category_id=categories[0].id,
        connection_id=ebay_connection.id,
        primary_category_id="11450",
        field_mappings={"Color": "color"},
        default_values={"Department": "Men"},
    ))

    listing = builder.build_listing(product, ebay_connection)

    assert listing["platform_category_id"] == "11450"
    assert listing["aspects"]["Color"] == ["Red"]
    assert listing["aspects"]["Department"] == ["Men"]
    assert {"Name": "Department", "Value": "Men"} in listing["item_specifics"]
    assert "_category_mapping" not in listing


def test_price_override_zero(builder, product, shopify_connection):
    """Test that zero price and quantity overrides apply."""
    builder.save_override(product, shopify_connection, price=0, quantity=0, title="Jacket (Shopify)")

    listing = builder.build_listing(product, shopify_connection)

    assert listing["price"] == 0
    assert listing["quantity"] == 0
    assert listing["title"] == "Jacket (Shopify)"


def test_override_scoped_to_connection(builder, product, shopify_connection, ebay_connection):
    """Test that an override only applies to its own connection."""
    builder.save_override(product, shopify_connection, price=10)

    assert builder.build_listing(product, ebay_connection)["price"] == 49.99


def test_save_override_upserts(builder, store, product, shopify_connection):
    """Test that saving twice keeps one override."""
    first = builder.save_override(product, shopify_connection, price=10)
    second = builder.save_override(product, shopify_connection, quantity=2)

    assert first.id == second.id
    saved = store.get_override(product.id, shopify_connection.id)
    assert saved.price == 10
    assert saved.quantity == 2


def test_save_override_rejects_unknown_field(builder, product, shopify_connection):
    """Test override field validation."""
    with pytest.raises(ValueError, match="Unknown override field"):
        builder.save_override(product, shopify_connection, colour="red")


def test_mapped_attributes_reach_payload(builder, store, product, template, make_connection):
    """Test that template attributes flow through the saved mapping."""
    etsy = make_connection("etsy", access_token="tok", external_store_id="SHOP1")
    store.save_template_mapping(TemplatePlatformMapping(
        template_id=template.id,
        platform="etsy",
        field_mappings={"material": "material", "color": "primary_color"},
    ))

    listing = builder.build_listing(product, etsy)

    assert listing["attributes"] == {"material": "Denim", "primary_color": "Red"}
    assert listing["materials"] == ["Denim"]
    assert listing["when_made"] == "2020_2026"


def test_amazon_unbranded(builder, product, make_connection):
    """Test Amazon's brand default."""
    amazon = make_connection("amazon", access_token="tok", credentials={"seller_id": "S"})
    product.brand = None

    listing = builder.build_listing(product, amazon)

    assert listing["brand_name"] == "Unbranded"
    assert listing["condition_type"] == "used_good"


def test_walmart_without_brand_is_invalid(builder, product, make_connection):
    """Test Walmart's hard brand requirement."""
    walmart = make_connection("walmart", access_token="tok")
    product.brand = None

    validation = builder.validate_listing(product, walmart)

    assert validation["valid"] is False
    assert "Brand is required for Walmart listings" in validation["errors"]
    with pytest.raises(ListingValidationError):
        builder.ensure_valid(product, walmart)


def test_validation_reports_every_error(builder, product):
    """Test that every base error is reported at once."""
    product.title = ""
    product.images = []
    product.variants = []

    validation = builder.validate_listing(product, None)

    assert validation["errors"] == [
        "Product title is required",
        "At least one product image is required",
        "Product price is required",
    ]


def test_validation_uses_override_values(builder, product, shopify_connection):
    """Test that validation checks the values the platform will receive."""
    product.title = ""
    builder.save_override(product, shopify_connection, title="Jacket (Shopify)", price=0)

    validation = builder.validate_listing(product, shopify_connection)

    assert validation["errors"] == ["Product price is required"]
    assert builder.validate_listing(product, None)["errors"] == ["Product title is required"]


def test_ebay_title_warning_follows_override(builder, product, make_connection):
    """Test that a short override title clears the truncation warning."""
    ebay = make_connection("ebay", access_token="tok", credentials={"sandbox": False})
    product.title = "B" * 90
    builder.save_override(product, ebay, title="Short eBay title")

    validation = builder.validate_listing(product, ebay)

    assert "eBay title will be truncated to 80 characters" not in validation["warnings"]


def test_ebay_validation_warnings(builder, product, make_connection):
    """Test non-blocking eBay warnings."""
    ebay = make_connection("ebay", access_token="tok", credentials={"sandbox": False})
    product.title = "B" * 90

    validation = builder.validate_listing(product, ebay)

    assert validation["valid"] is True
    assert "eBay fulfillment policy not configured" in validation["warnings"]
    assert "eBay title will be truncated to 80 characters" in validation["warnings"]
    assert "No eBay category mapping found for this product" in validation["warnings"]


def test_preview_makes_no_calls(builder, http, product, shopify_connection):
    """Test that preview only builds and validates."""
    preview = builder.preview_listing(product, shopify_connection)

    assert preview["listing"]["body_html"] == product.description
    assert preview["validation"]["valid"] is True
    http.request.assert_not_called()


def test_listing_lookups(builder, product, local_channel, make_listing):
    """Test listing lookups by product."""
    listing = make_listing(product, local_channel)

    assert builder.get_existing_listing(product, local_channel.id).id == listing.id
    assert [l.id for l in builder.get_product_listings(product)] == [listing.id]
