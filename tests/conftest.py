"""
Pytest fixtures and test configuration.
"""

import json
from unittest.mock import Mock

import pytest
import requests

from marketsync.adapters.factory import AdapterFactory
from marketsync.database.store import InMemoryStore
from marketsync.schema.models import (
    Category,
    MarketplaceConnection,
    PlatformListing,
    Product,
    ProductImage,
    ProductTemplate,
    ProductVariant,
    SalesChannel,
    TemplateField,
)


def build_response(status_code=200, body=None, text=None):
    """Real requests.Response with a canned body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


@pytest.fixture
def make_response():
    """Factory for canned HTTP responses."""
    return build_response


@pytest.fixture
def http():
    """Mock HTTP session; no test ever reaches the network."""
    return Mock(spec=requests.Session)


@pytest.fixture
def store():
    """Empty in-memory listing store."""
    return InMemoryStore()


@pytest.fixture
def categories(store):
    """Clothing > Jackets > Denim Jackets."""
    root = store.save_category(Category(id=None, name="Clothing"))
    middle = store.save_category(Category(id=None, name="Jackets", parent_id=root.id))
    leaf = store.save_category(Category(id=None, name="Denim Jackets", parent_id=middle.id))
    return root, middle, leaf


@pytest.fixture
def template(store):
    """Apparel template with a select, a text and a private field."""
    return store.save_template(ProductTemplate(
        id=None,
        name="Apparel",
        fields=[
            TemplateField(
                name="color",
                label="Color",
                type="select",
                options=[{"value": "red", "label": "Red"}, {"value": "blue", "label": "Blue"}],
            ),
            TemplateField(name="material", label="Material"),
            TemplateField(name="internal_notes", label="Internal Notes", is_private=True),
        ],
    ))


@pytest.fixture
def product(store, categories, template):
    """Sample product with two variants and two images."""
    return store.save_product(Product(
        id=None,
        title="Vintage Denim Jacket",
        description="Classic 90s denim jacket in great shape.",
        store_id=1,
        category_id=categories[2].id,
        template_id=template.id,
        handle="vintage-denim-jacket",
        brand="Levi's",
        condition="used",
        upc="012345678905",
        images=[
            ProductImage(url="https://cdn.example.com/jacket-1.jpg", position=0),
            ProductImage(url="https://cdn.example.com/jacket-2.jpg", position=1),
        ],
        variants=[
            ProductVariant(id=1, sku="DJ-001", price=49.99, quantity=3),
            ProductVariant(id=2, sku="DJ-002", price=49.99, quantity=2),
        ],
        attribute_values={"color": "red", "material": "Denim", "internal_notes": "paid $10"},
    ))


@pytest.fixture
def make_connection(store):
    """Save an active connection for a platform."""
    def _make(platform, **fields):
        fields.setdefault("status", "active")
        fields.setdefault("store_id", 1)
        return store.save_connection(MarketplaceConnection(id=None, platform=platform, **fields))
    return _make


@pytest.fixture
def make_channel(store):
    """Save a sales channel, optionally backed by a connection."""
    def _make(name, connection=None, **fields):
        fields.setdefault("store_id", 1)
        fields.setdefault("type", connection.platform if connection else "local")
        fields.setdefault("is_local", connection is None and fields["type"] == "local")
        return store.save_channel(SalesChannel(
            id=None,
            name=name,
            connection_id=connection.id if connection else None,
            **fields,
        ))
    return _make


@pytest.fixture
def make_listing(store):
    """Save a listing for a product on a channel."""
    def _make(product, channel, **fields):
        return store.save_listing(PlatformListing(
            id=None,
            product_id=product.id,
            sales_channel_id=channel.id,
            connection_id=channel.connection_id,
            **fields,
        ))
    return _make


@pytest.fixture
def shopify_connection(make_connection):
    return make_connection(
        "shopify",
        name="Demo Shop",
        access_token="shpat_secret123",
        shop_domain="demo.myshopify.com",
    )


@pytest.fixture
def ebay_connection(make_connection):
    return make_connection(
        "ebay",
        name="eBay US",
        access_token="v1-ebay-token",
        credentials={
            "sandbox": False,
            "fulfillment_policy_id": "F1",
            "payment_policy_id": "P1",
            "return_policy_id": "R1",
        },
    )


@pytest.fixture
def local_channel(make_channel):
    return make_channel("In Store")


@pytest.fixture
def shopify_channel(make_channel, shopify_connection):
    return make_channel("Shopify", shopify_connection)


@pytest.fixture
def ebay_channel(make_channel, ebay_connection):
    return make_channel("eBay", ebay_connection)


@pytest.fixture
def factory(store, http):
    """Adapter factory wired to the mock HTTP session."""
    return AdapterFactory(store, session=http)
