"""
Tests for template -> platform field mapping.
"""

import json
import logging
from unittest.mock import Mock

import pytest

from marketsync.enhancer.ai_client import AIClient, AIClientError
from marketsync.mapping.field_mapper import (
    FieldMappingService,
    generate_metafield_key,
    infer_metafield_type,
)
from marketsync.schema.models import ProductTemplate, TemplateField


@pytest.fixture
def mock_ai_client():
    """Mock completion client."""
    return Mock(spec=AIClient)


@pytest.fixture
def mapper(store, mock_ai_client):
    return FieldMappingService(store, ai_client=mock_ai_client)


@pytest.fixture
def listing_template():
    """Template whose names exercise exact and alias matching."""
    return ProductTemplate(id=50, name="Listing", fields=[
        TemplateField(name="title", label="Title"),
        TemplateField(name="brand", label="Brand"),
        TemplateField(name="color", label="Color"),
    ])


def test_fallback_on_malformed_reply(mapper, mock_ai_client, listing_template):
    """Test that an unparseable reply falls back to name matching."""
    mock_ai_client.complete.return_value = "Sure! Here are my thoughts on the mapping..."

    result = mapper.suggest_mappings(listing_template, "shopify")

    assert result["mappings"] == {
        "title": {"maps_to": "title", "confidence": 1.0},
        "brand": {"maps_to": "vendor", "confidence": 0.9},
    }
    assert result["unmapped_template_fields"] == ["color"]
    assert result["unmapped_required_platform_fields"] == []


def test_fallback_on_ai_error(caplog, mapper, mock_ai_client, listing_template):
    """Test that an AI failure is logged and never raised."""
    mock_ai_client.complete.side_effect = AIClientError("ANTHROPIC_API_KEY is not set")

    with caplog.at_level(logging.WARNING):
        result = mapper.suggest_mappings(listing_template, "shopify")

    assert result["mappings"]["title"]["confidence"] == 1.0
    assert any(r.levelname == "WARNING" for r in caplog.records)


def test_fallback_uses_each_platform_field_once(mapper):
    """Test that two template fields never claim the same platform field."""
    result = mapper.fallback_mappings(
        [{"name": "vendor"}, {"name": "brand"}],
        [{"name": "vendor", "required": False}],
    )

    assert result["mappings"] == {"vendor": {"maps_to": "vendor", "confidence": 1.0}}
    assert result["unmapped_template_fields"] == ["brand"]


def test_ai_reply_is_filtered(mapper, mock_ai_client, listing_template):
    """Test that low-confidence and unknown names are dropped."""
    reply = {
        "mappings": {
            "title": {"maps_to": "title", "confidence": 0.95},
            "color": {"maps_to": "body_html", "confidence": 0.3},
            "ghost": {"maps_to": "title", "confidence": 0.9},
            "brand": {"maps_to": "not_a_field", "confidence": 0.9},
        },
        "unmapped_template_fields": ["color", "brand"],
        "unmapped_required_platform_fields": [],
    }
    mock_ai_client.complete.return_value = "```json\n" + json.dumps(reply) + "\n```"

    result = mapper.suggest_mappings(listing_template, "shopify")

    assert result["mappings"] == {"title": {"maps_to": "title", "confidence": 0.95}}
    assert result["unmapped_template_fields"] == ["color", "brand"]


def test_empty_template_skips_ai(mapper, mock_ai_client):
    """Test that an empty template needs no suggestion call."""
    result = mapper.suggest_mappings(ProductTemplate(id=1, name="Empty"), "ebay")

    assert result["mappings"] == {}
    assert result["unmapped_required_platform_fields"] == ["title", "description", "condition", "category_id"]
    mock_ai_client.complete.assert_not_called()


def test_suggestions_are_not_saved(mapper, store, mock_ai_client, listing_template):
    """Test that suggesting never persists a mapping."""
    mock_ai_client.complete.return_value = "{}"

    mapper.suggest_mappings(listing_template, "shopify")

    assert store.get_template_mapping(listing_template.id, "shopify") is None


def test_transform_attributes(mapper, product, template):
    """Test mapped values, select labels and defaults."""
    mapper.save_mappings(
        template, "ebay",
        {"color": "color", "material": "material"},
        default_values={"style": "Jacket", "color": "Black", "size": None},
    )

    assert mapper.transform_attributes(product, "ebay") == {
        "color": "Red",
        "material": "Denim",
        "style": "Jacket",
    }


def test_transform_without_mapping(mapper, product):
    """Test that no saved mapping means no attributes."""
    assert mapper.transform_attributes(product, "walmart") == {}


def test_unmapped_required_fields(mapper, template):
    """Test required fields covered by mappings or defaults."""
    assert mapper.get_unmapped_required_fields(template, "ebay") == [
        "title", "description", "condition", "category_id",
    ]

    mapper.save_mappings(template, "ebay", {"material": "title"}, default_values={"condition": "used"})

    assert mapper.get_unmapped_required_fields(template, "ebay") == ["description", "category_id"]


def test_save_mappings_keeps_metafields(mapper, template):
    """Test that field and metafield settings are saved independently."""
    mapper.save_metafield_mappings(template, "shopify", {"material": {"key": "fabric"}})
    mapper.save_mappings(template, "shopify", {"color": "title"}, is_ai_generated=True)

    mapping = mapper.get_mappings(template, "shopify")
    assert mapping.field_mappings == {"color": "title"}
    assert mapping.is_ai_generated is True
    assert mapping.metafield_mappings["material"]["key"] == "fabric"


def test_save_metafield_mappings_fills_defaults(mapper, template):
    """Test namespace and key defaults."""
    mapper.save_metafield_mappings(template, "shopify", {"Ring Size": {}}, excluded=["material"])

    mapping = mapper.get_mappings(template, "shopify")
    assert mapping.metafield_mappings["Ring Size"] == {
        "namespace": "custom", "key": "ring_size", "enabled": True,
    }
    assert mapping.excluded_metafields == ["material"]


def test_suggest_metafield_mappings(mapper, template):
    """Test that mapped fields are not suggested as metafields."""
    mapper.save_mappings(template, "shopify", {"color": "title"})

    suggestions = mapper.suggest_metafield_mappings(template, "shopify")

    assert set(suggestions) == {"material", "internal_notes"}
    assert mapper.suggest_metafield_mappings(template, "ebay") == {}


def test_build_metafields_honors_settings(mapper, product, template):
    """Test excluded, disabled and private fields."""
    mapper.save_metafield_mappings(
        template, "shopify",
        {"color": {"enabled": False}, "material": {"namespace": "specs", "key": "fabric"}},
    )

    metafields = mapper.build_metafields(product, template, "shopify")

    assert metafields == [{
        "namespace": "specs", "key": "fabric", "value": "Denim", "type": "single_line_text_field",
    }]

    mapper.save_metafield_mappings(template, "shopify", {}, excluded=["material"])
    assert [m["key"] for m in mapper.build_metafields(product, template, "shopify")] == ["color"]


def test_platform_schema_lookups(mapper):
    """Test platform field lookups."""
    assert mapper.get_platform_fields("shopify")["title"]["required"] is True
    assert mapper.get_required_platform_fields("walmart")[:2] == ["productName", "shortDescription"]
    assert mapper.supports_metafields("bigcommerce") is True
    assert mapper.supports_metafields("ebay") is False
    assert mapper.get_platform_fields("myspace") == {}


def test_generate_metafield_key():
    """Test snake_case keys."""
    assert generate_metafield_key("Ring Size") == "ring_size"
    assert generate_metafield_key("ringSize") == "ring_size"
    assert generate_metafield_key("  Gem-Stone (ct) ") == "gem_stone_ct"


def test_infer_metafield_type():
    """Test metafield type inference."""
    assert infer_metafield_type(True) == "boolean"
    assert infer_metafield_type(3) == "number_integer"
    assert infer_metafield_type(2.5) == "number_decimal"
    assert infer_metafield_type({"a": 1}) == "json"
    assert infer_metafield_type("12") == "number_integer"
    assert infer_metafield_type("1.25") == "number_decimal"
    assert infer_metafield_type("Red") == "single_line_text_field"
