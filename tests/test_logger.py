"""
Tests for structured logging and redaction.
"""

import json
import logging

from marketsync.utils.logger import JSONFormatter, log_with_context, redact, redact_mapping


def test_redact_hides_every_secret():
    """Test value redaction, longest secret first."""
    text = "token=abc123 and abc123xyz in body"

    assert redact(text, ["abc123", "abc123xyz", "", None]) == "token=*** and *** in body"
    assert redact("", ["abc"]) == ""


def test_redact_mapping_masks_secret_keys():
    """Test key-based masking, including nested maps."""
    clean = redact_mapping({
        "access_token": "shpat_1",
        "platform": "shopify",
        "credentials": {"consumer_secret": "cs_1", "site_url": "https://shop.example.com"},
        "refresh_token": None,
    })

    assert clean == {
        "access_token": "***",
        "platform": "shopify",
        "credentials": {"consumer_secret": "***", "site_url": "https://shop.example.com"},
        "refresh_token": None,
    }


def test_json_formatter_includes_context():
    """Test JSON output with extra fields."""
    record = logging.LogRecord("marketsync.test", logging.INFO, __file__, 1, "Listing published", None, None)
    record.extra_data = {"listing_id": 7, "platform": "ebay"}

    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "marketsync.test"
    assert payload["message"] == "Listing published"
    assert payload["listing_id"] == 7
    assert payload["platform"] == "ebay"


def test_log_with_context_redacts(caplog):
    """Test that context passed to the logger is masked."""
    logger = logging.getLogger("marketsync.test.context")

    with caplog.at_level(logging.INFO, logger="marketsync.test.context"):
        log_with_context(logger, "WARNING", "Connect failed", api_key="k-1", marketplace_id=3)

    record = caplog.records[-1]
    assert record.levelname == "WARNING"
    assert record.extra_data == {"api_key": "***", "marketplace_id": 3}
