"""
Tests for adapter resolution.
"""

from unittest.mock import Mock

import pytest

from marketsync.adapters import EtsyAdapter, LocalAdapter, ShopifyAdapter
from marketsync.exceptions import ConfigurationError


def test_local_channel_gets_local_adapter(factory, local_channel):
    """Test that local channels resolve to the in-store adapter."""
    adapter = factory.make(local_channel)

    assert isinstance(adapter, LocalAdapter)
    assert adapter.connection is None


def test_connection_platform_wins_over_channel_type(factory, make_channel, shopify_connection):
    """Test that a linked connection decides the platform."""
    channel = make_channel("Mislabelled", shopify_connection, type="ebay")

    adapter = factory.make(channel)

    assert isinstance(adapter, ShopifyAdapter)
    assert adapter.connection.id == shopify_connection.id


def test_channel_type_used_without_connection(factory, make_channel):
    """Test fallback to the channel's declared type."""
    channel = make_channel("Etsy", type="Etsy")

    adapter = factory.make(channel)

    assert isinstance(adapter, EtsyAdapter)
    assert adapter.is_connected() is False


def test_unknown_platform_raises(factory, make_channel):
    """Test that there is no default adapter."""
    channel = make_channel("TikTok Shop", type="tiktok")

    with pytest.raises(ConfigurationError, match="tiktok"):
        factory.make(channel)


def test_register_custom_adapter(factory, store, http, make_channel):
    """Test registering an adapter for a new platform key."""
    adapter = Mock()
    constructor = Mock(return_value=adapter)
    factory.register("TikTok", constructor)
    channel = make_channel("TikTok Shop", type="tiktok")

    assert factory.make(channel) is adapter
    constructor.assert_called_once_with(
        channel=channel,
        connection=None,
        store=store,
        builder=factory.builder,
        session=http,
        token_refresher=None,
    )
    assert "tiktok" in factory.registered_platforms()


def test_make_for_connection(factory, ebay_connection):
    """Test account-level adapters without a channel."""
    adapter = factory.make_for_connection(ebay_connection)

    assert adapter.channel is None
    assert adapter.get_platform_name() == "ebay"
    assert adapter.display_name == "eBay"
