"""
Shopify Adapter
===============
Shopify Admin REST API adapter.

Documentation: https://shopify.dev/docs/api/admin-rest
"""

from typing import Any, Dict, List, Optional

from .base_adapter import AdapterResult, PlatformAdapter
from ..schema.credentials import ShopifyCredentials
from ..schema.models import ListingStatus, Platform, PlatformListing


class ShopifyAdapter(PlatformAdapter):
    """Products are created once and updated in place by product id"""

    PLATFORM = Platform.SHOPIFY
    EXTERNAL_ID_LABEL = "product ID"
    STATUS_MAP = {
        "active": ListingStatus.ACTIVE.value,
        "draft": ListingStatus.DRAFT.value,
        "archived": ListingStatus.ENDED.value,
    }

    def credentials_class(self):
        return ShopifyCredentials

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers["X-Shopify-Access-Token"] = self.credentials.access_token
        return headers

    def _get_api_endpoint(self, endpoint: str) -> str:
        creds = self.credentials
        return f"https://{creds.shop_domain}/admin/api/{creds.api_version}{endpoint}"

    def _product_url(self, handle: Optional[str]) -> Optional[str]:
        return f"https://{self.credentials.shop_domain}/products/{handle}" if handle else None

    # ------------------------------------------------------------------

    def convert_to_platform_format(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Shopify product body from an assembled listing payload"""
        product: Dict[str, Any] = {
            "title": payload.get("title"),
            "body_html": payload.get("body_html", payload.get("description")),
            "vendor": payload.get("vendor"),
            "product_type": payload.get("product_type"),
            "status": "active",
            "variants": [{
                "price": self._format_price(payload.get("price")),
                "sku": payload.get("sku"),
                "barcode": payload.get("barcode"),
                "inventory_management": "shopify",
                "inventory_quantity": int(payload.get("quantity") or 0),
            }],
        }
        if payload.get("compare_at_price") is not None:
            product["variants"][0]["compare_at_price"] = self._format_price(payload["compare_at_price"])
        if payload.get("handle"):
            product["handle"] = payload["handle"]
        if payload.get("tags"):
            product["tags"] = ", ".join(payload["tags"])
        if payload.get("images"):
            product["images"] = [{"src": url} for url in payload["images"]]
        if payload.get("metafields"):
            product["metafields"] = payload["metafields"]
        return {k: v for k, v in product.items() if v is not None}

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        product_data = self.convert_to_platform_format(self._build_payload(listing))

        if listing.external_listing_id:
            return self._update_product(listing, product_data)

        response = self._request("POST", "/products.json", json={"product": product_data})
        product = self._json(response).get("product") or {}

        return AdapterResult.created(
            external_id=product.get("id"),
            external_url=self._product_url(product.get("handle")),
            message="Product published to Shopify",
            data={"platform_data": {"handle": product.get("handle"), "variant_ids": self._variant_ids(product)}},
        )

    def _update_product(self, listing: PlatformListing, product_data: Dict[str, Any]) -> AdapterResult:
        body = {"id": listing.external_listing_id}
        body.update(product_data)
        response = self._request(
            "PUT", f"/products/{listing.external_listing_id}.json", json={"product": body}
        )
        product = self._json(response).get("product") or {}
        return AdapterResult.succeeded(
            "Product updated on Shopify",
            external_id=listing.external_listing_id,
            external_url=self._product_url(product.get("handle")) or listing.listing_url,
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._request(
            "PUT",
            f"/products/{listing.external_listing_id}.json",
            json={"product": {"id": listing.external_listing_id, "status": "draft"}},
        )
        return AdapterResult.succeeded("Product unpublished from Shopify")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        # Already gone is fine
        self._request(
            "DELETE", f"/products/{listing.external_listing_id}.json", allow_status=frozenset({404})
        )
        return AdapterResult.succeeded("Product deleted from Shopify")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        variant = self._first_variant(listing)
        if not variant.get("id"):
            return AdapterResult.failed("No variant found")

        self._request(
            "PUT",
            f"/variants/{variant['id']}.json",
            json={"variant": {"id": variant["id"], "price": self._format_price(price)}},
        )
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        inventory_item_id = self._first_variant(listing).get("inventory_item_id")
        if not inventory_item_id:
            return AdapterResult.failed("No inventory item found")

        location_id = self.credentials.location_id or self._first_location_id()
        if not location_id:
            return AdapterResult.failed("No location found")

        self._request("POST", "/inventory_levels/set.json", json={
            "location_id": location_id,
            "inventory_item_id": inventory_item_id,
            "available": quantity,
        })
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        product = self._get_shopify_product(listing.external_listing_id)
        if not product:
            return AdapterResult.failed("Product not found on Shopify")

        variant = (product.get("variants") or [{}])[0]
        return AdapterResult.succeeded("Refreshed from Shopify", {
            "status": self.map_status(product.get("status"), listing.status),
            "price": float(variant.get("price") or 0),
            "quantity": int(variant.get("inventory_quantity") or 0),
            "url": self._product_url(product.get("handle")),
        })

    # ------------------------------------------------------------------

    def _get_shopify_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        response = self._request("GET", f"/products/{product_id}.json", allow_status=frozenset({404}))
        if response.status_code == 404:
            return None
        return self._json(response).get("product")

    def _first_variant(self, listing: PlatformListing) -> Dict[str, Any]:
        product = self._get_shopify_product(listing.external_listing_id) or {}
        return (product.get("variants") or [{}])[0]

    def _first_location_id(self) -> Optional[Any]:
        locations = self._json(self._request("GET", "/locations.json")).get("locations") or []
        return locations[0].get("id") if locations else None

    @staticmethod
    def _variant_ids(product: Dict[str, Any]) -> List[Any]:
        return [v.get("id") for v in product.get("variants") or []]
