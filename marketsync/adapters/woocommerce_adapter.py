"""
WooCommerce Adapter
===================
WooCommerce REST API (wc/v3) adapter, authenticated with a consumer
key/secret pair over HTTPS basic auth.

Documentation: https://woocommerce.github.io/woocommerce-rest-api-docs/
"""

from typing import Any, Dict

from .base_adapter import AdapterResult, CredentialConnectable, PlatformAdapter
from ..schema.credentials import WooCommerceCredentials
from ..schema.models import ConnectionStatus, ListingStatus, Platform, PlatformListing


class WooCommerceAdapter(PlatformAdapter, CredentialConnectable):
    """WooCommerce REST API adapter"""

    PLATFORM = Platform.WOOCOMMERCE
    EXTERNAL_ID_LABEL = "product ID"
    STATUS_MAP = {
        "publish": ListingStatus.LISTED.value,
        "draft": ListingStatus.DRAFT.value,
        "pending": ListingStatus.PENDING.value,
        "private": ListingStatus.ENDED.value,
        "trash": ListingStatus.ENDED.value,
    }

    def credentials_class(self):
        return WooCommerceCredentials

    def _get_api_endpoint(self, endpoint: str) -> str:
        return f"{self.credentials.api_base}{endpoint}"

    def _request(self, method, endpoint, allow_status=frozenset(), **kwargs):
        kwargs.setdefault("auth", (self.credentials.consumer_key, self.credentials.consumer_secret))
        return super()._request(method, endpoint, allow_status=allow_status, **kwargs)

    # ------------------------------------------------------------------

    def convert_to_platform_format(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        product: Dict[str, Any] = {
            "name": payload.get("name", payload.get("title")),
            "type": "simple",
            "status": "publish",
            "description": payload.get("description") or "",
            "short_description": payload.get("short_description") or "",
            "sku": payload.get("sku") or "",
            "regular_price": self._format_price(payload.get("price")),
            "manage_stock": True,
            "stock_quantity": int(payload.get("quantity") or 0),
        }
        if payload.get("weight") is not None:
            product["weight"] = str(payload["weight"])
        if payload.get("images"):
            product["images"] = [{"src": url} for url in payload["images"]]
        if payload.get("tags"):
            product["tags"] = [{"name": tag} for tag in payload["tags"]]
        if payload.get("platform_category_id"):
            product["categories"] = [{"id": int(payload["platform_category_id"])}]
        if payload.get("metafields"):
            product["meta_data"] = [
                {"key": f"{m['namespace']}_{m['key']}", "value": m["value"]}
                for m in payload["metafields"]
            ]
        return product

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        body = self.convert_to_platform_format(self._build_payload(listing))

        if listing.external_listing_id:
            response = self._request("PUT", f"/products/{listing.external_listing_id}", json=body)
            message = "Product updated on WooCommerce"
        else:
            response = self._request("POST", "/products", json=body)
            message = "Product published to WooCommerce"

        product = self._json(response)
        return AdapterResult.created(
            external_id=product.get("id") or listing.external_listing_id,
            external_url=product.get("permalink") or listing.listing_url,
            message=message,
            data={"status": self.map_status(product.get("status"), ListingStatus.LISTED.value)},
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._request("PUT", f"/products/{listing.external_listing_id}", json={"status": "draft"})
        return AdapterResult.succeeded("Product unpublished from WooCommerce")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        self._request(
            "DELETE", f"/products/{listing.external_listing_id}",
            params={"force": "true"}, allow_status=frozenset({404}),
        )
        return AdapterResult.succeeded("Product deleted from WooCommerce")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        self._request(
            "PUT", f"/products/{listing.external_listing_id}",
            json={"regular_price": self._format_price(price)},
        )
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        self._request(
            "PUT", f"/products/{listing.external_listing_id}",
            json={"manage_stock": True, "stock_quantity": quantity},
        )
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        product = self._json(self._request("GET", f"/products/{listing.external_listing_id}"))

        data: Dict[str, Any] = {
            "status": self.map_status(product.get("status"), listing.status),
            "woocommerce_status": product.get("status"),
        }
        if product.get("regular_price"):
            data["price"] = float(product["regular_price"])
        if product.get("stock_quantity") is not None:
            data["quantity"] = int(product["stock_quantity"])
        if product.get("permalink"):
            data["url"] = product["permalink"]
        return AdapterResult.succeeded("Listing refreshed", data)

    # ------------------------------------------------------------------

    def connect_with_credentials(self, credentials: Dict[str, Any]) -> AdapterResult:
        """Check the key pair against the store and activate the connection"""
        if self.connection is None:
            result = AdapterResult.failed("WooCommerce connection record is missing")
            self._log_operation("connect", None, result)
            return result

        previous = dict(self.connection.credentials or {})
        self.connection.credentials = {**previous, **credentials}
        self.credentials = self._load_credentials()

        if not self.credentials.is_complete:
            result = AdapterResult.failed(
                "WooCommerce requires " + ", ".join(self.credentials.missing())
            )
        else:
            try:
                self._request("GET", "/products", params={"per_page": 1})
                result = AdapterResult.succeeded("WooCommerce connected")
            except Exception as e:
                result = AdapterResult.failed(self._failure_message("connect", e), e)

        if result.success:
            self.connection.status = ConnectionStatus.ACTIVE.value
            self.connection.last_error = None
            self.connection.shop_domain = self.credentials.site_url
            self._persist_connection()
        else:
            self.connection.credentials = previous
            self.credentials = self._load_credentials()

        self._log_operation("connect", None, result)
        return result
