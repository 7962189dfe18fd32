"""
BigCommerce Adapter
===================
BigCommerce Catalog API adapter. Visibility stands in for listing status.

Documentation: https://developer.bigcommerce.com/docs/rest-catalog/products
"""

from typing import Any, Dict, Optional

from .base_adapter import AdapterResult, CredentialConnectable, PlatformAdapter
from ..schema.credentials import BigCommerceCredentials
from ..schema.models import ConnectionStatus, ListingStatus, Platform, PlatformListing


class BigCommerceAdapter(PlatformAdapter, CredentialConnectable):
    """BigCommerce v3 catalog adapter"""

    PLATFORM = Platform.BIGCOMMERCE
    EXTERNAL_ID_LABEL = "product ID"
    STATUS_MAP = {
        "visible": ListingStatus.LISTED.value,
        "hidden": ListingStatus.ENDED.value,
    }

    def credentials_class(self):
        return BigCommerceCredentials

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers["X-Auth-Token"] = self.credentials.access_token or ""
        return headers

    def _get_api_endpoint(self, endpoint: str) -> str:
        return f"{self.credentials.api_base}{endpoint}"

    def _storefront_url(self, custom_url: Optional[Dict[str, Any]]) -> Optional[str]:
        path = (custom_url or {}).get("url")
        domain = self.connection.shop_domain if self.connection else None
        if not path or not domain:
            return None
        if not domain.startswith("http"):
            domain = f"https://{domain}"
        return f"{domain.rstrip('/')}{path}"

    # ------------------------------------------------------------------

    def convert_to_platform_format(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        product: Dict[str, Any] = {
            "name": payload.get("name", payload.get("title")),
            "type": "physical",
            "description": payload.get("description") or "",
            "price": float(payload.get("price") or 0),
            "weight": float(payload.get("weight") or 0),
            "sku": payload.get("sku") or "",
            "inventory_tracking": "product",
            "inventory_level": int(payload.get("quantity") or 0),
            "is_visible": True,
        }
        if payload.get("brand_name"):
            product["brand_name"] = payload["brand_name"]
        if payload.get("upc"):
            product["upc"] = payload["upc"]
        if payload.get("platform_category_id"):
            product["categories"] = [int(payload["platform_category_id"])]
        if payload.get("images"):
            product["images"] = [
                {"image_url": url, "is_thumbnail": i == 0} for i, url in enumerate(payload["images"])
            ]
        if payload.get("metafields"):
            product["custom_fields"] = [
                {"name": m["key"], "value": str(m["value"])[:250]} for m in payload["metafields"]
            ]
        return product

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        body = self.convert_to_platform_format(self._build_payload(listing))

        if listing.external_listing_id:
            # Images and custom fields are sub-resources on update
            body.pop("images", None)
            body.pop("custom_fields", None)
            response = self._request("PUT", f"/catalog/products/{listing.external_listing_id}", json=body)
            message = "Product updated on BigCommerce"
        else:
            response = self._request("POST", "/catalog/products", json=body)
            message = "Product published to BigCommerce"

        product = self._json(response).get("data") or {}
        return AdapterResult.created(
            external_id=product.get("id") or listing.external_listing_id,
            external_url=self._storefront_url(product.get("custom_url")) or listing.listing_url,
            message=message,
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._request("PUT", f"/catalog/products/{listing.external_listing_id}", json={"is_visible": False})
        return AdapterResult.succeeded("Product hidden on BigCommerce")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        self._request(
            "DELETE", f"/catalog/products/{listing.external_listing_id}", allow_status=frozenset({404})
        )
        return AdapterResult.succeeded("Product deleted from BigCommerce")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        self._request("PUT", f"/catalog/products/{listing.external_listing_id}", json={"price": price})
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        self._request(
            "PUT", f"/catalog/products/{listing.external_listing_id}",
            json={"inventory_tracking": "product", "inventory_level": quantity},
        )
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        product = self._json(
            self._request("GET", f"/catalog/products/{listing.external_listing_id}")
        ).get("data") or {}

        visibility = None
        if "is_visible" in product:
            visibility = "visible" if product["is_visible"] else "hidden"

        data: Dict[str, Any] = {"status": self.map_status(visibility, listing.status)}
        if product.get("price") is not None:
            data["price"] = float(product["price"])
        if product.get("inventory_level") is not None:
            data["quantity"] = int(product["inventory_level"])
        url = self._storefront_url(product.get("custom_url"))
        if url:
            data["url"] = url
        return AdapterResult.succeeded("Listing refreshed", data)

    # ------------------------------------------------------------------

    def connect_with_credentials(self, credentials: Dict[str, Any]) -> AdapterResult:
        """Check store hash + API token against the store and activate"""
        if self.connection is None:
            result = AdapterResult.failed("BigCommerce connection record is missing")
            self._log_operation("connect", None, result)
            return result

        store_hash = credentials.get("store_hash")
        access_token = credentials.get("access_token")
        if not store_hash or not access_token:
            result = AdapterResult.failed("BigCommerce store hash and access token are required")
            self._log_operation("connect", None, result)
            return result

        previous = (
            self.connection.external_store_id,
            self.connection.access_token,
            dict(self.connection.credentials or {}),
        )
        self.connection.external_store_id = store_hash
        self.connection.access_token = access_token
        self.connection.credentials = {
            **previous[2], **{k: v for k, v in credentials.items() if k != "access_token"}
        }
        self.credentials = self._load_credentials()

        try:
            store = self._json(self._request(
                "GET", f"https://api.bigcommerce.com/stores/{store_hash}/v2/store"
            ))
            result = AdapterResult.succeeded("BigCommerce connected", {"store_name": store.get("name")})
        except Exception as e:
            result = AdapterResult.failed(self._failure_message("connect", e), e)

        if result.success:
            self.connection.status = ConnectionStatus.ACTIVE.value
            self.connection.last_error = None
            if store.get("domain") and not self.connection.shop_domain:
                self.connection.shop_domain = store["domain"]
            self._persist_connection()
        else:
            (
                self.connection.external_store_id,
                self.connection.access_token,
                self.connection.credentials,
            ) = previous
            self.credentials = self._load_credentials()

        self._log_operation("connect", None, result)
        return result
