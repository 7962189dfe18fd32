"""
Walmart Adapter
===============
Walmart Marketplace API adapter. Items are addressed by SKU; item and price
changes go through asynchronous feeds, so a fresh publish reports "pending".

Documentation: https://developer.walmart.com/api/us/mp/items
"""

import uuid
from datetime import timedelta
from typing import Any, Dict

from ..config import Config
from .base_adapter import AdapterResult, CredentialConnectable, PlatformAdapter
from ..schema.credentials import WalmartCredentials
from ..schema.models import ConnectionStatus, ListingStatus, Platform, PlatformListing


class WalmartAdapter(PlatformAdapter, CredentialConnectable):
    """Retirement is terminal on Walmart, so end() is the same call as unpublish()"""

    PLATFORM = Platform.WALMART
    EXTERNAL_ID_LABEL = "SKU"
    STATUS_MAP = {
        "PUBLISHED": ListingStatus.LISTED.value,
        "UNPUBLISHED": ListingStatus.ENDED.value,
        "RETIRED": ListingStatus.ENDED.value,
        "SYSTEM_PROBLEM": ListingStatus.ERROR.value,
    }

    def credentials_class(self):
        return WalmartCredentials

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers.update({
            "WM_SEC.ACCESS_TOKEN": self.credentials.access_token or "",
            "WM_SVC.NAME": "Walmart Marketplace",
            "WM_QOS.CORRELATION_ID": str(uuid.uuid4()),
        })
        return headers

    def _get_api_endpoint(self, endpoint: str) -> str:
        return f"{self.credentials.base_url}{endpoint}"

    # ------------------------------------------------------------------

    def convert_to_platform_format(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """One MP_ITEM entry for the item feed"""
        item: Dict[str, Any] = {
            "sku": payload.get("sku"),
            "productName": payload.get("productName", payload.get("title")),
            "shortDescription": payload.get("shortDescription"),
            "longDescription": payload.get("longDescription"),
            "brand": payload.get("brand"),
            "mainImageUrl": payload.get("mainImageUrl"),
            "price": {"currency": "USD", "amount": float(payload.get("price") or 0)},
            "quantity": int(payload.get("quantity") or 0),
        }
        if payload.get("additionalImageUrls"):
            item["additionalImageUrls"] = payload["additionalImageUrls"]
        if payload.get("platform_category_id"):
            item["category"] = payload["platform_category_id"]
        if payload.get("upc"):
            item["productIdentifiers"] = {"productIdType": "UPC", "productId": payload["upc"]}
        if payload.get("attributes"):
            item["attributes"] = payload["attributes"]
        return {k: v for k, v in item.items() if v is not None}

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        item = self.convert_to_platform_format(self._build_payload(listing))
        sku = item.get("sku") or listing.external_listing_id
        if not sku:
            return AdapterResult.failed("Product has no SKU to list on Walmart")
        item["sku"] = sku

        response = self._request("POST", "/v3/feeds", params={"feedType": "item"},
                                 json={"ItemFeed": {"item": [item]}})
        feed_id = self._json(response).get("feedId")

        return AdapterResult.created(
            external_id=sku,
            message="Item submitted to Walmart",
            data={
                "status": ListingStatus.PENDING.value,
                "sku": sku,
                "platform_data": {"sku": sku, "feed_id": feed_id},
            },
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._request("DELETE", f"/v3/items/{listing.external_listing_id}")
        return AdapterResult.succeeded("Item retired from Walmart")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        return self._unpublish(listing)

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        sku = listing.external_listing_id
        self._request("POST", "/v3/feeds", params={"feedType": "price"}, json={
            "PriceFeed": {
                "PriceHeader": {"version": "1.5.1"},
                "Price": [{
                    "itemIdentifier": {"sku": sku},
                    "pricingList": {
                        "pricing": [{"currentPrice": {"currency": "USD", "amount": price}}],
                    },
                }],
            },
        })
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        sku = listing.external_listing_id
        self._request("PUT", "/v3/inventory", params={"sku": sku}, json={
            "sku": sku,
            "quantity": {"unit": "EACH", "amount": quantity},
        })
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        item = self._json(self._request("GET", f"/v3/items/{listing.external_listing_id}"))
        published_status = item.get("publishedStatus")

        return AdapterResult.succeeded("Listing refreshed", {
            "walmart_status": published_status,
            "status": self.map_status(published_status, listing.status),
            "platform_data": {
                "walmart_status": published_status,
                "product_name": item.get("productName"),
            },
        })

    # ------------------------------------------------------------------

    def connect_with_credentials(self, credentials: Dict[str, Any]) -> AdapterResult:
        """Exchange client id/secret for an access token and activate the connection"""
        client_id = credentials.get("client_id")
        client_secret = credentials.get("client_secret")

        if self.connection is None:
            result = AdapterResult.failed("Walmart connection record is missing")
        elif not client_id or not client_secret:
            result = AdapterResult.failed("Walmart client ID and client secret are required")
        else:
            try:
                result = self._request_token(client_id, client_secret)
            except Exception as e:
                result = AdapterResult.failed(self._failure_message("connect", e), e)

        if result.success:
            self.connection.credentials = {**(self.connection.credentials or {}), **credentials}
            self.connection.access_token = result.data["access_token"]
            self.connection.token_expires_at = self._now() + timedelta(
                seconds=int(result.data.get("expires_in") or 900)
            )
            self.connection.status = ConnectionStatus.ACTIVE.value
            self.connection.last_error = None
            self.credentials = self._load_credentials()
            self._persist_connection()
            result = AdapterResult.succeeded("Walmart connected")

        self._log_operation("connect", None, result)
        return result

    def _request_token(self, client_id: str, client_secret: str) -> AdapterResult:
        response = self.session.request(
            "POST",
            f"{self.credentials.base_url}/v3/token",
            auth=(client_id, client_secret),
            data={"grant_type": "client_credentials"},
            headers={
                "Accept": "application/json",
                "WM_SVC.NAME": "Walmart Marketplace",
                "WM_QOS.CORRELATION_ID": str(uuid.uuid4()),
            },
            timeout=Config.API_TIMEOUT,
        )
        if response.status_code >= 400:
            return AdapterResult.failed(
                f"Walmart rejected the credentials ({response.status_code})"
            )
        body = self._json(response)
        if not body.get("access_token"):
            return AdapterResult.failed("Walmart did not return an access token")
        return AdapterResult.succeeded(data=body)
