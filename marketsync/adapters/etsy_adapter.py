"""
Etsy Adapter
============
Etsy Open API v3 adapter.

Documentation: https://developers.etsy.com/documentation/reference
"""

from typing import Any, Dict, List

import requests

from .base_adapter import AdapterResult, PlatformAdapter
from ..exceptions import UpstreamError
from ..schema.credentials import EtsyCredentials
from ..schema.models import ListingStatus, Platform, PlatformListing
from ..utils.logger import log_with_context


class EtsyAdapter(PlatformAdapter):
    """Etsy API v3 adapter"""

    PLATFORM = Platform.ETSY
    STATUS_MAP = {
        "active": ListingStatus.LISTED.value,
        "inactive": ListingStatus.ENDED.value,
        "expired": ListingStatus.ENDED.value,
        "removed": ListingStatus.ENDED.value,
        "draft": ListingStatus.PENDING.value,
    }

    def credentials_class(self):
        return EtsyCredentials

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers["Authorization"] = f"Bearer {self.credentials.access_token}"
        if self.credentials.api_key:
            headers["x-api-key"] = self.credentials.api_key
        return headers

    def _get_api_endpoint(self, endpoint: str) -> str:
        return f"https://openapi.etsy.com/v3{endpoint}"

    def _shop_listing_path(self, listing_id: Any = None) -> str:
        path = f"/application/shops/{self.credentials.shop_id}/listings"
        return f"{path}/{listing_id}" if listing_id else path

    # ------------------------------------------------------------------

    def convert_to_platform_format(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        creds = self.credentials
        listing: Dict[str, Any] = {
            "title": payload.get("title"),
            "description": payload.get("description") or "",
            "price": round(float(payload.get("price") or 0), 2),
            "quantity": int(payload.get("quantity") or 0),
            "who_made": payload.get("who_made") or creds.who_made,
            "when_made": payload.get("when_made") or creds.when_made or "made_to_order",
            "taxonomy_id": int(payload.get("taxonomy_id") or payload.get("platform_category_id")
                               or creds.taxonomy_id or 1),
            "is_supply": bool(payload.get("is_supply", False)),
            "tags": list(payload.get("tags") or [])[:13],
            "materials": list(payload.get("materials") or []),
        }
        if creds.shipping_profile_id:
            listing["shipping_profile_id"] = int(creds.shipping_profile_id)
        if creds.return_policy_id:
            listing["return_policy_id"] = int(creds.return_policy_id)
        return listing

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        payload = self._build_payload(listing)
        body = self.convert_to_platform_format(payload)

        if listing.external_listing_id:
            response = self._request("PATCH", self._shop_listing_path(listing.external_listing_id), json=body)
            message = "Listing updated on Etsy"
        else:
            response = self._request("POST", self._shop_listing_path(), json=body)
            message = "Listing created on Etsy"

        etsy_listing = self._json(response)
        listing_id = etsy_listing.get("listing_id") or listing.external_listing_id
        state = etsy_listing.get("state")
        platform_data: Dict[str, Any] = {"etsy_state": state}

        # Images are attached separately and only to a new listing
        if not listing.external_listing_id and payload.get("images"):
            failed = self._upload_images(listing_id, payload["images"])
            if failed:
                platform_data["image_upload_errors"] = failed

        return AdapterResult.created(
            external_id=listing_id,
            external_url=etsy_listing.get("url") or f"https://www.etsy.com/listing/{listing_id}",
            message=message,
            data={
                "status": self.map_status(state, ListingStatus.PENDING.value),
                "platform_data": platform_data,
            },
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._request(
            "PATCH", self._shop_listing_path(listing.external_listing_id), json={"state": "inactive"}
        )
        return AdapterResult.succeeded("Listing deactivated on Etsy")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        self._request(
            "DELETE", f"/application/listings/{listing.external_listing_id}", allow_status=frozenset({404})
        )
        return AdapterResult.succeeded("Listing deleted from Etsy")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        self._rewrite_offerings(listing, price=round(price, 2))
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        self._rewrite_offerings(listing, quantity=quantity)
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        etsy_listing = self._json(self._request("GET", f"/application/listings/{listing.external_listing_id}"))
        state = etsy_listing.get("state")

        data: Dict[str, Any] = {
            "status": self.map_status(state, listing.status),
            "etsy_state": state,
            "platform_data": {"etsy_state": state},
        }
        price = etsy_listing.get("price") or {}
        if price.get("divisor"):
            data["price"] = price["amount"] / price["divisor"]
        if etsy_listing.get("quantity") is not None:
            data["quantity"] = int(etsy_listing["quantity"])
        if etsy_listing.get("url"):
            data["url"] = etsy_listing["url"]

        return AdapterResult.succeeded("Listing refreshed", data)

    # ------------------------------------------------------------------

    def _rewrite_offerings(self, listing: PlatformListing, **changes) -> None:
        """
        Etsy inventory is replaced wholesale: read it, change one offering
        field, and write every product back.
        """
        path = f"/application/listings/{listing.external_listing_id}/inventory"
        inventory = self._json(self._request("GET", path))

        products: List[Dict[str, Any]] = []
        for product in inventory.get("products") or []:
            offerings = []
            for offering in product.get("offerings") or []:
                current_price = offering.get("price") or {}
                entry = {
                    "price": (
                        current_price["amount"] / current_price["divisor"]
                        if isinstance(current_price, dict) and current_price.get("divisor")
                        else current_price
                    ),
                    "quantity": offering.get("quantity", 0),
                    "is_enabled": offering.get("is_enabled", True),
                }
                entry.update(changes)
                offerings.append(entry)
            products.append({
                "sku": product.get("sku") or "",
                "property_values": product.get("property_values") or [],
                "offerings": offerings,
            })

        body: Dict[str, Any] = {"products": products}
        for key in ("price_on_property", "quantity_on_property", "sku_on_property"):
            if key in inventory:
                body[key] = inventory[key]
        self._request("PUT", path, json=body)

    def _upload_images(self, listing_id: Any, image_urls: List[str]) -> List[Dict[str, Any]]:
        """
        Attach images to a listing in rank order. A rejected image does not
        stop the rest; the failures are returned.
        """
        path = f"{self._shop_listing_path(listing_id)}/images"
        failed: List[Dict[str, Any]] = []

        for rank, url in enumerate(image_urls, start=1):
            try:
                self._request("POST", path, json={"image": url, "rank": rank})
            except (UpstreamError, requests.RequestException) as e:
                message = self._redact(str(e))
                failed.append({"url": url, "rank": rank, "error": message})
                log_with_context(
                    self.logger, "WARNING", "Etsy image upload failed",
                    platform=self.PLATFORM.value, listing_id=listing_id, rank=rank, error=message,
                )
        return failed
