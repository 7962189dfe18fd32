"""
Amazon Adapter
==============
Selling Partner API (Listings Items 2021-08-01) adapter. Listings are keyed
by seller id + SKU; PUT is an idempotent upsert so sync is a plain republish.

Documentation: https://developer-docs.amazon.com/sp-api/docs/listings-items-api-v2021-08-01-reference
"""

from typing import Any, Dict, List

from .base_adapter import AdapterResult, PlatformAdapter
from ..schema.credentials import AmazonCredentials
from ..schema.models import ListingStatus, Platform, PlatformListing

LISTINGS_PATH = "/listings/2021-08-01/items"


class AmazonAdapter(PlatformAdapter):
    """SKU-addressed listings on one Amazon marketplace"""

    PLATFORM = Platform.AMAZON
    EXTERNAL_ID_LABEL = "SKU"
    STATUS_MAP = {
        "BUYABLE": ListingStatus.LISTED.value,
        "DISCOVERABLE": ListingStatus.LISTED.value,
        "DELETED": ListingStatus.ENDED.value,
    }

    def credentials_class(self):
        return AmazonCredentials

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers["x-amz-access-token"] = self.credentials.access_token
        return headers

    def _get_api_endpoint(self, endpoint: str) -> str:
        return f"{self.credentials.base_url}{endpoint}"

    def _item_path(self, sku: str) -> str:
        return f"{LISTINGS_PATH}/{self.credentials.seller_id}/{sku}"

    def _params(self, **extra) -> Dict[str, Any]:
        params = {"marketplaceIds": self.credentials.marketplace_id}
        params.update(extra)
        return params

    # ------------------------------------------------------------------

    def convert_to_platform_format(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Listings Items PUT body"""
        creds = self.credentials
        lang = creds.language_tag
        base_price = float(payload.get("price") or 0)
        price = round(base_price + base_price * creds.price_markup / 100, 2)

        attributes: Dict[str, Any] = {
            "item_name": [{"value": payload.get("item_name", payload.get("title")), "language_tag": lang}],
            "brand": [{"value": payload.get("brand_name") or "Unbranded"}],
            "product_description": [{
                "value": payload.get("product_description", payload.get("description")) or "",
                "language_tag": lang,
            }],
            "purchasable_offer": [{
                "currency": creds.currency,
                "our_price": [{"schedule": [{"value_with_tax": price}]}],
            }],
            "fulfillment_availability": [self._availability(payload.get("quantity"))],
        }
        if payload.get("condition_type"):
            attributes["condition_type"] = [{"value": payload["condition_type"]}]
        for key in ("manufacturer", "part_number", "model_number", "color_name", "size_name", "material_type"):
            if payload.get(key):
                attributes[key] = [{"value": payload[key], "language_tag": lang}]
        if payload.get("upc"):
            attributes["externally_assigned_product_identifier"] = [{"type": "upc", "value": payload["upc"]}]
        elif payload.get("ean"):
            attributes["externally_assigned_product_identifier"] = [{"type": "ean", "value": payload["ean"]}]

        return {
            "productType": payload.get("product_type") or creds.product_type,
            "requirements": "LISTING",
            "attributes": attributes,
        }

    def _availability(self, quantity: Any) -> Dict[str, Any]:
        return {
            "fulfillment_channel_code": self.credentials.fulfillment_channel,
            "quantity": int(quantity or 0),
        }

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        payload = self._build_payload(listing)
        sku = listing.external_listing_id or payload.get("sku")
        if not sku:
            return AdapterResult.failed("Product has no SKU to list on Amazon")

        body = self.convert_to_platform_format(payload)
        response = self._request("PUT", self._item_path(sku), params=self._params(), json=body)
        submission = self._json(response)

        if submission.get("status") == "INVALID":
            return AdapterResult.failed(
                "Amazon rejected the listing: " + "; ".join(self._issue_messages(submission)),
                data={"issues": submission.get("issues") or []},
            )

        return AdapterResult.created(
            external_id=sku,
            external_url=listing.listing_url,
            message="Listing submitted to Amazon",
            data={
                "status": ListingStatus.PENDING.value,
                "sku": sku,
                "platform_data": {
                    "sku": sku,
                    "productType": body["productType"],
                    "submission_id": submission.get("submissionId"),
                },
            },
        )

    def _patch(self, listing: PlatformListing, path: str, value: List[Dict[str, Any]]) -> None:
        self._request(
            "PATCH",
            self._item_path(listing.external_listing_id),
            params=self._params(),
            json={
                "productType": (listing.platform_data or {}).get("productType") or self.credentials.product_type,
                "patches": [{"op": "replace", "path": path, "value": value}],
            },
        )

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._patch(listing, "/attributes/fulfillment_availability", [self._availability(0)])
        return AdapterResult.succeeded("Item unpublished from Amazon")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        self._request(
            "DELETE", self._item_path(listing.external_listing_id),
            params=self._params(), allow_status=frozenset({404}),
        )
        return AdapterResult.succeeded("Listing deleted from Amazon")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        self._patch(listing, "/attributes/purchasable_offer", [{
            "currency": self.credentials.currency,
            "our_price": [{"schedule": [{"value_with_tax": price}]}],
        }])
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        self._patch(listing, "/attributes/fulfillment_availability", [self._availability(quantity)])
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        item = self._json(self._request(
            "GET",
            self._item_path(listing.external_listing_id),
            params=self._params(includedData="summaries,fulfillmentAvailability"),
        ))
        summary = (item.get("summaries") or [{}])[0]
        native = summary.get("status") or []
        if isinstance(native, str):
            native = [native]

        data: Dict[str, Any] = {
            "status": self._status_from_summary(native, listing.status),
            "amazon_status": native,
            "platform_data": {"amazon_status": native, "asin": summary.get("asin")},
        }
        if summary.get("asin"):
            data["url"] = f"https://www.amazon.com/dp/{summary['asin']}"
        availability = item.get("fulfillmentAvailability") or []
        if availability:
            data["quantity"] = int(availability[0].get("quantity") or 0)

        return AdapterResult.succeeded("Listing refreshed", data)

    def _status_from_summary(self, native: List[str], current: str) -> str:
        """DELETED wins; otherwise the first documented value decides"""
        if "DELETED" in native:
            return ListingStatus.ENDED.value
        for value in native:
            if value in self.STATUS_MAP:
                return self.STATUS_MAP[value]
        return current

    @staticmethod
    def _issue_messages(submission: Dict[str, Any]) -> List[str]:
        return [issue.get("message", "") for issue in submission.get("issues") or []] or ["unknown issue"]
