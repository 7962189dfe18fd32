"""
eBay Adapter
============
eBay Sell Inventory API adapter.

A listing is three linked eBay resources:

    inventory item (by SKU) -> offer (by offer id) -> published listing (by listing id)

publish() upserts all three; the offer id and SKU are echoed back into the
listing's platform_data so later calls can address the offer directly.
Business policies and category aspects come from the Account and Taxonomy
APIs.

Documentation: https://developer.ebay.com/api-docs/sell/inventory/resources/methods
"""

from typing import Any, Dict, List, Optional

from .base_adapter import (
    AdapterResult,
    BusinessPolicySyncable,
    ItemSpecificsProvider,
    PlatformAdapter,
)
from ..exceptions import UpstreamError
from ..schema.credentials import EbayCredentials
from ..schema.models import ListingStatus, Platform, PlatformListing

INVENTORY_PATH = "/sell/inventory/v1"
ACCOUNT_PATH = "/sell/account/v1"
TAXONOMY_PATH = "/commerce/taxonomy/v1"

# condition id -> Inventory API condition enum
CONDITION_ENUMS = {
    1000: "NEW",
    1500: "NEW_OTHER",
    1750: "NEW_WITH_DEFECTS",
    2000: "CERTIFIED_REFURBISHED",
    2500: "SELLER_REFURBISHED",
    2750: "LIKE_NEW",
    3000: "USED_EXCELLENT",
    4000: "USED_VERY_GOOD",
    5000: "USED_GOOD",
    6000: "USED_ACCEPTABLE",
    7000: "FOR_PARTS_OR_NOT_WORKING",
}


class EbayAdapter(PlatformAdapter, BusinessPolicySyncable, ItemSpecificsProvider):
    """
    eBay Inventory API adapter.

    Linkage is the offer id; the public listing id is the external id.
    """

    PLATFORM = Platform.EBAY
    EXTERNAL_ID_LABEL = "offer ID"
    STATUS_MAP = {
        "PUBLISHED": ListingStatus.LISTED.value,
        "UNPUBLISHED": ListingStatus.ENDED.value,
    }

    def credentials_class(self):
        return EbayCredentials

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers["Authorization"] = f"Bearer {self.credentials.access_token}"
        headers["Content-Language"] = "en-US"
        headers["X-EBAY-C-MARKETPLACE-ID"] = self.credentials.marketplace_id
        return headers

    def _get_api_endpoint(self, endpoint: str) -> str:
        return f"{self.credentials.base_url}{endpoint}"

    def linkage_id(self, listing: PlatformListing) -> Optional[str]:
        return (listing.platform_data or {}).get("offer_id")

    @staticmethod
    def _sku(listing: PlatformListing) -> Optional[str]:
        return (listing.platform_data or {}).get("sku")

    # ------------------------------------------------------------------
    # Payload conversion
    # ------------------------------------------------------------------

    def convert_to_inventory_item(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        product: Dict[str, Any] = {
            "title": payload.get("title"),
            "description": payload.get("description") or "",
            "imageUrls": list(payload.get("images") or [])[:24],
            "aspects": payload.get("aspects") or {},
        }
        if payload.get("brand"):
            product["brand"] = payload["brand"]
        if payload.get("mpn"):
            product["mpn"] = payload["mpn"]
        for key in ("upc", "ean"):
            if payload.get(key):
                product[key] = [payload[key]]

        return {
            "availability": {"shipToLocationAvailability": {"quantity": int(payload.get("quantity") or 0)}},
            "condition": CONDITION_ENUMS.get(int(payload.get("condition_id") or 1000), "USED_EXCELLENT"),
            "product": product,
        }

    def convert_to_offer(self, sku: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        creds = self.credentials
        offer: Dict[str, Any] = {
            "sku": sku,
            "marketplaceId": creds.marketplace_id,
            "format": "FIXED_PRICE",
            "availableQuantity": int(payload.get("quantity") or 0),
            "listingDescription": payload.get("description") or "",
            "pricingSummary": {
                "price": {"value": self._format_price(payload.get("price")), "currency": creds.currency},
            },
        }
        if payload.get("platform_category_id"):
            offer["categoryId"] = str(payload["platform_category_id"])
        if payload.get("secondary_category_id"):
            offer["secondaryCategoryId"] = str(payload["secondary_category_id"])
        if creds.merchant_location_key:
            offer["merchantLocationKey"] = creds.merchant_location_key
        policies = {
            "fulfillmentPolicyId": creds.fulfillment_policy_id,
            "paymentPolicyId": creds.payment_policy_id,
            "returnPolicyId": creds.return_policy_id,
        }
        if any(policies.values()):
            offer["listingPolicies"] = {k: v for k, v in policies.items() if v}
        return offer

    # ------------------------------------------------------------------
    # Listing contract
    # ------------------------------------------------------------------

    def _publish(self, listing: PlatformListing) -> AdapterResult:
        payload = self._build_payload(listing)
        sku = self._sku(listing) or payload.get("sku")
        if not sku:
            return AdapterResult.failed("Product has no SKU to list on eBay")

        self._request(
            "PUT", f"{INVENTORY_PATH}/inventory_item/{sku}", json=self.convert_to_inventory_item(payload)
        )

        offer_body = self.convert_to_offer(sku, payload)
        offer_id = self._upsert_offer(self.linkage_id(listing), offer_body)

        published = self._json(self._request("POST", f"{INVENTORY_PATH}/offer/{offer_id}/publish"))
        listing_id = published.get("listingId") or listing.external_listing_id

        return AdapterResult.created(
            external_id=listing_id,
            external_url=f"https://www.ebay.com/itm/{listing_id}" if listing_id else None,
            message="Listing published to eBay",
            data={"sku": sku, "platform_data": {"offer_id": offer_id, "sku": sku}},
        )

    def _upsert_offer(self, offer_id: Optional[str], offer_body: Dict[str, Any]) -> str:
        """Update a known offer; a stale id (404) falls back to create"""
        if offer_id:
            response = self._request(
                "PUT", f"{INVENTORY_PATH}/offer/{offer_id}", json=offer_body, allow_status=frozenset({404})
            )
            if response.status_code != 404:
                return offer_id

        try:
            created = self._json(self._request("POST", f"{INVENTORY_PATH}/offer", json=offer_body))
        except UpstreamError as e:
            existing = self._existing_offer_id(e)
            if existing is None:
                raise
            self._request("PUT", f"{INVENTORY_PATH}/offer/{existing}", json=offer_body)
            return existing
        return str(created["offerId"])

    def _existing_offer_id(self, error: UpstreamError) -> Optional[str]:
        """eBay reports 'offer already exists' with the existing offerId as a parameter"""
        if error.status_code != 400 or error.response is None:
            return None
        try:
            body = error.response.json()
        except ValueError:
            return None
        for err in body.get("errors") or []:
            for param in err.get("parameters") or []:
                if param.get("name") == "offerId" and param.get("value"):
                    return str(param["value"])
        return None

    def _unpublish(self, listing: PlatformListing) -> AdapterResult:
        self._request("POST", f"{INVENTORY_PATH}/offer/{self.linkage_id(listing)}/withdraw")
        return AdapterResult.succeeded("Listing withdrawn from eBay")

    def _end(self, listing: PlatformListing) -> AdapterResult:
        # Deleting a published offer ends its listing
        self._request(
            "DELETE", f"{INVENTORY_PATH}/offer/{self.linkage_id(listing)}", allow_status=frozenset({404})
        )
        sku = self._sku(listing)
        if sku:
            self._request(
                "DELETE", f"{INVENTORY_PATH}/inventory_item/{sku}", allow_status=frozenset({404})
            )
        return AdapterResult.succeeded("Listing ended and removed from eBay")

    def _update_price(self, listing: PlatformListing, price: float) -> AdapterResult:
        self._bulk_update(listing, {
            "offers": [{
                "offerId": self.linkage_id(listing),
                "price": {"value": self._format_price(price), "currency": self.credentials.currency},
            }],
        })
        return AdapterResult.succeeded("Price updated", {"price": price})

    def _update_inventory(self, listing: PlatformListing, quantity: int) -> AdapterResult:
        self._bulk_update(listing, {
            "shipToLocationAvailability": {"quantity": quantity},
            "offers": [{"offerId": self.linkage_id(listing), "availableQuantity": quantity}],
        })
        return AdapterResult.succeeded("Inventory updated", {"quantity": quantity})

    def _bulk_update(self, listing: PlatformListing, request: Dict[str, Any]) -> None:
        """Touches only the price/quantity fields named in request"""
        body = {"sku": self._sku(listing) or listing.external_listing_id}
        body.update(request)
        response = self._request(
            "POST", f"{INVENTORY_PATH}/bulk_update_price_quantity", json={"requests": [body]}
        )
        for item in self._json(response).get("responses") or []:
            if int(item.get("statusCode") or 200) >= 400:
                errors = [e.get("message", "") for e in item.get("errors") or []]
                raise UpstreamError(
                    f"eBay rejected the update: {'; '.join(errors) or item.get('statusCode')}",
                    status_code=int(item["statusCode"]),
                )

    def _refresh(self, listing: PlatformListing) -> AdapterResult:
        offer = self._json(self._request("GET", f"{INVENTORY_PATH}/offer/{self.linkage_id(listing)}"))
        native = offer.get("status")
        listing_id = (offer.get("listing") or {}).get("listingId")

        data: Dict[str, Any] = {
            "status": self.map_status(native, listing.status),
            "ebay_status": native,
            "platform_data": {"ebay_status": native},
        }
        price = (offer.get("pricingSummary") or {}).get("price") or {}
        if price.get("value") is not None:
            data["price"] = float(price["value"])
        if offer.get("availableQuantity") is not None:
            data["quantity"] = int(offer["availableQuantity"])
        if listing_id:
            data["external_id"] = str(listing_id)
            data["url"] = f"https://www.ebay.com/itm/{listing_id}"

        return AdapterResult.succeeded("Listing refreshed", data)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def sync_business_policies(self) -> AdapterResult:
        """Store the first fulfillment/payment/return policy ids on the connection"""
        return self._execute_account("sync_business_policies", self._sync_business_policies)

    def _sync_business_policies(self) -> AdapterResult:
        params = {"marketplace_id": self.credentials.marketplace_id}
        found: Dict[str, List[Dict[str, Any]]] = {}
        chosen: Dict[str, Optional[str]] = {}

        for kind, list_key, id_key in (
            ("fulfillment", "fulfillmentPolicies", "fulfillmentPolicyId"),
            ("payment", "paymentPolicies", "paymentPolicyId"),
            ("return", "returnPolicies", "returnPolicyId"),
        ):
            body = self._json(self._request("GET", f"{ACCOUNT_PATH}/{kind}_policy", params=params))
            policies = [
                {"id": str(p.get(id_key)), "name": p.get("name")}
                for p in body.get(list_key) or []
            ]
            found[kind] = policies
            current = (self.connection.credentials or {}).get(f"{kind}_policy_id")
            ids = [p["id"] for p in policies]
            chosen[f"{kind}_policy_id"] = current if current in ids else (ids[0] if ids else None)

        credentials = dict(self.connection.credentials or {})
        credentials.update({k: v for k, v in chosen.items() if v})
        credentials["business_policies"] = found
        self.connection.credentials = credentials
        self.credentials = self._load_credentials()
        self._persist_connection()

        missing = [k for k, v in chosen.items() if not v]
        message = "Business policies synced"
        if missing:
            message += f" (missing: {', '.join(missing)})"
        return AdapterResult.succeeded(message, {"policies": found, **chosen})

    def fetch_item_specifics(self, category_id: str) -> AdapterResult:
        return self._execute_account(
            "fetch_item_specifics",
            lambda: self._fetch_item_specifics(category_id),
            category_id=category_id,
        )

    def _fetch_item_specifics(self, category_id: str) -> AdapterResult:
        tree = self._json(self._request(
            "GET", f"{TAXONOMY_PATH}/get_default_category_tree_id",
            params={"marketplace_id": self.credentials.marketplace_id},
        ))
        tree_id = tree.get("categoryTreeId")
        if not tree_id:
            return AdapterResult.failed("eBay did not return a category tree")

        body = self._json(self._request(
            "GET", f"{TAXONOMY_PATH}/category_tree/{tree_id}/get_item_aspects_for_category",
            params={"category_id": category_id},
        ))

        aspects = []
        for aspect in body.get("aspects") or []:
            constraint = aspect.get("aspectConstraint") or {}
            aspects.append({
                "name": aspect.get("localizedAspectName"),
                "required": bool(constraint.get("aspectRequired", False)),
                "mode": constraint.get("aspectMode", "FREE_TEXT"),
                "cardinality": constraint.get("itemToAspectCardinality", "SINGLE"),
                "values": [v.get("localizedValue") for v in aspect.get("aspectValues") or []],
            })

        return AdapterResult.succeeded(
            f"Fetched {len(aspects)} item specifics",
            {"item_specifics": aspects, "category_tree_id": tree_id},
        )
