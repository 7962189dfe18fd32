"""
Listing Builder Service
=======================
Computes exactly what gets sent to a marketplace, without sending it.

Pipeline:
1. Base product data (first variant, images, identifiers)
2. Per-connection ProductPlatformOverride
3. Template attributes through the saved field mapping
4. Platform-specific shape (title limits, renamed keys, item specifics,
   metafields)

validate_listing reports hard errors and non-blocking warnings;
preview_listing returns both the payload and its validation.
"""

from typing import Any, Dict, List, Optional

from ..exceptions import ListingValidationError
from ..mapping.category_mapper import CategoryMappingService
from ..mapping.field_mapper import FieldMappingService
from ..schema.credentials import EbayCredentials
from ..schema.models import (
    MarketplaceConnection,
    Platform,
    PlatformListing,
    Product,
    ProductPlatformOverride,
)

EBAY_TITLE_LIMIT = 80
ETSY_TITLE_LIMIT = 140
WALMART_SHORT_DESCRIPTION_LIMIT = 1000

EBAY_CONDITIONS = {
    "new": 1000,
    "new_with_tags": 1000,
    "new with tags": 1000,
    "new_without_tags": 1500,
    "new without tags": 1500,
    "new_with_defects": 1750,
    "new with defects": 1750,
    "refurbished": 2000,
    "manufacturer_refurbished": 2000,
    "certified_refurbished": 2000,
    "seller_refurbished": 2500,
    "like_new": 2750,
    "like new": 2750,
    "excellent": 2750,
    "very_good": 3000,
    "very good": 3000,
    "good": 4000,
    "acceptable": 5000,
    "pre_owned": 3000,
    "pre-owned": 3000,
    "used": 3000,
    "for_parts": 7000,
    "for parts": 7000,
}
EBAY_DEFAULT_CONDITION = 3000

AMAZON_CONDITIONS = {
    "new": "new_new",
    "like_new": "used_like_new",
    "very_good": "used_very_good",
    "good": "used_good",
    "acceptable": "used_acceptable",
    "refurbished": "refurbished_refurbished",
    "used": "used_good",
}

# Platforms whose listings are placed in a marketplace category
CATEGORY_PLATFORMS = {Platform.EBAY, Platform.ETSY, Platform.WALMART}


def truncate(text: str, limit: int) -> str:
    """Cut to limit characters, ending in "..." when cut"""
    if text is None or len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


def map_ebay_condition(condition: Optional[str]) -> int:
    return EBAY_CONDITIONS.get((condition or "new").strip().lower(), EBAY_DEFAULT_CONDITION)


class ListingBuilderService:
    """
    Builds and validates outbound listing payloads.

    No network calls are made here; adapters turn the payload into each
    platform's wire format.
    """

    def __init__(
        self,
        store,
        field_mapper: Optional[FieldMappingService] = None,
        category_mapper: Optional[CategoryMappingService] = None,
    ):
        self.store = store
        self.field_mapper = field_mapper or FieldMappingService(store)
        self.category_mapper = category_mapper or CategoryMappingService(store)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build_listing(self, product: Product, connection: Optional[MarketplaceConnection]) -> Dict[str, Any]:
        """
        Assemble the full payload for a product on a connection.

        Args:
            product: Product to list
            connection: Target marketplace connection (None for in-store)

        Returns:
            Payload dict; base keys plus the platform's own keys
        """
        platform = connection.platform_enum if connection else Platform.LOCAL
        listing = self.get_base_product_data(product)

        if connection is not None:
            resolved = self.category_mapper.resolve_category(product, connection)
            listing["platform_category_id"] = resolved.primary_category_id
            listing["secondary_category_id"] = resolved.secondary_category_id
            listing["_category_mapping"] = resolved.mapping

            override = self.get_override(product, connection)
            if override is not None:
                listing = self.apply_overrides(listing, override)

            listing["attributes"].update(self.field_mapper.transform_attributes(product, platform))

        listing = self.apply_platform_transformations(listing, platform, product)
        listing.pop("_category_mapping", None)
        return listing

    def get_base_product_data(self, product: Product) -> Dict[str, Any]:
        variant = product.first_variant
        category = self.store.get_category(product.category_id) if product.category_id else None

        return {
            "title": product.title,
            "description": product.description,
            "price": variant.price if variant else None,
            "compare_at_price": variant.compare_at_price if variant else None,
            "quantity": variant.quantity if variant else 0,
            "sku": variant.sku if variant else None,
            "barcode": variant.barcode if variant else None,
            "weight": variant.weight if variant and variant.weight is not None else product.weight,
            "weight_unit": product.weight_unit or "lb",
            "images": product.image_urls(),
            "condition": product.condition or "new",
            "brand": product.brand,
            "category": category.name if category else None,
            "upc": product.upc,
            "ean": product.ean,
            "mpn": product.mpn,
            "handle": product.handle,
            "tags": list(product.tags),
            "attributes": {},
            "platform_category_id": None,
            "secondary_category_id": None,
        }

    def apply_overrides(self, listing: Dict[str, Any], override: ProductPlatformOverride) -> Dict[str, Any]:
        """
        Override fields replace base values when set. Price, compare-at
        price and quantity are set whenever not None, so 0 is an override.
        """
        if override.title:
            listing["title"] = override.title
        if override.description:
            listing["description"] = override.description
        if override.price is not None:
            listing["price"] = override.price
        if override.compare_at_price is not None:
            listing["compare_at_price"] = override.compare_at_price
        if override.quantity is not None:
            listing["quantity"] = override.quantity
        if override.category_id:
            listing["platform_category_id"] = override.category_id
        if override.attributes:
            listing["attributes"] = {**listing.get("attributes", {}), **override.attributes}
        return listing

    def apply_platform_transformations(
        self, listing: Dict[str, Any], platform: Optional[Platform], product: Product
    ) -> Dict[str, Any]:
        transforms = {
            Platform.EBAY: self._transform_for_ebay,
            Platform.SHOPIFY: self._transform_for_shopify,
            Platform.AMAZON: self._transform_for_amazon,
            Platform.ETSY: self._transform_for_etsy,
            Platform.WALMART: self._transform_for_walmart,
            Platform.WOOCOMMERCE: self._transform_for_woocommerce,
            Platform.BIGCOMMERCE: self._transform_for_bigcommerce,
        }
        transform = transforms.get(platform)
        return transform(listing, product) if transform else listing

    def _template(self, product: Product):
        return self.store.get_template(product.template_id) if product.template_id else None

    def _transform_for_ebay(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        listing["title"] = truncate(listing["title"] or "", EBAY_TITLE_LIMIT)
        listing["condition_id"] = map_ebay_condition(listing.get("condition"))

        category_aspects = self.category_mapper.build_aspects(
            product, listing.get("_category_mapping"), self._template(product)
        )
        for name, values in category_aspects.items():
            listing["attributes"].setdefault(name, values[0] if len(values) == 1 else values)

        listing["item_specifics"] = [
            {"Name": name.replace("_", " ")[:1].upper() + name.replace("_", " ")[1:], "Value": value}
            for name, value in listing["attributes"].items()
            if value is not None and value != ""
        ]

        aspects = {
            spec["Name"]: spec["Value"] if isinstance(spec["Value"], list) else [spec["Value"]]
            for spec in listing["item_specifics"]
        }
        aspects.update(category_aspects)
        listing["aspects"] = aspects
        return listing

    def _transform_for_shopify(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        listing["body_html"] = listing["description"]
        listing["vendor"] = listing.get("brand")
        listing["product_type"] = listing.get("category")
        listing["metafields"] = self.field_mapper.build_metafields(
            product, self._template(product), Platform.SHOPIFY, listing["attributes"]
        )
        return listing

    def _transform_for_amazon(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        listing["item_name"] = listing["title"]
        listing["product_description"] = listing["description"]
        listing["brand_name"] = listing.get("brand") or "Unbranded"
        condition = (listing.get("condition") or "new").strip().lower()
        listing["condition_type"] = AMAZON_CONDITIONS.get(condition, "used_good")
        return listing

    def _transform_for_etsy(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        listing["title"] = truncate(listing["title"] or "", ETSY_TITLE_LIMIT)

        materials = listing["attributes"].get("material")
        if materials in (None, ""):
            listing["materials"] = []
        elif isinstance(materials, list):
            listing["materials"] = materials
        else:
            listing["materials"] = [m.strip() for m in str(materials).split(",") if m.strip()]

        listing["who_made"] = listing.get("who_made") or "someone_else"
        listing["when_made"] = listing.get("when_made") or (
            "made_to_order" if listing.get("condition") == "new" else "2020_2026"
        )
        return listing

    def _transform_for_walmart(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        description = listing.get("description") or ""
        listing["productName"] = listing["title"]
        listing["shortDescription"] = description[:WALMART_SHORT_DESCRIPTION_LIMIT]
        listing["longDescription"] = description
        listing["mainImageUrl"] = listing["images"][0] if listing["images"] else None
        listing["additionalImageUrls"] = listing["images"][1:]
        return listing

    def _transform_for_woocommerce(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        listing["name"] = listing["title"]
        listing["short_description"] = (listing.get("description") or "")[:400]
        listing["metafields"] = self.field_mapper.build_metafields(
            product, self._template(product), Platform.WOOCOMMERCE, listing["attributes"]
        )
        return listing

    def _transform_for_bigcommerce(self, listing: Dict[str, Any], product: Product) -> Dict[str, Any]:
        listing["name"] = listing["title"]
        listing["brand_name"] = listing.get("brand")
        listing["metafields"] = self.field_mapper.build_metafields(
            product, self._template(product), Platform.BIGCOMMERCE, listing["attributes"]
        )
        return listing

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_listing(self, product: Product, connection: Optional[MarketplaceConnection]) -> Dict[str, Any]:
        """
        Check a product against base and platform requirements.

        Returns:
            {"valid": bool, "errors": [...], "warnings": [...]}; every error
            is reported, not just the first
        """
        errors: List[str] = []
        warnings: List[str] = []
        platform = connection.platform_enum if connection else Platform.LOCAL
        override = self.get_override(product, connection) if connection is not None else None

        # Checked after overrides, before platform reshaping
        data = self.get_base_product_data(product)
        if override is not None:
            data = self.apply_overrides(data, override)

        if not data["title"]:
            errors.append("Product title is required")
        if not data["images"]:
            errors.append("At least one product image is required")
        if not data["price"]:
            errors.append("Product price is required")

        if platform == Platform.LOCAL:
            return {"valid": not errors, "errors": errors, "warnings": warnings}

        template = self._template(product)
        if template is not None:
            for field_name in self.field_mapper.get_unmapped_required_fields(template, platform):
                warnings.append(f"Required platform field '{field_name}' is not mapped")
        else:
            warnings.append("Product has no template - platform attributes cannot be mapped")

        if platform in CATEGORY_PLATFORMS:
            resolved = self.category_mapper.resolve_category(product, connection)
            if not resolved.primary_category_id and not (override and override.category_id):
                warnings.append(f"No {platform.display_name} category mapping found for this product")

        validators = {
            Platform.EBAY: self._validate_ebay,
            Platform.SHOPIFY: self._validate_shopify,
            Platform.AMAZON: self._validate_amazon,
            Platform.ETSY: self._validate_etsy,
            Platform.WALMART: self._validate_walmart,
        }
        validator = validators.get(platform)
        if validator:
            validator(data, product, connection, errors, warnings)

        return {"valid": not errors, "errors": errors, "warnings": warnings}

    def _validate_ebay(self, data, product, connection, errors, warnings):
        credentials = EbayCredentials.from_connection(connection)
        if not credentials.fulfillment_policy_id:
            warnings.append("eBay fulfillment policy not configured")
        if not credentials.payment_policy_id:
            warnings.append("eBay payment policy not configured")
        if not credentials.return_policy_id:
            warnings.append("eBay return policy not configured")
        if data["title"] and len(data["title"]) > EBAY_TITLE_LIMIT:
            warnings.append("eBay title will be truncated to 80 characters")

    def _validate_shopify(self, data, product, connection, errors, warnings):
        if not product.handle:
            warnings.append("Product handle not set - will be auto-generated")

    def _validate_amazon(self, data, product, connection, errors, warnings):
        if not data["brand"]:
            warnings.append("Amazon strongly recommends a brand name")
        if not product.upc and not product.ean:
            warnings.append("Amazon may require UPC or EAN for this category")

    def _validate_etsy(self, data, product, connection, errors, warnings):
        if data["title"] and len(data["title"]) > ETSY_TITLE_LIMIT:
            warnings.append("Etsy title will be truncated to 140 characters")
        warnings.append('Review "Who made it" and "When made" values before publishing to Etsy')

    def _validate_walmart(self, data, product, connection, errors, warnings):
        if not data["brand"]:
            errors.append("Brand is required for Walmart listings")
        if product.category_id is None:
            warnings.append("Walmart category mapping is recommended")

    def ensure_valid(self, product: Product, connection: Optional[MarketplaceConnection]) -> Dict[str, Any]:
        """
        Raises:
            ListingValidationError: With every hard error when invalid
        """
        validation = self.validate_listing(product, connection)
        if not validation["valid"]:
            raise ListingValidationError(validation["errors"], validation["warnings"])
        return validation

    def preview_listing(self, product: Product, connection: Optional[MarketplaceConnection]) -> Dict[str, Any]:
        """Dry run: {"listing": payload, "validation": {...}}"""
        return {
            "listing": self.build_listing(product, connection),
            "validation": self.validate_listing(product, connection),
        }

    # ------------------------------------------------------------------
    # Overrides & listing lookups
    # ------------------------------------------------------------------

    def get_override(self, product: Product, connection: MarketplaceConnection) -> Optional[ProductPlatformOverride]:
        return self.store.get_override(product.id, connection.id)

    def save_override(
        self, product: Product, connection: MarketplaceConnection, **values
    ) -> ProductPlatformOverride:
        """
        Upsert the override for (product, connection). Only the given fields
        change; pass None to clear one.
        """
        override = self.get_override(product, connection) or ProductPlatformOverride(
            product_id=product.id, connection_id=connection.id
        )
        for name, value in values.items():
            if not hasattr(override, name) or name in ("id", "product_id", "connection_id"):
                raise ValueError(f"Unknown override field '{name}'")
            setattr(override, name, value)
        return self.store.save_override(override)

    def get_existing_listing(self, product: Product, channel_id: int) -> Optional[PlatformListing]:
        return self.store.find_listing(product.id, channel_id)

    def get_product_listings(self, product: Product) -> List[PlatformListing]:
        return self.store.get_listings_for_product(product.id)
