"""
Field Mapping Service
=====================
Maps store-defined product template fields onto each platform's field
schema.

Two independent concerns:
- Field mappings: template field -> platform field, plus default values for
  required platform fields that have no template counterpart.
- Metafield mappings (Shopify, WooCommerce, BigCommerce): template field ->
  {namespace, key, enabled}. Every non-private template field becomes a
  metafield unless it is excluded or disabled.

Suggestions come from an AI completion call and fall back to exact-name and
alias matching when that call fails. Suggestions are never persisted here;
saving is always a separate call.
"""

import json
import re
from typing import Any, Dict, List, Optional

from . import platform_configs
from ..enhancer.ai_client import AIClient, parse_json_response
from ..schema.models import Product, ProductTemplate, TemplatePlatformMapping
from ..utils.logger import get_logger, log_with_context

logger = get_logger(__name__)

MIN_CONFIDENCE = 0.5
EXACT_CONFIDENCE = 1.0
ALIAS_CONFIDENCE = 0.9

NAME_ALIASES = {
    "title": ["title", "name", "item_name", "productname", "product_name"],
    "description": ["description", "body_html", "product_description", "shortdescription", "longdescription"],
    "brand": ["brand", "brand_name", "vendor", "manufacturer"],
    "color": ["color", "color_name", "primary_color"],
    "size": ["size", "size_name"],
    "material": ["material", "material_type", "materials"],
    "condition": ["condition"],
    "mpn": ["mpn", "part_number", "model_number"],
}

MAPPING_PROMPT = """You are mapping product template fields to platform-specific fields for {platform}.

Template: "{template_name}"
Template Fields:
{template_fields}

Platform: {platform}
Platform Fields:
{platform_fields}

Analyze the template fields and suggest the best mappings to platform fields based on:
1. Field names and labels (semantic similarity)
2. Field types (text to text, number to number, etc.)
3. Common e-commerce conventions

Return ONLY valid JSON in this exact format (no other text):
{{
  "mappings": {{
    "template_field_name": {{"maps_to": "platform_field_name", "confidence": 0.95}}
  }},
  "unmapped_template_fields": ["field_name"],
  "unmapped_required_platform_fields": ["platform_field"]
}}

Rules:
- Map fields with confidence scores from 0.0 to 1.0
- Only include mappings with confidence >= 0.5
- Include all unmapped template fields
- Include all unmapped required platform fields
- Common mappings: title->title, description->description/body_html, brand->brand/vendor"""


def _platform_key(platform: Any) -> str:
    return getattr(platform, "value", platform) or ""


def generate_metafield_key(field_name: str) -> str:
    """snake_case key for a template field name ("Ring Size" -> "ring_size")"""
    key = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", field_name.strip())
    key = re.sub(r"[^0-9a-zA-Z]+", "_", key)
    return key.strip("_").lower()


def infer_metafield_type(value: Any) -> str:
    """Metafield type for a value"""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "number_integer"
    if isinstance(value, float):
        return "number_decimal"
    if isinstance(value, (dict, list)):
        return "json"
    if isinstance(value, str) and re.fullmatch(r"-?\d+(\.\d+)?", value.strip()):
        return "number_decimal" if "." in value else "number_integer"
    return "single_line_text_field"


class FieldMappingService:
    """
    Template -> platform field mapping.

    Usage:
        mapper = FieldMappingService(store)
        suggestion = mapper.suggest_mappings(template, Platform.EBAY)
        mapper.save_mappings(template, Platform.EBAY, {"name": "title"})
        attributes = mapper.transform_attributes(product, Platform.EBAY)
    """

    def __init__(self, store, ai_client: Optional[AIClient] = None):
        """
        Initialize mapper.

        Args:
            store: ListingStore holding templates and template mappings
            ai_client: Completion client for suggestions (defaults to AIClient())
        """
        self.store = store
        self.ai_client = ai_client or AIClient()

    # ------------------------------------------------------------------
    # Platform schema
    # ------------------------------------------------------------------

    def get_platform_fields(self, platform: Any) -> Dict[str, Dict[str, Any]]:
        return {
            name: definition.to_dict()
            for name, definition in platform_configs.get_platform_fields(platform).items()
        }

    def get_required_platform_fields(self, platform: Any) -> List[str]:
        return list(platform_configs.get_required_platform_fields(platform))

    def supports_metafields(self, platform: Any) -> bool:
        return platform_configs.supports_metafields(platform)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def suggest_mappings(self, template: ProductTemplate, platform: Any) -> Dict[str, Any]:
        """
        Suggest template -> platform field mappings.

        Never raises: an AI failure or unparseable reply falls back to
        name/alias matching.

        Returns:
            {"mappings": {template_field: {"maps_to", "confidence"}},
             "unmapped_template_fields": [...],
             "unmapped_required_platform_fields": [...]}
        """
        platform_key = _platform_key(platform)
        platform_fields = self._platform_fields_info(platform_key)
        template_fields = [
            {"name": f.name, "label": f.label, "type": f.type} for f in template.fields
        ]

        if not platform_fields or not template_fields:
            return {
                "mappings": {},
                "unmapped_template_fields": [f["name"] for f in template_fields],
                "unmapped_required_platform_fields": self.get_required_platform_fields(platform_key),
            }

        prompt = MAPPING_PROMPT.format(
            platform=platform_key,
            template_name=template.name,
            template_fields=json.dumps(template_fields, indent=2),
            platform_fields=json.dumps(platform_fields, indent=2),
        )

        try:
            reply = self.ai_client.complete(prompt)
            return self._parse_mapping_response(reply, template_fields, platform_fields)
        except Exception as e:
            log_with_context(
                logger, "WARNING", "AI mapping suggestion failed, using fallback",
                template_id=template.id, platform=platform_key, error=str(e),
            )
            return self.fallback_mappings(template_fields, platform_fields)

    def _platform_fields_info(self, platform_key: str) -> List[Dict[str, Any]]:
        return [
            {
                "name": name,
                "label": definition.label,
                "type": definition.type,
                "required": definition.required,
                "description": definition.description,
            }
            for name, definition in platform_configs.get_platform_fields(platform_key).items()
        ]

    def _parse_mapping_response(
        self,
        reply: str,
        template_fields: List[Dict[str, Any]],
        platform_fields: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        try:
            parsed = parse_json_response(reply)
        except ValueError as e:
            log_with_context(logger, "WARNING", "Failed to parse AI mapping response", error=str(e))
            return self.fallback_mappings(template_fields, platform_fields)

        if not isinstance(parsed, dict) or not isinstance(parsed.get("mappings"), dict):
            log_with_context(logger, "WARNING", "AI mapping response has no mappings")
            return self.fallback_mappings(template_fields, platform_fields)

        template_names = {f["name"] for f in template_fields}
        platform_names = {f["name"] for f in platform_fields}
        mappings = {}
        for template_field, suggestion in parsed["mappings"].items():
            if not isinstance(suggestion, dict):
                continue
            target = suggestion.get("maps_to")
            try:
                confidence = float(suggestion.get("confidence", 0))
            except (TypeError, ValueError):
                continue
            if template_field in template_names and target in platform_names and confidence >= MIN_CONFIDENCE:
                mappings[template_field] = {"maps_to": target, "confidence": confidence}

        return {
            "mappings": mappings,
            "unmapped_template_fields": list(parsed.get("unmapped_template_fields") or []),
            "unmapped_required_platform_fields": list(parsed.get("unmapped_required_platform_fields") or []),
        }

    def fallback_mappings(
        self,
        template_fields: List[Dict[str, Any]],
        platform_fields: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Deterministic suggestion by name.

        Exact (case-insensitive) matches are taken first at confidence 1.0,
        then alias-table matches at 0.9. Each platform field is used once.
        """
        mappings: Dict[str, Dict[str, Any]] = {}
        used_platform_fields = set()

        def match(predicate, confidence):
            for template_field in template_fields:
                name = template_field["name"]
                if name in mappings:
                    continue
                for platform_field in platform_fields:
                    target = platform_field["name"]
                    if target in used_platform_fields:
                        continue
                    if predicate(name.lower(), target.lower()):
                        mappings[name] = {"maps_to": target, "confidence": confidence}
                        used_platform_fields.add(target)
                        break

        match(lambda a, b: a == b, EXACT_CONFIDENCE)
        match(
            lambda a, b: any(a in aliases and b in aliases for aliases in NAME_ALIASES.values()),
            ALIAS_CONFIDENCE,
        )

        required = [f["name"] for f in platform_fields if f.get("required")]
        return {
            "mappings": mappings,
            "unmapped_template_fields": [f["name"] for f in template_fields if f["name"] not in mappings],
            "unmapped_required_platform_fields": [n for n in required if n not in used_platform_fields],
        }

    # ------------------------------------------------------------------
    # Saved field mappings
    # ------------------------------------------------------------------

    def get_mappings(self, template: ProductTemplate, platform: Any) -> Optional[TemplatePlatformMapping]:
        return self.store.get_template_mapping(template.id, _platform_key(platform))

    def save_mappings(
        self,
        template: ProductTemplate,
        platform: Any,
        field_mappings: Dict[str, str],
        default_values: Optional[Dict[str, Any]] = None,
        is_ai_generated: bool = False,
    ) -> TemplatePlatformMapping:
        """Upsert the field mapping; metafield settings are left untouched"""
        mapping = self.get_mappings(template, platform) or TemplatePlatformMapping(
            template_id=template.id, platform=_platform_key(platform)
        )
        mapping.field_mappings = dict(field_mappings)
        mapping.default_values = dict(default_values or {})
        mapping.is_ai_generated = is_ai_generated
        return self.store.save_template_mapping(mapping)

    def transform_attributes(self, product: Product, platform: Any) -> Dict[str, Any]:
        """
        Apply the saved mapping to one product's attribute values.

        Returns:
            Flat platform field -> value map; empty when the product has no
            template or the template has no saved mapping
        """
        if product.template_id is None:
            return {}

        mapping = self.store.get_template_mapping(product.template_id, _platform_key(platform))
        if mapping is None:
            return {}

        template = self.store.get_template(product.template_id)

        transformed: Dict[str, Any] = {}
        for template_field, platform_field in (mapping.field_mappings or {}).items():
            value = product.attribute_values.get(template_field)
            if value is None or value == "":
                continue
            definition = template.get_field(template_field) if template else None
            if definition is not None and definition.options:
                value = definition.option_label(value)
            transformed[platform_field] = value

        for platform_field, default in (mapping.default_values or {}).items():
            if platform_field not in transformed and default is not None:
                transformed[platform_field] = default

        return transformed

    def get_unmapped_required_fields(self, template: ProductTemplate, platform: Any) -> List[str]:
        """Required platform fields with neither a mapped template field nor a default"""
        required = self.get_required_platform_fields(platform)
        mapping = self.get_mappings(template, platform)
        if mapping is None:
            return required

        covered = set((mapping.field_mappings or {}).values()) | set(mapping.default_values or {})
        return [name for name in required if name not in covered]

    # ------------------------------------------------------------------
    # Metafields
    # ------------------------------------------------------------------

    def get_metafield_mappings(self, template: ProductTemplate, platform: Any) -> Dict[str, Dict[str, Any]]:
        mapping = self.get_mappings(template, platform)
        return dict(mapping.metafield_mappings) if mapping else {}

    def save_metafield_mappings(
        self,
        template: ProductTemplate,
        platform: Any,
        metafield_mappings: Dict[str, Dict[str, Any]],
        excluded: Optional[List[str]] = None,
    ) -> TemplatePlatformMapping:
        """
        Save metafield configs, filling in the platform namespace and a
        snake_case key where missing.
        """
        namespace = platform_configs.get_default_metafield_namespace(platform)
        configs = {}
        for field_name, config in metafield_mappings.items():
            config = dict(config)
            config["namespace"] = config.get("namespace") or namespace
            config["key"] = config.get("key") or generate_metafield_key(field_name)
            config.setdefault("enabled", True)
            configs[field_name] = config

        mapping = self.get_mappings(template, platform) or TemplatePlatformMapping(
            template_id=template.id, platform=_platform_key(platform)
        )
        mapping.metafield_mappings = configs
        if excluded is not None:
            mapping.excluded_metafields = list(excluded)
        return self.store.save_template_mapping(mapping)

    def suggest_metafield_mappings(self, template: ProductTemplate, platform: Any) -> Dict[str, Dict[str, Any]]:
        """Default metafield config for every template field not mapped to a standard field"""
        if not self.supports_metafields(platform):
            return {}

        mapping = self.get_mappings(template, platform)
        mapped = set(mapping.field_mappings) if mapping else set()
        existing = mapping.metafield_mappings if mapping else {}
        namespace = platform_configs.get_default_metafield_namespace(platform)

        suggestions = {}
        for template_field in template.fields:
            if template_field.name in mapped:
                continue
            suggestions[template_field.name] = existing.get(template_field.name) or {
                "namespace": namespace,
                "key": generate_metafield_key(template_field.name),
                "enabled": True,
            }
        return suggestions

    def build_metafields(
        self,
        product: Product,
        template: Optional[ProductTemplate],
        platform: Any,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Metafields for every non-private template field with a value.

        Fields mapped to a standard platform field, excluded fields and
        configs with enabled false are skipped. Select values are sent as
        their option labels.
        """
        if template is None:
            return []

        mapping = self.get_mappings(template, platform)
        mapped = set(mapping.field_mappings) if mapping else set()
        configs = mapping.metafield_mappings if mapping else {}
        excluded = set(mapping.excluded_metafields) if mapping else set()
        namespace = platform_configs.get_default_metafield_namespace(platform)
        attributes = attributes or {}

        metafields = []
        for template_field in template.fields:
            name = template_field.name
            if template_field.is_private or name in excluded or name in mapped:
                continue

            config = configs.get(name) or {}
            if config.get("enabled") is False:
                continue

            value = attributes.get(name, product.attribute_values.get(name))
            if value is None or value == "":
                continue
            if template_field.options:
                value = template_field.option_label(value)

            metafields.append({
                "namespace": config.get("namespace") or namespace,
                "key": config.get("key") or name,
                "value": value,
                "type": infer_metafield_type(value),
            })
        return metafields
