"""
Platform Field Schemas
======================
Per-platform field definitions (label, type, required flag, and whether the
field is a standard field, an item specific or a platform attribute), plus
the platforms that accept arbitrary metafields.

The definitions live in data/platform_fields.json and are loaded once into
read-only structures.
"""

import json
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

SCHEMA_FILE = Path(__file__).resolve().parent.parent / "data" / "platform_fields.json"


class FieldKind(Enum):
    """Where a platform field lands in the outbound payload"""
    STANDARD = "standard"
    ITEM_SPECIFIC = "item_specific"
    ATTRIBUTE = "attribute"


@dataclass(frozen=True)
class PlatformField:
    name: str
    label: str
    type: str
    required: bool = False
    description: str = ""
    kind: FieldKind = FieldKind.STANDARD

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "type": self.type,
            "required": self.required,
            "description": self.description,
            "field_type": self.kind.value,
        }


@dataclass(frozen=True)
class MetafieldSupport:
    namespace: str = "custom"
    supports_custom: bool = True


def _key(platform: Any) -> str:
    return getattr(platform, "value", platform) or ""


@lru_cache(maxsize=1)
def load_schema(path: Optional[str] = None):
    """
    Read the schema file once.

    Returns:
        (fields, metafield_platforms) as nested read-only mappings
    """
    with open(path or SCHEMA_FILE, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    fields = {}
    for platform, definitions in raw.get("fields", {}).items():
        fields[platform] = MappingProxyType({
            name: PlatformField(
                name=name,
                label=spec.get("label", name),
                type=spec.get("type", "text"),
                required=bool(spec.get("required", False)),
                description=spec.get("description", ""),
                kind=FieldKind(spec.get("field_type", "standard")),
            )
            for name, spec in definitions.items()
        })

    metafields = {
        platform: MetafieldSupport(spec.get("namespace", "custom"), bool(spec.get("supports_custom", True)))
        for platform, spec in raw.get("metafield_platforms", {}).items()
    }
    return MappingProxyType(fields), MappingProxyType(metafields)


def get_platform_fields(platform: Any) -> Mapping[str, PlatformField]:
    """Field definitions for a platform (empty for unknown platforms)"""
    fields, _ = load_schema()
    return fields.get(_key(platform), MappingProxyType({}))


def get_required_platform_fields(platform: Any) -> Mapping[str, PlatformField]:
    return {n: f for n, f in get_platform_fields(platform).items() if f.required}


def get_optional_platform_fields(platform: Any) -> Mapping[str, PlatformField]:
    return {n: f for n, f in get_platform_fields(platform).items() if not f.required}


def supports_metafields(platform: Any) -> bool:
    _, metafields = load_schema()
    support = metafields.get(_key(platform))
    return bool(support and support.supports_custom)


def get_default_metafield_namespace(platform: Any) -> str:
    _, metafields = load_schema()
    support = metafields.get(_key(platform))
    return support.namespace if support else "custom"
