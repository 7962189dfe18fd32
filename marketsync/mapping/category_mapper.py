"""
Category Mapping Service
========================
Resolves a product's internal category to a platform category. A category
without its own mapping inherits the nearest mapped ancestor's, so broad
categories can be mapped once and overridden further down the tree.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..schema.models import (
    CategoryPlatformMapping,
    MarketplaceConnection,
    Product,
    ProductTemplate,
)
from ..utils.logger import get_logger, log_with_context

logger = get_logger(__name__)

SYNC_ITEM_SPECIFICS_JOB = "sync_item_specifics"


@dataclass
class ResolvedCategory:
    """External category ids for a product; all None when nothing is mapped"""
    primary_category_id: Optional[str] = None
    secondary_category_id: Optional[str] = None
    mapping: Optional[CategoryPlatformMapping] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_category_id": self.primary_category_id,
            "secondary_category_id": self.secondary_category_id,
            "mapping": self.mapping,
        }


class CategoryMappingService:
    """Category -> platform category mapping with ancestor inheritance"""

    def __init__(self, store, job_dispatcher=None):
        """
        Initialize service.

        Args:
            store: ListingStore holding categories and category mappings
            job_dispatcher: Object with dispatch(job_type, payload); defaults
                to the process-wide job manager
        """
        self.store = store
        self._job_dispatcher = job_dispatcher

    @property
    def job_dispatcher(self):
        if self._job_dispatcher is None:
            from ..workers.job_manager import get_job_manager
            self._job_dispatcher = get_job_manager()
        return self._job_dispatcher

    def resolve_category(self, product: Product, connection: MarketplaceConnection) -> ResolvedCategory:
        """
        Walk from the product's category up through its parents and return
        the first mapping found for this connection.
        """
        category_id = product.category_id
        visited = set()

        while category_id is not None and category_id not in visited:
            visited.add(category_id)

            mapping = self.store.get_category_mapping(category_id, connection.id)
            if mapping is not None:
                return ResolvedCategory(
                    primary_category_id=mapping.primary_category_id,
                    secondary_category_id=mapping.secondary_category_id,
                    mapping=mapping,
                )

            category = self.store.get_category(category_id)
            category_id = category.parent_id if category else None

        return ResolvedCategory()

    def save_mapping(
        self,
        category_id: int,
        connection: MarketplaceConnection,
        primary_category_id: str,
        primary_category_name: Optional[str] = None,
        secondary_category_id: Optional[str] = None,
        secondary_category_name: Optional[str] = None,
        field_mappings: Optional[Dict[str, str]] = None,
        default_values: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CategoryPlatformMapping:
        """
        Upsert the mapping for (category, connection).

        When the platform category changes the cached item specifics are
        dropped. A stale mapping queues an item-specifics sync job; this call
        does not wait for it.
        """
        mapping = self.store.get_category_mapping(category_id, connection.id)
        if mapping is None:
            mapping = CategoryPlatformMapping(category_id=category_id, connection_id=connection.id)
        elif mapping.primary_category_id != primary_category_id:
            mapping.item_specifics = []
            mapping.item_specifics_synced_at = None

        mapping.primary_category_id = primary_category_id
        mapping.primary_category_name = primary_category_name
        mapping.secondary_category_id = secondary_category_id
        mapping.secondary_category_name = secondary_category_name
        if field_mappings is not None:
            mapping.field_mappings = dict(field_mappings)
        if default_values is not None:
            mapping.default_values = dict(default_values)
        if metadata is not None:
            mapping.metadata = dict(metadata)

        mapping = self.store.save_category_mapping(mapping)

        if mapping.needs_item_specifics_sync(connection.platform):
            try:
                self.job_dispatcher.dispatch(SYNC_ITEM_SPECIFICS_JOB, {"mapping_id": mapping.id})
            except Exception as e:
                # The mapping is saved either way; the sync is retried on the next save
                log_with_context(
                    logger, "WARNING", "Could not queue item specifics sync",
                    mapping_id=mapping.id, category_id=category_id,
                    marketplace_id=connection.id, error=str(e),
                )
                return mapping
            log_with_context(
                logger, "INFO", "Queued item specifics sync",
                mapping_id=mapping.id, category_id=category_id,
                marketplace_id=connection.id, platform_category_id=primary_category_id,
            )

        return mapping

    def get_mappings_for_category(self, category_id: int) -> List[CategoryPlatformMapping]:
        return self.store.get_category_mappings(category_id)

    def delete_mapping(self, category_id: int, connection: MarketplaceConnection) -> bool:
        """Returns True when a mapping existed"""
        return self.store.delete_category_mapping(category_id, connection.id)

    def build_aspects(
        self,
        product: Product,
        mapping: Optional[CategoryPlatformMapping],
        template: Optional[ProductTemplate] = None,
    ) -> Dict[str, List[Any]]:
        """
        Category-level aspects for a product.

        field_mappings pulls values from template fields (select values as
        their labels); default_values fill aspects that are still empty.
        """
        if mapping is None:
            return {}

        aspects: Dict[str, List[Any]] = {}
        for aspect, template_field in (mapping.field_mappings or {}).items():
            value = product.attribute_values.get(template_field)
            if value is None or value == "":
                continue
            definition = template.get_field(template_field) if template else None
            if definition is not None and definition.options:
                value = definition.option_label(value)
            aspects[aspect] = value if isinstance(value, list) else [value]

        for aspect, default in (mapping.default_values or {}).items():
            if aspect not in aspects and default not in (None, ""):
                aspects[aspect] = default if isinstance(default, list) else [default]

        return aspects
