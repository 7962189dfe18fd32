"""
Listing Store
=============
Persistence contract used by the sync layer, plus a thread-safe in-memory
implementation (used by tests and single-process tools).

Uniqueness rules every implementation enforces:
- one PlatformListing per (product, sales channel)
- one ProductPlatformOverride per (product, connection)
- one CategoryPlatformMapping per (category, connection)
- one TemplatePlatformMapping per (template, platform)
"""

import copy
import itertools
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..exceptions import DuplicateRecordError
from ..schema.models import (
    Category,
    CategoryPlatformMapping,
    MarketplaceConnection,
    PlatformListing,
    Product,
    ProductPlatformOverride,
    ProductTemplate,
    SalesChannel,
    TemplatePlatformMapping,
)


class ListingStore(ABC):
    """CRUD and foreign-key lookups for every record the sync layer touches"""

    # Catalog
    @abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]: ...

    @abstractmethod
    def save_product(self, product: Product) -> Product: ...

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]: ...

    @abstractmethod
    def save_category(self, category: Category) -> Category: ...

    @abstractmethod
    def get_template(self, template_id: int) -> Optional[ProductTemplate]: ...

    @abstractmethod
    def save_template(self, template: ProductTemplate) -> ProductTemplate: ...

    # Channels & connections
    @abstractmethod
    def get_channel(self, channel_id: int) -> Optional[SalesChannel]: ...

    @abstractmethod
    def get_channels_for_store(self, store_id: Optional[int]) -> List[SalesChannel]: ...

    @abstractmethod
    def save_channel(self, channel: SalesChannel) -> SalesChannel: ...

    @abstractmethod
    def get_connection(self, connection_id: int) -> Optional[MarketplaceConnection]: ...

    @abstractmethod
    def save_connection(self, connection: MarketplaceConnection) -> MarketplaceConnection: ...

    # Listings
    @abstractmethod
    def get_listing(self, listing_id: int) -> Optional[PlatformListing]: ...

    @abstractmethod
    def find_listing(self, product_id: int, channel_id: int) -> Optional[PlatformListing]: ...

    @abstractmethod
    def get_listings_for_product(self, product_id: int) -> List[PlatformListing]: ...

    @abstractmethod
    def save_listing(self, listing: PlatformListing) -> PlatformListing: ...

    # Overrides & mappings
    @abstractmethod
    def get_override(self, product_id: int, connection_id: int) -> Optional[ProductPlatformOverride]: ...

    @abstractmethod
    def save_override(self, override: ProductPlatformOverride) -> ProductPlatformOverride: ...

    @abstractmethod
    def get_category_mapping(self, category_id: int, connection_id: int) -> Optional[CategoryPlatformMapping]: ...

    @abstractmethod
    def get_category_mapping_by_id(self, mapping_id: int) -> Optional[CategoryPlatformMapping]: ...

    @abstractmethod
    def get_category_mappings(self, category_id: int) -> List[CategoryPlatformMapping]: ...

    @abstractmethod
    def save_category_mapping(self, mapping: CategoryPlatformMapping) -> CategoryPlatformMapping: ...

    @abstractmethod
    def delete_category_mapping(self, category_id: int, connection_id: int) -> bool: ...

    @abstractmethod
    def get_template_mapping(self, template_id: int, platform: str) -> Optional[TemplatePlatformMapping]: ...

    @abstractmethod
    def save_template_mapping(self, mapping: TemplatePlatformMapping) -> TemplatePlatformMapping: ...

    @abstractmethod
    def transaction(self):
        """Context manager: commit on success, roll back on exception"""


TABLES = (
    "products",
    "categories",
    "templates",
    "channels",
    "connections",
    "listings",
    "overrides",
    "category_mappings",
    "template_mappings",
)


class InMemoryStore(ListingStore):
    """
    Dict-backed store.

    Records are copied on the way in and out, so callers only see changes
    they save. transaction() snapshots every table and restores it when the
    block raises; nested blocks join the outermost one.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[int, Any]] = {name: {} for name in TABLES}
        self._ids = {name: itertools.count(1) for name in TABLES}
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            snapshot = copy.deepcopy(self._tables) if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            except Exception:
                if snapshot is not None:
                    self._tables = snapshot
                raise
            finally:
                self._depth -= 1

    # ------------------------------------------------------------------

    def _get(self, table: str, record_id: Optional[int]):
        with self._lock:
            record = self._tables[table].get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def _find(self, table: str, **criteria) -> List[Any]:
        with self._lock:
            return [
                copy.deepcopy(record)
                for _, record in sorted(self._tables[table].items())
                if all(getattr(record, key) == value for key, value in criteria.items())
            ]

    def _save(self, table: str, record, unique: tuple = ()):
        with self._lock:
            if unique:
                key = tuple(getattr(record, name) for name in unique)
                for existing_id, existing in self._tables[table].items():
                    if existing_id != record.id and tuple(getattr(existing, n) for n in unique) == key:
                        raise DuplicateRecordError(
                            f"{table} already has a record for {dict(zip(unique, key))}"
                        )
            if record.id is None:
                record.id = self._next_id(table)
            self._tables[table][record.id] = copy.deepcopy(record)
            return record

    def _next_id(self, table: str) -> int:
        new_id = next(self._ids[table])
        while new_id in self._tables[table]:
            new_id = next(self._ids[table])
        return new_id

    def _upsert(self, table: str, record, unique: tuple):
        """Adopt the id of the record already holding the unique key"""
        if record.id is None:
            matches = self._find(table, **{name: getattr(record, name) for name in unique})
            if matches:
                record.id = matches[0].id
        return self._save(table, record, unique)

    # Catalog

    def get_product(self, product_id):
        return self._get("products", product_id)

    def save_product(self, product):
        return self._save("products", product)

    def get_category(self, category_id):
        return self._get("categories", category_id)

    def save_category(self, category):
        return self._save("categories", category)

    def get_template(self, template_id):
        return self._get("templates", template_id)

    def save_template(self, template):
        return self._save("templates", template)

    # Channels & connections

    def get_channel(self, channel_id):
        return self._get("channels", channel_id)

    def get_channels_for_store(self, store_id):
        return self._find("channels", store_id=store_id)

    def save_channel(self, channel):
        return self._save("channels", channel)

    def get_connection(self, connection_id):
        return self._get("connections", connection_id)

    def save_connection(self, connection):
        return self._save("connections", connection)

    # Listings

    def get_listing(self, listing_id):
        return self._get("listings", listing_id)

    def find_listing(self, product_id, channel_id):
        matches = self._find("listings", product_id=product_id, sales_channel_id=channel_id)
        return matches[0] if matches else None

    def get_listings_for_product(self, product_id):
        return self._find("listings", product_id=product_id)

    def save_listing(self, listing):
        return self._save("listings", listing, unique=("product_id", "sales_channel_id"))

    # Overrides & mappings

    def get_override(self, product_id, connection_id):
        matches = self._find("overrides", product_id=product_id, connection_id=connection_id)
        return matches[0] if matches else None

    def save_override(self, override):
        return self._upsert("overrides", override, ("product_id", "connection_id"))

    def get_category_mapping(self, category_id, connection_id):
        matches = self._find("category_mappings", category_id=category_id, connection_id=connection_id)
        return matches[0] if matches else None

    def get_category_mapping_by_id(self, mapping_id):
        return self._get("category_mappings", mapping_id)

    def get_category_mappings(self, category_id):
        return self._find("category_mappings", category_id=category_id)

    def save_category_mapping(self, mapping):
        return self._upsert("category_mappings", mapping, ("category_id", "connection_id"))

    def delete_category_mapping(self, category_id, connection_id):
        with self._lock:
            mapping = self.get_category_mapping(category_id, connection_id)
            if mapping is None:
                return False
            del self._tables["category_mappings"][mapping.id]
            return True

    def get_template_mapping(self, template_id, platform):
        matches = self._find("template_mappings", template_id=template_id, platform=platform)
        return matches[0] if matches else None

    def save_template_mapping(self, mapping):
        return self._upsert("template_mappings", mapping, ("template_id", "platform"))
