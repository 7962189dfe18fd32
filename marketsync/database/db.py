"""
PostgreSQL Listing Store
========================
ListingStore backed by PostgreSQL through a shared psycopg2 connection
pool. JSON maps (credentials, settings, platform_data, mappings) are JSONB
columns.

Each call outside a transaction borrows a pooled connection, commits and
returns it. Inside transaction() every call on the same thread shares one
connection, committed once at the end or rolled back on exception.
"""

import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

import psycopg2
import psycopg2.extras
import psycopg2.pool

from .store import ListingStore
from ..config import Config
from ..exceptions import DuplicateRecordError
from ..schema.models import (
    Category,
    CategoryPlatformMapping,
    MarketplaceConnection,
    PlatformListing,
    Product,
    ProductImage,
    ProductPlatformOverride,
    ProductTemplate,
    ProductVariant,
    SalesChannel,
    TemplateField,
    TemplatePlatformMapping,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    parent_id INTEGER REFERENCES categories(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS product_templates (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS product_template_fields (
    id SERIAL PRIMARY KEY,
    template_id INTEGER NOT NULL REFERENCES product_templates(id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0,
    name TEXT NOT NULL,
    label TEXT,
    type TEXT NOT NULL DEFAULT 'text',
    is_private BOOLEAN NOT NULL DEFAULT FALSE,
    options JSONB NOT NULL DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS products (
    id SERIAL PRIMARY KEY,
    store_id INTEGER,
    title TEXT NOT NULL,
    description TEXT,
    category_id INTEGER REFERENCES categories(id) ON DELETE SET NULL,
    template_id INTEGER REFERENCES product_templates(id) ON DELETE SET NULL,
    handle TEXT,
    brand TEXT,
    condition TEXT,
    upc TEXT,
    ean TEXT,
    mpn TEXT,
    weight NUMERIC,
    weight_unit TEXT NOT NULL DEFAULT 'lb',
    tags JSONB NOT NULL DEFAULT '[]',
    legacy_images JSONB NOT NULL DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS product_variants (
    id SERIAL PRIMARY KEY,
    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0,
    sku TEXT,
    price NUMERIC,
    quantity INTEGER NOT NULL DEFAULT 0,
    barcode TEXT,
    compare_at_price NUMERIC,
    weight NUMERIC,
    options JSONB NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS product_images (
    id SERIAL PRIMARY KEY,
    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    url TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    alt TEXT
);

CREATE TABLE IF NOT EXISTS product_attribute_values (
    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    field_name TEXT NOT NULL,
    value JSONB,
    PRIMARY KEY (product_id, field_name)
);

CREATE TABLE IF NOT EXISTS marketplace_connections (
    id SERIAL PRIMARY KEY,
    platform TEXT NOT NULL,
    store_id INTEGER,
    name TEXT,
    access_token TEXT,
    refresh_token TEXT,
    token_expires_at TIMESTAMP,
    credentials JSONB NOT NULL DEFAULT '{}',
    settings JSONB NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'pending',
    shop_domain TEXT,
    external_store_id TEXT,
    last_sync_at TIMESTAMP,
    last_error TEXT
);

CREATE TABLE IF NOT EXISTS sales_channels (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    store_id INTEGER,
    is_local BOOLEAN NOT NULL DEFAULT FALSE,
    connection_id INTEGER REFERENCES marketplace_connections(id) ON DELETE SET NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    settings JSONB NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS platform_listings (
    id SERIAL PRIMARY KEY,
    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    sales_channel_id INTEGER NOT NULL REFERENCES sales_channels(id) ON DELETE CASCADE,
    connection_id INTEGER REFERENCES marketplace_connections(id) ON DELETE SET NULL,
    external_listing_id TEXT,
    listing_url TEXT,
    status TEXT NOT NULL DEFAULT 'draft',
    platform_price NUMERIC,
    platform_quantity INTEGER,
    platform_data JSONB NOT NULL DEFAULT '{}',
    last_synced_at TIMESTAMP,
    published_at TIMESTAMP,
    last_error TEXT,
    UNIQUE (product_id, sales_channel_id)
);

CREATE TABLE IF NOT EXISTS product_platform_overrides (
    id SERIAL PRIMARY KEY,
    product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    connection_id INTEGER NOT NULL REFERENCES marketplace_connections(id) ON DELETE CASCADE,
    title TEXT,
    description TEXT,
    price NUMERIC,
    compare_at_price NUMERIC,
    quantity INTEGER,
    category_id TEXT,
    attributes JSONB NOT NULL DEFAULT '{}',
    UNIQUE (product_id, connection_id)
);

CREATE TABLE IF NOT EXISTS category_platform_mappings (
    id SERIAL PRIMARY KEY,
    category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    connection_id INTEGER NOT NULL REFERENCES marketplace_connections(id) ON DELETE CASCADE,
    primary_category_id TEXT,
    primary_category_name TEXT,
    secondary_category_id TEXT,
    secondary_category_name TEXT,
    field_mappings JSONB NOT NULL DEFAULT '{}',
    default_values JSONB NOT NULL DEFAULT '{}',
    item_specifics JSONB NOT NULL DEFAULT '[]',
    item_specifics_synced_at TIMESTAMP,
    metadata JSONB NOT NULL DEFAULT '{}',
    UNIQUE (category_id, connection_id)
);

CREATE TABLE IF NOT EXISTS template_platform_mappings (
    id SERIAL PRIMARY KEY,
    template_id INTEGER NOT NULL REFERENCES product_templates(id) ON DELETE CASCADE,
    platform TEXT NOT NULL,
    field_mappings JSONB NOT NULL DEFAULT '{}',
    default_values JSONB NOT NULL DEFAULT '{}',
    metafield_mappings JSONB NOT NULL DEFAULT '{}',
    excluded_metafields JSONB NOT NULL DEFAULT '[]',
    is_ai_generated BOOLEAN NOT NULL DEFAULT FALSE,
    UNIQUE (template_id, platform)
);

CREATE INDEX IF NOT EXISTS idx_platform_listings_product ON platform_listings(product_id);
CREATE INDEX IF NOT EXISTS idx_sales_channels_store ON sales_channels(store_id);
"""


# Global connection pool - shared across all PostgresStore instances
_connection_pool = None


def _get_connection_pool():
    """Get or create global connection pool"""
    global _connection_pool
    if _connection_pool is None:
        Config.validate(require_database=True)
        logger.info("Creating PostgreSQL connection pool")
        _connection_pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=1,
            maxconn=20,
            dsn=Config.DATABASE_URL,
            connect_timeout=10,
        )
    return _connection_pool


def _num(value) -> Optional[float]:
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


def _json(value):
    return psycopg2.extras.Json(value)


class PostgresStore(ListingStore):
    """PostgreSQL ListingStore using the shared connection pool"""

    def __init__(self, pool=None):
        """
        Args:
            pool: psycopg2 connection pool (defaults to the global pool
                built from DATABASE_URL)
        """
        self.cursor_factory = psycopg2.extras.RealDictCursor
        self.pool = pool or _get_connection_pool()
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Connections & transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["PostgresStore"]:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            # Nested block joins the outer transaction
            yield self
            return

        conn = self.pool.getconn()
        self._local.conn = conn
        try:
            yield self
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            self.pool.putconn(conn)

    @contextmanager
    def _cursor(self):
        """Cursor on the transaction's connection, or on a pooled one committed after use"""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            cursor = conn.cursor(cursor_factory=self.cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()
            return

        conn = self.pool.getconn()
        try:
            cursor = conn.cursor(cursor_factory=self.cursor_factory)
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()
        finally:
            self.pool.putconn(conn)

    def create_tables(self) -> None:
        """Create every table the store uses (idempotent)"""
        with self._cursor() as cursor:
            cursor.execute(SCHEMA)
        logger.info("PostgreSQL listing tables ready")

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Dict[str, Any]]:
        with self._cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def _fetch_all(self, sql: str, params: tuple) -> List[Dict[str, Any]]:
        with self._cursor() as cursor:
            cursor.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]

    def _write(
        self,
        cursor,
        table: str,
        record_id: Optional[int],
        values: Dict[str, Any],
        conflict: Optional[str] = None,
    ) -> int:
        """
        Insert or update one row and return its id.

        A known id updates in place; otherwise conflict (a unique column
        list) turns the insert into an upsert.
        """
        columns = list(values)
        params = [values[c] for c in columns]
        if record_id is not None:
            columns = ["id"] + columns
            params = [record_id] + params
            conflict = "id"

        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join(['%s'] * len(columns))})"
        if conflict:
            updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in values)
            sql += f" ON CONFLICT ({conflict}) DO UPDATE SET {updates}"
        sql += " RETURNING id"

        try:
            cursor.execute(sql, tuple(params))
        except psycopg2.IntegrityError as e:
            raise DuplicateRecordError(f"{table}: {e}") from e
        return cursor.fetchone()["id"]

    def _save(self, table: str, record, values: Dict[str, Any], conflict: Optional[str] = None):
        with self._cursor() as cursor:
            record.id = self._write(cursor, table, record.id, values, conflict)
        return record

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def get_product(self, product_id):
        row = self._fetch_one("SELECT * FROM products WHERE id = %s", (product_id,))
        if row is None:
            return None

        variants = self._fetch_all(
            "SELECT * FROM product_variants WHERE product_id = %s ORDER BY position, id", (product_id,)
        )
        images = self._fetch_all(
            "SELECT * FROM product_images WHERE product_id = %s ORDER BY position, id", (product_id,)
        )
        values = self._fetch_all(
            "SELECT field_name, value FROM product_attribute_values WHERE product_id = %s", (product_id,)
        )

        return Product(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            store_id=row["store_id"],
            category_id=row["category_id"],
            template_id=row["template_id"],
            handle=row["handle"],
            brand=row["brand"],
            condition=row["condition"],
            upc=row["upc"],
            ean=row["ean"],
            mpn=row["mpn"],
            weight=_num(row["weight"]),
            weight_unit=row["weight_unit"] or "lb",
            tags=row["tags"] or [],
            legacy_images=row["legacy_images"] or [],
            images=[ProductImage(url=i["url"], position=i["position"], alt=i["alt"]) for i in images],
            variants=[
                ProductVariant(
                    id=v["id"],
                    sku=v["sku"],
                    price=_num(v["price"]),
                    quantity=v["quantity"] or 0,
                    barcode=v["barcode"],
                    compare_at_price=_num(v["compare_at_price"]),
                    weight=_num(v["weight"]),
                    options=v["options"] or {},
                )
                for v in variants
            ],
            attribute_values={v["field_name"]: v["value"] for v in values},
        )

    def save_product(self, product):
        """Product row plus its variants, images and attribute values"""
        with self._cursor() as cursor:
            product.id = self._write(cursor, "products", product.id, {
                "store_id": product.store_id,
                "title": product.title,
                "description": product.description,
                "category_id": product.category_id,
                "template_id": product.template_id,
                "handle": product.handle,
                "brand": product.brand,
                "condition": product.condition,
                "upc": product.upc,
                "ean": product.ean,
                "mpn": product.mpn,
                "weight": product.weight,
                "weight_unit": product.weight_unit,
                "tags": _json(product.tags),
                "legacy_images": _json(product.legacy_images),
            })

            kept = []
            for position, variant in enumerate(product.variants):
                variant.id = self._write(cursor, "product_variants", variant.id, {
                    "product_id": product.id,
                    "position": position,
                    "sku": variant.sku,
                    "price": variant.price,
                    "quantity": variant.quantity,
                    "barcode": variant.barcode,
                    "compare_at_price": variant.compare_at_price,
                    "weight": variant.weight,
                    "options": _json(variant.options),
                })
                kept.append(variant.id)
            cursor.execute(
                "DELETE FROM product_variants WHERE product_id = %s AND NOT (id = ANY(%s))",
                (product.id, kept),
            )

            cursor.execute("DELETE FROM product_images WHERE product_id = %s", (product.id,))
            for image in product.images:
                cursor.execute(
                    "INSERT INTO product_images (product_id, url, position, alt) VALUES (%s, %s, %s, %s)",
                    (product.id, image.url, image.position, image.alt),
                )

            cursor.execute("DELETE FROM product_attribute_values WHERE product_id = %s", (product.id,))
            for field_name, value in product.attribute_values.items():
                cursor.execute(
                    "INSERT INTO product_attribute_values (product_id, field_name, value) VALUES (%s, %s, %s)",
                    (product.id, field_name, _json(value)),
                )
        return product

    def get_category(self, category_id):
        row = self._fetch_one("SELECT * FROM categories WHERE id = %s", (category_id,))
        return Category(id=row["id"], name=row["name"], parent_id=row["parent_id"]) if row else None

    def save_category(self, category):
        return self._save("categories", category, {"name": category.name, "parent_id": category.parent_id})

    def get_template(self, template_id):
        row = self._fetch_one("SELECT * FROM product_templates WHERE id = %s", (template_id,))
        if row is None:
            return None
        fields = self._fetch_all(
            "SELECT * FROM product_template_fields WHERE template_id = %s ORDER BY position, id", (template_id,)
        )
        return ProductTemplate(
            id=row["id"],
            name=row["name"],
            fields=[
                TemplateField(
                    id=f["id"],
                    name=f["name"],
                    label=f["label"] or "",
                    type=f["type"],
                    is_private=f["is_private"],
                    options=f["options"] or [],
                )
                for f in fields
            ],
        )

    def save_template(self, template):
        with self._cursor() as cursor:
            template.id = self._write(cursor, "product_templates", template.id, {"name": template.name})
            kept = []
            for position, template_field in enumerate(template.fields):
                template_field.id = self._write(cursor, "product_template_fields", template_field.id, {
                    "template_id": template.id,
                    "position": position,
                    "name": template_field.name,
                    "label": template_field.label,
                    "type": template_field.type,
                    "is_private": template_field.is_private,
                    "options": _json(template_field.options),
                })
                kept.append(template_field.id)
            cursor.execute(
                "DELETE FROM product_template_fields WHERE template_id = %s AND NOT (id = ANY(%s))",
                (template.id, kept),
            )
        return template

    # ------------------------------------------------------------------
    # Channels & connections
    # ------------------------------------------------------------------

    @staticmethod
    def _channel(row) -> SalesChannel:
        return SalesChannel(
            id=row["id"],
            name=row["name"],
            type=row["type"],
            store_id=row["store_id"],
            is_local=row["is_local"],
            connection_id=row["connection_id"],
            is_active=row["is_active"],
            settings=row["settings"] or {},
        )

    def get_channel(self, channel_id):
        row = self._fetch_one("SELECT * FROM sales_channels WHERE id = %s", (channel_id,))
        return self._channel(row) if row else None

    def get_channels_for_store(self, store_id):
        rows = self._fetch_all("SELECT * FROM sales_channels WHERE store_id = %s ORDER BY id", (store_id,))
        return [self._channel(row) for row in rows]

    def save_channel(self, channel):
        return self._save("sales_channels", channel, {
            "name": channel.name,
            "type": channel.type,
            "store_id": channel.store_id,
            "is_local": channel.is_local,
            "connection_id": channel.connection_id,
            "is_active": channel.is_active,
            "settings": _json(channel.settings),
        })

    def get_connection(self, connection_id):
        row = self._fetch_one("SELECT * FROM marketplace_connections WHERE id = %s", (connection_id,))
        if row is None:
            return None
        return MarketplaceConnection(
            id=row["id"],
            platform=row["platform"],
            store_id=row["store_id"],
            name=row["name"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            token_expires_at=row["token_expires_at"],
            credentials=row["credentials"] or {},
            settings=row["settings"] or {},
            status=row["status"],
            shop_domain=row["shop_domain"],
            external_store_id=row["external_store_id"],
            last_sync_at=row["last_sync_at"],
            last_error=row["last_error"],
        )

    def save_connection(self, connection):
        return self._save("marketplace_connections", connection, {
            "platform": connection.platform,
            "store_id": connection.store_id,
            "name": connection.name,
            "access_token": connection.access_token,
            "refresh_token": connection.refresh_token,
            "token_expires_at": connection.token_expires_at,
            "credentials": _json(connection.credentials),
            "settings": _json(connection.settings),
            "status": connection.status,
            "shop_domain": connection.shop_domain,
            "external_store_id": connection.external_store_id,
            "last_sync_at": connection.last_sync_at,
            "last_error": connection.last_error,
        })

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    @staticmethod
    def _listing(row) -> PlatformListing:
        return PlatformListing(
            id=row["id"],
            product_id=row["product_id"],
            sales_channel_id=row["sales_channel_id"],
            connection_id=row["connection_id"],
            external_listing_id=row["external_listing_id"],
            listing_url=row["listing_url"],
            status=row["status"],
            platform_price=_num(row["platform_price"]),
            platform_quantity=row["platform_quantity"],
            platform_data=row["platform_data"] or {},
            last_synced_at=row["last_synced_at"],
            published_at=row["published_at"],
            last_error=row["last_error"],
        )

    def get_listing(self, listing_id):
        row = self._fetch_one("SELECT * FROM platform_listings WHERE id = %s", (listing_id,))
        return self._listing(row) if row else None

    def find_listing(self, product_id, channel_id):
        row = self._fetch_one(
            "SELECT * FROM platform_listings WHERE product_id = %s AND sales_channel_id = %s",
            (product_id, channel_id),
        )
        return self._listing(row) if row else None

    def get_listings_for_product(self, product_id):
        rows = self._fetch_all(
            "SELECT * FROM platform_listings WHERE product_id = %s ORDER BY id", (product_id,)
        )
        return [self._listing(row) for row in rows]

    def save_listing(self, listing):
        return self._save("platform_listings", listing, {
            "product_id": listing.product_id,
            "sales_channel_id": listing.sales_channel_id,
            "connection_id": listing.connection_id,
            "external_listing_id": listing.external_listing_id,
            "listing_url": listing.listing_url,
            "status": listing.status,
            "platform_price": listing.platform_price,
            "platform_quantity": listing.platform_quantity,
            "platform_data": _json(listing.platform_data),
            "last_synced_at": listing.last_synced_at,
            "published_at": listing.published_at,
            "last_error": listing.last_error,
        })

    # ------------------------------------------------------------------
    # Overrides & mappings
    # ------------------------------------------------------------------

    def get_override(self, product_id, connection_id):
        row = self._fetch_one(
            "SELECT * FROM product_platform_overrides WHERE product_id = %s AND connection_id = %s",
            (product_id, connection_id),
        )
        if row is None:
            return None
        return ProductPlatformOverride(
            id=row["id"],
            product_id=row["product_id"],
            connection_id=row["connection_id"],
            title=row["title"],
            description=row["description"],
            price=_num(row["price"]),
            compare_at_price=_num(row["compare_at_price"]),
            quantity=row["quantity"],
            category_id=row["category_id"],
            attributes=row["attributes"] or {},
        )

    def save_override(self, override):
        return self._save("product_platform_overrides", override, {
            "product_id": override.product_id,
            "connection_id": override.connection_id,
            "title": override.title,
            "description": override.description,
            "price": override.price,
            "compare_at_price": override.compare_at_price,
            "quantity": override.quantity,
            "category_id": override.category_id,
            "attributes": _json(override.attributes),
        }, conflict="product_id, connection_id")

    @staticmethod
    def _category_mapping(row) -> CategoryPlatformMapping:
        return CategoryPlatformMapping(
            id=row["id"],
            category_id=row["category_id"],
            connection_id=row["connection_id"],
            primary_category_id=row["primary_category_id"],
            primary_category_name=row["primary_category_name"],
            secondary_category_id=row["secondary_category_id"],
            secondary_category_name=row["secondary_category_name"],
            field_mappings=row["field_mappings"] or {},
            default_values=row["default_values"] or {},
            item_specifics=row["item_specifics"] or [],
            item_specifics_synced_at=row["item_specifics_synced_at"],
            metadata=row["metadata"] or {},
        )

    def get_category_mapping(self, category_id, connection_id):
        row = self._fetch_one(
            "SELECT * FROM category_platform_mappings WHERE category_id = %s AND connection_id = %s",
            (category_id, connection_id),
        )
        return self._category_mapping(row) if row else None

    def get_category_mapping_by_id(self, mapping_id):
        row = self._fetch_one("SELECT * FROM category_platform_mappings WHERE id = %s", (mapping_id,))
        return self._category_mapping(row) if row else None

    def get_category_mappings(self, category_id):
        rows = self._fetch_all(
            "SELECT * FROM category_platform_mappings WHERE category_id = %s ORDER BY id", (category_id,)
        )
        return [self._category_mapping(row) for row in rows]

    def save_category_mapping(self, mapping):
        return self._save("category_platform_mappings", mapping, {
            "category_id": mapping.category_id,
            "connection_id": mapping.connection_id,
            "primary_category_id": mapping.primary_category_id,
            "primary_category_name": mapping.primary_category_name,
            "secondary_category_id": mapping.secondary_category_id,
            "secondary_category_name": mapping.secondary_category_name,
            "field_mappings": _json(mapping.field_mappings),
            "default_values": _json(mapping.default_values),
            "item_specifics": _json(mapping.item_specifics),
            "item_specifics_synced_at": mapping.item_specifics_synced_at,
            "metadata": _json(mapping.metadata),
        }, conflict="category_id, connection_id")

    def delete_category_mapping(self, category_id, connection_id):
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM category_platform_mappings WHERE category_id = %s AND connection_id = %s",
                (category_id, connection_id),
            )
            return cursor.rowcount > 0

    def get_template_mapping(self, template_id, platform):
        row = self._fetch_one(
            "SELECT * FROM template_platform_mappings WHERE template_id = %s AND platform = %s",
            (template_id, platform),
        )
        if row is None:
            return None
        return TemplatePlatformMapping(
            id=row["id"],
            template_id=row["template_id"],
            platform=row["platform"],
            field_mappings=row["field_mappings"] or {},
            default_values=row["default_values"] or {},
            metafield_mappings=row["metafield_mappings"] or {},
            excluded_metafields=row["excluded_metafields"] or [],
            is_ai_generated=row["is_ai_generated"],
        )

    def save_template_mapping(self, mapping):
        return self._save("template_platform_mappings", mapping, {
            "template_id": mapping.template_id,
            "platform": mapping.platform,
            "field_mappings": _json(mapping.field_mappings),
            "default_values": _json(mapping.default_values),
            "metafield_mappings": _json(mapping.metafield_mappings),
            "excluded_metafields": _json(mapping.excluded_metafields),
            "is_ai_generated": mapping.is_ai_generated,
        }, conflict="template_id, platform")
