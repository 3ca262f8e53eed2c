from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import Json

from ..errors import DuplicateKeyError, StoreConnectionError, StoreError
from ..models.config_models import TableNames

"""Catalog store on top of a psycopg2 cursor.

Transaction boundaries are explicit ``BEGIN`` / ``COMMIT`` / ``ROLLBACK``
statements issued by the import executor; the connection runs with autocommit
on so the driver never opens a transaction of its own. Each row is
additionally wrapped in a savepoint so a failing statement only discards that
row's own work instead of poisoning the whole PostgreSQL transaction.

psycopg2 exceptions are translated into the ``StoreError`` family:

- unique violations -> ``DuplicateKeyError`` (row-scoped)
- lost connections / aborted transactions -> ``StoreConnectionError`` (systemic)
- anything else from the driver -> ``StoreError`` (row-scoped)
"""

__all__ = [
    "PRODUCT_COLUMNS",
    "ROW_SAVEPOINT",
    "CatalogStore",
    "translate_error",
]

# Writable product columns, in statement order
PRODUCT_COLUMNS: tuple[str, ...] = (
    "name",
    "sku",
    "part_number",
    "slug",
    "price",
    "compare_price",
    "compare_at_price",
    "description",
    "short_desc",
    "category_id",
    "brand",
    "origin",
    "warranty",
    "tags",
    "compatibility",
    "application",
    "certifications",
    "images",
    "specifications",
    "pdf_url",
    "featured",
    "published",
    "published_at",
    "showcase_order",
    "views",
    "has_variants",
    "stock_quantity",
    "in_stock",
)

ROW_SAVEPOINT = "catalog_row"


def translate_error(e: Exception) -> StoreError:
    """Map a psycopg2 exception onto the store error family."""
    if isinstance(e, pg_errors.UniqueViolation):
        constraint = getattr(getattr(e, "diag", None), "constraint_name", None)
        return DuplicateKeyError(str(e).strip(), constraint=constraint)
    if isinstance(e, (psycopg2.OperationalError, psycopg2.InterfaceError, pg_errors.InFailedSqlTransaction)):
        return StoreConnectionError(str(e).strip())
    return StoreError(str(e).strip())


def _adapt(column: str, value: Any) -> Any:
    if column == "specifications" and value is not None:
        return Json(value)
    return value


class CatalogStore:
    """Point lookups, inserts and updates against the catalog tables.

    Parameters
    ----------
    cursor: psycopg2 cursor (connection in autocommit mode, see above)
    tables: physical table names (validated identifiers from config)
    """

    def __init__(self, cursor: Any, tables: TableNames | None = None) -> None:
        self.cursor = cursor
        self.tables = tables or TableNames()
        self._products = f'"{self.tables.products}"'
        self._categories = f'"{self.tables.categories}"'

    def _execute(self, statement: str, params: Any = None) -> None:
        try:
            if params is None:
                self.cursor.execute(statement)
            else:
                self.cursor.execute(statement, params)
        except psycopg2.Error as e:
            raise translate_error(e) from e

    def _fetchall(self, statement: str, params: Any = None) -> list[tuple[Any, ...]]:
        self._execute(statement, params)
        try:
            return list(self.cursor.fetchall())
        except psycopg2.Error as e:
            raise translate_error(e) from e

    def _fetchone(self, statement: str, params: Any = None) -> tuple[Any, ...] | None:
        self._execute(statement, params)
        try:
            return self.cursor.fetchone()
        except psycopg2.Error as e:
            raise translate_error(e) from e

    # transaction control

    def begin(self) -> None:
        self._execute("BEGIN")

    def commit(self) -> None:
        self._execute("COMMIT")

    def rollback(self) -> None:
        self._execute("ROLLBACK")

    @contextmanager
    def row_savepoint(self, name: str = ROW_SAVEPOINT) -> Iterator[None]:
        """Run the body inside ``SAVEPOINT name``.

        On error the savepoint is rolled back and the original exception
        re-raised. If the rollback itself fails the transaction is unusable and
        ``StoreConnectionError`` is raised instead.
        """
        self._execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            try:
                self._execute(f"ROLLBACK TO SAVEPOINT {name}")
            except StoreError as rollback_e:
                raise StoreConnectionError(f"rollback to savepoint failed: {rollback_e}") from rollback_e
            raise
        else:
            self._execute(f"RELEASE SAVEPOINT {name}")

    # reads

    def fetch_categories(self) -> list[tuple[Any, str]]:
        return [(r[0], r[1]) for r in self._fetchall(f'SELECT "id", "name" FROM {self._categories}')]

    def fetch_product_keys(self) -> list[tuple[Any, str, str]]:
        rows = self._fetchall(f'SELECT "id", "sku", "slug" FROM {self._products}')
        return [(r[0], r[1], r[2]) for r in rows]

    def slug_exists(self, slug: str) -> bool:
        row = self._fetchone(f'SELECT 1 FROM {self._products} WHERE "slug" = %s LIMIT 1', (slug,))
        return row is not None

    def fetch_products_for_export(self) -> list[dict[str, Any]]:
        """Every product joined with its category name, newest first."""
        cols = ", ".join(f'p."{c}"' for c in PRODUCT_COLUMNS)
        statement = (
            f'SELECT {cols}, c."name" AS "category_name" '
            f'FROM {self._products} p JOIN {self._categories} c ON c."id" = p."category_id" '
            f'ORDER BY p."created_at" DESC'
        )
        rows = self._fetchall(statement)
        names = [*PRODUCT_COLUMNS, "category_name"]
        return [dict(zip(names, r, strict=False)) for r in rows]

    # writes

    def insert_product(self, record: Mapping[str, Any]) -> Any:
        """INSERT one product and return its generated id."""
        columns = [c for c in PRODUCT_COLUMNS if c in record]
        cols_sql = ",".join(f'"{c}"' for c in columns)
        placeholders = ",".join(["%s"] * len(columns))
        params = tuple(_adapt(c, record[c]) for c in columns)
        row = self._fetchone(
            f'INSERT INTO {self._products} ({cols_sql}) VALUES ({placeholders}) RETURNING "id"',
            params,
        )
        if row is None:
            raise StoreError("insert returned no id")
        return row[0]

    def update_product(self, product_id: Any, record: Mapping[str, Any]) -> None:
        """UPDATE one product by id; a missing id is a store error."""
        columns = [c for c in PRODUCT_COLUMNS if c in record]
        assignments = ",".join(f'"{c}" = %s' for c in columns)
        params = (*(_adapt(c, record[c]) for c in columns), product_id)
        self._execute(
            f'UPDATE {self._products} SET {assignments}, "updated_at" = NOW() WHERE "id" = %s',
            params,
        )
        if getattr(self.cursor, "rowcount", 1) == 0:
            raise StoreError(f"product id={product_id} no longer exists")
