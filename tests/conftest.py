# Shared pytest fixtures
from __future__ import annotations

import copy
import csv
import io
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import pytest

from catalog_sync.errors import DuplicateKeyError, StoreConnectionError, StoreError
from catalog_sync.logging.init import reset_logging


class FakeCatalogStore:
    """In-memory stand-in for ``CatalogStore``.

    Keeps the same transaction semantics as the PostgreSQL store: ``begin``
    takes a snapshot, ``rollback`` restores it, ``row_savepoint`` restores the
    state of the row on error. Unique constraints on sku and slug are enforced.

    Failure injection:
        fail_begin / fail_commit: the transaction statement raises
        connection_lost_on_sku: insert/update of that SKU raises StoreConnectionError
        store_error_on_sku: insert/update of that SKU raises a plain StoreError
        fail_index_build: fetch_categories raises StoreConnectionError
    """

    def __init__(
        self,
        categories: list[tuple[int, str]] | None = None,
        products: list[dict[str, Any]] | None = None,
    ) -> None:
        self.categories: list[tuple[int, str]] = list(categories or [])
        self.products: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        for p in products or []:
            self._add(dict(p))
        self._snapshot: tuple[dict[int, dict[str, Any]], int] | None = None
        self.statements: list[str] = []
        self.slug_lookups: list[str] = []

        self.fail_begin = False
        self.fail_commit = False
        self.fail_index_build = False
        self.connection_lost_on_sku: str | None = None
        self.store_error_on_sku: str | None = None

    def _add(self, record: dict[str, Any]) -> int:
        product_id = record.pop("id", None) or self._next_id
        self._next_id = max(self._next_id, product_id) + 1
        record.setdefault("slug", record.get("sku", "").lower())
        self.products[product_id] = record
        return product_id

    # transaction control

    def begin(self) -> None:
        self.statements.append("BEGIN")
        if self.fail_begin:
            raise StoreConnectionError("connection refused")
        self._snapshot = (copy.deepcopy(self.products), self._next_id)

    def commit(self) -> None:
        self.statements.append("COMMIT")
        if self.fail_commit:
            raise StoreError("could not serialize access")
        self._snapshot = None

    def rollback(self) -> None:
        self.statements.append("ROLLBACK")
        if self._snapshot is not None:
            self.products, self._next_id = self._snapshot
            self._snapshot = None

    @contextmanager
    def row_savepoint(self) -> Iterator[None]:
        self.statements.append("SAVEPOINT")
        saved = (copy.deepcopy(self.products), self._next_id)
        try:
            yield
        except Exception:
            self.statements.append("ROLLBACK TO SAVEPOINT")
            self.products, self._next_id = saved
            raise
        else:
            self.statements.append("RELEASE SAVEPOINT")

    # reads

    def fetch_categories(self) -> list[tuple[int, str]]:
        if self.fail_index_build:
            raise StoreConnectionError("server closed the connection unexpectedly")
        return list(self.categories)

    def fetch_product_keys(self) -> list[tuple[int, str, str]]:
        return [(pid, p["sku"], p["slug"]) for pid, p in self.products.items()]

    def slug_exists(self, slug: str) -> bool:
        self.slug_lookups.append(slug)
        return any(p["slug"] == slug for p in self.products.values())

    def fetch_products_for_export(self) -> list[dict[str, Any]]:
        names = dict(self.categories)
        rows = []
        for pid in sorted(self.products, reverse=True):
            p = dict(self.products[pid])
            p["category_name"] = names.get(p.get("category_id"))
            rows.append(p)
        return rows

    # writes

    def _check_failures(self, sku: str) -> None:
        if self.connection_lost_on_sku == sku:
            raise StoreConnectionError("server closed the connection unexpectedly")
        if self.store_error_on_sku == sku:
            raise StoreError("value too long for type character varying(255)")

    def insert_product(self, record: dict[str, Any]) -> int:
        self._check_failures(record["sku"])
        for p in self.products.values():
            if p["sku"] == record["sku"]:
                raise DuplicateKeyError(
                    'duplicate key value violates unique constraint "parts_sku_key"',
                    constraint="parts_sku_key",
                )
            if p["slug"] == record["slug"]:
                raise DuplicateKeyError(
                    'duplicate key value violates unique constraint "parts_slug_key"',
                    constraint="parts_slug_key",
                )
        return self._add(dict(record))

    def update_product(self, product_id: int, record: dict[str, Any]) -> None:
        self._check_failures(record["sku"])
        if product_id not in self.products:
            raise StoreError(f"product id={product_id} no longer exists")
        self.products[product_id].update(record)

    # test helpers

    def by_sku(self, sku: str) -> dict[str, Any] | None:
        for p in self.products.values():
            if p["sku"] == sku:
                return p
        return None


def make_csv(rows: list[dict[str, str]], headers: list[str] | None = None) -> bytes:
    """Render rows as CSV bytes; headers default to the keys of the first row."""
    headers = headers or list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=headers, lineterminator="\n")
    writer.writeheader()
    for r in rows:
        writer.writerow(r)
    return buf.getvalue().encode("utf-8")


def product_row(**overrides: str) -> dict[str, str]:
    row = {
        "name": "Brake Pad",
        "sku": "BRK-001",
        "price": "45.99",
        "category": "Brake Systems",
        "stockQuantity": "10",
    }
    row.update(overrides)
    return row


@pytest.fixture(autouse=True)
def _fresh_logging() -> Iterator[None]:
    # Handlers bind sys.stdout at creation; rebuild per test so capsys sees output
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def store() -> FakeCatalogStore:
    return FakeCatalogStore(categories=[(1, "Brake Systems"), (2, "Engine Parts")])


@pytest.fixture()
def temp_workdir(monkeypatch) -> Iterator[Path]:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: catalog
tables:
  products: parts
  categories: categories
import:
  default_mode: upsert
  max_file_bytes: 1048576
  preview_rows: 5
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def store_factory():
    return FakeCatalogStore


@pytest.fixture()
def csv_bytes():
    return make_csv


@pytest.fixture()
def row_factory():
    return product_row
