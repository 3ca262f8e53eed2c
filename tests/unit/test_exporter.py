from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pandas as pd

from catalog_sync.services.executor import run_import
from catalog_sync.services.exporter import export_catalog, product_to_csv_row, write_template
from catalog_sync.services.row_parser import CSV_HEADERS


def test_product_to_csv_row():
    row = product_to_csv_row(
        {
            "name": "Brake Pad",
            "sku": "BRK-001",
            "price": Decimal("45.90"),
            "tags": ["brake", "safety"],
            "specifications": {"material": "ceramic"},
            "featured": True,
            "in_stock": False,
            "category_name": "Brake Systems",
        }
    )
    assert list(row) == list(CSV_HEADERS)
    assert row["price"] == "45.90"
    assert row["tags"] == "brake|safety"
    assert row["specifications"] == '{"material":"ceramic"}'
    assert row["featured"] == "true"
    assert row["inStock"] == "false"
    assert row["category"] == "Brake Systems"
    assert row["partNumber"] == ""


def test_specifications_array_stays_json():
    row = product_to_csv_row({"specifications": [{"k": "v"}]})
    assert row["specifications"] == '[{"k":"v"}]'


def test_write_template(tmp_path: Path):
    path = write_template(tmp_path / "out" / "template.csv")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert list(df.columns) == list(CSV_HEADERS)
    assert len(df) == 1


def test_template_imports_cleanly(store, tmp_path: Path):
    path = write_template(tmp_path / "template.csv")
    result = run_import(store, path.read_bytes(), "create", show_progress=False)
    assert (result.created, result.failed) == (1, 0)
    product = store.by_sku("BRK-001")
    assert product["tags"] == ["brake", "safety", "ceramic"]
    assert product["specifications"] == {"material": "ceramic", "thickness": "12mm"}


def test_export_can_be_reimported_with_upsert(store, csv_bytes, row_factory, tmp_path: Path):
    content = csv_bytes(
        [
            row_factory(sku="A1", tags="a|b", inStock="no"),
            row_factory(sku="A2", name="Oil Filter", category="Engine Parts"),
        ]
    )
    run_import(store, content, "create", show_progress=False)

    out = tmp_path / "export.csv"
    assert export_catalog(store, out) == 2

    result = run_import(store, out.read_bytes(), "upsert", show_progress=False)
    assert (result.created, result.updated, result.failed) == (0, 2, 0)
    product = store.by_sku("A1")
    assert product["tags"] == ["a", "b"]
    assert product["in_stock"] is False
