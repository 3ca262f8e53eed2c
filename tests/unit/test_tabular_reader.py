from __future__ import annotations

import io
from pathlib import Path

import pytest
from openpyxl import Workbook

from catalog_sync.errors import StructuralError
from catalog_sync.tabular.reader import ensure_size_limit, read_catalog_file, read_table_bytes


def test_reads_csv_rows_as_text():
    rows = read_table_bytes(b"name,sku,price\nBrake Pad,BRK-001,45.99\nOil Filter,OIL-1,7\n")
    assert rows == [
        {"name": "Brake Pad", "sku": "BRK-001", "price": "45.99"},
        {"name": "Oil Filter", "sku": "OIL-1", "price": "7"},
    ]


def test_strips_bom_and_whitespace():
    rows = read_table_bytes("\ufeffname , sku\n  Brake Pad ,BRK-001 \n".encode("utf-8"))
    assert rows == [{"name": "Brake Pad", "sku": "BRK-001"}]


def test_keeps_na_like_strings():
    rows = read_table_bytes(b"name,sku\nNA,NULL\n")
    assert rows == [{"name": "NA", "sku": "NULL"}]


def test_skips_blank_lines():
    rows = read_table_bytes(b"name,sku\n\nBrake Pad,BRK-001\n,\n")
    assert rows == [{"name": "Brake Pad", "sku": "BRK-001"}]


@pytest.mark.parametrize(
    "content",
    [
        b"",
        b"   \n",
        b"name,sku\n",
        b"name,sku\n,\n",
        b"name\n\xff\xfe\n",
        b'name,sku\n"Brake Pad,BRK-001\n',
    ],
)
def test_structural_errors(content):
    with pytest.raises(StructuralError):
        read_table_bytes(content, file_name="upload.csv")


def test_reads_xlsx():
    wb = Workbook()
    ws = wb.active
    ws.append(["name", "sku", "price"])
    ws.append(["Brake Pad", "BRK-001", "45.99"])
    buf = io.BytesIO()
    wb.save(buf)
    rows = read_table_bytes(buf.getvalue(), file_name="catalog.xlsx")
    assert rows == [{"name": "Brake Pad", "sku": "BRK-001", "price": "45.99"}]


def test_size_limit():
    ensure_size_limit(b"1234", 4)
    with pytest.raises(StructuralError) as e:
        ensure_size_limit(b"12345", 4, file_name="big.csv")
    assert "big.csv" in str(e.value)


def test_read_catalog_file(tmp_path: Path):
    f = tmp_path / "parts.csv"
    f.write_bytes(b"name\nBrake Pad\n")
    assert read_catalog_file(f, 1024) == b"name\nBrake Pad\n"
    with pytest.raises(StructuralError):
        read_catalog_file(f, 4)


def test_read_catalog_file_rejects_unknown_suffix(tmp_path: Path):
    f = tmp_path / "parts.txt"
    f.write_text("name\nBrake Pad\n", encoding="utf-8")
    with pytest.raises(StructuralError) as e:
        read_catalog_file(f)
    assert ".csv, .xlsx" in str(e.value)


def test_read_catalog_file_missing(tmp_path: Path):
    with pytest.raises(StructuralError):
        read_catalog_file(tmp_path / "missing.csv")


@pytest.mark.parametrize("content", [b"this is not a zip archive", b"PK\x03\x04 truncated"])
def test_corrupt_xlsx_is_structural(content):
    with pytest.raises(StructuralError) as e:
        read_table_bytes(content, file_name="parts.xlsx")
    assert ".xlsx" in str(e.value)
