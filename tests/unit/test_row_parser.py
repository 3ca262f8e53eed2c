from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from catalog_sync.models.parsed_row import INVALID, is_invalid
from catalog_sync.services.row_parser import (
    CSV_HEADERS,
    canonical_column,
    parse_row,
    to_product_record,
)


@pytest.mark.parametrize(
    "header,expected",
    [
        ("name", "name"),
        ("Part Number", "partNumber"),
        ("part_number", "partNumber"),
        ("  SKU ", "sku"),
        ("Stock", "stockQuantity"),
        ("quantity", "stockQuantity"),
        ("Category Name", "category"),
        ("colour", None),
    ],
)
def test_canonical_column(header, expected):
    assert canonical_column(header) == expected


def test_every_header_is_canonical():
    for h in CSV_HEADERS:
        assert canonical_column(h) == h


def test_parse_basic_row():
    row = parse_row(
        {"name": " Brake Pad ", "sku": "BRK-001", "price": "45.99", "category": "Brake Systems", "stockQuantity": "10"},
        2,
    )
    assert row.row_number == 2
    assert row.name == "Brake Pad"
    assert row.price == Decimal("45.99")
    assert row.stock_quantity == 10
    assert row.category == "Brake Systems"
    assert row.part_number is None
    assert row.raw["name"] == "Brake Pad"


@pytest.mark.parametrize("text", ["abc", "NaN", "Infinity", "12,50"])
def test_unparseable_price_is_invalid(text):
    row = parse_row({"price": text}, 2)
    assert is_invalid(row.price)
    assert row.raw_value("price") == text


def test_blank_cells_become_none():
    row = parse_row({"price": "", "featured": "", "publishedAt": ""}, 2)
    assert row.price is None
    assert row.featured is None
    assert row.published_at is None
    assert row.tags == []


def test_integers():
    assert parse_row({"stockQuantity": "3.0"}, 2).stock_quantity == 3
    assert is_invalid(parse_row({"stockQuantity": "2.5"}, 2).stock_quantity)
    assert parse_row({"views": "-4"}, 2).views == -4


@pytest.mark.parametrize(
    "text,expected",
    [("true", True), ("Yes", True), ("1", True), ("FALSE", False), ("no", False), ("0", False), ("maybe", INVALID)],
)
def test_booleans(text, expected):
    assert parse_row({"inStock": text}, 2).in_stock is expected


def test_list_cells_split_on_pipe_and_semicolon():
    row = parse_row({"tags": "brake| safety ;ceramic||", "images": "a.jpg"}, 2)
    assert row.tags == ["brake", "safety", "ceramic"]
    assert row.images == ["a.jpg"]


def test_specifications_json():
    assert parse_row({"specifications": '{"material": "ceramic"}'}, 2).specifications == {"material": "ceramic"}
    assert parse_row({"specifications": '[{"k": 1}]'}, 2).specifications == [{"k": 1}]
    assert is_invalid(parse_row({"specifications": "42"}, 2).specifications)
    assert is_invalid(parse_row({"specifications": "{material: x}"}, 2).specifications)


def test_published_at():
    row = parse_row({"publishedAt": "2025-10-18T09:30:00+00:00"}, 2)
    assert isinstance(row.published_at, datetime)
    assert row.published_at.hour == 9
    assert is_invalid(parse_row({"publishedAt": "yesterday"}, 2).published_at)


def test_first_non_blank_alias_wins():
    row = parse_row({"Stock": "", "stockQuantity": "5"}, 2)
    assert row.stock_quantity == 5


def test_unknown_columns_are_ignored():
    row = parse_row({"name": "Brake Pad", "internal note": "x"}, 2)
    assert "internal note" not in row.raw


def test_to_product_record_defaults():
    row = parse_row(
        {
            "name": "Brake Pad",
            "sku": "BRK-001",
            "price": "10",
            "comparePrice": "0",
            "compareAtPrice": "abc",
            "specifications": "nope",
            "showcaseOrder": "0",
            "views": "-1",
            "featured": "maybe",
        },
        2,
    )
    record = to_product_record(row, 7)
    assert record["category_id"] == 7
    assert record["compare_price"] is None
    assert record["compare_at_price"] is None
    assert record["specifications"] is None
    assert record["showcase_order"] == 999
    assert record["views"] == 0
    assert record["stock_quantity"] == 0
    assert record["in_stock"] is True
    assert record["featured"] is False
    assert record["published"] is False
    assert record["has_variants"] is False
    assert "slug" not in record


def test_to_product_record_keeps_given_values():
    row = parse_row(
        {
            "name": "Brake Pad",
            "sku": "BRK-001",
            "price": "10.50",
            "comparePrice": "12",
            "showcaseOrder": "3",
            "inStock": "no",
            "tags": "a|b",
            "stockQuantity": "4",
        },
        2,
    )
    record = to_product_record(row, 1)
    assert record["price"] == Decimal("10.50")
    assert record["compare_price"] == Decimal("12")
    assert record["showcase_order"] == 3
    assert record["in_stock"] is False
    assert record["tags"] == ["a", "b"]
    assert record["stock_quantity"] == 4


@pytest.mark.parametrize(
    "column,attr",
    [("stockQuantity", "stock_quantity"), ("views", "views"), ("showcaseOrder", "showcase_order")],
)
@pytest.mark.parametrize("text", ["1e50000000", "-1e50000000", "2147483648", "1e-50000000"])
def test_out_of_range_integers_are_invalid(column, attr, text):
    assert is_invalid(getattr(parse_row({column: text}, 2), attr))


def test_integer_range_boundary():
    assert parse_row({"stockQuantity": "2147483647"}, 2).stock_quantity == 2147483647


@pytest.mark.parametrize("text", ["1e50000000", "1e-50000000", "1e19"])
def test_extreme_exponent_price_is_invalid(text):
    assert is_invalid(parse_row({"price": text}, 2).price)


def test_ordinary_prices_are_not_affected_by_exponent_bound():
    assert parse_row({"price": "0"}, 2).price == Decimal("0")
    assert parse_row({"price": "0.01"}, 2).price == Decimal("0.01")
    assert parse_row({"price": "999999.99"}, 2).price == Decimal("999999.99")
