from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from ..models.parsed_row import INVALID, InvalidValue, ParsedRow, is_invalid

"""Row parser: raw ``column -> str`` mapping to a typed ``ParsedRow``.

The parser never raises. A cell that cannot be coerced keeps the ``INVALID``
marker so the validator can name the exact column; blank cells become ``None``.

List cells (tags, images, ...) are split on ``|`` or ``;``. Pipe is what the
exporter writes, semicolon is accepted for hand-made spreadsheets.
"""

__all__ = [
    "CSV_HEADERS",
    "parse_row",
    "to_product_record",
    "canonical_column",
]

# Column headers understood by the importer and written by the exporter
CSV_HEADERS: tuple[str, ...] = (
    "name",
    "sku",
    "partNumber",
    "price",
    "comparePrice",
    "compareAtPrice",
    "description",
    "shortDesc",
    "category",
    "brand",
    "origin",
    "warranty",
    "tags",
    "compatibility",
    "application",
    "certifications",
    "images",
    "specifications",
    "pdfUrl",
    "featured",
    "published",
    "publishedAt",
    "showcaseOrder",
    "views",
    "hasVariants",
    "stockQuantity",
    "inStock",
)

_HEADER_KEY = re.compile(r"[^a-z0-9]")
_LIST_SPLIT = re.compile(r"[|;]")

_ALIASES = {
    "stock": "stockQuantity",
    "quantity": "stockQuantity",
    "categoryname": "category",
}
_CANONICAL = {_HEADER_KEY.sub("", h.lower()): h for h in CSV_HEADERS}

_TRUE_WORDS = {"true", "yes", "1"}
_FALSE_WORDS = {"false", "no", "0"}

DEFAULT_SHOWCASE_ORDER = 999

# PostgreSQL "integer" range
MAX_INTEGER = 2**31 - 1
# Decimal cells with an exponent beyond this are not prices or counts
MAX_DECIMAL_EXPONENT = 18


def canonical_column(header: str) -> str | None:
    """Map a header as typed by a user (``Part Number``, ``part_number``) to its canonical name."""
    key = _HEADER_KEY.sub("", header.strip().lower())
    if key in _ALIASES:
        return _ALIASES[key]
    return _CANONICAL.get(key)


def _normalize_raw(raw: Mapping[str, Any]) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for header, value in raw.items():
        column = canonical_column(str(header))
        if column is None:
            continue
        text = "" if value is None else str(value).strip()
        # First non-blank occurrence wins when two headers map to the same column
        if column not in normalized or (not normalized[column] and text):
            normalized[column] = text
    return normalized


def _text(value: str) -> str | None:
    return value or None


def _decimal(value: str) -> Decimal | InvalidValue | None:
    if not value:
        return None
    try:
        number = Decimal(value)
    except InvalidOperation:
        return INVALID
    if not number.is_finite() or abs(number.adjusted()) > MAX_DECIMAL_EXPONENT:
        return INVALID
    return number


def _integer(value: str) -> int | InvalidValue | None:
    number = _decimal(value)
    if number is None or is_invalid(number):
        return number
    if abs(number) > MAX_INTEGER:
        return INVALID
    if number != number.to_integral_value():
        return INVALID
    return int(number)


def _boolean(value: str) -> bool | InvalidValue | None:
    if not value:
        return None
    word = value.lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return INVALID


def _items(value: str) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in _LIST_SPLIT.split(value) if item.strip()]


def _json(value: str) -> Any:
    if not value:
        return None
    try:
        data = json.loads(value)
    except ValueError:
        return INVALID
    if not isinstance(data, (dict, list)):
        return INVALID
    return data


def _timestamp(value: str) -> datetime | InvalidValue | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return INVALID


def parse_row(raw: Mapping[str, Any], row_number: int) -> ParsedRow:
    """Project one raw row onto ``ParsedRow``; never raises."""
    cells = _normalize_raw(raw)

    def get(column: str) -> str:
        return cells.get(column, "")

    return ParsedRow(
        row_number=row_number,
        name=_text(get("name")),
        sku=_text(get("sku")),
        part_number=_text(get("partNumber")),
        price=_decimal(get("price")),
        compare_price=_decimal(get("comparePrice")),
        compare_at_price=_decimal(get("compareAtPrice")),
        description=_text(get("description")),
        short_desc=_text(get("shortDesc")),
        category=_text(get("category")),
        brand=_text(get("brand")),
        origin=_text(get("origin")),
        warranty=_text(get("warranty")),
        tags=_items(get("tags")),
        compatibility=_items(get("compatibility")),
        application=_items(get("application")),
        certifications=_items(get("certifications")),
        images=_items(get("images")),
        specifications=_json(get("specifications")),
        pdf_url=_text(get("pdfUrl")),
        featured=_boolean(get("featured")),
        published=_boolean(get("published")),
        published_at=_timestamp(get("publishedAt")),
        showcase_order=_integer(get("showcaseOrder")),
        views=_integer(get("views")),
        has_variants=_boolean(get("hasVariants")),
        stock_quantity=_integer(get("stockQuantity")),
        in_stock=_boolean(get("inStock")),
        raw=cells,
    )


def _or_default(value: Any, default: Any) -> Any:
    if value is None or is_invalid(value):
        return default
    return value


def _positive_or_none(value: Any) -> Decimal | None:
    if value is None or is_invalid(value) or value <= 0:
        return None
    return value


def to_product_record(row: ParsedRow, category_id: Any) -> dict[str, Any]:
    """Build the column values written for a validated row.

    Optional values that failed coercion fall back to their defaults, matching
    the warnings the validator emitted for them. ``slug`` is not included; the
    executor decides it (fresh for creates, existing for updates).
    """
    showcase_order = _or_default(row.showcase_order, DEFAULT_SHOWCASE_ORDER)
    if showcase_order < 1:
        showcase_order = DEFAULT_SHOWCASE_ORDER
    views = _or_default(row.views, 0)
    if views < 0:
        views = 0

    return {
        "name": (row.name or "").strip(),
        "sku": (row.sku or "").strip(),
        "part_number": row.part_number,
        "price": row.price,
        "compare_price": _positive_or_none(row.compare_price),
        "compare_at_price": _positive_or_none(row.compare_at_price),
        "description": row.description,
        "short_desc": row.short_desc,
        "category_id": category_id,
        "brand": row.brand,
        "origin": row.origin,
        "warranty": row.warranty,
        "tags": list(row.tags),
        "compatibility": list(row.compatibility),
        "application": list(row.application),
        "certifications": list(row.certifications),
        "images": list(row.images),
        "specifications": _or_default(row.specifications, None),
        "pdf_url": row.pdf_url,
        "featured": _or_default(row.featured, False),
        "published": _or_default(row.published, False),
        "published_at": _or_default(row.published_at, None),
        "showcase_order": showcase_order,
        "views": views,
        "has_variants": _or_default(row.has_variants, False),
        "stock_quantity": _or_default(row.stock_quantity, 0),
        "in_stock": _or_default(row.in_stock, True),
    }
