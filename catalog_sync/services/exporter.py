from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

from .row_parser import CSV_HEADERS

if TYPE_CHECKING:
    from ..db.catalog_store import CatalogStore

"""Catalog export and import template.

Exports use exactly the headers the importer reads, so an exported file can be
edited and fed back in ``upsert`` mode.
"""

__all__ = [
    "TEMPLATE_ROW",
    "product_to_csv_row",
    "export_catalog",
    "write_template",
]

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "|"

TEMPLATE_ROW: dict[str, str] = {
    "name": "Brake Pad Set - Front",
    "sku": "BRK-001",
    "partNumber": "BP-12345",
    "price": "45.99",
    "comparePrice": "59.99",
    "compareAtPrice": "69.99",
    "description": "High-quality ceramic brake pads with low dust formula and quiet operation.",
    "shortDesc": "Premium ceramic brake pads",
    "category": "Brake Systems",
    "brand": "Brembo",
    "origin": "Germany",
    "warranty": "2 years",
    "tags": "brake|safety|ceramic",
    "compatibility": "Toyota Camry|Honda Accord",
    "application": "sedan|coupe",
    "certifications": "ISO 9001",
    "images": "products/brake-123.jpg",
    "specifications": '{"material":"ceramic","thickness":"12mm"}',
    "pdfUrl": "https://example.com/manual.pdf",
    "featured": "true",
    "published": "true",
    "publishedAt": "2025-10-18T00:00:00+00:00",
    "showcaseOrder": "10",
    "views": "0",
    "hasVariants": "false",
    "stockQuantity": "25",
    "inStock": "true",
}

_COLUMN_FOR_HEADER = {
    "name": "name",
    "sku": "sku",
    "partNumber": "part_number",
    "price": "price",
    "comparePrice": "compare_price",
    "compareAtPrice": "compare_at_price",
    "description": "description",
    "shortDesc": "short_desc",
    "category": "category_name",
    "brand": "brand",
    "origin": "origin",
    "warranty": "warranty",
    "tags": "tags",
    "compatibility": "compatibility",
    "application": "application",
    "certifications": "certifications",
    "images": "images",
    "specifications": "specifications",
    "pdfUrl": "pdf_url",
    "featured": "featured",
    "published": "published",
    "publishedAt": "published_at",
    "showcaseOrder": "showcase_order",
    "views": "views",
    "hasVariants": "has_variants",
    "stockQuantity": "stock_quantity",
    "inStock": "in_stock",
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(str(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def product_to_csv_row(product: Mapping[str, Any]) -> dict[str, str]:
    """Render one product (column -> value) as importer-compatible text cells."""
    row = {header: _cell(product.get(column)) for header, column in _COLUMN_FOR_HEADER.items()}
    # specifications stored as a JSON array are still JSON, not a list cell
    specs = product.get("specifications")
    if isinstance(specs, list):
        row["specifications"] = json.dumps(specs, ensure_ascii=False, separators=(",", ":"))
    return row


def export_catalog(store: CatalogStore, destination: Path) -> int:
    """Write every product to ``destination`` as CSV; returns the row count."""
    products = store.fetch_products_for_export()
    rows = [product_to_csv_row(p) for p in products]
    df = pd.DataFrame(rows, columns=list(CSV_HEADERS))
    destination.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(destination, index=False, encoding="utf-8")
    logger.info("exported products=%d to %s", len(rows), destination)
    return len(rows)


def write_template(destination: Path) -> Path:
    df = pd.DataFrame([TEMPLATE_ROW], columns=list(CSV_HEADERS))
    destination.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(destination, index=False, encoding="utf-8")
    return destination
