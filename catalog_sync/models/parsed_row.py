from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

"""ParsedRow model: typed projection of one raw CSV row.

Blank cells become ``None``. Cells that could not be coerced to their target
type hold the ``INVALID`` sentinel; the raw text is kept in ``raw`` so the
validator can quote it back in its messages.
"""

__all__ = [
    "INVALID",
    "InvalidValue",
    "ParsedRow",
    "ProductKey",
    "is_invalid",
]


class InvalidValue:
    """Marker for a cell whose text could not be coerced."""

    _instance: InvalidValue | None = None

    def __new__(cls) -> InvalidValue:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INVALID"

    def __bool__(self) -> bool:
        return False


INVALID = InvalidValue()


def is_invalid(value: Any) -> bool:
    return value is INVALID


@dataclass(frozen=True)
class ProductKey:
    """Identity of a product that existed before the import started."""
    id: Any
    slug: str


@dataclass(frozen=True)
class ParsedRow:
    """One input row after type coercion."""
    row_number: int  # 1-based line number in the file (header = 1)
    name: str | None = None
    sku: str | None = None
    part_number: str | None = None
    price: Decimal | InvalidValue | None = None
    compare_price: Decimal | InvalidValue | None = None
    compare_at_price: Decimal | InvalidValue | None = None
    description: str | None = None
    short_desc: str | None = None
    category: str | None = None
    brand: str | None = None
    origin: str | None = None
    warranty: str | None = None
    tags: list[str] = field(default_factory=list)
    compatibility: list[str] = field(default_factory=list)
    application: list[str] = field(default_factory=list)
    certifications: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    specifications: Any = None  # dict/list, INVALID or None
    pdf_url: str | None = None
    featured: bool | InvalidValue | None = None
    published: bool | InvalidValue | None = None
    published_at: datetime | InvalidValue | None = None
    showcase_order: int | InvalidValue | None = None
    views: int | InvalidValue | None = None
    has_variants: bool | InvalidValue | None = None
    stock_quantity: int | InvalidValue | None = None
    in_stock: bool | InvalidValue | None = None
    raw: dict[str, str] = field(default_factory=dict)  # trimmed source cells, keyed by column

    def raw_value(self, column: str) -> str:
        return self.raw.get(column, "")
