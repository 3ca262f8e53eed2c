from __future__ import annotations

import re
from collections.abc import Set
from dataclasses import dataclass, field
from decimal import Decimal

from ..models.parsed_row import ParsedRow, is_invalid
from ..models.row_error import RowError, RowWarning
from .reference_indexes import CategoryIndex, resolve_category

"""Row validator.

All checks run on every row and every violation is reported, so a user fixing
a file sees all problems of a line at once. Errors keep the row out of the
import; warnings only mean an optional value will be replaced by its default.
"""

__all__ = [
    "MAX_PRICE",
    "MIN_NAME_LENGTH",
    "ValidationOutcome",
    "validate_row",
]

MAX_PRICE = Decimal("999999.99")
MIN_NAME_LENGTH = 3

_CODE_PATTERN = re.compile(r"^[A-Z0-9-]+$")


@dataclass(frozen=True)
class ValidationOutcome:
    errors: list[RowError] = field(default_factory=list)
    warnings: list[RowWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _check_required(row: ParsedRow, n: int, errors: list[RowError]) -> None:
    if not row.name or len(row.name.strip()) < MIN_NAME_LENGTH:
        errors.append(RowError(n, "name", f"Name is required (minimum {MIN_NAME_LENGTH} characters)"))

    if not row.category:
        errors.append(RowError(n, "category", "Category is required"))

    if row.price is None:
        errors.append(RowError(n, "price", "Price is required"))
    elif is_invalid(row.price):
        errors.append(RowError(n, "price", f"Price must be a number, got '{row.raw_value('price')}'"))
    elif row.price < 0:
        errors.append(RowError(n, "price", "Price must not be negative"))
    elif row.price > MAX_PRICE:
        errors.append(RowError(n, "price", "Price must not exceed 999,999.99"))

    if is_invalid(row.stock_quantity):
        errors.append(
            RowError(
                n,
                "stockQuantity",
                f"Stock quantity must be a whole number, got '{row.raw_value('stockQuantity')}'",
            )
        )
    elif row.stock_quantity is not None and row.stock_quantity < 0:
        errors.append(RowError(n, "stockQuantity", "Stock quantity must be a non-negative number"))


def _check_codes(row: ParsedRow, n: int, errors: list[RowError]) -> None:
    if not row.sku:
        errors.append(RowError(n, "sku", "SKU is required"))
    elif not _CODE_PATTERN.match(row.sku):
        errors.append(RowError(n, "sku", "SKU must contain only uppercase letters, numbers, and hyphens"))

    if row.part_number and not _CODE_PATTERN.match(row.part_number):
        errors.append(
            RowError(n, "partNumber", "Part number must contain only uppercase letters, numbers, and hyphens")
        )


def _check_optional(row: ParsedRow, n: int, warnings: list[RowWarning]) -> None:
    for value, column in ((row.compare_price, "comparePrice"), (row.compare_at_price, "compareAtPrice")):
        if is_invalid(value) or (value is not None and value <= 0):
            warnings.append(RowWarning(n, column, f"Invalid {column} '{row.raw_value(column)}' - will be set to empty"))

    if is_invalid(row.specifications):
        warnings.append(RowWarning(n, "specifications", "Invalid JSON in specifications - will be set to empty"))

    if is_invalid(row.showcase_order) or (row.showcase_order is not None and row.showcase_order < 1):
        warnings.append(RowWarning(n, "showcaseOrder", "Invalid showcase order - will be set to 999"))

    if is_invalid(row.views) or (row.views is not None and row.views < 0):
        warnings.append(RowWarning(n, "views", "Invalid views count - will be set to 0"))

    if is_invalid(row.published_at):
        warnings.append(RowWarning(n, "publishedAt", "Invalid publishedAt date - will be set to empty"))

    if is_invalid(row.in_stock):
        warnings.append(
            RowWarning(n, "inStock", "Invalid inStock value (must be true/false or yes/no) - will default to true")
        )

    for value, column in (
        (row.featured, "featured"),
        (row.published, "published"),
        (row.has_variants, "hasVariants"),
    ):
        if is_invalid(value):
            warnings.append(RowWarning(n, column, f"Invalid {column} value - will default to false"))


def validate_row(
    row: ParsedRow,
    row_number: int,
    known_skus: Set[str],
    category_index: CategoryIndex,
) -> ValidationOutcome:
    """Validate one parsed row.

    ``known_skus`` is the SKU set of the catalog before the import started.
    A known SKU is not an error here: whether it may be created or updated is
    decided by the import mode. The validator only notes it as a warning.
    """
    errors: list[RowError] = []
    warnings: list[RowWarning] = []

    _check_required(row, row_number, errors)
    _check_codes(row, row_number, errors)

    if row.category and resolve_category(category_index, row.category) is None:
        errors.append(RowError(row_number, "category", f'Category "{row.category}" not found'))

    if row.sku and row.sku in known_skus:
        warnings.append(RowWarning(row_number, "sku", f'SKU "{row.sku}" already exists in the catalog'))

    _check_optional(row, row_number, warnings)
    return ValidationOutcome(errors=errors, warnings=warnings)
