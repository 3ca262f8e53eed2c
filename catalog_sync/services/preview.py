from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..models.import_result import PreviewRow, ValidationReport
from ..models.row_error import RowError, RowWarning
from ..tabular.reader import FIRST_DATA_ROW, ensure_size_limit, read_table_bytes
from .reference_indexes import build_reference_indexes
from .row_parser import parse_row
from .row_validator import validate_row

if TYPE_CHECKING:
    from ..db.catalog_store import CatalogStore

"""Validation preview: check a file against the catalog without importing it.

Same parser, indexes and validator as a real import, plus a check the import
itself does not make: SKUs repeated inside the file are reported as errors, so
the user can fix them before running a create or upsert import.
"""

__all__ = [
    "preview_import",
]

logger = logging.getLogger(__name__)


def preview_import(
    store: CatalogStore,
    content: bytes,
    *,
    file_name: str = "upload.csv",
    preview_rows: int = 10,
    max_file_bytes: int | None = None,
) -> ValidationReport:
    """Validate every row and return a report plus the first ``preview_rows`` rows.

    The reads run in a transaction that is always rolled back.
    """
    ensure_size_limit(content, max_file_bytes, file_name=file_name)
    raw_rows = read_table_bytes(content, file_name=file_name)

    store.begin()
    try:
        indexes = build_reference_indexes(store)
    finally:
        store.rollback()
    known_skus = indexes.known_skus

    errors: list[RowError] = []
    warnings: list[RowWarning] = []
    preview: list[PreviewRow] = []
    seen_skus: set[str] = set()
    valid = 0

    for offset, raw in enumerate(raw_rows):
        row_number = FIRST_DATA_ROW + offset
        parsed = parse_row(raw, row_number)
        row_errors: list[RowError] = []

        if parsed.sku and parsed.sku in seen_skus:
            row_errors.append(RowError(row_number, "sku", f'Duplicate SKU "{parsed.sku}" found in file'))
        elif parsed.sku:
            seen_skus.add(parsed.sku)

        outcome = validate_row(parsed, row_number, known_skus, indexes.categories)
        row_errors.extend(outcome.errors)
        if not row_errors:
            valid += 1
        errors.extend(row_errors)
        warnings.extend(outcome.warnings)

        if offset < preview_rows:
            preview.append(PreviewRow(row_number=row_number, data=dict(parsed.raw)))

    logger.info(
        "validated file=%s rows=%d valid=%d errors=%d warnings=%d",
        file_name,
        len(raw_rows),
        valid,
        len(errors),
        len(warnings),
    )
    return ValidationReport(
        total_rows=len(raw_rows),
        valid=valid,
        invalid=len(raw_rows) - valid,
        errors=tuple(errors),
        warnings=tuple(warnings),
        preview=tuple(preview),
    )
