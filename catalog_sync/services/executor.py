from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ..errors import (
    DuplicateKeyError,
    ImportAbortedError,
    StoreConnectionError,
    StoreError,
    StructuralError,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportSettings
from ..models.error_record import ErrorRecord
from ..models.import_mode import ImportMode
from ..models.import_result import ImportResult
from ..models.parsed_row import ProductKey
from ..models.row_error import GENERAL_FIELD, RowError
from ..tabular.reader import FIRST_DATA_ROW, ensure_size_limit, read_table_bytes
from .conflict_resolver import Create, Reject, resolve
from .progress import RowProgress
from .reference_indexes import CategoryIndex, ReferenceIndexes, build_reference_indexes, resolve_category
from .report import build_result
from .row_parser import parse_row, to_product_record
from .row_validator import validate_row
from .slug import generate_unique_slug

if TYPE_CHECKING:
    from ..db.catalog_store import CatalogStore

"""Transactional batch executor.

One import = one transaction. Rows are processed strictly in file order:

    parse -> validate -> resolve category -> resolve mode -> insert | update

Failure tiers:

- row-scoped: bad data, mode conflicts and store errors raised while
  persisting a row. The row's savepoint is rolled back, the row is counted in
  ``failed`` and the loop goes on.
- systemic: failures before the loop (BEGIN, index construction), a lost
  connection, a failed savepoint rollback, a failed COMMIT. The whole
  transaction is rolled back and ``ImportAbortedError`` is raised; nothing
  from the file is committed.
"""

__all__ = [
    "RowOutcome",
    "run_import",
    "execute_rows",
    "process_row",
]

logger = logging.getLogger(__name__)

FILE_LEVEL_FIELD = "<FILE_LEVEL>"


@dataclass(frozen=True)
class RowOutcome:
    """What happened to one row."""
    status: str  # created / updated / failed
    errors: list[RowError] = field(default_factory=list)
    error_type: str | None = None  # UPPER_SNAKE classification for failed rows

    @staticmethod
    def created() -> RowOutcome:
        return RowOutcome(status="created")

    @staticmethod
    def updated() -> RowOutcome:
        return RowOutcome(status="updated")

    @staticmethod
    def failed(errors: list[RowError], error_type: str) -> RowOutcome:
        return RowOutcome(status="failed", errors=errors, error_type=error_type)


def _duplicate_key_error(row_number: int, sku: str, e: DuplicateKeyError) -> RowError:
    constraint = (e.constraint or "").lower()
    if "sku" in constraint or (not constraint and "sku" in str(e).lower()):
        return RowError(
            row_number,
            "sku",
            f'SKU "{sku}" was already created by an earlier row of this import',
        )
    return RowError(row_number, GENERAL_FIELD, str(e) or "duplicate key")


def process_row(
    store: CatalogStore,
    raw: Mapping[str, Any],
    row_number: int,
    mode: ImportMode,
    known_skus: Set[str],
    categories: CategoryIndex,
    products: Mapping[str, ProductKey],
) -> RowOutcome:
    """Run one row through the pipeline; persistence happens in a savepoint.

    Store errors other than ``StoreConnectionError`` are turned into a failed
    outcome here; everything else propagates to the caller's guard.
    """
    parsed = parse_row(raw, row_number)

    validation = validate_row(parsed, row_number, known_skus, categories)
    if not validation.ok:
        return RowOutcome.failed(validation.errors, "VALIDATION_ERROR")

    # The validator rejected rows whose category is not in the index
    category_id = resolve_category(categories, parsed.category)

    sku = parsed.sku or ""
    existing = products.get(sku)
    resolution = resolve(mode, existing is not None)
    if isinstance(resolution, Reject):
        return RowOutcome.failed(
            [RowError(row_number, "sku", f'Product with SKU "{sku}": {resolution.reason}')],
            "MODE_CONFLICT",
        )

    record = to_product_record(parsed, category_id)
    try:
        with store.row_savepoint():
            if isinstance(resolution, Create):
                slug = generate_unique_slug(record["name"], store.slug_exists)
                product_id = store.insert_product({**record, "slug": slug})
                logger.debug("row=%d created sku=%s id=%s slug=%s", row_number, sku, product_id, slug)
                return RowOutcome.created()
            # Slugs are stable once assigned; a renamed product keeps its URL
            store.update_product(existing.id, {**record, "slug": existing.slug})
            logger.debug("row=%d updated sku=%s id=%s", row_number, sku, existing.id)
            return RowOutcome.updated()
    except StoreConnectionError:
        raise
    except DuplicateKeyError as e:
        return RowOutcome.failed([_duplicate_key_error(row_number, sku, e)], "DUPLICATE_KEY")
    except StoreError as e:
        return RowOutcome.failed([RowError(row_number, GENERAL_FIELD, str(e) or "store error")], "DATABASE_ERROR")


def _rollback(store: CatalogStore, file_name: str, error_log: ErrorLogBuffer | None) -> None:
    try:
        store.rollback()
    except Exception as rollback_e:
        # Keep the original error as the reported cause
        logger.error("rollback failed file=%s: %s", file_name, rollback_e)
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(file_name, -1, FILE_LEVEL_FIELD, "TRANSACTION_ROLLBACK_ERROR", str(rollback_e))
            )


def _abort(
    store: CatalogStore,
    file_name: str,
    error_log: ErrorLogBuffer | None,
    error_type: str,
    message: str,
    row: int | None = None,
) -> ImportAbortedError:
    """Roll back, record the file-level failure and build the exception to raise."""
    _rollback(store, file_name, error_log)
    if error_log is not None:
        error_log.append(
            ErrorRecord.create(file_name, row if row is not None else -1, FILE_LEVEL_FIELD, error_type, message)
        )
    logger.error("%s; all changes have been rolled back", message)
    return ImportAbortedError(f"{message}. All changes have been rolled back.", row=row)


def execute_rows(
    store: CatalogStore,
    raw_rows: Sequence[Mapping[str, Any]],
    mode: ImportMode | str,
    *,
    file_name: str = "upload.csv",
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool | None = None,
) -> ImportResult:
    """Import already-tokenized rows inside one transaction.

    Args:
        store: catalog store (transaction control + lookups + writes)
        raw_rows: ``column -> text`` mappings, first element = file line 2
        mode: import mode (enum or its string value)
        file_name: name used in logs and error records
        error_log: optional buffer receiving one ErrorRecord per row error
        show_progress: force the progress bar on/off (default: TTY detection)

    Returns:
        ImportResult of the committed transaction

    Raises:
        StructuralError: ``raw_rows`` is empty (no transaction is opened)
        ImportAbortedError: systemic failure; the transaction was rolled back
    """
    mode = ImportMode.parse(mode)
    if not raw_rows:
        raise StructuralError(f"file '{file_name}' contains no data rows")

    try:
        store.begin()
    except StoreError as e:
        if error_log is not None:
            error_log.append(ErrorRecord.create(file_name, -1, FILE_LEVEL_FIELD, "TRANSACTION_BEGIN_ERROR", str(e)))
        raise ImportAbortedError(f"failed to begin transaction: {e}") from e

    created = updated = failed = 0
    errors: list[RowError] = []
    current_row: int | None = None

    try:
        indexes: ReferenceIndexes = build_reference_indexes(store)
        known_skus = indexes.known_skus

        with RowProgress(len(raw_rows), enabled=show_progress) as progress:
            for offset, raw in enumerate(raw_rows):
                current_row = FIRST_DATA_ROW + offset
                try:
                    outcome = process_row(
                        store,
                        raw,
                        current_row,
                        mode,
                        known_skus,
                        indexes.categories,
                        indexes.products,
                    )
                except StoreConnectionError:
                    raise
                except Exception as e:
                    logger.error("row=%d unexpected failure: %s", current_row, e, exc_info=True)
                    outcome = RowOutcome.failed(
                        [RowError(current_row, GENERAL_FIELD, str(e) or type(e).__name__)],
                        "UNEXPECTED_ERROR",
                    )

                if outcome.status == "created":
                    created += 1
                elif outcome.status == "updated":
                    updated += 1
                else:
                    failed += 1
                    errors.extend(outcome.errors)
                    if error_log is not None:
                        for err in outcome.errors:
                            error_log.append(ErrorRecord.from_row_error(file_name, err, outcome.error_type or "ROW_ERROR"))
                    logger.debug(
                        "row=%d failed type=%s fields=%s",
                        current_row,
                        outcome.error_type,
                        [err.field for err in outcome.errors],
                    )
                progress.advance(created=created, updated=updated, failed=failed)
    except Exception as e:
        if current_row is None:
            raise _abort(
                store, file_name, error_log, "INDEX_BUILD_ERROR", f"failed to load catalog indexes: {e}"
            ) from e
        raise _abort(
            store, file_name, error_log, "SYSTEMIC_ERROR", f"import aborted at row {current_row}: {e}", current_row
        ) from e

    try:
        store.commit()
    except StoreError as e:
        raise _abort(store, file_name, error_log, "TRANSACTION_COMMIT_ERROR", f"commit failed: {e}") from e

    result = build_result(len(raw_rows), created, updated, failed, errors)
    logger.info(
        "import committed file=%s mode=%s total=%d created=%d updated=%d failed=%d",
        file_name,
        mode.value,
        result.total,
        result.created,
        result.updated,
        result.failed,
    )
    return result


def run_import(
    store: CatalogStore,
    content: bytes,
    mode: ImportMode | str,
    *,
    file_name: str = "upload.csv",
    settings: ImportSettings | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool | None = None,
) -> ImportResult:
    """Import an uploaded table (bytes + mode) into the catalog.

    Structural problems (size limit, unparseable table, no data rows, bad
    mode) raise before any transaction is opened.
    """
    mode = ImportMode.parse(mode)
    settings = settings or ImportSettings()
    started = datetime.now(UTC)

    ensure_size_limit(content, settings.max_file_bytes, file_name=file_name)
    raw_rows = read_table_bytes(content, file_name=file_name)
    logger.info("import started file=%s mode=%s rows=%d", file_name, mode.value, len(raw_rows))

    result = execute_rows(
        store,
        raw_rows,
        mode,
        file_name=file_name,
        error_log=error_log,
        show_progress=show_progress,
    )
    logger.debug("import finished in %.3fs", (datetime.now(UTC) - started).total_seconds())
    return result
