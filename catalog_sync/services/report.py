from __future__ import annotations

from collections.abc import Iterable

from ..models.import_result import ImportResult, ValidationReport
from ..models.row_error import RowError

"""Result reporting: build the final ``ImportResult`` and render it for humans.

``render_summary_line`` produces the single machine-greppable line printed at
the end of a CLI run, e.g.::

    SUMMARY total=3 created=1 updated=0 failed=2 errors=2 elapsed_sec=0.12 throughput_rps=25
"""

__all__ = [
    "build_result",
    "format_row_error",
    "render_summary_line",
    "render_validation_line",
]


def build_result(
    total: int,
    created: int,
    updated: int,
    failed: int,
    errors: Iterable[RowError],
) -> ImportResult:
    """Aggregate counters into an immutable ``ImportResult``.

    Raises:
        ValueError: if the counters do not add up to ``total``
    """
    if created + updated + failed != total:
        raise ValueError(
            f"row counters do not add up: created={created} updated={updated} failed={failed} total={total}"
        )
    return ImportResult(
        total=total,
        created=created,
        updated=updated,
        failed=failed,
        errors=tuple(errors),
    )


def format_row_error(error: RowError) -> str:
    return f"Row {error.row}: {error.field} - {error.message}"


def _format_number(value: float) -> str:
    # Integers without decimals, tiny values without scientific notation
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult, elapsed_seconds: float) -> str:
    throughput = result.total / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return (
        f"SUMMARY total={result.total} "
        f"created={result.created} "
        f"updated={result.updated} "
        f"failed={result.failed} "
        f"errors={len(result.errors)} "
        f"elapsed_sec={_format_number(elapsed_seconds)} "
        f"throughput_rps={_format_number(throughput)}"
    )


def render_validation_line(report: ValidationReport) -> str:
    return (
        f"SUMMARY total={report.total_rows} "
        f"valid={report.valid} "
        f"invalid={report.invalid} "
        f"errors={len(report.errors)} "
        f"warnings={len(report.warnings)}"
    )
