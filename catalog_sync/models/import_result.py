from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .row_error import RowError, RowWarning

"""Result models for an import run and for a validation preview."""

__all__ = [
    "ImportResult",
    "PreviewRow",
    "ValidationReport",
]


@dataclass(frozen=True)
class ImportResult:
    """Final tally of one committed import.

    ``created + updated + failed == total`` always holds; ``errors`` can hold
    more than ``failed`` entries because a row may fail several checks.
    """
    total: int
    created: int
    updated: int
    failed: int
    errors: tuple[RowError, ...] = ()

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class PreviewRow:
    row_number: int
    data: dict[str, Any]


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of validating a file without writing anything."""
    total_rows: int
    valid: int
    invalid: int
    errors: tuple[RowError, ...] = ()
    warnings: tuple[RowWarning, ...] = ()
    preview: tuple[PreviewRow, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "valid": self.valid,
            "invalid": self.invalid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "preview": [{"row_number": p.row_number, "data": p.data} for p in self.preview],
        }
