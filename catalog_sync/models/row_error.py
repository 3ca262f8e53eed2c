from __future__ import annotations

from dataclasses import asdict, dataclass

"""Row-level error and warning records returned to the caller."""

__all__ = [
    "RowError",
    "RowWarning",
    "GENERAL_FIELD",
]

# Field name used when a failure cannot be attributed to a single column
GENERAL_FIELD = "general"


@dataclass(frozen=True)
class RowError:
    """A problem that excludes one row from persistence.

    Attributes:
        row: 1-based line number, header-adjusted (first data line is 2)
        field: input column the problem belongs to, or ``"general"``
        message: human readable description
    """
    row: int
    field: str
    message: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class RowWarning:
    """A non-fatal problem; the affected value falls back to its default."""
    row: int
    field: str
    message: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
