from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .row_error import RowError

"""ErrorRecord model for the JSON Lines error log.

Every row that fails during an import is written to the error log with the
file it came from, so a run can be audited after the terminal output is gone.
``row=-1`` marks file-level failures (structural errors, aborted transactions)
where no single row is to blame.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: name of the imported file
        row: row number (header-adjusted). -1 for file-level errors
        field: input column, ``general`` or ``<FILE_LEVEL>``
        error_type: classification in UPPER_SNAKE_CASE
        message: description shown to the operator
    """
    timestamp: str
    file: str
    row: int
    field: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, field: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            field=field,
            error_type=error_type,
            message=message,
        )

    @staticmethod
    def from_row_error(file: str, error: RowError, error_type: str) -> ErrorRecord:
        return ErrorRecord.create(
            file=file,
            row=error.row,
            field=error.field,
            error_type=error_type,
            message=error.message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line with exactly the dataclass keys."""
        return json.dumps(asdict(self), ensure_ascii=False)
