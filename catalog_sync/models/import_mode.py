from __future__ import annotations

from enum import Enum

from ..errors import InvalidModeError

"""Import mode selected once per run.

The mode is parsed from its string form at the boundary (CLI argument, config
default) and passed through the executor as an enum member from then on.
"""

__all__ = [
    "ImportMode",
]


class ImportMode(Enum):
    """Conflict-resolution policy for a whole import.

    - CREATE: only new SKUs are accepted
    - UPDATE: only SKUs already in the catalog are accepted
    - UPSERT: new SKUs are created, known SKUs are updated
    """
    CREATE = "create"
    UPDATE = "update"
    UPSERT = "upsert"

    @classmethod
    def parse(cls, value: str | ImportMode) -> ImportMode:
        if isinstance(value, ImportMode):
            return value
        normalized = str(value).strip().lower() if value is not None else ""
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise InvalidModeError(f"invalid mode '{value}': must be one of {allowed}") from None
