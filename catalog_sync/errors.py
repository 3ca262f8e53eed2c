from __future__ import annotations

"""Exception hierarchy for the catalog import.

Two tiers matter to callers:

- row-scoped problems never surface as exceptions; they end up in
  ``ImportResult.errors``
- everything defined here either stops an import before a transaction is
  opened (``StructuralError``, ``InvalidModeError``) or reports that the whole
  transaction was rolled back (``ImportAbortedError``)
"""

__all__ = [
    "CatalogSyncError",
    "ConfigError",
    "StructuralError",
    "InvalidModeError",
    "ImportAbortedError",
    "StoreError",
    "DuplicateKeyError",
    "StoreConnectionError",
]


class CatalogSyncError(Exception):
    """Base exception for catalog import failures."""


class ConfigError(CatalogSyncError):
    pass


class StructuralError(CatalogSyncError):
    """The uploaded table is unusable as a whole (unparseable, empty, too big)."""


class InvalidModeError(CatalogSyncError):
    pass


class ImportAbortedError(CatalogSyncError):
    """Raised after a systemic failure; nothing from the batch was committed."""

    def __init__(self, message: str, *, row: int | None = None) -> None:
        super().__init__(message)
        self.row = row


class StoreError(Exception):
    """Store-level failure while executing a single statement."""


class DuplicateKeyError(StoreError):
    """A unique constraint rejected the statement."""

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


class StoreConnectionError(StoreError):
    """The connection or the enclosing transaction is no longer usable."""
