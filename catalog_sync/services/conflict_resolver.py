from __future__ import annotations

from dataclasses import dataclass

from ..models.import_mode import ImportMode

"""Conflict resolution: what to do with a row given the mode and its SKU.

| mode   | SKU known | outcome |
|--------|-----------|---------|
| create | no        | Create  |
| create | yes       | Reject  |
| update | yes       | Update  |
| update | no        | Reject  |
| upsert | yes       | Update  |
| upsert | no        | Create  |

Pure function, no store access.
"""

__all__ = [
    "Create",
    "Update",
    "Reject",
    "Resolution",
    "SKU_EXISTS_REASON",
    "SKU_MISSING_REASON",
    "resolve",
]

SKU_EXISTS_REASON = "SKU already exists (use update/upsert)"
SKU_MISSING_REASON = "SKU not found (use create/upsert)"


@dataclass(frozen=True)
class Create:
    pass


@dataclass(frozen=True)
class Update:
    pass


@dataclass(frozen=True)
class Reject:
    reason: str


Resolution = Create | Update | Reject


def resolve(mode: ImportMode, sku_known: bool) -> Resolution:
    if mode is ImportMode.CREATE:
        return Reject(SKU_EXISTS_REASON) if sku_known else Create()
    if mode is ImportMode.UPDATE:
        return Update() if sku_known else Reject(SKU_MISSING_REASON)
    if mode is ImportMode.UPSERT:
        return Update() if sku_known else Create()
    raise ValueError(f"unhandled import mode: {mode!r}")
