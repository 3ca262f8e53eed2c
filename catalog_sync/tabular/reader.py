from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import StructuralError

"""Tabular reader for uploaded catalog files.

The first line of the file is the header; every following non-blank line is a
data row. Rows are returned as plain ``column -> str`` mappings with surrounding
whitespace removed, so every value the pipeline sees is text. Type coercion is
the row parser's job, not pandas'.

Whole-file problems (undecodable bytes, malformed quoting, missing header, no
data rows) raise ``StructuralError`` before any database work starts.
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "FIRST_DATA_ROW",
    "read_table_bytes",
    "read_catalog_file",
    "ensure_size_limit",
]

SUPPORTED_SUFFIXES = {".csv", ".xlsx"}

# Row number reported for the first data line (line 1 is the header)
FIRST_DATA_ROW = 2


def ensure_size_limit(content: bytes, max_bytes: int | None, *, file_name: str = "") -> None:
    if max_bytes is not None and len(content) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise StructuralError(
            f"file '{file_name}' is {len(content)} bytes; the limit is {max_bytes} bytes ({limit_mb:g} MB)"
        )


def _frame_from_bytes(content: bytes, suffix: str) -> pd.DataFrame:
    if suffix == ".xlsx":
        try:
            return pd.read_excel(
                io.BytesIO(content),
                dtype=str,
                keep_default_na=False,
                engine="openpyxl",
            )
        except (zipfile.BadZipFile, InvalidFileException, KeyError) as e:
            # Not an OOXML workbook (corrupt archive or missing workbook part)
            raise StructuralError(f"file is not a valid .xlsx workbook: {e}") from e
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise StructuralError(f"file is not valid UTF-8: {e}") from e
    return pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str) and pd.isna(value):
        return ""
    return str(value).strip()


def read_table_bytes(content: bytes, *, file_name: str = "upload.csv") -> list[dict[str, str]]:
    """Parse an uploaded table into a list of raw rows.

    Parameters
    ----------
    content: raw file bytes (CSV in UTF-8, optionally with BOM, or XLSX)
    file_name: used to pick the format by suffix and in error messages
    """
    suffix = Path(file_name).suffix.lower() or ".csv"
    if not content or not content.strip():
        raise StructuralError(f"file '{file_name}' is empty")

    try:
        df = _frame_from_bytes(content, suffix)
    except StructuralError:
        raise
    except pd.errors.EmptyDataError as e:
        raise StructuralError(f"file '{file_name}' has no header row") from e
    except (pd.errors.ParserError, ValueError) as e:
        raise StructuralError(f"invalid table format in '{file_name}': {e}") from e

    columns = [str(c).strip() for c in df.columns]
    if not any(columns):
        raise StructuralError(f"file '{file_name}' has no header row")

    rows: list[dict[str, str]] = []
    for values in df.itertuples(index=False, name=None):
        row = {col: _cell_text(val) for col, val in zip(columns, values, strict=False)}
        # Lines holding only delimiters count as blank
        if not any(row.values()):
            continue
        rows.append(row)

    if not rows:
        raise StructuralError(f"file '{file_name}' contains no data rows")
    return rows


def read_catalog_file(path: Path, max_bytes: int | None = None) -> bytes:
    """Read an import file from disk after checking its suffix and size."""
    if not path.exists():
        raise StructuralError(f"file not found: {path}")
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        allowed = ", ".join(sorted(SUPPORTED_SUFFIXES))
        raise StructuralError(f"unsupported file type '{path.suffix}': expected one of {allowed}")
    content = path.read_bytes()
    ensure_size_limit(content, max_bytes, file_name=path.name)
    return content
