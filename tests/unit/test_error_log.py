from __future__ import annotations

import json
from pathlib import Path

from catalog_sync.logging.error_log import ErrorLogBuffer
from catalog_sync.models.error_record import ErrorRecord
from catalog_sync.models.row_error import RowError


def test_error_record_create():
    rec = ErrorRecord.create("parts.csv", 3, "sku", "MODE_CONFLICT", "exists")
    assert rec.timestamp.endswith("Z")
    assert rec.row == 3


def test_error_record_from_row_error():
    rec = ErrorRecord.from_row_error("parts.csv", RowError(4, "price", "Price is required"), "VALIDATION_ERROR")
    assert (rec.file, rec.row, rec.field, rec.error_type) == ("parts.csv", 4, "price", "VALIDATION_ERROR")
    assert rec.message == "Price is required"


def test_to_json_line_keeps_unicode():
    rec = ErrorRecord.create("部品.csv", -1, "<FILE_LEVEL>", "STRUCTURAL_ERROR", "空のファイル")
    data = json.loads(rec.to_json_line())
    assert list(data) == ["timestamp", "file", "row", "field", "error_type", "message"]
    assert "部品.csv" in rec.to_json_line()


def test_flush_without_records_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()


def test_flush_writes_json_lines(tmp_path: Path):
    buf = ErrorLogBuffer(tmp_path / "logs")
    buf.append(ErrorRecord.create("a.csv", 2, "price", "VALIDATION_ERROR", "x"))
    buf.append(ErrorRecord.create("a.csv", 3, "sku", "MODE_CONFLICT", "y"))
    path = buf.flush()
    assert path is not None
    assert path.parent == tmp_path / "logs"
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["row"] for line in lines] == [2, 3]
    assert buf.records == []
