from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..errors import ConfigError
from ..models.config_models import (
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_PREVIEW_ROWS,
    AppConfig,
    DatabaseConfig,
    ImportSettings,
    TableNames,
)
from ..models.import_mode import ImportMode

"""Config loader.

Responsibilities:
- Load YAML ``config/import.yml``
- Validate it against the bundled JSON schema (unknown keys are rejected)
- Apply defaults for every optional key
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: if the schema file is missing or unreadable, or the data
            violates it (unknown keys, wrong types, out-of-range values).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    tables_raw = data.get("tables") or {}
    defaults = TableNames()
    tables = TableNames(
        products=tables_raw.get("products", defaults.products),
        categories=tables_raw.get("categories", defaults.categories),
    )

    import_raw = data.get("import") or {}
    settings = ImportSettings(
        default_mode=ImportMode.parse(import_raw.get("default_mode", ImportMode.CREATE.value)),
        max_file_bytes=import_raw.get("max_file_bytes", DEFAULT_MAX_FILE_BYTES),
        preview_rows=import_raw.get("preview_rows", DEFAULT_PREVIEW_ROWS),
    )

    return AppConfig(
        database=db,
        tables=tables,
        settings=settings,
        logs_directory=data.get("logs_directory", "./logs"),
    )
