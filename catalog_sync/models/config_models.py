from __future__ import annotations

from dataclasses import dataclass, field

from .import_mode import ImportMode

"""Config dataclasses for the catalog import tool.

Built by ``catalog_sync.config.loader.load_config`` from ``config/import.yml``
after schema validation; the rest of the code only sees these frozen objects.
"""

DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_PREVIEW_ROWS = 10


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class TableNames:
    """Physical table names of the catalog."""
    products: str = "parts"
    categories: str = "categories"


@dataclass(frozen=True)
class ImportSettings:
    default_mode: ImportMode = ImportMode.CREATE
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    preview_rows: int = DEFAULT_PREVIEW_ROWS


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    tables: TableNames = field(default_factory=TableNames)
    settings: ImportSettings = field(default_factory=ImportSettings)
    logs_directory: str = "./logs"
