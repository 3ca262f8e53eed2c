"""Domain models for the catalog import.

Rows move through the pipeline as ``ParsedRow`` objects; problems are carried
as ``RowError`` / ``RowWarning`` and the run ends in an ``ImportResult``.
"""

from .config_models import AppConfig, DatabaseConfig, ImportSettings, TableNames
from .import_mode import ImportMode
from .import_result import ImportResult, PreviewRow, ValidationReport
from .parsed_row import INVALID, ParsedRow, ProductKey
from .row_error import RowError, RowWarning

__all__ = [
    # Configuration models
    "AppConfig",
    "DatabaseConfig",
    "ImportSettings",
    "TableNames",
    # Processing models
    "ImportMode",
    "INVALID",
    "ParsedRow",
    "ProductKey",
    "RowError",
    "RowWarning",
    # Results
    "ImportResult",
    "PreviewRow",
    "ValidationReport",
]
