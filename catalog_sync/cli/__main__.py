from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, load_config
from ..db.catalog_store import CatalogStore
from ..errors import ConfigError, ImportAbortedError, InvalidModeError, StoreError, StructuralError
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.config_models import AppConfig
from ..models.error_record import ErrorRecord
from ..models.import_mode import ImportMode
from ..services.executor import FILE_LEVEL_FIELD, run_import
from ..services.exporter import export_catalog, write_template
from ..services.preview import preview_import
from ..services.report import format_row_error, render_summary_line, render_validation_line
from ..tabular.reader import read_catalog_file

"""CLI entrypoint.

    catalog-sync import products.csv --mode upsert
    catalog-sync validate products.csv
    catalog-sync export products-2025-10-18.csv
    catalog-sync template products-template.csv

Exit codes:
    0  every row was imported (or the file validated cleanly)
    2  the run finished but some rows failed
    1  fatal: bad config, unusable file, no database, or a rolled-back import
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _resolve_dsn(cfg: AppConfig) -> str:
    """Connection string; environment variables win over the config file.

    1. ``DATABASE_URL`` / ``PGDSN`` (``.env`` is loaded into the environment first)
    2. individual ``PGHOST`` / ``PGPORT`` / ``PGUSER`` / ``PGPASSWORD`` / ``PGDATABASE``
    3. the ``database`` section of the config for whatever is still missing
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: AppConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper; tested via integration)
    """psycopg2 connection in autocommit mode; yields a cursor.

    The executor issues BEGIN/COMMIT/ROLLBACK itself. Anything still open when
    the block exits is rolled back, never committed implicitly.
    """
    conn = psycopg2.connect(_resolve_dsn(cfg))
    conn.autocommit = True  # explicit BEGIN/COMMIT statements drive the transaction
    cur = conn.cursor()
    try:
        yield cur
    finally:
        try:
            if not conn.closed:
                cur.execute("ROLLBACK")
        except psycopg2.Error:
            pass
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load ``.env`` so its connection settings take priority."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="catalog-sync", description="Product catalog CSV importer")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Path to import.yml")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import a CSV/XLSX file into the catalog")
    imp.add_argument("file", type=Path)
    imp.add_argument("--mode", choices=[m.value for m in ImportMode], default=None,
                     help="create | update | upsert (default from config)")
    imp.add_argument("--json", action="store_true", help="Print the result as JSON")

    val = sub.add_parser("validate", help="Validate a file without importing it")
    val.add_argument("file", type=Path)
    val.add_argument("--json", action="store_true", help="Print the report as JSON")

    exp = sub.add_parser("export", help="Export the catalog as CSV")
    exp.add_argument("output", type=Path)

    tpl = sub.add_parser("template", help="Write an empty import template with one example row")
    tpl.add_argument("output", type=Path)
    return p.parse_args(argv)


def _run_import(args: argparse.Namespace, cfg: AppConfig, logger: Any) -> int:
    error_log = ErrorLogBuffer(cfg.logs_directory)
    started = datetime.now(UTC)
    try:
        mode = ImportMode.parse(args.mode) if args.mode else cfg.settings.default_mode
        content = read_catalog_file(args.file, cfg.settings.max_file_bytes)
        with _db_connection(cfg) as cur:
            store = CatalogStore(cur, cfg.tables)
            result = run_import(
                store,
                content,
                mode,
                file_name=args.file.name,
                settings=cfg.settings,
                error_log=error_log,
            )
    except (StructuralError, InvalidModeError) as e:
        logger.error(f"input: {e}")
        error_log.append(ErrorRecord.create(args.file.name, -1, FILE_LEVEL_FIELD, "STRUCTURAL_ERROR", str(e)))
        _flush_error_log(error_log, logger)
        return EXIT_FATAL
    except ImportAbortedError as e:
        logger.error(f"import: {e}")
        _flush_error_log(error_log, logger)
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database: {e}".strip())
        return EXIT_FATAL

    for err in result.errors:
        logger.warning(format_row_error(err))
    _flush_error_log(error_log, logger)

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False))
    elapsed = (datetime.now(UTC) - started).total_seconds()
    log_summary(render_summary_line(result, elapsed)[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if result.has_failures else EXIT_SUCCESS_ALL


def _run_validate(args: argparse.Namespace, cfg: AppConfig, logger: Any) -> int:
    try:
        content = read_catalog_file(args.file, cfg.settings.max_file_bytes)
        with _db_connection(cfg) as cur:
            report = preview_import(
                CatalogStore(cur, cfg.tables),
                content,
                file_name=args.file.name,
                preview_rows=cfg.settings.preview_rows,
            )
    except StructuralError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except (psycopg2.Error, StoreError) as e:
        logger.error(f"database: {e}".strip())
        return EXIT_FATAL

    for err in report.errors:
        logger.error(format_row_error(err))
    for warning in report.warnings:
        logger.warning(f"Row {warning.row}: {warning.field} - {warning.message}")
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, default=str))
    log_summary(render_validation_line(report)[len("SUMMARY "):])
    return EXIT_PARTIAL_FAILURE if report.invalid else EXIT_SUCCESS_ALL


def _run_export(args: argparse.Namespace, cfg: AppConfig, logger: Any) -> int:
    try:
        with _db_connection(cfg) as cur:
            count = export_catalog(CatalogStore(cur, cfg.tables), args.output)
    except (psycopg2.Error, StoreError) as e:
        logger.error(f"database: {e}".strip())
        return EXIT_FATAL
    log_summary(f"exported={count} file={args.output}")
    return EXIT_SUCCESS_ALL


def _flush_error_log(error_log: ErrorLogBuffer, logger: Any) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        # The run result stands even when the log cannot be written
        logger.warning(f"could not write error log: {e}")
        return
    if path is not None:
        logger.info(f"error log written to {path}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only None falls back to sys.argv; an empty list means "no arguments"
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    if args.command == "template":
        path = write_template(args.output)
        logger.info(f"template written to {path}")
        return EXIT_SUCCESS_ALL

    # .env first so its connection settings override the config file
    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(Path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "import":
        return _run_import(args, cfg, logger)
    if args.command == "validate":
        return _run_validate(args, cfg, logger)
    return _run_export(args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
