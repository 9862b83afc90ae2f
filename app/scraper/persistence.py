"""SQLite persistence of scraping results into caller-named tables.

Table and column names arrive from the client, so every identifier is checked
against an allow-list pattern and quoted before it is interpolated into SQL.
Values always travel as bound parameters.
"""
from __future__ import annotations

import json
import re
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from . import config
from .error_codes import (
    InvalidIdentifierError,
    InvalidRequestError,
    NoRowsError,
    PersistenceError,
    PersistenceUnavailableError,
)
from .logging_utils import _scraper_event

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")
ALLOWED_COLUMN_TYPES = frozenset({"TEXT", "INTEGER", "REAL", "NUMERIC"})
DEFAULT_BATCH_SIZE = 100

METADATA_COLUMNS: Dict[str, str] = {
    "metadata_pageTitle": "TEXT",
    "metadata_statusCode": "INTEGER",
    "metadata_contentType": "TEXT",
    "metadata_responseTime": "INTEGER",
}
FIXED_COLUMNS = ("id", "url", "timestamp")
# SQLite compares identifiers case-insensitively.
_RESERVED_COLUMNS = frozenset(name.lower() for name in (*FIXED_COLUMNS, *METADATA_COLUMNS))


@dataclass(frozen=True)
class DatabaseConfig:
    table: str
    columns: Dict[str, str] = field(default_factory=dict)
    include_metadata: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE


@dataclass
class SaveOutcome:
    table: str
    row_count: int

    @property
    def message(self) -> str:
        return f"Successfully inserted {self.row_count} rows into {self.table}"


def get_connection() -> sqlite3.Connection:
    """Return a connection to the configured scraping database.

    Raises ``PersistenceUnavailableError`` when no database path is set.
    """

    if not config.persistence_enabled():
        raise PersistenceUnavailableError("Database connection not available")
    db_path = config.DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def validate_identifier(name: Any) -> str:
    if not isinstance(name, str) or not IDENTIFIER_RE.match(name):
        _scraper_event("error", phase="db", step="identifier_rejected", identifier=repr(name))
        raise InvalidIdentifierError(f"Invalid SQL identifier: {name!r}")
    return name


def quote_identifier(name: str) -> str:
    return '"' + validate_identifier(name) + '"'


def parse_db_config(payload: Any) -> DatabaseConfig:
    if not isinstance(payload, Mapping) or not payload.get("table"):
        raise InvalidRequestError("Invalid database configuration")
    columns_raw = payload.get("columns") or {}
    if not isinstance(columns_raw, Mapping):
        raise InvalidRequestError("dbConfig.columns must be an object")
    options = payload.get("options") or {}
    if not isinstance(options, Mapping):
        raise InvalidRequestError("dbConfig.options must be an object")
    try:
        batch_size = int(options.get("batchSize") or DEFAULT_BATCH_SIZE)
    except (TypeError, ValueError) as exc:
        raise InvalidRequestError("dbConfig.options.batchSize must be an integer") from exc

    table = validate_identifier(payload["table"])
    columns: Dict[str, str] = {}
    seen: Dict[str, str] = {}
    for selector_id, column in columns_raw.items():
        # An empty mapping means "skip this selector".
        if not column:
            continue
        column = validate_identifier(column)
        folded = column.lower()
        if folded in _RESERVED_COLUMNS:
            raise InvalidIdentifierError(f"Column name {column!r} is reserved")
        if seen.setdefault(folded, column) != column:
            raise InvalidIdentifierError(f"Column names {seen[folded]!r} and {column!r} differ only by case")
        columns[str(selector_id)] = column
    return DatabaseConfig(
        table=table,
        columns=columns,
        include_metadata=bool(options.get("includeMetadata")),
        batch_size=max(1, batch_size),
    )


def column_specs(db_config: DatabaseConfig) -> Dict[str, str]:
    specs = {column: "TEXT" for column in db_config.columns.values()}
    if db_config.include_metadata:
        specs.update(METADATA_COLUMNS)
    return specs


def _existing_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({quote_identifier(table)})").fetchall()
    return {row["name"].lower() for row in rows}


def ensure_table(conn: sqlite3.Connection, table: str, specs: Mapping[str, str]) -> None:
    """Create ``table`` if needed and add any columns it is missing."""

    quoted_table = quote_identifier(table)
    definitions = [
        "id INTEGER PRIMARY KEY AUTOINCREMENT",
        "url TEXT NOT NULL",
        "timestamp TEXT NOT NULL",
    ]
    for column, column_type in specs.items():
        if column_type not in ALLOWED_COLUMN_TYPES:
            raise InvalidIdentifierError(f"Column type {column_type!r} is not allowed")
        definitions.append(f"{quote_identifier(column)} {column_type}")

    conn.execute(f"CREATE TABLE IF NOT EXISTS {quoted_table} ({', '.join(definitions)})")

    existing = _existing_columns(conn, table)
    for column, column_type in specs.items():
        if column.lower() in existing:
            continue
        conn.execute(f"ALTER TABLE {quoted_table} ADD COLUMN {quote_identifier(column)} {column_type}")
        _scraper_event("state", phase="db", step="column_added", table=table, column=column)


def _cell(value: Any) -> Any:
    if isinstance(value, list):
        return ", ".join("" if v is None else str(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return value


def build_rows(results: Iterable[Mapping[str, Any]], db_config: DatabaseConfig) -> List[Dict[str, Any]]:
    """One row per successful result, keyed by column name."""

    rows: List[Dict[str, Any]] = []
    for result in results:
        if not result.get("success"):
            continue
        row: Dict[str, Any] = {
            "url": str(result.get("url") or ""),
            "timestamp": str(result.get("timestamp") or ""),
        }
        data = result.get("data") or {}
        for selector_id, column in db_config.columns.items():
            if selector_id in data:
                row[column] = _cell(data[selector_id])
        metadata = result.get("metadata")
        if db_config.include_metadata and isinstance(metadata, Mapping):
            for key, value in metadata.items():
                column = f"metadata_{key}"
                if column in METADATA_COLUMNS:
                    row[column] = _cell(value)
        rows.append(row)
    return rows


def insert_rows(
    conn: sqlite3.Connection,
    table: str,
    rows: Sequence[Mapping[str, Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Insert ``rows`` in chunks of ``batch_size``; the caller owns the transaction."""

    quoted_table = quote_identifier(table)
    inserted = 0
    # Rows can carry different column subsets, so group by shape.
    by_shape: Dict[tuple, List[Mapping[str, Any]]] = {}
    for row in rows:
        by_shape.setdefault(tuple(row.keys()), []).append(row)

    for columns, group in by_shape.items():
        column_sql = ", ".join(quote_identifier(c) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {quoted_table} ({column_sql}) VALUES ({placeholders})"
        for start in range(0, len(group), max(1, batch_size)):
            chunk = group[start : start + batch_size]
            conn.executemany(sql, [tuple(row[c] for c in columns) for row in chunk])
            inserted += len(chunk)
    return inserted


def save_results(
    results: Sequence[Mapping[str, Any]],
    db_config: DatabaseConfig,
    *,
    connection: Optional[sqlite3.Connection] = None,
) -> SaveOutcome:
    """Persist successful results into ``db_config.table`` in one transaction."""

    rows = build_rows(results, db_config)
    if not rows:
        raise NoRowsError("No valid data to insert")

    conn = connection or get_connection()
    try:
        try:
            with conn:
                ensure_table(conn, db_config.table, column_specs(db_config))
                inserted = insert_rows(conn, db_config.table, rows, db_config.batch_size)
        except sqlite3.Error as exc:
            _scraper_event(
                "error",
                phase="db",
                table=db_config.table,
                attempted=len(rows),
                error=str(exc),
            )
            raise PersistenceError(
                f"Failed to insert data into database: inserted 0 of {len(rows)} rows ({exc})",
                inserted=0,
                attempted=len(rows),
            ) from exc
    finally:
        if connection is None:
            conn.close()

    _scraper_event("state", phase="db", table=db_config.table, inserted=inserted)
    return SaveOutcome(table=db_config.table, row_count=inserted)


__all__ = [
    "DatabaseConfig",
    "SaveOutcome",
    "get_connection",
    "validate_identifier",
    "quote_identifier",
    "parse_db_config",
    "column_specs",
    "ensure_table",
    "build_rows",
    "insert_rows",
    "save_results",
]
