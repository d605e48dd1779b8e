# ==============================================
# SQLiteClient
# ==============================================
#
# PURPOSE:
#   Same operations as MySQLClient against a SQLite file, for local
#   runs and for the test suite (no server needed).
#
#   - Id      INTEGER PRIMARY KEY AUTOINCREMENT
#   - Payload TEXT NOT NULL
#   - dynamic columns: TEXT, nullable
#
#   SQLite compares column names case-insensitively, matching MySQL.
#   `table_schema` is accepted for interface parity and ignored.
#
# ==============================================

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from schemaflow.errors import SchemaConflictError, StoreUnavailableError


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SQLiteClient:
    # No practical identifier limit
    max_identifier_length = None

    def __init__(
        self,
        path: str | Path,
        table_name: str = "mfMagellan",
        table_schema: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ):
        self.path = str(path)
        self.table_name = table_name
        self.table_schema = table_schema
        self.timeout_seconds = timeout_seconds
        self.connection: Optional[sqlite3.Connection] = None

    @property
    def qualified_table(self) -> str:
        return quote_identifier(self.table_name)

    def connect(self) -> None:
        try:
            self.connection = sqlite3.connect(
                self.path,
                timeout=self.timeout_seconds,
                uri=self.path.startswith("file:"),
            )
            # WAL lets readers continue while a writer alters the table
            if self.path != ":memory:":
                self.connection.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as e:
            self.disconnect()
            raise StoreUnavailableError(f"SQLite connect failed: {e}") from e

    def disconnect(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def table_exists(self) -> bool:
        with self._store_errors("table lookup"):
            row = self._conn().execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ? LIMIT 1",
                (self.table_name,),
            ).fetchone()
        return row is not None

    def create_table(self) -> None:
        with self._store_errors("create table"):
            self._conn().execute(
                f"CREATE TABLE IF NOT EXISTS {self.qualified_table} ("
                "Id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "Payload TEXT NOT NULL"
                ")"
            )
            self._conn().commit()

    def get_current_columns(self) -> list[str]:
        with self._store_errors("column listing"):
            rows = self._conn().execute(f"PRAGMA table_info({self.qualified_table})").fetchall()
        return [row[1] for row in rows]

    def add_text_column(self, column_name: str) -> None:
        conn = self._conn()
        try:
            conn.execute(
                f"ALTER TABLE {self.qualified_table} ADD COLUMN {quote_identifier(column_name)} TEXT"
            )
            conn.commit()
        except sqlite3.OperationalError as e:
            if "duplicate column name" in str(e).lower():
                raise SchemaConflictError(self.table_name, column_name) from e
            raise StoreUnavailableError(f"SQLite add column '{column_name}' failed: {e}") from e
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"SQLite add column '{column_name}' failed: {e}") from e

    def insert_row(self, values: dict[str, Optional[str]]) -> int:
        columns = ", ".join(quote_identifier(col) for col in values)
        placeholders = ", ".join(["?"] * len(values))
        query = f"INSERT INTO {self.qualified_table} ({columns}) VALUES ({placeholders})"

        conn = self._conn()
        try:
            cursor = conn.execute(query, tuple(values.values()))
            conn.commit()
            return int(cursor.lastrowid)
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailableError(f"SQLite insert failed: {e}") from e

    def execute(self, query: str, params: tuple | None = None) -> None:
        conn = self._conn()
        try:
            conn.execute(query, params or ())
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailableError(f"SQLite query failed: {e}") from e

    def fetch_all(self, query: str, params: tuple | None = None) -> list[dict[str, Any]]:
        with self._store_errors("query"):
            cursor = self._conn().execute(query, params or ())
            names = [description[0] for description in cursor.description or ()]
            return [dict(zip(names, row)) for row in cursor.fetchall()]

    def _conn(self) -> sqlite3.Connection:
        if self.connection is None:
            raise StoreUnavailableError("Not connected to SQLite")
        return self.connection

    @contextmanager
    def _store_errors(self, operation: str):
        try:
            yield
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"SQLite {operation} failed: {e}") from e

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
