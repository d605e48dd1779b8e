# ==============================================
# MySQLClient
# ==============================================
#
# PURPOSE:
#   Manages one MySQL connection and every SQL operation the
#   pipeline needs against the destination table.
#
# WHY THIS CLASS EXISTS:
#   The table has no predefined schema beyond Id and Payload.
#   Columns are added ON THE FLY as new document fields appear,
#   so this class knows how to create the table, list its columns,
#   add a text column, and insert one row.
#
# CLASS: MySQLClient
# ------------------
#   Stateful — holds one connection, opened per request.
#
#   Constructor:
#   ------------
#   - __init__(host, port, user, password, database,
#              table_name, table_schema=None, timeout_seconds=30)
#       Store connection params. Don't connect yet.
#
#   Methods:
#   --------
#   - connect() / disconnect()
#   - table_exists() -> bool
#   - create_table() -> None            (CREATE TABLE IF NOT EXISTS)
#   - get_current_columns() -> list[str]
#   - add_text_column(name) -> None     (raises SchemaConflictError on 1060)
#   - insert_row(values: dict) -> int   (returns the new Id)
#   - execute(query, params) / fetch_all(query, params)
#
#   Every pymysql error except a duplicate column is re-raised as
#   StoreUnavailableError.
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MySQLClient(...) as db:` usage.
#
# ==============================================

from contextlib import contextmanager
from typing import Any, Optional, cast
import pymysql
import pymysql.cursors
from pymysql.constants import ER

from schemaflow.errors import SchemaConflictError, StoreUnavailableError

# MySQL refuses identifiers longer than this
MAX_IDENTIFIER_LENGTH = 64


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


class MySQLClient:
    max_identifier_length = MAX_IDENTIFIER_LENGTH

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        table_name: str = "mfMagellan",
        table_schema: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.table_name = table_name
        self.table_schema = table_schema or database
        self.timeout_seconds = timeout_seconds
        self.connection = None

    @property
    def qualified_table(self) -> str:
        return f"{quote_identifier(self.table_schema)}.{quote_identifier(self.table_name)}"

    def connect(self) -> None:
        # Establish connection to MySQL, create database if it doesn't exist
        timeout = max(1, int(self.timeout_seconds))
        try:
            self.connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                charset="utf8mb4",
                autocommit=False,
                connect_timeout=timeout,
                read_timeout=timeout,
                write_timeout=timeout,
            )
            with self.connection.cursor() as cursor:
                cursor.execute(f"CREATE DATABASE IF NOT EXISTS {quote_identifier(self.database)}")
                cursor.execute(f"USE {quote_identifier(self.database)}")
        except pymysql.MySQLError as e:
            self.disconnect()
            raise StoreUnavailableError(f"MySQL connect failed: {e}") from e

    def disconnect(self) -> None:
        # Close connection cleanly
        if self.connection:
            try:
                self.connection.close()
            except pymysql.MySQLError:
                pass  # already closed by the server
            self.connection = None

    def table_exists(self) -> bool:
        with self._store_errors("table lookup"), self._cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s",
                (self.table_schema, self.table_name)
            )
            row = cursor.fetchone()
        if row is None:
            raise StoreUnavailableError("COUNT query returned no rows")
        return row[0] > 0

    def create_table(self) -> None:
        create_query = (
            f"CREATE TABLE IF NOT EXISTS {self.qualified_table} ("
            "Id INT NOT NULL AUTO_INCREMENT PRIMARY KEY, "
            "Payload LONGTEXT NOT NULL"
            ") DEFAULT CHARSET=utf8mb4"
        )
        cursor = self._cursor()
        try:
            cursor.execute(create_query)
            self.connection.commit()
        except pymysql.MySQLError as e:
            if _error_code(e) != ER.TABLE_EXISTS_ERROR:
                raise StoreUnavailableError(f"MySQL create table failed: {e}") from e
        finally:
            cursor.close()

    def get_current_columns(self) -> list[str]:
        # Query INFORMATION_SCHEMA for column names in table order
        with self._store_errors("column listing"), self._cursor() as cursor:
            cursor.execute(
                "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s "
                "ORDER BY ORDINAL_POSITION",
                (self.table_schema, self.table_name)
            )
            rows = cast(list[tuple[Any, ...]], cursor.fetchall())
        return [str(row[0]) for row in rows]

    def add_text_column(self, column_name: str) -> None:
        alter_query = (
            f"ALTER TABLE {self.qualified_table} "
            f"ADD COLUMN {quote_identifier(column_name)} LONGTEXT NULL"
        )
        cursor = self._cursor()
        try:
            cursor.execute(alter_query)
        except pymysql.MySQLError as e:
            if _error_code(e) == ER.DUP_FIELDNAME:
                raise SchemaConflictError(self.table_name, column_name) from e
            raise StoreUnavailableError(f"MySQL add column '{column_name}' failed: {e}") from e
        finally:
            cursor.close()

    def insert_row(self, values: dict[str, Optional[str]]) -> int:
        columns = list(values.keys())
        column_names = ", ".join(quote_identifier(col) for col in columns)
        placeholders = ", ".join(["%s"] * len(columns))
        query = f"INSERT INTO {self.qualified_table} ({column_names}) VALUES ({placeholders})"

        cursor = self._cursor()
        try:
            cursor.execute(query, tuple(values.values()))
            row_id = cursor.lastrowid
            self.connection.commit()
            return int(row_id)
        except pymysql.MySQLError as e:
            self._rollback()
            raise StoreUnavailableError(f"MySQL insert failed: {e}") from e
        finally:
            cursor.close()

    def execute(self, query: str, params: tuple | None = None) -> None:
        # Execute a raw SQL query
        cursor = self._cursor()
        try:
            cursor.execute(query, params)
            self.connection.commit()
        except pymysql.MySQLError as e:
            self._rollback()
            raise StoreUnavailableError(f"MySQL query failed: {e}") from e
        finally:
            cursor.close()

    def fetch_all(self, query: str, params: tuple | None = None) -> list[dict]:
        # Execute SELECT and return rows as dicts
        with self._store_errors("query"), self._cursor(pymysql.cursors.DictCursor) as cursor:
            cursor.execute(query, params)
            results = cast(list[dict[str, Any]], cursor.fetchall())
        return results

    def _cursor(self, cursor_class=None):
        if self.connection is None:
            raise StoreUnavailableError("Not connected to MySQL")
        return self.connection.cursor(cursor_class) if cursor_class else self.connection.cursor()

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except pymysql.MySQLError:
            pass  # connection is gone; the original error is what matters

    @contextmanager
    def _store_errors(self, operation: str):
        try:
            yield
        except pymysql.MySQLError as e:
            raise StoreUnavailableError(f"MySQL {operation} failed: {e}") from e

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def _error_code(error: Exception) -> Optional[int]:
    if error.args and isinstance(error.args[0], int):
        return error.args[0]
    return None
