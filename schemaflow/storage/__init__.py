# ==============================================
# STORAGE
# ==============================================
#
# This package handles all store operations:
# connecting, growing the table schema on demand, and inserting rows.
#
# Modules:
# --------
# - mysql_client.py    → MySQL connection and operations (PyMySQL)
# - sqlite_client.py   → SQLite connection and operations (local runs, tests)
# - bootstrapper.py    → Create the destination table if missing
# - reconciler.py      → Add missing columns, tolerate concurrent adds
# - row_writer.py      → Flatten + reconcile + insert one document
#
# ==============================================

from schemaflow.config import AppConfig

from .mysql_client import MySQLClient
from .sqlite_client import SQLiteClient
from .bootstrapper import ensure_table
from .reconciler import SchemaReconciler, ensure_columns
from .row_writer import RowWriter, WriteResult, write_document


def create_client(config: AppConfig):
    """Build an unconnected client for the configured backend."""
    store = config.store
    if store.backend == "sqlite":
        return SQLiteClient(
            path=config.sqlite.path,
            table_name=store.table_name,
            table_schema=store.table_schema,
            timeout_seconds=store.timeout_seconds,
        )
    return MySQLClient(
        host=config.mysql.host,
        port=config.mysql.port,
        user=config.mysql.user,
        password=config.mysql.password,
        database=config.mysql.database,
        table_name=store.table_name,
        table_schema=store.table_schema,
        timeout_seconds=store.timeout_seconds,
    )


__all__ = [
    "MySQLClient",
    "SQLiteClient",
    "create_client",
    "ensure_table",
    "SchemaReconciler",
    "ensure_columns",
    "RowWriter",
    "WriteResult",
    "write_document",
]
