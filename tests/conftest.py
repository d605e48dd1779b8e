# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests.
#
# - config          → AppConfig pointing at a SQLite file in tmp_path
# - sqlite_client   → connected SQLiteClient for that file
# - ingestor        → Ingestor using the same file
# - fake_client     → in-memory stand-in for a store client
# - read_rows       → fetch every row of the table as dicts
#
# ==============================================

import pytest

from schemaflow.config import AppConfig, ApiConfig, SQLiteConfig, StoreConfig
from schemaflow.errors import SchemaConflictError
from schemaflow.ingest import Ingestor
from schemaflow.storage import SQLiteClient, create_client


class FakeClient:
    """
    In-memory store client. Column names compare case-insensitively
    like the real stores. `stale_columns` makes get_current_columns
    return an outdated view, simulating a concurrent writer.
    """
    max_identifier_length = None

    def __init__(self, table_name="mfMagellan"):
        self.table_name = table_name
        self.exists = False
        self.columns = []
        self.rows = []
        self.stale_columns = None
        self.calls = []
        self.connected = False

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def table_exists(self):
        self.calls.append("table_exists")
        return self.exists

    def create_table(self):
        self.calls.append("create_table")
        if not self.exists:
            self.exists = True
            self.columns = ["Id", "Payload"]

    def get_current_columns(self):
        self.calls.append("get_current_columns")
        if self.stale_columns is not None:
            return list(self.stale_columns)
        return list(self.columns)

    def add_text_column(self, column_name):
        self.calls.append(("add_text_column", column_name))
        if column_name.lower() in {c.lower() for c in self.columns}:
            raise SchemaConflictError(self.table_name, column_name)
        self.columns.append(column_name)

    def insert_row(self, values):
        self.calls.append(("insert_row", dict(values)))
        self.rows.append(dict(values))
        return len(self.rows)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        sqlite=SQLiteConfig(path=str(tmp_path / "schemaflow.sqlite3")),
        store=StoreConfig(backend="sqlite", timeout_seconds=30.0),
        api=ApiConfig(token="s3cret", ack_message="Mankiflow sagt Danke"),
    )


@pytest.fixture
def sqlite_client(config):
    client = create_client(config)
    assert isinstance(client, SQLiteClient)
    with client:
        yield client


@pytest.fixture
def ingestor(config) -> Ingestor:
    return Ingestor(config)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def read_rows(config):
    def _read():
        with create_client(config) as client:
            return client.fetch_all(f"SELECT * FROM {client.qualified_table} ORDER BY Id")
    return _read
