# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all configuration from environment
#   variables / .env file. Provides typed config objects
#   to all other modules.
#
# CLASSES:
# --------
# - MySQLConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "root")
#     database: str      (default "Mankiflow")
#
# - SQLiteConfig (dataclass)
#     path: str          (default "schemaflow.sqlite3", ":memory:" allowed)
#
# - StoreConfig (dataclass)
#     backend: str             ("mysql" or "sqlite")
#     table_name: str          (default "mfMagellan")
#     table_schema: str | None (MySQL database qualifier for the table)
#     timeout_seconds: float   (connect/read/write timeout per round trip)
#
# - ApiConfig (dataclass)
#     token: str         (expected X-API-Token value)
#     ack_message: str   (status text returned on a stored document)
#     host / port        (uvicorn bind address)
#
# - AppConfig (dataclass)
#     mysql, sqlite, store, api
#     data_stream_url: str
#     log_level: str
#
# FUNCTION:
# ---------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# - reset_config() -> None
#     Drop the singleton so the next get_config() re-reads the environment.
#
# ==============================================

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv


SUPPORTED_BACKENDS = ("mysql", "sqlite")


@dataclass
class MySQLConfig:
    """MySQL database configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "Mankiflow"


@dataclass
class SQLiteConfig:
    """SQLite database configuration."""
    path: str = "schemaflow.sqlite3"


@dataclass
class StoreConfig:
    """Destination table and store round-trip settings."""
    backend: str = "mysql"
    table_name: str = "mfMagellan"
    table_schema: Optional[str] = None
    timeout_seconds: float = 30.0

    def __post_init__(self):
        self.backend = self.backend.strip().lower()
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported store backend '{self.backend}', "
                f"expected one of {', '.join(SUPPORTED_BACKENDS)}"
            )
        if not self.table_name:
            raise ValueError("Table name must not be empty")


@dataclass
class ApiConfig:
    """HTTP layer configuration."""
    token: str = ""
    ack_message: str = "Mankiflow sagt Danke"
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class AppConfig:
    """Main application configuration."""
    mysql: MySQLConfig = field(default_factory=MySQLConfig)
    sqlite: SQLiteConfig = field(default_factory=SQLiteConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    data_stream_url: str = "http://127.0.0.1:8000/GET/record"
    log_level: str = "INFO"


# Singleton instance
_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=int(os.getenv("MYSQL_PORT", "3306")),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", "root"),
        database=os.getenv("MYSQL_DATABASE", "Mankiflow")
    )

    sqlite_config = SQLiteConfig(
        path=os.getenv("SQLITE_PATH", "schemaflow.sqlite3")
    )

    store_config = StoreConfig(
        backend=os.getenv("STORE_BACKEND", "mysql"),
        table_name=os.getenv("TABLE_NAME", "mfMagellan"),
        table_schema=os.getenv("TABLE_SCHEMA") or None,
        timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "30"))
    )

    api_config = ApiConfig(
        token=os.getenv("API_TOKEN", ""),
        ack_message=os.getenv("ACK_MESSAGE", "Mankiflow sagt Danke"),
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000"))
    )

    _config_instance = AppConfig(
        mysql=mysql_config,
        sqlite=sqlite_config,
        store=store_config,
        api=api_config,
        data_stream_url=os.getenv("DATA_STREAM_URL", "http://127.0.0.1:8000/GET/record"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper()
    )

    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration."""
    global _config_instance
    _config_instance = None
