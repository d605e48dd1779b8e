# ==============================================
# Ingestor — Orchestrator
# ==============================================
#
# PURPOSE:
#   The single entry point the HTTP layer and the CLI call.
#   Users interact with this class only.
#
#   raw text ──► Document.parse ──► [ open client ] ──► RowWriter
#                 (400 on error)         │                 │
#                                        │   ensure_table ─┤
#                                        │   flatten ──────┤
#                                        │   reconcile ────┤
#                                        │   insert ───────┘
#                                  [ close client ]  (always)
#
#   One connection per document, opened and closed inside ingest().
#   Nothing is cached between calls, so several Ingestors (threads,
#   processes, hosts) can share one table.
#
#   Failures are not retried. A store failure surfaces as
#   StoreUnavailableError; columns added before the failure stay.
#
# ==============================================

import logging
from contextlib import contextmanager
from typing import Any, Callable, Optional

from schemaflow.config import AppConfig, get_config
from schemaflow.errors import SchemaflowError, StoreUnavailableError
from schemaflow.normalization.document import Document
from schemaflow.storage import RowWriter, WriteResult, create_client, ensure_table

logger = logging.getLogger(__name__)


class Ingestor:
    def __init__(
        self,
        config: Optional[AppConfig] = None,
        client_factory: Optional[Callable[[], Any]] = None,
        row_writer: Optional[RowWriter] = None,
    ):
        """
        Args:
            config: Optional configuration. If None, loads from environment.
            client_factory: Zero-argument callable returning an unconnected
                store client. Defaults to the configured backend.
            row_writer: Optional RowWriter (shared, it holds no per-request state)
        """
        self._config = config or get_config()
        self._client_factory = client_factory or (lambda: create_client(self._config))
        self._row_writer = row_writer or RowWriter()

    @property
    def table_name(self) -> str:
        return self._config.store.table_name

    def ingest_raw(self, raw: str | bytes) -> WriteResult:
        """
        Parse and store raw JSON text.

        Raises:
            MalformedDocumentError: raw is not JSON (no store I/O happens)
            StoreUnavailableError: the store could not be reached or written
        """
        return self.ingest(Document.parse(raw))

    def ingest_value(self, value: Any) -> WriteResult:
        """Store an already-parsed JSON value."""
        return self.ingest(Document.from_value(value))

    def ingest(self, document: Document) -> WriteResult:
        with self._store_call("write"):
            with self._client_factory() as client:
                result = self._row_writer.write_document(client, document)

        logger.info("Stored document as row %s in '%s'", result.row_id, self.table_name)
        return result

    def ensure_table(self) -> bool:
        with self._store_call("bootstrap"):
            with self._client_factory() as client:
                return ensure_table(client)

    @contextmanager
    def _store_call(self, operation: str):
        try:
            yield
        except StoreUnavailableError as e:
            logger.error("Store %s on '%s' failed: %s", operation, self.table_name, e)
            raise
        except SchemaflowError:
            raise
        except Exception as e:
            # driver errors the clients did not translate
            logger.exception("Unexpected error during store %s on '%s'", operation, self.table_name)
            raise StoreUnavailableError(f"Store {operation} failed: {e}") from e
