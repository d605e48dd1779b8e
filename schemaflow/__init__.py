# ==============================================
# schemaflow
# ==============================================
#
# Stores arbitrary JSON documents in one relational table whose
# schema grows to fit them.
#
# Subpackages / modules:
# ----------------------
# - normalization/  → Document, ColumnNamer, DocumentFlattener (no I/O)
# - storage/        → store clients, table bootstrap, schema
#                     reconciliation, row writing
# - ingest.py       → Ingestor, per-document orchestration
# - api.py          → FastAPI app (POST /mfrequest)
# - cli.py          → serve / ensure-table / ingest / stream
# - config.py       → environment / .env configuration
# - errors.py       → exception types
#
# ==============================================

from .errors import (
    SchemaflowError,
    MalformedDocumentError,
    SchemaConflictError,
    StoreUnavailableError,
)
from .ingest import Ingestor

__all__ = [
    "Ingestor",
    "SchemaflowError",
    "MalformedDocumentError",
    "SchemaConflictError",
    "StoreUnavailableError",
]
