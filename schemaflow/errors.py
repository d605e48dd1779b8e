# ==============================================
# Errors
# ==============================================
#
# PURPOSE:
#   Exception types raised by the ingestion pipeline. The HTTP layer
#   maps each one to a status code via `status_code`.
#
#   SchemaflowError
#     ├── MalformedDocumentError   → 400, input is not JSON
#     ├── SchemaConflictError      → recovered by the reconciler
#     └── StoreUnavailableError    → 500, any other store failure
#
# ==============================================


class SchemaflowError(Exception):
    """Base class for all pipeline errors."""
    status_code = 500


class MalformedDocumentError(SchemaflowError):
    """The raw request body could not be parsed as JSON."""
    status_code = 400


class SchemaConflictError(SchemaflowError):
    """An ADD COLUMN lost a race against another writer."""

    def __init__(self, table_name: str, column_name: str):
        super().__init__(f"Column '{column_name}' already exists on '{table_name}'")
        self.table_name = table_name
        self.column_name = column_name


class StoreUnavailableError(SchemaflowError):
    """A store round trip failed for a reason other than a schema race."""
    status_code = 500
