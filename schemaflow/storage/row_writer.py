# ==============================================
# RowWriter
# ==============================================
#
# PURPOSE:
#   Write one document as one row:
#     1. ensure the table exists
#     2. flatten the document into attributes
#     3. reconcile the table's columns against the attribute names
#     4. INSERT Payload + every attribute in a single statement
#
#   Every value is a bound parameter. None is bound as SQL NULL.
#
#   Attributes that differ only in case ("a" and "A") share one table
#   column. The later attribute's value is the one written; the full
#   document is still kept in Payload.
#
# ==============================================

import logging
from dataclasses import dataclass, field
from typing import Optional

from schemaflow.normalization.column_namer import ColumnNamer, MAX_COLUMN_NAME_LENGTH
from schemaflow.normalization.document import Document
from schemaflow.normalization.flattener import DocumentFlattener
from .bootstrapper import ensure_table
from .reconciler import SchemaReconciler

logger = logging.getLogger(__name__)

PAYLOAD_COLUMN = "Payload"


@dataclass
class WriteResult:
    """Outcome of one successful write."""
    row_id: int
    columns: list[str] = field(default_factory=list)


class RowWriter:
    def __init__(
        self,
        flattener: Optional[DocumentFlattener] = None,
        reconciler: Optional[SchemaReconciler] = None,
    ):
        self._flattener = flattener
        self.reconciler = reconciler or SchemaReconciler()

    def write_document(self, client, document: Document) -> WriteResult:
        ensure_table(client)

        attributes = self._flattener_for(client).flatten(document)
        columns = self.reconciler.ensure_columns(client, attributes.keys())

        values: dict[str, Optional[str]] = {PAYLOAD_COLUMN: document.raw}
        for name, value in attributes.items():
            column = columns[name.lower()]
            if column in values:
                logger.warning(
                    "Attribute '%s' maps onto column '%s' already set by this document; keeping the later value",
                    name,
                    column,
                )
            values[column] = value

        row_id = client.insert_row(values)
        logger.debug("Inserted row %s into '%s' with %d attributes", row_id, client.table_name, len(attributes))
        return WriteResult(row_id=row_id, columns=list(attributes.keys()))

    def _flattener_for(self, client) -> DocumentFlattener:
        if self._flattener is not None:
            return self._flattener
        limit = client.max_identifier_length or MAX_COLUMN_NAME_LENGTH
        return DocumentFlattener(ColumnNamer(min(limit, MAX_COLUMN_NAME_LENGTH)))


def write_document(client, document: Document) -> bool:
    RowWriter().write_document(client, document)
    return True
