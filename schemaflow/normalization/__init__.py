# ==============================================
# NORMALIZATION
# ==============================================
#
# Everything that turns a raw JSON document into a flat set of
# column-safe attributes, with no store I/O.
#
# Modules:
# --------
# - document.py      → Document (raw text + parsed value), parsing
# - column_namer.py  → Raw key path → bounded, safe column identifier
# - flattener.py     → Document → ordered {column name: text value}
#
# ==============================================

from .document import Document
from .column_namer import ColumnNamer, to_column_name
from .flattener import DocumentFlattener, flatten

__all__ = ["Document", "ColumnNamer", "to_column_name", "DocumentFlattener", "flatten"]
