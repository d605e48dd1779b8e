# ==============================================
# DocumentFlattener
# ==============================================
#
# PURPOSE:
#   Flatten one JSON document into an ordered mapping of
#   column name → text value, ready to be written as one row.
#
# RULES:
# ------
#   - Non-object root        → {"rootValue": <string form>}
#   - Nested object          → expanded, raw path "parent_child"
#   - Array                  → stored as compact JSON text, never expanded
#   - null                   → None (bound as SQL NULL)
#   - string                 → as-is
#   - number                 → spelling as sent ("1", "2.50", "1e400")
#   - bool                   → "true" / "false"
#
#   Raw paths go through ColumnNamer. When two raw paths produce the
#   same column name, the later one gets "_2", "_3", ... (first free
#   integer). Matching is exact, so "a" and "A" are both kept here;
#   the table side folds them together case-insensitively.
#
#   Names equal to a system column ("Id", "Payload") in any case are
#   suffixed the same way so a document can never write to them.
#
#   A key repeated inside one object ({"a": 1, "a": 2}) is walked
#   once per occurrence, giving "a" and "a_2".
#
#   Suffixes depend on key order: {"a_b": 1, "a": {"b": 2}} and the
#   same keys reversed assign "a_b_2" to different leaves.
#
# ==============================================

from typing import Any, Iterable, Optional

from .column_namer import ColumnNamer
from .document import Document, members, to_json_text

ROOT_VALUE_COLUMN = "rootValue"
SYSTEM_COLUMNS = ("Id", "Payload")


class DocumentFlattener:
    def __init__(
        self,
        column_namer: Optional[ColumnNamer] = None,
        reserved_names: Iterable[str] = SYSTEM_COLUMNS,
    ):
        self.column_namer = column_namer or ColumnNamer()
        self._reserved = {name.lower() for name in reserved_names}

    def flatten(self, document: Any) -> dict[str, Optional[str]]:
        """
        Flatten a document (a Document or an already-parsed JSON value).

        Returns:
            Insertion-ordered dict of column name → text value or None
        """
        value = document.value if isinstance(document, Document) else document

        flattened: dict[str, Optional[str]] = {}

        if not isinstance(value, dict):
            flattened[ROOT_VALUE_COLUMN] = self._leaf_value(value)
            return flattened

        for key, nested_value in members(value):
            self._flatten_into(str(key), nested_value, flattened)

        return flattened

    def _flatten_into(self, raw_path: str, value: Any, flattened: dict) -> None:
        if isinstance(value, dict):
            for nested_key, nested_value in members(value):
                self._flatten_into(f"{raw_path}_{nested_key}", nested_value, flattened)
            return

        column_name = self._unique_name(self.column_namer.to_column_name(raw_path), flattened)
        flattened[column_name] = self._leaf_value(value)

    def _unique_name(self, name: str, flattened: dict) -> str:
        if not self._is_taken(name, flattened):
            return name

        counter = 2
        while True:
            suffix = f"_{counter}"
            candidate = name[:self.column_namer.max_length - len(suffix)] + suffix
            if not self._is_taken(candidate, flattened):
                return candidate
            counter += 1

    def _is_taken(self, name: str, flattened: dict) -> bool:
        return name in flattened or name.lower() in self._reserved

    @staticmethod
    def _leaf_value(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        # lists, numbers, bools and (for a root value) anything else
        return to_json_text(value)


def flatten(document: Any) -> dict[str, Optional[str]]:
    return DocumentFlattener().flatten(document)
