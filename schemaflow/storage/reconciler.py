# ==============================================
# SchemaReconciler
# ==============================================
#
# PURPOSE:
#   Make sure every column a document needs exists on the live table,
#   adding the missing ones as nullable text columns.
#
# WHY THIS CLASS EXISTS:
#   Several requests (and several service instances) may add columns
#   to the same table at once. There is no lock; the store decides.
#   An ADD COLUMN that loses the race fails with a duplicate-column
#   error, which only means the column now exists.
#
# RULES:
# ------
#   - Current columns are read from the store on EVERY call.
#   - Names compare case-insensitively ("a" and "A" are one column).
#   - Desired names are deduped case-insensitively, first spelling wins.
#   - Columns are only ever added. Nothing is dropped or altered.
#
# ==============================================

import logging
from typing import Iterable

from schemaflow.errors import SchemaConflictError

logger = logging.getLogger(__name__)


class SchemaReconciler:
    def ensure_columns(self, client, desired_columns: Iterable[str]) -> dict[str, str]:
        """
        Add every desired column that the table does not have yet.

        Args:
            client: Connected store client
            desired_columns: Column names produced by the flattener

        Returns:
            Mapping of lowercased name → column name as spelled in the table,
            covering every existing and newly added column
        """
        columns = {name.lower(): name for name in client.get_current_columns()}

        for column_name in self._dedupe(desired_columns):
            key = column_name.lower()
            if key in columns:
                continue

            try:
                client.add_text_column(column_name)
                logger.info("Added column '%s' to '%s'", column_name, client.table_name)
            except SchemaConflictError:
                logger.debug("Column '%s' was added concurrently", column_name)

            columns[key] = column_name

        return columns

    @staticmethod
    def _dedupe(names: Iterable[str]) -> list[str]:
        seen = set()
        unique = []
        for name in names:
            if name.lower() in seen:
                continue
            seen.add(name.lower())
            unique.append(name)
        return unique


def ensure_columns(client, desired_columns: Iterable[str]) -> dict[str, str]:
    return SchemaReconciler().ensure_columns(client, desired_columns)
