# ==============================================
# ColumnNamer
# ==============================================
#
# PURPOSE:
#   Turn a raw JSON key path (e.g. "user.profile_first-name") into a
#   relational column identifier that is always safe to quote and
#   always fits the store's identifier limit.
#
# WHY THIS CLASS EXISTS:
#   Incoming documents can use any key: spaces, punctuation, unicode,
#   leading digits, empty strings, hundreds of characters. The table
#   only accepts short identifiers made of [A-Za-z0-9_].
#
# RULES:
# ------
#   1. Every character that is not a letter or digit → "_"
#   2. Strip leading/trailing "_"
#   3. Empty result                → "Field"
#   4. Leading digit               → "F_" prefix
#   5. Longer than max_length      → first (max_length - 7) chars
#                                    + "_" + 6 hex chars of sha256(raw path)
#
#   The fingerprint hashes the ORIGINAL raw path, so the same path
#   always truncates to the same name while different long paths that
#   share a prefix stay apart.
#
# ==============================================

import hashlib
import re

MAX_COLUMN_NAME_LENGTH = 120
FALLBACK_COLUMN_NAME = "Field"
FINGERPRINT_LENGTH = 6

# ASCII only: \w would let unicode letters through, which the store rejects.
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")


class ColumnNamer:
    """
    Derives bounded, identifier-safe column names from raw key paths.
    Stateless apart from the configured length limit.
    """

    def __init__(self, max_length: int = MAX_COLUMN_NAME_LENGTH):
        if max_length <= FINGERPRINT_LENGTH + 1:
            raise ValueError(f"max_length must be greater than {FINGERPRINT_LENGTH + 1}")
        self.max_length = max_length

    def to_column_name(self, raw_path: str) -> str:
        """
        Convert a raw key path to a column name.

        Args:
            raw_path: Key path as built by the flattener (e.g. "b_c")

        Returns:
            Identifier matching ^[A-Za-z_][A-Za-z0-9_]*$, at most max_length long
        """
        name = _UNSAFE_CHARS.sub("_", raw_path).strip("_")

        if not name:
            name = FALLBACK_COLUMN_NAME

        if name[0].isdigit():
            name = f"F_{name}"

        if len(name) > self.max_length:
            keep = self.max_length - FINGERPRINT_LENGTH - 1
            name = f"{name[:keep]}_{fingerprint(raw_path)}"

        return name


def fingerprint(raw_path: str) -> str:
    """Short, stable hex digest of a raw key path."""
    digest = hashlib.sha256(raw_path.encode("utf-8", "surrogatepass")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


_default_namer = ColumnNamer()


def to_column_name(raw_path: str) -> str:
    return _default_namer.to_column_name(raw_path)
