import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from schemaflow.errors import MalformedDocumentError


class JsonNumber(Decimal):
    """
    A JSON number that remembers how it was written.

    Compares like the Decimal it parses to, but serializes back to its
    source spelling, so "1e2", "2.50" or a 5000-digit integer are stored
    exactly as sent.
    """

    def __new__(cls, text: str):
        number = super().__new__(cls, text)
        number.text = text
        return number


class JsonObject(dict):
    """
    A JSON object that also keeps every member in source order.

    The dict side behaves like json.loads (last duplicate key wins);
    `pairs` keeps duplicate keys so each one still gets an attribute.
    """

    def __init__(self, pairs):
        super().__init__(pairs)
        self.pairs = list(pairs)


def members(value: dict) -> list:
    """(key, value) pairs of an object, duplicates included when known."""
    if isinstance(value, JsonObject):
        return value.pairs
    return list(value.items())


def to_json_text(value: Any) -> str:
    """
    Compact JSON text, non-ASCII kept as-is.

    Raises:
        ValueError: value holds a NaN or infinite float
    """
    if isinstance(value, JsonNumber):
        return value.text
    if isinstance(value, dict):
        return "{" + ",".join(
            f"{json.dumps(str(key), ensure_ascii=False)}:{to_json_text(item)}"
            for key, item in members(value)
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(to_json_text(item) for item in value) + "]"
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are accepted by the json module but are not JSON
    raise ValueError(f"{name} is not a valid JSON value")


@dataclass(frozen=True)
class Document:
    """
    One submitted JSON value.

    `raw` is what gets stored in the Payload column; `value` is what the
    flattener walks. Both describe the same JSON value.
    """
    raw: str
    value: Any

    @classmethod
    def parse(cls, raw: str | bytes) -> "Document":
        """
        Parse raw request text.

        Numbers are kept as JsonNumber and objects as JsonObject, so no
        precision, spelling or duplicate key is lost on the way to the
        flattener.

        Raises:
            MalformedDocumentError: raw is empty, not UTF-8 or not JSON
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise MalformedDocumentError(f"Request body is not valid UTF-8: {e}") from e

        if not raw.strip():
            raise MalformedDocumentError("Request body is empty")

        try:
            value = json.loads(
                raw,
                parse_int=JsonNumber,
                parse_float=JsonNumber,
                parse_constant=_reject_constant,
                object_pairs_hook=JsonObject,
            )
        except json.JSONDecodeError as e:
            raise MalformedDocumentError(f"Request body is not valid JSON: {e.msg} at position {e.pos}") from e
        except (ValueError, RecursionError) as e:
            raise MalformedDocumentError(f"Request body is not valid JSON: {e}") from e

        return cls(raw=raw, value=value)

    @classmethod
    def from_value(cls, value: Any) -> "Document":
        """Wrap an already-parsed value, serializing it for the Payload column."""
        try:
            raw = to_json_text(value)
        except (TypeError, ValueError) as e:
            raise MalformedDocumentError(f"Value is not representable as JSON: {e}") from e
        return cls(raw=raw, value=value)
