"""
BSON writer - serializes a ``Document`` into the binary layout.
"""

import struct
from collections.abc import Iterable
from typing import Any, Optional

from ..security.exceptions import UnsupportedValue
from ..utils.config import ConversionConfig
from .constants import INT32_MAX, BsonType
from .types import (
    VALUE_TYPES,
    Array,
    Binary,
    Boolean,
    DateTime,
    Decimal128,
    Document,
    Double,
    Int32,
    Int64,
    JavaScriptCode,
    ObjectId,
    Regex,
    String,
    Timestamp,
    Value,
)

_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_DOUBLE = struct.Struct("<d")
_TIMESTAMP = struct.Struct("<II")


class BsonWriter:
    """Encodes documents; lengths are back-patched once a body is written."""

    ELEMENT_WRITERS: dict[BsonType, str] = {
        BsonType.DOUBLE: "_write_double",
        BsonType.STRING: "_write_string_value",
        BsonType.DOCUMENT: "_write_embedded_document",
        BsonType.ARRAY: "_write_embedded_array",
        BsonType.BINARY: "_write_binary",
        BsonType.OBJECT_ID: "_write_object_id",
        BsonType.BOOLEAN: "_write_boolean",
        BsonType.DATETIME: "_write_datetime",
        BsonType.NULL: "_write_nothing",
        BsonType.REGEX: "_write_regex",
        BsonType.JAVASCRIPT: "_write_javascript",
        BsonType.INT32: "_write_int32",
        BsonType.TIMESTAMP: "_write_timestamp",
        BsonType.INT64: "_write_int64",
        BsonType.DECIMAL128: "_write_decimal128",
        BsonType.MIN_KEY: "_write_nothing",
        BsonType.MAX_KEY: "_write_nothing",
    }

    def __init__(self, config: Optional[ConversionConfig] = None):
        self.config = config or ConversionConfig()
        self.logger = self.config.get_logger(__name__)

    def write(self, document: Document) -> bytes:
        """Encode ``document`` and return the bytes."""
        if not isinstance(document, Document):
            raise UnsupportedValue(
                f"Top-level value must be a Document, got {type(document).__name__}"
            )
        buffer = bytearray()
        try:
            self._write_document(buffer, document.items())
        except RecursionError:
            raise UnsupportedValue("Document nesting is too deep to encode") from None
        self.logger.debug("Encoded BSON document of %d bytes", len(buffer))
        return bytes(buffer)

    def _write_document(
        self, buffer: bytearray, pairs: Iterable[tuple[str, Any]]
    ) -> None:
        start = len(buffer)
        buffer += b"\x00\x00\x00\x00"
        for key, value in pairs:
            self._write_element(buffer, key, value)
        buffer.append(0)

        length = len(buffer) - start
        if length > INT32_MAX:
            raise UnsupportedValue(f"Document of {length} bytes exceeds the BSON size limit")
        _INT32.pack_into(buffer, start, length)

    def _write_element(self, buffer: bytearray, key: str, value: Any) -> None:
        if not isinstance(value, VALUE_TYPES):
            raise UnsupportedValue(
                f"Cannot encode value of type {type(value).__name__} for key {key!r}"
            )
        writer = getattr(self, self.ELEMENT_WRITERS[value.bson_type])
        buffer.append(value.bson_type)
        buffer += self._cstring(key, "key")
        writer(buffer, value)

    def _cstring(self, text: str, what: str) -> bytes:
        raw = self._utf8(text, what)
        if b"\x00" in raw:
            raise UnsupportedValue(f"BSON {what} {text!r} must not contain NUL")
        return raw + b"\x00"

    def _string(self, text: str, what: str) -> bytes:
        raw = self._utf8(text, what)
        return _INT32.pack(len(raw) + 1) + raw + b"\x00"

    @staticmethod
    def _utf8(text: str, what: str) -> bytes:
        try:
            return text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise UnsupportedValue(f"BSON {what} is not valid Unicode: {exc.reason}") from exc

    def _write_double(self, buffer: bytearray, value: Double) -> None:
        buffer += _DOUBLE.pack(value.value)

    def _write_string_value(self, buffer: bytearray, value: String) -> None:
        buffer += self._string(value.value, "string")

    def _write_embedded_document(self, buffer: bytearray, value: Document) -> None:
        self._write_document(buffer, value.items())

    def _write_embedded_array(self, buffer: bytearray, value: Array) -> None:
        self._write_document(
            buffer, ((str(index), item) for index, item in enumerate(value.items))
        )

    def _write_binary(self, buffer: bytearray, value: Binary) -> None:
        buffer += _INT32.pack(len(value.data))
        buffer.append(value.subtype)
        buffer += value.data

    def _write_object_id(self, buffer: bytearray, value: ObjectId) -> None:
        buffer += value.raw

    def _write_boolean(self, buffer: bytearray, value: Boolean) -> None:
        buffer.append(1 if value.value else 0)

    def _write_datetime(self, buffer: bytearray, value: DateTime) -> None:
        buffer += _INT64.pack(value.millis)

    def _write_nothing(self, buffer: bytearray, value: Value) -> None:
        """Null, MinKey and MaxKey carry no payload."""

    def _write_regex(self, buffer: bytearray, value: Regex) -> None:
        buffer += self._cstring(value.pattern, "regex pattern")
        buffer += self._cstring(value.options, "regex options")

    def _write_javascript(self, buffer: bytearray, value: JavaScriptCode) -> None:
        buffer += self._string(value.code, "JavaScript code")

    def _write_int32(self, buffer: bytearray, value: Int32) -> None:
        buffer += _INT32.pack(value.value)

    def _write_timestamp(self, buffer: bytearray, value: Timestamp) -> None:
        buffer += _TIMESTAMP.pack(value.increment, value.seconds)

    def _write_int64(self, buffer: bytearray, value: Int64) -> None:
        buffer += _INT64.pack(value.value)

    def _write_decimal128(self, buffer: bytearray, value: Decimal128) -> None:
        buffer += value.raw


def encode(document: Document, config: Optional[ConversionConfig] = None) -> bytes:
    """Encode a Document as BSON.

    Raises:
        UnsupportedValue: If the tree holds something outside the value model,
            or a key or regex contains NUL.
    """
    return BsonWriter(config).write(document)
