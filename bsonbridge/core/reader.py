"""
BSON reader - parses a byte buffer into a ``Document``, validating the
structure as it goes.

Every read is bounded by the end of the innermost enclosing document, so a
length prefix can never make the reader look past its parent.
"""

import struct
from typing import NoReturn, Optional, Union

from ..security.exceptions import MalformedBson
from ..security.limits import LimitValidator
from ..utils.config import ConversionConfig
from .constants import DEPRECATED_TYPES, MIN_DOCUMENT_SIZE, BsonType
from .parser_base import BaseParserMixin
from .types import (
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
    MaxKey,
    MinKey,
    Null,
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

BytesLike = Union[bytes, bytearray, memoryview]


class BsonReader(BaseParserMixin):
    """Decodes one BSON document."""

    # Element readers by type tag; each takes (offset, limit) and returns
    # (value, next offset)
    ELEMENT_READERS: dict[BsonType, str] = {
        BsonType.DOUBLE: "_read_double",
        BsonType.STRING: "_read_string_value",
        BsonType.DOCUMENT: "_read_embedded_document",
        BsonType.ARRAY: "_read_embedded_array",
        BsonType.BINARY: "_read_binary",
        BsonType.OBJECT_ID: "_read_object_id",
        BsonType.BOOLEAN: "_read_boolean",
        BsonType.DATETIME: "_read_datetime",
        BsonType.NULL: "_read_null",
        BsonType.REGEX: "_read_regex",
        BsonType.JAVASCRIPT: "_read_javascript",
        BsonType.INT32: "_read_int32_value",
        BsonType.TIMESTAMP: "_read_timestamp",
        BsonType.INT64: "_read_int64_value",
        BsonType.DECIMAL128: "_read_decimal128",
        BsonType.MIN_KEY: "_read_min_key",
        BsonType.MAX_KEY: "_read_max_key",
    }

    def __init__(self, data: BytesLike, config: Optional[ConversionConfig] = None):
        self.data = bytes(data)
        self.config = config or ConversionConfig()
        self.validator = LimitValidator(self.config.limits, MalformedBson)
        self.logger = self.config.get_logger(__name__)

    def read(self) -> Document:
        """Decode the whole buffer as exactly one document."""
        size = len(self.data)
        self.validator.validate_input_size(size)

        if size == 0:
            self._error("Empty input is not a BSON document", 0)
        if size < MIN_DOCUMENT_SIZE:
            self._error(
                f"Input of {size} bytes is shorter than the minimum "
                f"{MIN_DOCUMENT_SIZE}-byte document",
                0,
            )

        declared = _INT32.unpack_from(self.data, 0)[0]
        if declared > size:
            self._error(
                f"Document declares {declared} bytes but only {size} are available", 0
            )
        if declared < size:
            self._error(
                f"Document declares {declared} bytes but input has {size - declared} "
                f"trailing bytes",
                0,
            )

        try:
            document, _ = self._read_document(0, size)
        except RecursionError:
            self._error("Document nesting is too deep to decode", 0)

        self.logger.debug("Decoded BSON document of %d bytes", size)
        return document

    def _read_document(self, offset: int, limit: int) -> tuple[Document, int]:
        fields: dict[str, Value] = {}
        end = self._read_elements(offset, limit, "document", fields, None)
        return Document(fields), end

    def _read_array(self, offset: int, limit: int) -> tuple[Array, int]:
        items: list[Value] = []
        end = self._read_elements(offset, limit, "array", None, items)
        return Array(tuple(items)), end

    def _read_elements(
        self,
        offset: int,
        limit: int,
        kind: str,
        fields: Optional[dict[str, Value]],
        items: Optional[list[Value]],
    ) -> int:
        """Read a length-prefixed element list; returns the offset past it."""
        length = self._unpack(_INT32, offset, limit, f"{kind} length")
        if length < MIN_DOCUMENT_SIZE:
            self._error(f"Invalid {kind} length {length}", offset)
        end = offset + length
        if end > limit:
            self._error(
                f"Embedded {kind} length {length} overruns its enclosing document",
                offset,
            )

        self.validate_and_enter_structure(self.validator)
        terminator = end - 1
        pos = offset + 4

        while True:
            if pos > terminator:
                self._error(f"Missing terminator for {kind} starting", offset)
            tag = self.data[pos]
            if tag == 0:
                if pos != terminator:
                    self._error(
                        f"Unexpected {kind} terminator; declared length ends at "
                        f"byte {terminator}",
                        pos,
                    )
                break

            tag_offset = pos
            key, pos = self._read_cstring(pos + 1, terminator, "element key")
            value, pos = self._read_element(tag, tag_offset, pos, terminator)

            if items is not None:
                if key != str(len(items)):
                    self.logger.warning(
                        "Array element key %r at byte %d is not its index %d",
                        key,
                        tag_offset,
                        len(items),
                    )
                items.append(value)
            else:
                assert fields is not None
                self.handle_duplicate_key(
                    fields,
                    key,
                    value,
                    self.config.duplicate_keys,
                    lambda message, at=tag_offset: MalformedBson(message, offset=at),
                )

        self.validate_and_exit_structure(self.validator)
        return end

    def _read_element(
        self, tag: int, tag_offset: int, pos: int, limit: int
    ) -> tuple[Value, int]:
        try:
            bson_type = BsonType(tag)
        except ValueError:
            if tag in DEPRECATED_TYPES:
                self._error(
                    f"Unsupported deprecated BSON type 0x{tag:02x} "
                    f"({DEPRECATED_TYPES[tag]})",
                    tag_offset,
                )
            self._error(f"Unknown BSON type tag 0x{tag:02x}", tag_offset)
        reader = getattr(self, self.ELEMENT_READERS[bson_type])
        return reader(pos, limit)

    # Primitive readers

    def _take(self, pos: int, count: int, limit: int, what: str) -> bytes:
        if count < 0 or pos + count > limit:
            self._error(f"{what} overruns its enclosing document", pos)
        return self.data[pos : pos + count]

    def _unpack(self, fmt: struct.Struct, pos: int, limit: int, what: str) -> int:
        if pos + fmt.size > limit:
            self._error(f"{what} overruns its enclosing document", pos)
        return fmt.unpack_from(self.data, pos)[0]

    def _read_cstring(self, pos: int, limit: int, what: str) -> tuple[str, int]:
        end = self.data.find(b"\x00", pos, limit)
        if end == -1:
            self._error(f"Unterminated {what}", pos)
        return self._decode_utf8(self.data[pos:end], what, pos), end + 1

    def _read_string(self, pos: int, limit: int, what: str) -> tuple[str, int]:
        length = self._unpack(_INT32, pos, limit, f"{what} length")
        if length < 1:
            self._error(f"Invalid {what} length {length}", pos)
        self.validator.validate_string_length(length - 1, f"byte {pos}")
        raw = self._take(pos + 4, length, limit, what)
        if raw[-1] != 0:
            self._error(f"{what.capitalize()} is not NUL-terminated", pos)
        return self._decode_utf8(raw[:-1], what, pos + 4), pos + 4 + length

    def _decode_utf8(self, raw: bytes, what: str, pos: int) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            self._error(f"Invalid UTF-8 in {what}: {exc.reason}", pos + exc.start)

    # Element readers

    def _read_double(self, pos: int, limit: int) -> tuple[Value, int]:
        return Double(self._unpack(_DOUBLE, pos, limit, "double")), pos + 8

    def _read_string_value(self, pos: int, limit: int) -> tuple[Value, int]:
        value, pos = self._read_string(pos, limit, "string")
        return String(value), pos

    def _read_embedded_document(self, pos: int, limit: int) -> tuple[Value, int]:
        return self._read_document(pos, limit)

    def _read_embedded_array(self, pos: int, limit: int) -> tuple[Value, int]:
        return self._read_array(pos, limit)

    def _read_binary(self, pos: int, limit: int) -> tuple[Value, int]:
        length = self._unpack(_INT32, pos, limit, "binary length")
        if length < 0:
            self._error(f"Invalid binary length {length}", pos)
        subtype = self._take(pos + 4, 1, limit, "binary subtype")[0]
        data = self._take(pos + 5, length, limit, "binary data")
        return Binary(data, subtype), pos + 5 + length

    def _read_object_id(self, pos: int, limit: int) -> tuple[Value, int]:
        return ObjectId(self._take(pos, 12, limit, "ObjectId")), pos + 12

    def _read_boolean(self, pos: int, limit: int) -> tuple[Value, int]:
        flag = self._take(pos, 1, limit, "boolean")[0]
        if flag not in (0, 1):
            self._error(f"Invalid boolean byte 0x{flag:02x}", pos)
        return Boolean(flag == 1), pos + 1

    def _read_datetime(self, pos: int, limit: int) -> tuple[Value, int]:
        return DateTime(self._unpack(_INT64, pos, limit, "datetime")), pos + 8

    def _read_null(self, pos: int, limit: int) -> tuple[Value, int]:
        return Null(), pos

    def _read_regex(self, pos: int, limit: int) -> tuple[Value, int]:
        pattern, pos = self._read_cstring(pos, limit, "regex pattern")
        options, pos = self._read_cstring(pos, limit, "regex options")
        return Regex(pattern, options), pos

    def _read_javascript(self, pos: int, limit: int) -> tuple[Value, int]:
        code, pos = self._read_string(pos, limit, "JavaScript code")
        return JavaScriptCode(code), pos

    def _read_int32_value(self, pos: int, limit: int) -> tuple[Value, int]:
        return Int32(self._unpack(_INT32, pos, limit, "int32")), pos + 4

    def _read_timestamp(self, pos: int, limit: int) -> tuple[Value, int]:
        if pos + _TIMESTAMP.size > limit:
            self._error("timestamp overruns its enclosing document", pos)
        increment, seconds = _TIMESTAMP.unpack_from(self.data, pos)
        return Timestamp(seconds=seconds, increment=increment), pos + 8

    def _read_int64_value(self, pos: int, limit: int) -> tuple[Value, int]:
        return Int64(self._unpack(_INT64, pos, limit, "int64")), pos + 8

    def _read_decimal128(self, pos: int, limit: int) -> tuple[Value, int]:
        return Decimal128(self._take(pos, 16, limit, "Decimal128")), pos + 16

    def _read_min_key(self, pos: int, limit: int) -> tuple[Value, int]:
        return MinKey(), pos

    def _read_max_key(self, pos: int, limit: int) -> tuple[Value, int]:
        return MaxKey(), pos

    def _error(self, message: str, offset: int) -> NoReturn:
        raise MalformedBson(message, offset=offset)


def decode(data: BytesLike, config: Optional[ConversionConfig] = None) -> Document:
    """Decode one BSON document.

    Raises:
        MalformedBson: If the buffer is truncated, has trailing bytes, carries
            an unknown type tag or otherwise breaks the BSON layout.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"decode() expects bytes, got {type(data).__name__}")
    return BsonReader(data, config).read()
