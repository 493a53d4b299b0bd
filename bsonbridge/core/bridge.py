"""
Extended JSON bridge between ``Document`` trees and JSON text.

Types JSON cannot express natively are written as single-purpose wrapper
objects using the MongoDB Extended JSON v2 key names::

    Int64        {"$numberLong": "9223372036854775807"}
    Decimal128   {"$numberDecimal": "1.50"}
    ObjectId     {"$oid": "507f1f77bcf86cd799439011"}
    DateTime     {"$date": "2024-01-31T12:00:00.000Z"}
                 {"$date": {"$numberLong": "-62135596800001"}}
    Binary       {"$binary": {"base64": "AQI=", "subType": "00"}}
    Regex        {"$regularExpression": {"pattern": "^a", "options": "i"}}
    Timestamp    {"$timestamp": {"t": 1700000000, "i": 1}}
    Code         {"$code": "function () {}"}
    MinKey       {"$minKey": 1}
    MaxKey       {"$maxKey": 1}
    NaN, ±Inf    {"$numberDouble": "NaN"}

Canonical mode additionally wraps Int32 as ``$numberInt``, finite doubles
as ``$numberDouble`` and every date as ``$numberLong`` milliseconds.

On the way back a JSON object is taken as a wrapper only when its key set
is exactly one wrapper's key set; anything else stays a plain document.
Integer literals become Int32 inside the signed 32-bit range, Int64 inside
the signed 64-bit range and Double beyond that. Literals with a fraction or
exponent always become Double.

An embedded document whose key set is exactly a wrapper's key set cannot be
written, since it would read back as that wrapper; the encoder raises
``UnsupportedValue`` instead. The top-level document is never a wrapper.

Decimal128 travels as its decimal string, so non-canonical encodings come
back in canonical form: NaN payload bits are dropped and an out-of-range
significand reads as zero. The value is kept; the raw 16 bytes may differ.
"""

import base64
import binascii
import codecs
import dataclasses
import datetime
import json
import math
import re
import uuid
from typing import Any, NoReturn, Optional, Union

from ..security.exceptions import InvalidJson, UnsupportedValue
from ..security.limits import LimitValidator
from ..utils.config import ConversionConfig, JsonMode
from .constants import (
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    ISO_DATE_MAX_MILLIS,
    UINT32_MAX,
    WRAPPER_NESTING_DEPTH,
    BinarySubtype,
    BsonType,
)
from .parser import parse_json
from .types import (
    EPOCH,
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
    MaxKey,
    MinKey,
    Null,
    ObjectId,
    Regex,
    String,
    Timestamp,
    Value,
)

_INTEGER_TEXT = re.compile(r"-?[0-9]+")
_DOUBLE_TEXT = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_SUBTYPE_TEXT = re.compile(r"[0-9a-fA-F]{1,2}")
_UUID_TEXT = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)
_ISO_DATE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})"
    r"T([0-9]{2}):([0-9]{2})(?::([0-9]{2})(?:\.([0-9]{1,9}))?)?"
    r"(Z|[+-][0-9]{2}(?::?[0-9]{2})?)?"
)
_SPECIAL_DOUBLES = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}

JsonPathPart = Union[str, int]


def format_iso_date(millis: int) -> str:
    """ISO-8601 UTC text with millisecond precision."""
    moment = EPOCH + datetime.timedelta(milliseconds=millis)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{moment.microsecond // 1000:03d}Z"


def parse_iso_date(text: str) -> int:
    """Milliseconds since the epoch for an ISO-8601 date-time.

    Accepts a ``Z``, ``±HH:MM``, ``±HHMM`` or ``±HH`` offset; a missing
    offset means UTC. Digits past milliseconds are truncated.
    """
    match = _ISO_DATE.fullmatch(text)
    if not match:
        raise ValueError(f"{text!r} is not an ISO-8601 date-time")

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    tz = datetime.timezone.utc
    if offset and offset != "Z":
        digits = offset[1:].replace(":", "")
        delta = datetime.timedelta(hours=int(digits[:2]), minutes=int(digits[2:] or 0))
        tz = datetime.timezone(-delta if offset[0] == "-" else delta)

    moment = datetime.datetime(
        int(year),
        int(month),
        int(day),
        int(hour),
        int(minute),
        int(second or 0),
        micros,
        tzinfo=tz,
    )
    return DateTime.from_datetime(moment).millis


class ExtendedJsonEncoder:
    """Maps a ``Document`` tree onto plain JSON-serializable Python values."""

    VALUE_ENCODERS: dict[BsonType, str] = {
        BsonType.DOUBLE: "_encode_double",
        BsonType.STRING: "_encode_string",
        BsonType.DOCUMENT: "_encode_embedded_document",
        BsonType.ARRAY: "_encode_array",
        BsonType.BINARY: "_encode_binary",
        BsonType.OBJECT_ID: "_encode_object_id",
        BsonType.BOOLEAN: "_encode_boolean",
        BsonType.DATETIME: "_encode_datetime",
        BsonType.NULL: "_encode_null",
        BsonType.REGEX: "_encode_regex",
        BsonType.JAVASCRIPT: "_encode_javascript",
        BsonType.INT32: "_encode_int32",
        BsonType.TIMESTAMP: "_encode_timestamp",
        BsonType.INT64: "_encode_int64",
        BsonType.DECIMAL128: "_encode_decimal128",
        BsonType.MIN_KEY: "_encode_min_key",
        BsonType.MAX_KEY: "_encode_max_key",
    }

    def __init__(self, config: Optional[ConversionConfig] = None):
        self.config = config or ConversionConfig()
        self.canonical = self.config.json_mode is JsonMode.CANONICAL

    def encode_document(self, document: Document) -> dict[str, Any]:
        return {key: self.encode_value(value) for key, value in document.items()}

    def encode_value(self, value: Value) -> Any:
        if not isinstance(value, VALUE_TYPES):
            raise UnsupportedValue(
                f"Cannot convert value of type {type(value).__name__} to JSON"
            )
        return getattr(self, self.VALUE_ENCODERS[value.bson_type])(value)

    def _encode_double(self, value: Double) -> Any:
        number = value.value
        if math.isnan(number):
            return {"$numberDouble": "NaN"}
        if math.isinf(number):
            return {"$numberDouble": "Infinity" if number > 0 else "-Infinity"}
        if self.canonical:
            return {"$numberDouble": repr(number)}
        return number

    def _encode_embedded_document(self, value: Document) -> dict[str, Any]:
        keys = frozenset(value)
        if keys in ExtendedJsonDecoder.WRAPPERS:
            raise UnsupportedValue(
                f"Embedded document with keys {sorted(keys)} would read back as an "
                "Extended JSON wrapper"
            )
        return self.encode_document(value)

    def _encode_string(self, value: String) -> str:
        return value.value

    def _encode_array(self, value: Array) -> list[Any]:
        return [self.encode_value(item) for item in value.items]

    def _encode_binary(self, value: Binary) -> dict[str, Any]:
        return {
            "$binary": {"base64": value.to_base64(), "subType": f"{value.subtype:02x}"}
        }

    def _encode_object_id(self, value: ObjectId) -> dict[str, Any]:
        return {"$oid": value.hex}

    def _encode_boolean(self, value: Boolean) -> bool:
        return value.value

    def _encode_datetime(self, value: DateTime) -> dict[str, Any]:
        if not self.canonical and 0 <= value.millis < ISO_DATE_MAX_MILLIS:
            return {"$date": format_iso_date(value.millis)}
        return {"$date": {"$numberLong": str(value.millis)}}

    def _encode_null(self, value: Null) -> None:
        return None

    def _encode_regex(self, value: Regex) -> dict[str, Any]:
        return {
            "$regularExpression": {"pattern": value.pattern, "options": value.options}
        }

    def _encode_javascript(self, value: JavaScriptCode) -> dict[str, Any]:
        return {"$code": value.code}

    def _encode_int32(self, value: Int32) -> Any:
        if self.canonical:
            return {"$numberInt": str(value.value)}
        return value.value

    def _encode_timestamp(self, value: Timestamp) -> dict[str, Any]:
        return {"$timestamp": {"t": value.seconds, "i": value.increment}}

    def _encode_int64(self, value: Int64) -> dict[str, Any]:
        return {"$numberLong": str(value.value)}

    def _encode_decimal128(self, value: Decimal128) -> dict[str, Any]:
        return {"$numberDecimal": str(value)}

    def _encode_min_key(self, value: MinKey) -> dict[str, Any]:
        return {"$minKey": 1}

    def _encode_max_key(self, value: MaxKey) -> dict[str, Any]:
        return {"$maxKey": 1}


class ExtendedJsonDecoder:
    """Rebuilds typed values from a parsed JSON tree."""

    WRAPPERS: dict[frozenset[str], str] = {
        frozenset(["$oid"]): "_decode_oid",
        frozenset(["$date"]): "_decode_date",
        frozenset(["$numberLong"]): "_decode_number_long",
        frozenset(["$numberInt"]): "_decode_number_int",
        frozenset(["$numberDouble"]): "_decode_number_double",
        frozenset(["$numberDecimal"]): "_decode_number_decimal",
        frozenset(["$binary"]): "_decode_binary",
        frozenset(["$binary", "$type"]): "_decode_legacy_binary",
        frozenset(["$uuid"]): "_decode_uuid",
        frozenset(["$regularExpression"]): "_decode_regular_expression",
        frozenset(["$regex", "$options"]): "_decode_legacy_regex",
        frozenset(["$timestamp"]): "_decode_timestamp",
        frozenset(["$code"]): "_decode_code",
        frozenset(["$minKey"]): "_decode_min_key",
        frozenset(["$maxKey"]): "_decode_max_key",
    }

    def __init__(self, config: Optional[ConversionConfig] = None):
        self.config = config or ConversionConfig()
        self.logger = self.config.get_logger(__name__)
        self.validator = LimitValidator(self.config.limits, InvalidJson)
        self._path: list[JsonPathPart] = []

    def decode_document(self, obj: Any) -> Document:
        """Decode the top-level object; it is never taken as a wrapper."""
        if not isinstance(obj, dict):
            kind = "array" if isinstance(obj, list) else type(obj).__name__
            raise InvalidJson(
                f"Top-level JSON value must be an object, got {kind}",
                suggestions=["Wrap the value in an object, e.g. {\"value\": ...}"],
            )
        try:
            return self._decode_fields(obj)
        except RecursionError:
            self._error("Document nesting is too deep to convert")

    def decode_value(self, obj: Any) -> Value:
        if isinstance(obj, dict):
            handler = self.WRAPPERS.get(frozenset(obj))
            if handler:
                return getattr(self, handler)(obj)
            return self._decode_fields(obj)
        if isinstance(obj, list):
            return self._decode_items(obj)
        if isinstance(obj, str):
            return String(obj)
        if isinstance(obj, bool):
            return Boolean(obj)
        if obj is None:
            return Null()
        if isinstance(obj, int):
            return self._decode_integer(obj)
        if isinstance(obj, float):
            if math.isinf(obj):
                self.logger.warning(
                    "Number at %s overflows a double and becomes infinity", self.path
                )
            return Double(obj)
        raise UnsupportedValue(f"Unexpected {type(obj).__name__} in JSON tree")

    @property
    def path(self) -> str:
        """Location of the value being decoded, e.g. ``$.items[2].id``."""
        parts = ["$"]
        for part in self._path:
            parts.append(f"[{part}]" if isinstance(part, int) else f".{part}")
        return "".join(parts)

    def _decode_fields(self, obj: dict[str, Any]) -> Document:
        self._enter_structure()
        pairs = []
        for key, value in obj.items():
            self._path.append(key)
            if "\x00" in key:
                self._error(f"Key {key!r} contains NUL, which BSON keys cannot hold")
            pairs.append((key, self.decode_value(value)))
            self._path.pop()
        self.validator.exit_structure()
        return Document(pairs)

    def _decode_items(self, obj: list[Any]) -> Array:
        self._enter_structure()
        items = []
        for index, item in enumerate(obj):
            self._path.append(index)
            items.append(self.decode_value(item))
            self._path.pop()
        self.validator.exit_structure()
        return Array(tuple(items))

    def _enter_structure(self) -> None:
        # Documents and arrays count towards the depth limit; wrapper objects do not
        try:
            self.validator.enter_structure()
        except InvalidJson as exc:
            self._error(exc.message)

    def _decode_integer(self, number: int) -> Value:
        if INT32_MIN <= number <= INT32_MAX:
            return Int32(number)
        if INT64_MIN <= number <= INT64_MAX:
            return Int64(number)
        self.logger.warning(
            "Integer at %s exceeds the 64-bit range; storing it as a lossy Double",
            self.path,
        )
        try:
            return Double(float(number))
        except OverflowError:
            self._error(f"Integer at {self.path} is too large for a double")

    # Wrapper decoders

    def _decode_oid(self, obj: dict[str, Any]) -> Value:
        text = self._expect_str(obj["$oid"], "$oid")
        try:
            return ObjectId.from_hex(text)
        except ValueError as exc:
            self._error(f"Invalid $oid: {exc}")

    def _decode_date(self, obj: dict[str, Any]) -> Value:
        raw = obj["$date"]
        if isinstance(raw, str):
            try:
                return DateTime(parse_iso_date(raw))
            except (ValueError, OverflowError) as exc:
                self._error(f"Invalid $date: {exc}")
        if isinstance(raw, int) and not isinstance(raw, bool):
            return DateTime(self._check_range(raw, INT64_MIN, INT64_MAX, "$date"))
        if isinstance(raw, dict) and set(raw) == {"$numberLong"}:
            text = self._expect_str(raw["$numberLong"], "$date.$numberLong")
            return DateTime(self._parse_integer(text, INT64_MIN, INT64_MAX, "$date"))
        self._error("Invalid $date: expected an ISO-8601 string or $numberLong")

    def _decode_number_long(self, obj: dict[str, Any]) -> Value:
        text = self._expect_str(obj["$numberLong"], "$numberLong")
        return Int64(self._parse_integer(text, INT64_MIN, INT64_MAX, "$numberLong"))

    def _decode_number_int(self, obj: dict[str, Any]) -> Value:
        text = self._expect_str(obj["$numberInt"], "$numberInt")
        return Int32(self._parse_integer(text, INT32_MIN, INT32_MAX, "$numberInt"))

    def _decode_number_double(self, obj: dict[str, Any]) -> Value:
        text = self._expect_str(obj["$numberDouble"], "$numberDouble")
        if text in _SPECIAL_DOUBLES:
            return Double(_SPECIAL_DOUBLES[text])
        if not _DOUBLE_TEXT.fullmatch(text):
            self._error(f"Invalid $numberDouble: {text!r} is not a number")
        return Double(float(text))

    def _decode_number_decimal(self, obj: dict[str, Any]) -> Value:
        text = self._expect_str(obj["$numberDecimal"], "$numberDecimal")
        try:
            return Decimal128.from_string(text)
        except ValueError as exc:
            self._error(f"Invalid $numberDecimal: {exc}")

    def _decode_binary(self, obj: dict[str, Any]) -> Value:
        body = obj["$binary"]
        if not isinstance(body, dict) or set(body) != {"base64", "subType"}:
            self._error('Invalid $binary: expected {"base64": ..., "subType": ...}')
        return self._build_binary(body["base64"], body["subType"])

    def _decode_legacy_binary(self, obj: dict[str, Any]) -> Value:
        return self._build_binary(obj["$binary"], obj["$type"])

    def _build_binary(self, encoded: Any, subtype: Any) -> Value:
        encoded = self._expect_str(encoded, "$binary base64")
        subtype = self._expect_str(subtype, "$binary subType")
        if not _SUBTYPE_TEXT.fullmatch(subtype):
            self._error(f"Invalid $binary subType {subtype!r}: expected 1-2 hex digits")
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            self._error(f"Invalid $binary base64 payload: {exc}")
        return Binary(data, int(subtype, 16))

    def _decode_uuid(self, obj: dict[str, Any]) -> Value:
        text = self._expect_str(obj["$uuid"], "$uuid")
        if not _UUID_TEXT.fullmatch(text):
            self._error(f"Invalid $uuid {text!r}: expected 8-4-4-4-12 hex digits")
        return Binary(uuid.UUID(text).bytes, BinarySubtype.UUID)

    def _decode_regular_expression(self, obj: dict[str, Any]) -> Value:
        body = obj["$regularExpression"]
        if not isinstance(body, dict) or set(body) != {"pattern", "options"}:
            self._error(
                'Invalid $regularExpression: expected {"pattern": ..., "options": ...}'
            )
        return self._build_regex(body["pattern"], body["options"])

    def _decode_legacy_regex(self, obj: dict[str, Any]) -> Value:
        return self._build_regex(obj["$regex"], obj["$options"])

    def _build_regex(self, pattern: Any, options: Any) -> Value:
        pattern = self._expect_str(pattern, "regex pattern")
        options = self._expect_str(options, "regex options")
        if "\x00" in pattern or "\x00" in options:
            self._error("Regular expressions must not contain NUL")
        return Regex(pattern, options)

    def _decode_timestamp(self, obj: dict[str, Any]) -> Value:
        body = obj["$timestamp"]
        if not isinstance(body, dict) or set(body) != {"t", "i"}:
            self._error('Invalid $timestamp: expected {"t": ..., "i": ...}')
        seconds = self._expect_uint32(body["t"], "$timestamp.t")
        increment = self._expect_uint32(body["i"], "$timestamp.i")
        return Timestamp(seconds=seconds, increment=increment)

    def _decode_code(self, obj: dict[str, Any]) -> Value:
        return JavaScriptCode(self._expect_str(obj["$code"], "$code"))

    def _decode_min_key(self, obj: dict[str, Any]) -> Value:
        self._expect_one(obj["$minKey"], "$minKey")
        return MinKey()

    def _decode_max_key(self, obj: dict[str, Any]) -> Value:
        self._expect_one(obj["$maxKey"], "$maxKey")
        return MaxKey()

    # Payload checks

    def _expect_str(self, value: Any, what: str) -> str:
        if not isinstance(value, str):
            self._error(f"Invalid {what}: expected a string, got {_json_kind(value)}")
        return value

    def _expect_uint32(self, value: Any, what: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            self._error(f"Invalid {what}: expected an integer, got {_json_kind(value)}")
        return self._check_range(value, 0, UINT32_MAX, what)

    def _expect_one(self, value: Any, what: str) -> None:
        if isinstance(value, bool) or value != 1:
            self._error(f"Invalid {what}: value must be 1")

    def _parse_integer(self, text: str, low: int, high: int, what: str) -> int:
        if not _INTEGER_TEXT.fullmatch(text):
            self._error(f"Invalid {what}: {text!r} is not an integer")
        return self._check_range(int(text), low, high, what)

    def _check_range(self, number: int, low: int, high: int, what: str) -> int:
        if not low <= number <= high:
            self._error(f"Invalid {what}: {number} is outside [{low}, {high}]")
        return number

    def _error(self, message: str) -> NoReturn:
        raise InvalidJson(f"{message} (at {self.path})")


def _json_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def to_json_text(document: Document, config: Optional[ConversionConfig] = None) -> str:
    """Render a Document as deterministic Extended JSON text."""
    config = config or ConversionConfig()
    if not isinstance(document, Document):
        raise UnsupportedValue(
            f"Top-level value must be a Document, got {type(document).__name__}"
        )
    try:
        tree = ExtendedJsonEncoder(config).encode_document(document)
    except RecursionError:
        raise UnsupportedValue("Document nesting is too deep to convert") from None
    return json.dumps(tree, indent=config.indent, ensure_ascii=False, allow_nan=False)


def _coerce_text(text: Union[str, bytes, bytearray], config: ConversionConfig) -> str:
    """Decode byte input as UTF-8 and reject strings that are not valid Unicode."""
    validator = LimitValidator(config.limits, InvalidJson)
    if isinstance(text, (bytes, bytearray, memoryview)):
        raw = bytes(text)
        validator.validate_input_size(len(raw))
        skip = len(codecs.BOM_UTF8) if raw.startswith(codecs.BOM_UTF8) else 0
        try:
            return raw[skip:].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidJson(
                f"Input is not valid UTF-8: {exc.reason}", offset=skip + exc.start
            ) from None

    if not isinstance(text, str):
        raise TypeError(f"Expected str or bytes, got {type(text).__name__}")

    try:
        encoded = text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidJson(
            f"Input is not valid Unicode: {exc.reason}", offset=exc.start
        ) from None
    validator.validate_input_size(len(encoded))
    return text[1:] if text.startswith("\ufeff") else text


def validate_and_parse(
    json_text: Union[str, bytes, bytearray], config: Optional[ConversionConfig] = None
) -> Document:
    """Parse JSON text and rebuild typed values from Extended JSON wrappers.

    Raises:
        InvalidJson: If the text is not well-formed JSON, its top-level value
            is not an object, or a wrapper carries an invalid payload.
    """
    config = config or ConversionConfig()
    text = _coerce_text(json_text, config)
    # The decoder enforces the real depth limit once wrappers are folded away
    limits = dataclasses.replace(
        config.limits,
        max_nesting_depth=config.limits.max_nesting_depth + WRAPPER_NESTING_DEPTH,
    )
    tree = parse_json(text, config, LimitValidator(limits, InvalidJson))
    return ExtendedJsonDecoder(config).decode_document(tree)


def validate_json_text(
    json_text: Union[str, bytes, bytearray], config: Optional[ConversionConfig] = None
) -> None:
    """Check that JSON text converts to a Document, without producing BSON."""
    validate_and_parse(json_text, config)
