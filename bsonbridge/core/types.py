"""
In-memory document model for bsonbridge.

Every BSON value is one of a closed set of frozen dataclasses, each tagged
with the ``BsonType`` it encodes as. ``Document`` is an immutable ordered
mapping; key order takes part in equality because BSON preserves it.
"""

import base64
import datetime
import decimal
import struct
import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from .constants import (
    INT32_MAX,
    INT32_MIN,
    INT64_MAX,
    INT64_MIN,
    UINT32_MAX,
    BinarySubtype,
    BsonType,
)
from .decimal128 import bytes_to_decimal, bytes_to_string, decimal_to_bytes

_DOUBLE = struct.Struct("<d")
EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def _require_int(value: Any, name: str, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} requires an int, got {type(value).__name__}")
    if not low <= value <= high:
        raise ValueError(f"{name} value {value} is outside [{low}, {high}]")


def _require_str(value: Any, name: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} requires a str, got {type(value).__name__}")


@dataclass(frozen=True, eq=False)
class Double:
    """64-bit IEEE 754 binary floating point.

    Equality compares bit patterns so NaN equals itself and -0.0 differs
    from 0.0.
    """

    value: float
    bson_type: ClassVar[BsonType] = BsonType.DOUBLE

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"Double requires a float, got {type(self.value).__name__}")
        object.__setattr__(self, "value", float(self.value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Double):
            return NotImplemented
        return _DOUBLE.pack(self.value) == _DOUBLE.pack(other.value)

    def __hash__(self) -> int:
        return hash(_DOUBLE.pack(self.value))


@dataclass(frozen=True)
class String:
    value: str
    bson_type: ClassVar[BsonType] = BsonType.STRING

    def __post_init__(self) -> None:
        _require_str(self.value, "String")


@dataclass(frozen=True)
class Array:
    """Ordered sequence of values; positions are the implicit indices."""

    items: tuple["Value", ...] = ()
    bson_type: ClassVar[BsonType] = BsonType.ARRAY

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["Value"]:
        return iter(self.items)

    def __getitem__(self, index: int) -> "Value":
        return self.items[index]


@dataclass(frozen=True)
class Binary:
    data: bytes
    subtype: int = BinarySubtype.GENERIC
    bson_type: ClassVar[BsonType] = BsonType.BINARY

    def __post_init__(self) -> None:
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Binary requires bytes, got {type(self.data).__name__}")
        object.__setattr__(self, "data", bytes(self.data))
        _require_int(self.subtype, "Binary subtype", 0, 0xFF)
        object.__setattr__(self, "subtype", int(self.subtype))

    @classmethod
    def from_uuid(cls, value: uuid.UUID) -> "Binary":
        return cls(value.bytes, BinarySubtype.UUID)

    def as_uuid(self) -> uuid.UUID:
        if self.subtype != BinarySubtype.UUID or len(self.data) != 16:
            raise ValueError("Binary value is not a subtype 4 UUID")
        return uuid.UUID(bytes=self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class ObjectId:
    """12-byte MongoDB object identifier."""

    raw: bytes
    bson_type: ClassVar[BsonType] = BsonType.OBJECT_ID

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"ObjectId requires bytes, got {type(self.raw).__name__}")
        if len(self.raw) != 12:
            raise ValueError(f"ObjectId must be exactly 12 bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_hex(cls, text: str) -> "ObjectId":
        _require_str(text, "ObjectId")
        if len(text) != 24:
            raise ValueError(
                f"ObjectId must be 24 hex characters, got {len(text)}"
            )
        try:
            return cls(bytes.fromhex(text))
        except ValueError as exc:
            raise ValueError(f"{text!r} is not a valid hex ObjectId") from exc

    @property
    def hex(self) -> str:
        return self.raw.hex()

    @property
    def generation_time(self) -> datetime.datetime:
        """Creation time encoded in the leading four bytes."""
        seconds = struct.unpack(">I", self.raw[:4])[0]
        return EPOCH + datetime.timedelta(seconds=seconds)

    def __str__(self) -> str:
        return self.hex


@dataclass(frozen=True)
class Boolean:
    value: bool
    bson_type: ClassVar[BsonType] = BsonType.BOOLEAN

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            raise TypeError(f"Boolean requires a bool, got {type(self.value).__name__}")


@dataclass(frozen=True)
class DateTime:
    """UTC instant as signed 64-bit milliseconds since the Unix epoch."""

    millis: int
    bson_type: ClassVar[BsonType] = BsonType.DATETIME

    def __post_init__(self) -> None:
        _require_int(self.millis, "DateTime", INT64_MIN, INT64_MAX)

    @classmethod
    def from_datetime(cls, value: datetime.datetime) -> "DateTime":
        """Build from a datetime; naive values are taken as UTC."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        delta = value - EPOCH
        millis = (
            delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000
        )
        return cls(millis)

    def to_datetime(self) -> datetime.datetime:
        """Aware UTC datetime; raises OverflowError outside years 1-9999."""
        return EPOCH + datetime.timedelta(milliseconds=self.millis)


@dataclass(frozen=True)
class Null:
    bson_type: ClassVar[BsonType] = BsonType.NULL


@dataclass(frozen=True)
class Regex:
    pattern: str
    options: str = ""
    bson_type: ClassVar[BsonType] = BsonType.REGEX

    def __post_init__(self) -> None:
        _require_str(self.pattern, "Regex pattern")
        _require_str(self.options, "Regex options")


@dataclass(frozen=True)
class JavaScriptCode:
    code: str
    bson_type: ClassVar[BsonType] = BsonType.JAVASCRIPT

    def __post_init__(self) -> None:
        _require_str(self.code, "JavaScriptCode")


@dataclass(frozen=True)
class Int32:
    value: int
    bson_type: ClassVar[BsonType] = BsonType.INT32

    def __post_init__(self) -> None:
        _require_int(self.value, "Int32", INT32_MIN, INT32_MAX)


@dataclass(frozen=True)
class Timestamp:
    """Replication timestamp: seconds since epoch plus an ordinal increment."""

    seconds: int
    increment: int
    bson_type: ClassVar[BsonType] = BsonType.TIMESTAMP

    def __post_init__(self) -> None:
        _require_int(self.seconds, "Timestamp seconds", 0, UINT32_MAX)
        _require_int(self.increment, "Timestamp increment", 0, UINT32_MAX)


@dataclass(frozen=True)
class Int64:
    value: int
    bson_type: ClassVar[BsonType] = BsonType.INT64

    def __post_init__(self) -> None:
        _require_int(self.value, "Int64", INT64_MIN, INT64_MAX)


@dataclass(frozen=True)
class Decimal128:
    """128-bit decimal kept as its 16 raw BID bytes."""

    raw: bytes
    bson_type: ClassVar[BsonType] = BsonType.DECIMAL128

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"Decimal128 requires bytes, got {type(self.raw).__name__}")
        if len(self.raw) != 16:
            raise ValueError(f"Decimal128 must be exactly 16 bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_string(cls, text: str) -> "Decimal128":
        return cls(decimal_to_bytes(text))

    @classmethod
    def from_decimal(cls, value: decimal.Decimal) -> "Decimal128":
        return cls(decimal_to_bytes(value))

    def to_decimal(self) -> decimal.Decimal:
        return bytes_to_decimal(self.raw)

    def __str__(self) -> str:
        return bytes_to_string(self.raw)


@dataclass(frozen=True)
class MinKey:
    bson_type: ClassVar[BsonType] = BsonType.MIN_KEY


@dataclass(frozen=True)
class MaxKey:
    bson_type: ClassVar[BsonType] = BsonType.MAX_KEY


class Document(Mapping[str, "Value"]):
    """Immutable, insertion-ordered mapping of unique string keys to values."""

    __slots__ = ("_fields",)
    bson_type: ClassVar[BsonType] = BsonType.DOCUMENT

    def __init__(
        self,
        fields: Union[Mapping[str, "Value"], Iterable[tuple[str, "Value"]], None] = None,
    ) -> None:
        pairs = fields.items() if isinstance(fields, Mapping) else (fields or ())
        collected: dict[str, Value] = {}
        for key, value in pairs:
            _require_str(key, "Document key")
            if key in collected:
                raise ValueError(f"Duplicate document key {key!r}")
            collected[key] = value
        self._fields = collected

    def __getitem__(self, key: str) -> "Value":
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return list(self._fields.items()) == list(other._fields.items())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Document({list(self._fields.items())!r})"


Value = Union[
    Double,
    String,
    Document,
    Array,
    Binary,
    ObjectId,
    Boolean,
    DateTime,
    Null,
    Regex,
    JavaScriptCode,
    Int32,
    Timestamp,
    Int64,
    Decimal128,
    MinKey,
    MaxKey,
]

VALUE_TYPES: tuple[type, ...] = (
    Double,
    String,
    Document,
    Array,
    Binary,
    ObjectId,
    Boolean,
    DateTime,
    Null,
    Regex,
    JavaScriptCode,
    Int32,
    Timestamp,
    Int64,
    Decimal128,
    MinKey,
    MaxKey,
)

TYPE_BY_TAG: dict[BsonType, type] = {cls.bson_type: cls for cls in VALUE_TYPES}


def from_python(obj: Any) -> Value:
    """Wrap a plain Python object tree as a ``Value``.

    ``dict`` becomes Document, ``list``/``tuple`` Array, ``int`` Int32 or
    Int64 by range, ``float`` Double, ``bytes`` generic Binary, ``uuid.UUID``
    subtype 4 Binary, ``datetime`` DateTime and ``decimal.Decimal``
    Decimal128. Values that already are ``Value`` instances pass through.
    """
    if isinstance(obj, VALUE_TYPES):
        return obj  # type: ignore[return-value]
    if obj is None:
        return Null()
    if isinstance(obj, bool):
        return Boolean(obj)
    if isinstance(obj, int):
        if INT32_MIN <= obj <= INT32_MAX:
            return Int32(obj)
        return Int64(obj)
    if isinstance(obj, float):
        return Double(obj)
    if isinstance(obj, str):
        return String(obj)
    if isinstance(obj, (bytes, bytearray)):
        return Binary(bytes(obj))
    if isinstance(obj, uuid.UUID):
        return Binary.from_uuid(obj)
    if isinstance(obj, datetime.datetime):
        return DateTime.from_datetime(obj)
    if isinstance(obj, decimal.Decimal):
        return Decimal128.from_decimal(obj)
    if isinstance(obj, Mapping):
        return Document((key, from_python(value)) for key, value in obj.items())
    if isinstance(obj, (list, tuple)):
        return Array(tuple(from_python(item) for item in obj))
    raise TypeError(f"Cannot convert {type(obj).__name__} to a BSON value")


def document(obj: Optional[Mapping[str, Any]] = None, **fields: Any) -> Document:
    """Shorthand for building a Document from Python values."""
    pairs = list((obj or {}).items()) + list(fields.items())
    return Document((key, from_python(value)) for key, value in pairs)
