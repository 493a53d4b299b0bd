"""
bsonbridge - lossless conversion between BSON documents and JSON text.

Types plain JSON cannot express (64-bit integers, decimals, dates, binary
data, ObjectIds and friends) travel as MongoDB Extended JSON wrappers, so
BSON -> JSON -> BSON reproduces the original document.

Quick Start:
    import bsonbridge

    result = bsonbridge.json_to_bson('{"n": {"$numberLong": "42"}}')
    if result.ok:
        text = bsonbridge.bson_to_json(result.value).unwrap()

    # Raising API
    doc = bsonbridge.validate_and_parse('{"name": "Ada"}')
    data = bsonbridge.encode(doc)
"""

from .converter import ConversionResult, bson_to_json, json_to_bson, validate_json
from .core.bridge import to_json_text, validate_and_parse, validate_json_text
from .core.constants import BinarySubtype, BsonType
from .core.reader import decode
from .core.types import (
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
    document,
    from_python,
)
from .core.writer import encode
from .security.exceptions import (
    ConversionError,
    InvalidJson,
    MalformedBson,
    UnsupportedValue,
)
from .utils.config import ConversionConfig, ConversionLimits, DuplicateKeyPolicy, JsonMode

__version__ = "0.1.0"

__all__ = [
    # Boundary functions
    "bson_to_json", "json_to_bson", "validate_json", "ConversionResult",
    # Raising API
    "decode", "encode", "to_json_text", "validate_and_parse", "validate_json_text",
    # Document model
    "Array", "Binary", "Boolean", "DateTime", "Decimal128", "Document", "Double",
    "Int32", "Int64", "JavaScriptCode", "MaxKey", "MinKey", "Null", "ObjectId",
    "Regex", "String", "Timestamp", "Value", "BsonType", "BinarySubtype",
    "document", "from_python",
    # Configuration classes
    "ConversionConfig", "ConversionLimits", "DuplicateKeyPolicy", "JsonMode",
    # Exception classes
    "ConversionError", "InvalidJson", "MalformedBson", "UnsupportedValue",
]
