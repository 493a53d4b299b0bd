"""
Common constants and mappings used across the bsonbridge library.
"""

from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tokenizer import TokenType


class BsonType(IntEnum):
    """Element type tags of the BSON binary format."""

    DOUBLE = 0x01
    STRING = 0x02
    DOCUMENT = 0x03
    ARRAY = 0x04
    BINARY = 0x05
    OBJECT_ID = 0x07
    BOOLEAN = 0x08
    DATETIME = 0x09
    NULL = 0x0A
    REGEX = 0x0B
    JAVASCRIPT = 0x0D
    INT32 = 0x10
    TIMESTAMP = 0x11
    INT64 = 0x12
    DECIMAL128 = 0x13
    MIN_KEY = 0xFF
    MAX_KEY = 0x7F


# Tags defined by older BSON revisions that this codec does not model
DEPRECATED_TYPES = {
    0x06: "undefined",
    0x0C: "DBPointer",
    0x0E: "symbol",
    0x0F: "JavaScript code with scope",
}


class BinarySubtype(IntEnum):
    """Well-known binary subtypes."""

    GENERIC = 0x00
    FUNCTION = 0x01
    BINARY_OLD = 0x02
    UUID_OLD = 0x03
    UUID = 0x04
    MD5 = 0x05
    ENCRYPTED = 0x06
    COLUMN = 0x07
    SENSITIVE = 0x08
    USER_DEFINED = 0x80


INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT32_MAX = 2**32 - 1

# Length prefix plus terminator
MIN_DOCUMENT_SIZE = 5

# JSON object levels a wrapper adds below its value, as in {"$date": {"$numberLong": ...}}
WRAPPER_NESTING_DEPTH = 2

# 10000-01-01T00:00:00Z; ISO-8601 dates are only emitted below this
ISO_DATE_MAX_MILLIS = 253402300800000

# Strict JSON escape sequences (RFC 8259)
JSON_ESCAPE_MAP = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    '"': '"',
    "\\": "\\",
    "/": "/",
}

JSON_WHITESPACE = " \t\n\r"


def get_structural_token_map() -> dict[str, "TokenType"]:
    """Get the mapping of structural characters to TokenType enums."""
    # Import here to avoid circular imports
    from .tokenizer import TokenType  # pylint: disable=import-outside-toplevel

    return {
        "{": TokenType.LBRACE,
        "}": TokenType.RBRACE,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        ":": TokenType.COLON,
        ",": TokenType.COMMA,
    }
