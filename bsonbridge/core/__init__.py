"""
bsonbridge core codec.

This module provides the document model, the BSON reader and writer, the
strict JSON parser and the Extended JSON bridge.
"""

from .bridge import to_json_text, validate_and_parse, validate_json_text
from .constants import BinarySubtype, BsonType
from .parser import Parser, parse_json
from .reader import BsonReader, decode
from .tokenizer import Lexer, Position, Token, TokenType
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
    document,
    from_python,
)
from .writer import BsonWriter, encode

__all__ = [
    'to_json_text', 'validate_and_parse', 'validate_json_text',
    'BinarySubtype', 'BsonType',
    'Parser', 'parse_json', 'Lexer', 'Position', 'Token', 'TokenType',
    'BsonReader', 'decode', 'BsonWriter', 'encode',
    'Array', 'Binary', 'Boolean', 'DateTime', 'Decimal128', 'Document',
    'Double', 'Int32', 'Int64', 'JavaScriptCode', 'MaxKey', 'MinKey', 'Null',
    'ObjectId', 'Regex', 'String', 'Timestamp', 'Value',
    'document', 'from_python',
]
