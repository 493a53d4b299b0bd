"""
bsonbridge error taxonomy and resource limits.
"""

from .exceptions import (
    ConversionError,
    ErrorContext,
    ErrorReporter,
    ErrorSuggestionEngine,
    InvalidJson,
    MalformedBson,
    UnsupportedValue,
)
from .limits import LimitValidator

__all__ = [
    "ConversionError",
    "ErrorContext",
    "ErrorReporter",
    "ErrorSuggestionEngine",
    "InvalidJson",
    "LimitValidator",
    "MalformedBson",
    "UnsupportedValue",
]
