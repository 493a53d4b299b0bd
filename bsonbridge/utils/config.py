"""
Configuration and limits for bsonbridge conversions.

This module defines resource limits and output options for BSON/JSON
conversion.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

DEFAULT_MAX_INPUT_SIZE = 10 * 1024 * 1024


class JsonMode(Enum):
    """Extended JSON output flavour."""

    RELAXED = "relaxed"
    CANONICAL = "canonical"


class DuplicateKeyPolicy(Enum):
    """How repeated keys inside one object or document are treated."""

    LAST = "last"
    ERROR = "error"


@dataclass
class ConversionLimits:
    """Resource limits applied to every conversion."""

    max_input_size: int = DEFAULT_MAX_INPUT_SIZE
    max_nesting_depth: int = 100
    max_string_length: int = DEFAULT_MAX_INPUT_SIZE

    def __post_init__(self) -> None:
        if self.max_input_size <= 0:
            raise ValueError("max_input_size must be positive")
        if self.max_nesting_depth <= 0:
            raise ValueError("max_nesting_depth must be positive")
        if self.max_string_length <= 0:
            raise ValueError("max_string_length must be positive")


@dataclass
class ConversionConfig:
    """Options shared by the reader, writer, parser and JSON bridge."""

    limits: ConversionLimits = field(default_factory=ConversionLimits)
    json_mode: JsonMode = JsonMode.RELAXED
    indent: Optional[int] = 2
    duplicate_keys: DuplicateKeyPolicy = DuplicateKeyPolicy.LAST
    include_position: bool = True
    max_error_context: int = 50
    logger: Optional[logging.Logger] = None

    def __post_init__(self) -> None:
        if self.indent is not None and self.indent < 0:
            raise ValueError("indent must not be negative")

    def get_logger(self, name: str) -> logging.Logger:
        """Injected logger, or the module logger for ``name``."""
        return self.logger or logging.getLogger(name)

    @classmethod
    def strict(cls) -> "ConversionConfig":
        """Configuration that rejects duplicate keys."""
        return cls(duplicate_keys=DuplicateKeyPolicy.ERROR)

    @classmethod
    def canonical(cls) -> "ConversionConfig":
        """Configuration that emits canonical Extended JSON."""
        return cls(json_mode=JsonMode.CANONICAL)
