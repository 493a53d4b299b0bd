"""
Conversion entry points that report failures as values.

Each call is independent: it builds its own reader, parser and validators,
so nothing carries over from one conversion to the next.
"""

import logging
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from .core.bridge import to_json_text, validate_and_parse
from .core.reader import decode
from .core.writer import encode
from .security.exceptions import ConversionError
from .utils.config import ConversionConfig

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult(Generic[T]):
    """Outcome of one conversion: a value, or the error that stopped it."""

    value: Optional[T] = None
    error: Optional[ConversionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the stored error if the conversion failed."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def _logger_for(config: Optional[ConversionConfig]) -> logging.Logger:
    return config.logger if config and config.logger else logger


def bson_to_json(
    data: bytes, config: Optional[ConversionConfig] = None
) -> ConversionResult[str]:
    """Convert one BSON document to Extended JSON text.

    Args:
        data: Exactly one encoded BSON document.
        config: Optional limits and output options.

    Returns:
        ConversionResult holding the JSON text, or a ``MalformedBson`` /
        ``UnsupportedValue`` error.
    """
    log = _logger_for(config)
    log.debug("Converting %d bytes of BSON to JSON", len(data))
    try:
        text = to_json_text(decode(data, config), config)
    except ConversionError as exc:
        log.debug("BSON to JSON conversion failed: %s", exc.message)
        return ConversionResult(error=exc)
    log.debug("Produced %d characters of JSON", len(text))
    return ConversionResult(value=text)


def json_to_bson(
    text: Union[str, bytes], config: Optional[ConversionConfig] = None
) -> ConversionResult[bytes]:
    """Convert JSON text with Extended JSON wrappers to one BSON document.

    Returns:
        ConversionResult holding the encoded bytes, or an ``InvalidJson`` /
        ``UnsupportedValue`` error.
    """
    log = _logger_for(config)
    log.debug("Converting %d units of JSON to BSON", len(text))
    try:
        data = encode(validate_and_parse(text, config), config)
    except ConversionError as exc:
        log.debug("JSON to BSON conversion failed: %s", exc.message)
        return ConversionResult(error=exc)
    log.debug("Produced %d bytes of BSON", len(data))
    return ConversionResult(value=data)


def validate_json(
    text: Union[str, bytes], config: Optional[ConversionConfig] = None
) -> ConversionResult[None]:
    """Check that JSON text would convert, without producing BSON."""
    try:
        validate_and_parse(text, config)
    except ConversionError as exc:
        _logger_for(config).debug("JSON validation failed: %s", exc.message)
        return ConversionResult(error=exc)
    return ConversionResult()
