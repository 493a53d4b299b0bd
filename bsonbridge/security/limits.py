"""
Resource limits for bsonbridge.

Guards against oversized input, runaway nesting and huge strings. The
validator raises the error class of the direction it protects, so binary
input fails with ``MalformedBson`` and text input with ``InvalidJson``.
"""

from typing import Optional

from ..utils.config import ConversionLimits
from .exceptions import ConversionError, InvalidJson


class LimitValidator:
    """Tracks nesting depth and validates sizes against ``ConversionLimits``."""

    def __init__(
        self,
        limits: ConversionLimits,
        error_cls: type[ConversionError] = InvalidJson,
    ):
        self.limits = limits
        self.error_cls = error_cls
        self.nesting_depth = 0

    def validate_input_size(self, size: int) -> None:
        """Validate that the input byte count is within limits."""
        if size > self.limits.max_input_size:
            raise self.error_cls(
                f"Input size {size} exceeds limit {self.limits.max_input_size}"
            )

    def validate_string_length(
        self, length: int, position: Optional[str] = None
    ) -> None:
        """Validate that a string length is within limits."""
        if length > self.limits.max_string_length:
            pos_info = f" at {position}" if position else ""
            raise self.error_cls(
                f"String length {length} exceeds limit "
                f"{self.limits.max_string_length}{pos_info}"
            )

    def enter_structure(self) -> None:
        """Track entering a nested structure and validate depth."""
        self.nesting_depth += 1
        if self.nesting_depth > self.limits.max_nesting_depth:
            raise self.error_cls(
                f"Nesting depth {self.nesting_depth} exceeds limit "
                f"{self.limits.max_nesting_depth}"
            )

    def exit_structure(self) -> None:
        """Track exiting a nested structure."""
        if self.nesting_depth > 0:
            self.nesting_depth -= 1

    def reset(self) -> None:
        """Reset validator state for reuse."""
        self.nesting_depth = 0
