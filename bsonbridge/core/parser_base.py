"""
Base functionality shared between the BSON reader and the JSON parser.
"""

import logging
from typing import Any, Callable, Optional

from ..security.exceptions import ConversionError
from ..security.limits import LimitValidator
from ..utils.config import DuplicateKeyPolicy


class BaseParserMixin:
    """Common structure tracking for the BSON and JSON front ends."""

    logger: logging.Logger
    validator: Optional[LimitValidator]

    def handle_duplicate_key(
        self,
        fields: dict[str, Any],
        key: str,
        value: Any,
        policy: DuplicateKeyPolicy,
        make_error: Callable[[str], ConversionError],
    ) -> None:
        """Store ``value`` under ``key`` following the duplicate key policy.

        With ``LAST`` a repeated key keeps its first position and takes the
        newest value.
        """
        if key in fields:
            if policy is DuplicateKeyPolicy.ERROR:
                raise make_error(f"Duplicate key {key!r}")
            self.logger.warning("Duplicate key %r: keeping the last value", key)
        fields[key] = value

    def validate_and_enter_structure(self, validator: Optional[LimitValidator]) -> None:
        """Validate and enter a structure if validator exists."""
        if validator:
            validator.enter_structure()

    def validate_and_exit_structure(self, validator: Optional[LimitValidator]) -> None:
        """Validate and exit a structure if validator exists."""
        if validator:
            validator.exit_structure()
