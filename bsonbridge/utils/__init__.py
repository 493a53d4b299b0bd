"""
bsonbridge configuration and caller-side file helpers.
"""

from .config import ConversionConfig, ConversionLimits, DuplicateKeyPolicy, JsonMode

__all__ = ["ConversionConfig", "ConversionLimits", "DuplicateKeyPolicy", "JsonMode"]
