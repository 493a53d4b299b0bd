"""
Test cases for conversion configuration.
"""

import logging
import unittest

from bsonbridge.utils.config import (
    ConversionConfig,
    ConversionLimits,
    DuplicateKeyPolicy,
    JsonMode,
)


class TestConversionConfig(unittest.TestCase):
    """Test ConversionConfig defaults and presets."""

    def test_defaults(self):
        config = ConversionConfig()
        self.assertIsInstance(config.limits, ConversionLimits)
        self.assertEqual(config.json_mode, JsonMode.RELAXED)
        self.assertEqual(config.indent, 2)
        self.assertEqual(config.duplicate_keys, DuplicateKeyPolicy.LAST)
        self.assertTrue(config.include_position)
        self.assertIsNone(config.logger)

    def test_configs_do_not_share_limits(self):
        self.assertIsNot(ConversionConfig().limits, ConversionConfig().limits)

    def test_strict_preset(self):
        self.assertEqual(ConversionConfig.strict().duplicate_keys, DuplicateKeyPolicy.ERROR)

    def test_canonical_preset(self):
        self.assertEqual(ConversionConfig.canonical().json_mode, JsonMode.CANONICAL)

    def test_negative_indent_rejected(self):
        with self.assertRaises(ValueError):
            ConversionConfig(indent=-1)
        self.assertIsNone(ConversionConfig(indent=None).indent)

    def test_get_logger(self):
        """Test the injected logger wins over the module logger."""
        injected = logging.getLogger("custom.conversions")
        self.assertIs(ConversionConfig(logger=injected).get_logger("x"), injected)
        self.assertIs(
            ConversionConfig().get_logger("bsonbridge.core.parser"),
            logging.getLogger("bsonbridge.core.parser"),
        )


if __name__ == "__main__":
    unittest.main()
