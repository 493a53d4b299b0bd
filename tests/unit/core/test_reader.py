"""
Test cases for the BSON reader.

Tests focus on structural validation of hand-built binary documents.
"""

import struct
import unittest

from bsonbridge.core.reader import BsonReader, decode
from bsonbridge.core.types import (
    Array,
    Binary,
    Boolean,
    DateTime,
    Document,
    Double,
    Int32,
    Int64,
    MaxKey,
    MinKey,
    Null,
    ObjectId,
    Regex,
    String,
    Timestamp,
)
from bsonbridge.security.exceptions import MalformedBson
from bsonbridge.utils.config import ConversionConfig, ConversionLimits


def doc_bytes(body):
    """Wrap an element list in a length prefix and terminator."""
    return struct.pack("<i", len(body) + 5) + body + b"\x00"


def int32_element(key, value):
    return b"\x10" + key.encode() + b"\x00" + struct.pack("<i", value)


class TestReaderValidDocuments(unittest.TestCase):
    """Test decoding well-formed documents."""

    def test_empty_document(self):
        """Test the minimal 5-byte document decodes to no entries."""
        doc = decode(b"\x05\x00\x00\x00\x00")
        self.assertEqual(len(doc), 0)
        self.assertEqual(doc, Document())

    def test_hello_world(self):
        data = b"\x16\x00\x00\x00\x02hello\x00\x06\x00\x00\x00world\x00\x00"
        self.assertEqual(decode(data), Document({"hello": String("world")}))

    def test_all_scalar_types(self):
        """Test one element of each scalar type."""
        body = (
            b"\x01d\x00" + struct.pack("<d", 1.5)
            + b"\x05b\x00" + struct.pack("<i", 2) + b"\x80" + b"\x01\x02"
            + b"\x07o\x00" + bytes(range(12))
            + b"\x08t\x00\x01"
            + b"\x09w\x00" + struct.pack("<q", -1)
            + b"\x0an\x00"
            + b"\x0br\x00^a\x00i\x00"
            + b"\x11s\x00" + struct.pack("<II", 7, 1700000000)
            + b"\x12l\x00" + struct.pack("<q", 2**63 - 1)
            + b"\xffm\x00"
            + b"\x7fx\x00"
        )
        doc = decode(doc_bytes(body))
        self.assertEqual(doc["d"], Double(1.5))
        self.assertEqual(doc["b"], Binary(b"\x01\x02", 0x80))
        self.assertEqual(doc["o"], ObjectId(bytes(range(12))))
        self.assertEqual(doc["t"], Boolean(True))
        self.assertEqual(doc["w"], DateTime(-1))
        self.assertEqual(doc["n"], Null())
        self.assertEqual(doc["r"], Regex("^a", "i"))
        self.assertEqual(doc["s"], Timestamp(seconds=1700000000, increment=7))
        self.assertEqual(doc["l"], Int64(2**63 - 1))
        self.assertEqual(doc["m"], MinKey())
        self.assertEqual(doc["x"], MaxKey())
        self.assertEqual(list(doc), ["d", "b", "o", "t", "w", "n", "r", "s", "l", "m", "x"])

    def test_nested_document_and_array(self):
        inner = doc_bytes(int32_element("0", 1) + int32_element("1", 2))
        data = doc_bytes(b"\x04a\x00" + inner + b"\x03d\x00" + doc_bytes(b""))
        doc = decode(data)
        self.assertEqual(doc["a"], Array((Int32(1), Int32(2))))
        self.assertEqual(doc["d"], Document())

    def test_accepts_bytearray_and_memoryview(self):
        data = b"\x05\x00\x00\x00\x00"
        self.assertEqual(decode(bytearray(data)), Document())
        self.assertEqual(decode(memoryview(data)), Document())

    def test_rejects_non_bytes(self):
        with self.assertRaises(TypeError):
            decode("not bytes")


class TestReaderMalformedInput(unittest.TestCase):
    """Test that structural corruption raises MalformedBson."""

    def assertMalformed(self, data, fragment, config=None):
        with self.assertRaises(MalformedBson) as cm:
            decode(data, config)
        self.assertIn(fragment, str(cm.exception))
        return cm.exception

    def test_empty_buffer(self):
        self.assertMalformed(b"", "Empty input")

    def test_shorter_than_minimum(self):
        self.assertMalformed(b"\x05\x00\x00", "shorter than the minimum")

    def test_length_larger_than_buffer(self):
        self.assertMalformed(b"\x10\x00\x00\x00\x00", "declares 16 bytes")

    def test_missing_terminator(self):
        """Test a document whose final NUL byte was cut off."""
        body = int32_element("a", 1)
        data = struct.pack("<i", len(body) + 4) + body
        self.assertRaises(MalformedBson, decode, data)

    def test_terminator_replaced(self):
        data = doc_bytes(int32_element("a", 1))[:-1] + b"\x01"
        self.assertRaises(MalformedBson, decode, data)

    def test_trailing_bytes(self):
        self.assertMalformed(b"\x05\x00\x00\x00\x00\x00", "trailing bytes")

    def test_unknown_type_tag(self):
        error = self.assertMalformed(doc_bytes(b"\x20a\x00"), "Unknown BSON type tag 0x20")
        self.assertEqual(error.offset, 4)
        self.assertIn("at byte 4", str(error))

    def test_deprecated_type_tags(self):
        for tag in (0x06, 0x0C, 0x0E, 0x0F):
            with self.subTest(tag=tag):
                self.assertMalformed(
                    doc_bytes(bytes([tag]) + b"a\x00"), "Unsupported deprecated"
                )

    def test_object_id_must_be_twelve_bytes(self):
        """Test 11 and 13 byte ObjectId payloads are rejected."""
        for size in (11, 13):
            with self.subTest(size=size):
                data = doc_bytes(b"\x07id\x00" + b"\xaa" * size)
                self.assertRaises(MalformedBson, decode, data)

    def test_invalid_boolean(self):
        self.assertMalformed(doc_bytes(b"\x08t\x00\x02"), "Invalid boolean")

    def test_string_length_overruns(self):
        body = b"\x02s\x00" + struct.pack("<i", 50) + b"abc\x00"
        self.assertMalformed(doc_bytes(body), "overruns")

    def test_string_missing_nul(self):
        body = b"\x02s\x00" + struct.pack("<i", 3) + b"abc"
        self.assertMalformed(doc_bytes(body), "not NUL-terminated")

    def test_string_zero_length(self):
        body = b"\x02s\x00" + struct.pack("<i", 0)
        self.assertMalformed(doc_bytes(body), "Invalid string length")

    def test_invalid_utf8(self):
        body = b"\x02s\x00" + struct.pack("<i", 3) + b"\xff\xfe\x00"
        self.assertMalformed(doc_bytes(body), "Invalid UTF-8")

    def test_embedded_length_overruns_parent(self):
        body = b"\x03d\x00" + struct.pack("<i", 100) + b"\x00"
        self.assertMalformed(doc_bytes(body), "overruns its enclosing document")

    def test_negative_binary_length(self):
        body = b"\x05b\x00" + struct.pack("<i", -1) + b"\x00"
        self.assertMalformed(doc_bytes(body), "Invalid binary length")

    def test_nesting_depth_limit(self):
        config = ConversionConfig(limits=ConversionLimits(max_nesting_depth=2))
        level3 = doc_bytes(b"")
        level2 = doc_bytes(b"\x03a\x00" + level3)
        level1 = doc_bytes(b"\x03a\x00" + level2)
        self.assertMalformed(level1, "Nesting depth 3 exceeds limit 2", config)
        self.assertEqual(decode(level2, config), Document({"a": Document()}))

    def test_input_size_limit(self):
        config = ConversionConfig(limits=ConversionLimits(max_input_size=4))
        self.assertMalformed(b"\x05\x00\x00\x00\x00", "exceeds limit 4", config)


class TestReaderKeys(unittest.TestCase):
    """Test duplicate key handling and array key checks."""

    def setUp(self):
        self.data = doc_bytes(
            int32_element("a", 1) + int32_element("b", 2) + int32_element("a", 3)
        )

    def test_duplicate_keys_last_wins(self):
        with self.assertLogs("bsonbridge.core.reader", level="WARNING") as logs:
            doc = decode(self.data)
        self.assertEqual(doc, Document([("a", Int32(3)), ("b", Int32(2))]))
        self.assertIn("Duplicate key", logs.output[0])

    def test_duplicate_keys_strict(self):
        with self.assertRaises(MalformedBson) as cm:
            decode(self.data, ConversionConfig.strict())
        self.assertIn("Duplicate key 'a'", str(cm.exception))

    def test_array_keys_are_ignored(self):
        inner = doc_bytes(int32_element("7", 1) + int32_element("x", 2))
        with self.assertLogs("bsonbridge.core.reader", level="WARNING"):
            doc = BsonReader(doc_bytes(b"\x04a\x00" + inner)).read()
        self.assertEqual(doc["a"], Array((Int32(1), Int32(2))))


if __name__ == "__main__":
    unittest.main()
