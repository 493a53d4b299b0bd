"""
Test cases for the BSON writer.
"""

import struct
import unittest

from bsonbridge.core.constants import BsonType
from bsonbridge.core.reader import BsonReader, decode
from bsonbridge.core.types import (
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
)
from bsonbridge.core.writer import BsonWriter, encode
from bsonbridge.security.exceptions import UnsupportedValue


class TestWriterLayout(unittest.TestCase):
    """Test exact byte layouts."""

    def test_empty_document(self):
        self.assertEqual(encode(Document()), b"\x05\x00\x00\x00\x00")

    def test_hello_world(self):
        expected = b"\x16\x00\x00\x00\x02hello\x00\x06\x00\x00\x00world\x00\x00"
        self.assertEqual(encode(Document({"hello": String("world")})), expected)

    def test_int32_element(self):
        self.assertEqual(
            encode(Document({"a": Int32(1)})),
            b"\x0c\x00\x00\x00\x10a\x00\x01\x00\x00\x00\x00",
        )

    def test_array_uses_index_keys(self):
        data = encode(Document({"a": Array((Boolean(True), Null()))}))
        inner = b"\x0c\x00\x00\x00\x080\x00\x01\x0a1\x00\x00"
        header = struct.pack("<i", 4 + 3 + len(inner) + 1)
        self.assertEqual(data, header + b"\x04a\x00" + inner + b"\x00")

    def test_timestamp_byte_order(self):
        """Test the increment is written before the seconds."""
        data = encode(Document({"t": Timestamp(seconds=2, increment=1)}))
        self.assertEqual(data[7:15], struct.pack("<II", 1, 2))

    def test_utf8_strings(self):
        data = encode(Document({"k": String("é")}))
        self.assertIn(struct.pack("<i", 3) + "é".encode("utf-8") + b"\x00", data)


class TestWriterRoundTrip(unittest.TestCase):
    """Test decode(encode(d)) reproduces d."""

    def test_every_value_type(self):
        doc = Document(
            [
                ("double", Double(-0.0)),
                ("nan", Double(float("nan"))),
                ("string", String("héllo")),
                ("doc", Document({"x": Int32(1)})),
                ("array", Array((Int32(1), String("two"), Array(())))),
                ("binary", Binary(b"\x00\xff", 0x04)),
                ("oid", ObjectId.from_hex("507f1f77bcf86cd799439011")),
                ("bool", Boolean(False)),
                ("date", DateTime(-62135596800001)),
                ("null", Null()),
                ("regex", Regex("^a.*", "imx")),
                ("code", JavaScriptCode("function () { return 1; }")),
                ("int32", Int32(-(2**31))),
                ("ts", Timestamp(seconds=2**32 - 1, increment=0)),
                ("int64", Int64(2**63 - 1)),
                ("decimal", Decimal128.from_string("-1.50E-10")),
                ("min", MinKey()),
                ("max", MaxKey()),
            ]
        )
        self.assertEqual(decode(encode(doc)), doc)

    def test_dispatch_tables_cover_every_type(self):
        """Test the reader and writer handle every BSON type."""
        self.assertEqual(set(BsonWriter.ELEMENT_WRITERS), set(BsonType))
        self.assertEqual(set(BsonReader.ELEMENT_READERS), set(BsonType))


class TestWriterErrors(unittest.TestCase):
    """Test values outside the model raise UnsupportedValue."""

    def test_top_level_must_be_document(self):
        with self.assertRaises(UnsupportedValue):
            encode({"a": 1})

    def test_foreign_value(self):
        with self.assertRaises(UnsupportedValue) as cm:
            encode(Document({"a": 1}))
        self.assertIn("Cannot encode value of type int", str(cm.exception))

    def test_nul_in_key(self):
        with self.assertRaises(UnsupportedValue):
            encode(Document({"a\x00b": Null()}))

    def test_nul_in_regex(self):
        with self.assertRaises(UnsupportedValue):
            encode(Document({"r": Regex("a\x00", "")}))

    def test_unpaired_surrogate(self):
        with self.assertRaises(UnsupportedValue):
            encode(Document({"s": String("\ud800")}))


if __name__ == "__main__":
    unittest.main()
