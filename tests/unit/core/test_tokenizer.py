"""
Test cases for the bsonbridge tokenizer.

Tests focus on strict RFC 8259 tokenization and precise error positions.
"""

import unittest

from bsonbridge.core.tokenizer import Lexer, Position, TokenType
from bsonbridge.security.exceptions import ErrorReporter, InvalidJson
from bsonbridge.security.limits import LimitValidator
from bsonbridge.utils.config import ConversionLimits


class TestTokenizerAccuracy(unittest.TestCase):
    """Test tokenizer accuracy for valid input."""

    def _get_non_eof_tokens(self, text):
        """Helper to get tokens excluding EOF for easier testing."""
        lexer = Lexer(text)
        tokens = lexer.get_all_tokens()
        return [t for t in tokens if t.type != TokenType.EOF]

    def test_structural_tokens(self):
        tokens = self._get_non_eof_tokens("{}[]:,")
        self.assertEqual(
            [t.type for t in tokens],
            [
                TokenType.LBRACE,
                TokenType.RBRACE,
                TokenType.LBRACKET,
                TokenType.RBRACKET,
                TokenType.COLON,
                TokenType.COMMA,
            ],
        )

    def test_escape_sequences(self):
        """Test every simple escape and \\u escapes."""
        tokens = self._get_non_eof_tokens(r'"a\"b\\c\/d\b\f\n\r\t\u00e9"')
        self.assertEqual(tokens[0].value, 'a"b\\c/d\b\f\n\r\té')

    def test_surrogate_pair(self):
        tokens = self._get_non_eof_tokens(r'"\ud83d\ude00"')
        self.assertEqual(tokens[0].value, "\U0001F600")

    def test_number_literals_are_kept_verbatim(self):
        for literal in ("0", "-0", "123", "1.5e10", "-12.25E-3", "1E+2"):
            with self.subTest(literal=literal):
                tokens = self._get_non_eof_tokens(literal)
                self.assertEqual(tokens[0].type, TokenType.NUMBER)
                self.assertEqual(tokens[0].value, literal)

    def test_keywords(self):
        keywords = [
            ("true", TokenType.BOOLEAN),
            ("false", TokenType.BOOLEAN),
            ("null", TokenType.NULL),
        ]
        for keyword, expected_type in keywords:
            with self.subTest(keyword=keyword):
                tokens = self._get_non_eof_tokens(keyword)
                self.assertEqual(tokens[0].type, expected_type)
                self.assertEqual(tokens[0].value, keyword)

    def test_positions(self):
        """Test line and column tracking across newlines."""
        tokens = self._get_non_eof_tokens('{\n  "a": 1}')
        self.assertEqual(tokens[0].position, Position(1, 1))
        self.assertEqual(tokens[1].position, Position(2, 3))
        self.assertEqual(tokens[3].position, Position(2, 8))

    def test_tokenize_is_lazy(self):
        """Test tokens before an error are produced before the error is raised."""
        stream = Lexer("[1, @]").tokenize()
        self.assertEqual(next(stream).type, TokenType.LBRACKET)
        self.assertEqual(next(stream).value, "1")
        self.assertEqual(next(stream).type, TokenType.COMMA)
        with self.assertRaises(InvalidJson):
            next(stream)

    def test_empty_input_is_eof(self):
        tokens = Lexer("  \n ").get_all_tokens()
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].type, TokenType.EOF)


class TestTokenizerErrors(unittest.TestCase):
    """Test that malformed input raises InvalidJson with a position."""

    def assertLexError(self, text, fragment):
        with self.assertRaises(InvalidJson) as cm:
            Lexer(text).get_all_tokens()
        self.assertIn(fragment, str(cm.exception))
        return cm.exception

    def test_unterminated_string(self):
        error = self.assertLexError('{"a": "abc', "Unterminated string")
        self.assertEqual(error.position, Position(1, 7))

    def test_raw_newline_ends_string(self):
        self.assertLexError('"ab\ncd"', "Unterminated string")

    def test_control_character(self):
        self.assertLexError('"a\tb"', "Unescaped control character")

    def test_invalid_escape(self):
        self.assertLexError(r'"\x41"', "Invalid escape sequence")

    def test_short_unicode_escape(self):
        self.assertLexError(r'"\u12"', "expected 4 hex digits")

    def test_unpaired_surrogates(self):
        for text in (r'"\ud83d"', r'"\ude00"', r'"\ud83dx"'):
            with self.subTest(text=text):
                self.assertLexError(text, "Unpaired UTF-16 surrogate")

    def test_leading_zero(self):
        self.assertLexError("012", "Leading zeros are not allowed")

    def test_incomplete_fraction(self):
        self.assertLexError("1.", "Invalid number literal")

    def test_non_finite_literals(self):
        self.assertLexError("-Infinity", "Invalid literal '-Infinity'")
        error = self.assertLexError("NaN", "Invalid literal 'NaN'")
        self.assertIn("$numberDouble", str(error))

    def test_python_literals_get_suggestions(self):
        error = self.assertLexError("True", "Invalid literal 'True'")
        self.assertIn("Use lowercase 'true'", str(error))

    def test_unexpected_character(self):
        self.assertLexError("'single'", "Unexpected character")

    def test_error_reporter_adds_context(self):
        text = '{"a": tru}'
        with self.assertRaises(InvalidJson) as cm:
            Lexer(text, ErrorReporter(text)).get_all_tokens()
        self.assertIsNotNone(cm.exception.context)
        self.assertIn("Context:", str(cm.exception))
        self.assertIn("line 1, column 7", str(cm.exception))

    def test_string_length_limit(self):
        validator = LimitValidator(ConversionLimits(max_string_length=3))
        with self.assertRaises(InvalidJson) as cm:
            Lexer('"abcd"', validator=validator).get_all_tokens()
        self.assertIn("String length 4 exceeds limit 3", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
