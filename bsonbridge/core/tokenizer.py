"""
Lexer for bsonbridge - tokenizes JSON text strictly per RFC 8259.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, NoReturn, Optional

from ..security.exceptions import ErrorReporter, ErrorSuggestionEngine, InvalidJson
from ..security.limits import LimitValidator
from .constants import JSON_ESCAPE_MAP, JSON_WHITESPACE, get_structural_token_map

_NUMBER_PATTERN = re.compile(r"-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?")
_PLAIN_RUN = re.compile(r'[^"\\\x00-\x1f]+')
_WORD_PATTERN = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_HEX4 = re.compile(r"[0-9a-fA-F]{4}")


class TokenType(Enum):
    """Token types for JSON parsing."""

    LBRACE = "LBRACE"
    RBRACE = "RBRACE"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    COLON = "COLON"
    COMMA = "COMMA"

    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"

    EOF = "EOF"


@dataclass
class Position:
    """Position in source text (line and column)."""

    line: int
    column: int


class Token(NamedTuple):
    """Token with type, value and position information.

    STRING tokens carry the unescaped text, NUMBER tokens the literal as
    written so the parser can pick an integer or floating point type.
    """

    type: TokenType
    value: str
    position: Position


class Lexer:
    """Lexical analyzer for JSON input."""

    def __init__(
        self,
        text: str,
        error_reporter: Optional[ErrorReporter] = None,
        validator: Optional[LimitValidator] = None,
    ) -> None:
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1
        self.error_reporter = error_reporter
        self.validator = validator

    def current_position(self) -> Position:
        """Get current position in the text."""
        return Position(self.line, self.column)

    def peek(self, offset: int = 0) -> str:
        """Peek at character at given offset without consuming it."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return ""
        return self.text[pos]

    def advance(self) -> str:
        """Advance position and return the current character."""
        if self.pos >= len(self.text):
            return ""

        char = self.text[self.pos]
        self.pos += 1

        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return char

    def _advance_run(self, count: int) -> None:
        # Only used for runs known to contain no newline
        self.pos += count
        self.column += count

    def skip_whitespace(self) -> None:
        """Skip insignificant whitespace (space, tab, newline, carriage return)."""
        while self.pos < len(self.text) and self.text[self.pos] in JSON_WHITESPACE:
            self.advance()

    def read_string(self) -> str:
        """Read a double-quoted string, decoding escape sequences."""
        start = self.current_position()
        self.advance()
        parts: list[str] = []
        text = self.text

        while True:
            if self.pos >= len(text) or text[self.pos] == "\n":
                self._error(
                    "Unterminated string",
                    start,
                    ErrorSuggestionEngine.suggest_for_unexpected_token('"'),
                )

            char = text[self.pos]
            if char == '"':
                self.advance()
                break
            if char == "\\":
                parts.append(self._read_escape())
                continue
            if char < " ":
                self._error(
                    f"Unescaped control character {char!r} in string",
                    self.current_position(),
                    ["Escape control characters, for example as \\t or \\u0000"],
                )

            run = _PLAIN_RUN.match(text, self.pos)
            assert run is not None
            parts.append(run.group())
            self._advance_run(run.end() - run.start())

        value = "".join(parts)
        if self.validator:
            self.validator.validate_string_length(len(value), f"line {start.line}")
        return value

    def _read_escape(self) -> str:
        """Read one escape sequence starting at the backslash."""
        escape_pos = self.current_position()
        self.advance()
        char = self.peek()

        if char and char in JSON_ESCAPE_MAP:
            self.advance()
            return JSON_ESCAPE_MAP[char]

        if char == "u":
            self.advance()
            code_point = self._read_hex4(escape_pos)
            if 0xD800 <= code_point <= 0xDBFF:
                if self.text.startswith("\\u", self.pos):
                    self._advance_run(2)
                    low = self._read_hex4(escape_pos)
                    if 0xDC00 <= low <= 0xDFFF:
                        return chr(0x10000 + ((code_point - 0xD800) << 10) + (low - 0xDC00))
                self._error(
                    "Unpaired UTF-16 surrogate in \\u escape",
                    escape_pos,
                    ["BSON strings must be valid UTF-8; surrogates must come in pairs"],
                )
            if 0xDC00 <= code_point <= 0xDFFF:
                self._error(
                    "Unpaired UTF-16 surrogate in \\u escape",
                    escape_pos,
                    ["BSON strings must be valid UTF-8; surrogates must come in pairs"],
                )
            return chr(code_point)

        if not char:
            self._error("Unterminated escape sequence", escape_pos)
        self._error(
            f"Invalid escape sequence '\\{char}'",
            escape_pos,
            ['Valid escapes are \\" \\\\ \\/ \\b \\f \\n \\r \\t and \\uXXXX'],
        )

    def _read_hex4(self, escape_pos: Position) -> int:
        match = _HEX4.match(self.text, self.pos)
        if not match:
            self._error("Invalid \\u escape: expected 4 hex digits", escape_pos)
        self._advance_run(4)
        return int(match.group(), 16)

    def read_number(self) -> str:
        """Read a numeric literal."""
        start = self.current_position()
        match = _NUMBER_PATTERN.match(self.text, self.pos)
        if not match:
            word = _WORD_PATTERN.match(self.text, self.pos + 1)
            if word:
                literal = "-" + word.group()
                self._error(
                    f"Invalid literal '{literal}'",
                    start,
                    ErrorSuggestionEngine.suggest_for_invalid_value(literal),
                )
            self._error("Invalid number", start)

        literal = match.group()
        self._advance_run(len(literal))

        follow = self.peek()
        if follow and (follow.isalnum() or follow in "._$+-"):
            if literal.lstrip("-") == "0" and follow.isdigit():
                self._error(
                    "Leading zeros are not allowed in numbers",
                    start,
                    ["Remove the leading zero or quote the value as a string"],
                )
            self._error(f"Invalid number literal '{literal}{follow}'", start)

        return literal

    def read_word(self) -> Token:
        """Read a bare word, which must be one of true, false or null."""
        start = self.current_position()
        match = _WORD_PATTERN.match(self.text, self.pos)
        assert match is not None
        word = match.group()
        self._advance_run(len(word))

        if word in ("true", "false"):
            return Token(TokenType.BOOLEAN, word, start)
        if word == "null":
            return Token(TokenType.NULL, word, start)

        self._error(
            f"Invalid literal '{word}'",
            start,
            ErrorSuggestionEngine.suggest_for_invalid_value(word),
        )

    def tokenize(self) -> Iterator[Token]:
        """Tokenize the input text lazily, ending with an EOF token."""
        token_map = get_structural_token_map()

        while True:
            self.skip_whitespace()
            if self.pos >= len(self.text):
                break

            char = self.text[self.pos]
            pos = self.current_position()

            if char in token_map:
                self.advance()
                yield Token(token_map[char], char, pos)
            elif char == '"':
                yield Token(TokenType.STRING, self.read_string(), pos)
            elif char == "-" or "0" <= char <= "9":
                yield Token(TokenType.NUMBER, self.read_number(), pos)
            elif _WORD_PATTERN.match(char):
                yield self.read_word()
            else:
                self._error(
                    f"Unexpected character {char!r}",
                    pos,
                    ErrorSuggestionEngine.suggest_for_unexpected_token(char),
                )

        yield Token(TokenType.EOF, "", self.current_position())

    def get_all_tokens(self) -> list[Token]:
        """Get all tokens as a list."""
        return list(self.tokenize())

    def _error(
        self, message: str, position: Position, suggestions: Optional[list[str]] = None
    ) -> NoReturn:
        if self.error_reporter:
            raise self.error_reporter.create_parse_error(message, position, suggestions)
        raise InvalidJson(message, position, suggestions=suggestions)
