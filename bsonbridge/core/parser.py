"""
Parser for bsonbridge - converts JSON tokens into an ordered Python tree.

Objects become insertion-ordered ``dict`` instances, arrays ``list``,
integer literals ``int`` and literals with a fraction or exponent
``float``. Extended JSON interpretation happens later in the bridge.
"""

from collections.abc import Iterator
from typing import Any, NoReturn, Optional

from ..security.exceptions import ErrorReporter, ErrorSuggestionEngine, InvalidJson
from ..security.limits import LimitValidator
from ..utils.config import ConversionConfig
from .parser_base import BaseParserMixin
from .tokenizer import Lexer, Position, Token, TokenType


class Parser(BaseParserMixin):
    """Recursive descent JSON parser over a lazy token stream."""

    def __init__(
        self,
        tokens: Iterator[Token],
        config: Optional[ConversionConfig] = None,
        error_reporter: Optional[ErrorReporter] = None,
        validator: Optional[LimitValidator] = None,
    ):
        self.config = config or ConversionConfig()
        self.tokens = tokens
        self.error_reporter = error_reporter
        self.validator = validator or LimitValidator(self.config.limits, InvalidJson)
        self.logger = self.config.get_logger(__name__)
        self._current = next(self.tokens)

    def current_token(self) -> Token:
        """Get the current token without advancing."""
        return self._current

    def advance(self) -> Token:
        """Move to the next token and return the current token."""
        token = self._current
        if token.type != TokenType.EOF:
            self._current = next(self.tokens)
        return token

    def parse(self) -> Any:
        """Parse a complete JSON text; trailing content is an error."""
        token = self.current_token()
        if token.type == TokenType.EOF:
            self._raise_parse_error(
                "Expecting value: input is empty", token.position
            )

        try:
            value = self.parse_value()
        except RecursionError:
            self._raise_parse_error(
                "Document nesting is too deep to parse", self.current_token().position
            )

        trailing = self.current_token()
        if trailing.type != TokenType.EOF:
            self._raise_parse_error(
                "Unexpected content after the JSON value",
                trailing.position,
                ["Only one top-level JSON value is allowed"],
            )
        return value

    def parse_value(self) -> Any:
        """Parse a JSON value (string, number, boolean, null, object, or array)."""
        token = self.current_token()

        if token.type == TokenType.STRING:
            self.advance()
            return token.value

        if token.type == TokenType.NUMBER:
            self.advance()
            return self.parse_number_token(token)

        if token.type == TokenType.BOOLEAN:
            self.advance()
            return token.value == "true"

        if token.type == TokenType.NULL:
            self.advance()
            return None

        if token.type == TokenType.LBRACE:
            return self.parse_object()

        if token.type == TokenType.LBRACKET:
            return self.parse_array()

        if token.type == TokenType.EOF:
            self._raise_parse_error("Unexpected end of input, expected a value", token.position)

        self._raise_parse_error(
            f"Expected a value but found '{token.value}'",
            token.position,
            ErrorSuggestionEngine.suggest_for_unexpected_token(token.value),
        )

    def parse_number_token(self, token: Token) -> Any:
        """Parse a number token into int or float."""
        literal = token.value
        try:
            if "." in literal or "e" in literal or "E" in literal:
                return float(literal)
            return int(literal)
        except ValueError:
            # int() refuses literals beyond the interpreter's digit limit
            self._raise_parse_error("Number literal is too long", token.position)

    def parse_object(self) -> dict[str, Any]:
        """Parse a JSON object into an insertion-ordered dictionary."""
        open_token = self.advance()
        self.validate_and_enter_structure(self.validator)
        obj: dict[str, Any] = {}

        if self.current_token().type == TokenType.RBRACE:
            self.advance()
            self.validate_and_exit_structure(self.validator)
            return obj

        while True:
            key_token = self.current_token()
            if key_token.type != TokenType.STRING:
                self._raise_unexpected_in_object(key_token, open_token)
            self.advance()

            if self.current_token().type != TokenType.COLON:
                self._raise_parse_error(
                    "Expected ':' after key",
                    self.current_token().position,
                    ["Object keys must be followed by a colon"],
                )
            self.advance()

            value = self.parse_value()
            self.handle_duplicate_key(
                obj,
                key_token.value,
                value,
                self.config.duplicate_keys,
                lambda message, pos=key_token.position: self._make_error(message, pos),
            )

            separator = self.current_token()
            if separator.type == TokenType.COMMA:
                self.advance()
                continue
            if separator.type == TokenType.RBRACE:
                self.advance()
                break
            if separator.type == TokenType.EOF:
                self._raise_parse_error(
                    "Unexpected end of input, expected '}' to close object",
                    separator.position,
                    ErrorSuggestionEngine.suggest_for_unclosed_structure("object"),
                )
            self._raise_parse_error(
                "Expected ',' or '}' after object value",
                separator.position,
                ErrorSuggestionEngine.suggest_for_unclosed_structure("object"),
            )

        self.validate_and_exit_structure(self.validator)
        return obj

    def _raise_unexpected_in_object(self, token: Token, open_token: Token) -> NoReturn:
        if token.type == TokenType.RBRACE:
            self._raise_parse_error(
                "Trailing comma before '}'",
                token.position,
                ErrorSuggestionEngine.suggest_for_unexpected_token("}"),
            )
        if token.type == TokenType.EOF:
            self._raise_parse_error(
                f"Unexpected end of input, object opened at line "
                f"{open_token.position.line} is not closed",
                token.position,
                ErrorSuggestionEngine.suggest_for_unclosed_structure("object"),
            )
        self._raise_parse_error(
            "Expected a double-quoted property name",
            token.position,
            ["Object keys must be strings in double quotes"],
        )

    def parse_array(self) -> list[Any]:
        """Parse a JSON array into a Python list."""
        self.advance()
        self.validate_and_enter_structure(self.validator)
        arr: list[Any] = []

        if self.current_token().type == TokenType.RBRACKET:
            self.advance()
            self.validate_and_exit_structure(self.validator)
            return arr

        while True:
            if self.current_token().type == TokenType.RBRACKET:
                self._raise_parse_error(
                    "Trailing comma before ']'",
                    self.current_token().position,
                    ErrorSuggestionEngine.suggest_for_unexpected_token("]"),
                )
            arr.append(self.parse_value())

            separator = self.current_token()
            if separator.type == TokenType.COMMA:
                self.advance()
                continue
            if separator.type == TokenType.RBRACKET:
                self.advance()
                break
            if separator.type == TokenType.EOF:
                self._raise_parse_error(
                    "Unexpected end of input, expected ']' to close array",
                    separator.position,
                    ErrorSuggestionEngine.suggest_for_unclosed_structure("array"),
                )
            self._raise_parse_error(
                "Expected ',' or ']' after array element",
                separator.position,
                ErrorSuggestionEngine.suggest_for_unclosed_structure("array"),
            )

        self.validate_and_exit_structure(self.validator)
        return arr

    def _make_error(
        self, message: str, position: Position, suggestions: Optional[list[str]] = None
    ) -> InvalidJson:
        if self.error_reporter:
            return self.error_reporter.create_parse_error(message, position, suggestions)
        return InvalidJson(message, position, suggestions=suggestions)

    def _raise_parse_error(
        self, message: str, position: Position, suggestions: Optional[list[str]] = None
    ) -> NoReturn:
        raise self._make_error(message, position, suggestions)


def parse_json(
    text: str,
    config: Optional[ConversionConfig] = None,
    validator: Optional[LimitValidator] = None,
) -> Any:
    """Parse strict JSON text into a plain ordered Python tree.

    Raises:
        InvalidJson: If the text is not well-formed JSON or exceeds limits.
    """
    config = config or ConversionConfig()
    validator = validator or LimitValidator(config.limits, InvalidJson)
    validator.validate_input_size(len(text))
    error_reporter = (
        ErrorReporter(text, config.max_error_context) if config.include_position else None
    )
    lexer = Lexer(text, error_reporter, validator)
    parser = Parser(lexer.tokenize(), config, error_reporter, validator)
    config.get_logger(__name__).debug("Parsing %d characters of JSON", len(text))
    return parser.parse()
