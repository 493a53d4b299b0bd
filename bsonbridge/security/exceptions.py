"""
Error taxonomy and error reporting for bsonbridge.

``MalformedBson`` covers structural corruption of binary input,
``InvalidJson`` covers JSON syntax and Extended JSON payload errors, and
``UnsupportedValue`` is raised by the writer for values outside the closed
value model. All three derive from ``ConversionError``.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..core.tokenizer import Position


@dataclass
class ErrorContext:
    """Source excerpt around the position of a JSON error."""

    text: str
    position: "Position"
    context_before: str
    context_after: str
    error_char: str
    line_text: str
    column_indicator: str


class ConversionError(Exception):
    """Base class for every error raised by the codec."""

    def __init__(
        self,
        message: str,
        position: Optional["Position"] = None,
        context: Optional[ErrorContext] = None,
        suggestions: Optional[list[str]] = None,
        offset: Optional[int] = None,
    ):
        self.message = message
        self.position = position
        self.context = context
        self.suggestions = suggestions or []
        self.offset = offset
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = self.message

        if self.position:
            msg += f" at line {self.position.line}, column {self.position.column}"
        elif self.offset is not None:
            msg += f" at byte {self.offset}"

        if self.context:
            msg += f"\nContext: {self.context.line_text}"
            msg += f"\n         {self.context.column_indicator}"

        if self.suggestions:
            msg += "\nSuggestions:"
            for suggestion in self.suggestions:
                msg += f"\n  - {suggestion}"

        return msg


class MalformedBson(ConversionError):
    """Binary input is not a structurally valid BSON document."""


class InvalidJson(ConversionError):
    """Text input is not valid JSON or carries an invalid Extended JSON value."""


class UnsupportedValue(ConversionError):
    """A value cannot be represented in BSON."""


class ErrorReporter:
    """Builds ``InvalidJson`` errors with a source excerpt."""

    def __init__(self, text: str, max_context: int = 50):
        self.text = text
        self.lines = text.split("\n")
        self.max_context = max_context

    def create_parse_error(
        self,
        message: str,
        position: "Position",
        suggestions: Optional[list[str]] = None,
    ) -> InvalidJson:
        context = self._build_context(position)
        return InvalidJson(message, position, context, suggestions)

    def _build_context(self, position: "Position") -> ErrorContext:
        line_index = min(max(position.line - 1, 0), len(self.lines) - 1)
        line_text = self.lines[line_index]
        column = max(position.column - 1, 0)

        # Clip long lines around the error column
        half = self.max_context // 2
        start = max(0, column - half)
        end = min(len(line_text), column + half)
        excerpt = line_text[start:end]
        pointer = min(column - start, len(excerpt))

        return ErrorContext(
            text=self.text,
            position=position,
            context_before=line_text[start:column],
            context_after=line_text[column:end],
            error_char=line_text[column] if column < len(line_text) else "",
            line_text=excerpt,
            column_indicator=" " * pointer + "^",
        )


class ErrorSuggestionEngine:
    """Hints attached to common JSON mistakes."""

    _LITERAL_FIXES = {
        "True": "Use lowercase 'true' for boolean values",
        "False": "Use lowercase 'false' for boolean values",
        "None": "Use 'null' instead of 'None'",
        "NULL": "Use lowercase 'null'",
        "undefined": "Use 'null' instead of 'undefined'",
        "NaN": 'Represent NaN as {"$numberDouble": "NaN"}',
        "Infinity": 'Represent infinity as {"$numberDouble": "Infinity"}',
    }

    @staticmethod
    def suggest_for_unexpected_token(token_value: str) -> list[str]:
        if token_value in ("'", '"'):
            return [
                "Strings must be enclosed in double quotes",
                "Check for a missing closing quote",
            ]
        if token_value in ("}", "]"):
            return [
                "Remove the trailing comma before the closing bracket",
                "Check for a missing value",
            ]
        if token_value == ",":
            return ["Check for a missing value between commas"]
        return [
            "Check that every key is followed by ':' and a value",
            "Verify the JSON syntax near this position",
        ]

    @staticmethod
    def suggest_for_unclosed_structure(structure_type: str) -> list[str]:
        if structure_type == "object":
            return [
                "Add a closing brace '}' to end the object",
                "Check for a missing comma between properties",
            ]
        if structure_type == "array":
            return [
                "Add a closing bracket ']' to end the array",
                "Check for a missing comma between elements",
            ]
        return [f"Close the {structure_type}"]

    @staticmethod
    def suggest_for_invalid_value(value: str) -> list[str]:
        for literal, fix in ErrorSuggestionEngine._LITERAL_FIXES.items():
            if value.lstrip("-") == literal:
                return [fix]
        if value and (value[0].isalpha() or value[0] == "_"):
            return ["Enclose string values in double quotes"]
        return []
