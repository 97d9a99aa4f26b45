"""
Error types for dicelang lexing, parsing, and evaluation.
"""

from dataclasses import dataclass
from typing import Optional


class DiceLangError(Exception):
    """Base exception for all dicelang errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}\n{self.context.format_snippet()}"
        return self.message


class LexError(DiceLangError):
    """
    Raised when source text contains a character sequence no token matches.

    Examples:
    - Stray characters such as `$` or `~`
    - Unterminated string literals
    - Invalid escape sequences
    """

    @property
    def pos(self) -> int:
        """Offset of the unrecognised input."""
        return self.context.start if self.context else 0


class ParseError(DiceLangError):
    """
    Raised when the token stream cannot be parsed.

    Examples:
    - Unbalanced parentheses or brackets
    - Missing `in`, `then` or `else`
    - Malformed function literals
    - Trailing tokens after a complete expression
    """

    pass


class EvaluationError(DiceLangError):
    """
    Raised when evaluation of an expression fails.

    Carries the span of the sub-expression being evaluated when the
    underlying runtime error happened. The evaluator works on trees, not
    source text, so hosts call `with_source` to get a rendered diagnostic.
    """

    def __init__(
        self,
        message: str,
        start: int = 0,
        end: int = 0,
        cause: Exception | None = None,
        context: Optional["ErrorContext"] = None,
    ):
        self.start = start
        self.end = end
        self.cause = cause
        super().__init__(message, context)

    def with_source(self, source: str) -> "EvaluationError":
        """Return a copy of this error whose message points into `source`."""
        context = ErrorContext(source=source, start=self.start, end=self.end)
        return EvaluationError(self.message, self.start, self.end, self.cause, context)


class RuntimeLangError(Exception):
    """Base for errors raised inside builtins and evaluation rules.

    These carry no source location; the evaluator attaches one by wrapping
    them in an EvaluationError.
    """


class UnboundNameError(RuntimeLangError):
    """A variable was referenced that no enclosing scope defines."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable: {name}")


class ValueTypeError(RuntimeLangError):
    """An operation received a value of the wrong runtime category."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected}, got {actual}")


class DomainError(RuntimeLangError):
    """
    An operation received a well-typed but unusable value.

    Examples:
    - Out-of-bounds array index
    - Division by zero
    - Maximum rerolls exceeded (when configured to fail)
    """


class BuiltinArityError(Exception):
    """A builtin was declared with an inconsistent parameter list."""


@dataclass
class ErrorContext:
    """
    Source location of an error.

    Attributes:
        source: Full source text the offsets refer to
        start: Offset of the first offending character
        end: Offset one past the last offending character
    """

    source: str
    start: int
    end: int

    @property
    def line(self) -> int:
        """Line number (1-indexed)."""
        return self.source.count("\n", 0, self.start) + 1

    @property
    def column(self) -> int:
        """Column number (1-indexed)."""
        return self.start - self._line_start() + 1

    def _line_start(self) -> int:
        return self.source.rfind("\n", 0, self.start) + 1

    def _line_end(self) -> int:
        end = self.source.find("\n", self.start)
        return len(self.source) if end == -1 else end

    def format(self) -> str:
        """
        Format the location as a human-readable string.

        Returns:
            Formatted string like: "Line 2 column 5"
        """
        return f"Line {self.line} column {self.column}"

    def format_snippet(self) -> str:
        """Render the offending source line with the span underlined."""
        line_start = self._line_start()
        line_end = self._line_end()
        text = self.source[line_start:line_end]
        # Spans running past the end of the line are clipped to it
        width = max(1, min(self.end, line_end) - self.start)
        marker = "-" * (self.column - 1) + "^" * width
        return f"{text}\n{marker}"


def make_parse_error(message: str, source: str, start: int, end: int) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        source: Full source text
        start: Start offset of the offending token
        end: End offset of the offending token

    Returns:
        ParseError with context attached
    """
    return ParseError(message, ErrorContext(source=source, start=start, end=end))


def make_lex_error(message: str, source: str, pos: int) -> LexError:
    """Helper to create a LexError pointing at a single character."""
    return LexError(message, ErrorContext(source=source, start=pos, end=pos + 1))
