"""
Error types for AcuMate source parsing, metadata resolution, and backend access.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class AcuMateError(Exception):
    """Base exception for all AcuMate errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(AcuMateError):
    """
    Raised when a TypeScript or HTML source cannot be tokenized or parsed.

    Examples:
    - Unterminated string or template literal
    - Unterminated block comment
    - Unbalanced braces in a class body
    """

    pass


class BackendError(AcuMateError):
    """
    Raised when the backend metadata service fails.

    Examples:
    - Connection refused or timed out
    - Authentication rejected
    - Non-success HTTP status
    """

    pass


class ConfigError(AcuMateError):
    """
    Raised when acumate.toml cannot be read.

    Examples:
    - Invalid TOML syntax
    - Wrong value type for a known key
    """

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Path to the source file where error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet showing the error location
    """

    file: Path
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "SO301000.ts:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        formatted = []
        for i, line in enumerate(self.snippet.split("\n")):
            line_num = self.line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)
            if i == 0:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def make_parse_error(
    message: str,
    file: Path,
    line: int,
    column: int,
    snippet: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        file: Source file path
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet

    Returns:
        ParseError with context attached
    """
    context = ErrorContext(file=file, line=line, column=column, snippet=snippet)
    return ParseError(message, context)


def source_line(text: str, line: int) -> str | None:
    """Return the 1-indexed ``line`` of ``text`` for an error snippet."""
    lines = text.splitlines()
    if 1 <= line <= len(lines):
        return lines[line - 1]
    return None


def make_backend_error(message: str, route: str | None = None) -> BackendError:
    """Helper to create a BackendError, naming the failing route when known."""
    if route:
        return BackendError(f"{message} (route: {route})")
    return BackendError(message)
