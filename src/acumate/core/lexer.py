"""
Lexer/Tokenizer for AcuMate screen TypeScript sources.

Converts raw TypeScript text into a flat stream of tokens with source offsets
and line/column tracking. Comments and whitespace are dropped, but every token
records whether a line break preceded it so the declaration parser can apply
automatic semicolon insertion at member boundaries.

This is not a full TypeScript scanner: it understands exactly enough of the
lexical grammar (strings, template literals, regular expressions, comments)
to never mistake a brace or quote inside a literal for structure.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import ParseError, make_parse_error, source_line


class TokenType(Enum):
    """Token types in TypeScript source."""

    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    TEMPLATE = "TEMPLATE"
    NUMBER = "NUMBER"
    REGEX = "REGEX"
    PUNCT = "PUNCT"
    EOF = "EOF"


# Longest first so "..." wins over "."
MULTI_CHAR_PUNCT = (
    "...",
    "===",
    "!==",
    "**=",
    "=>",
    "==",
    "!=",
    "&&",
    "||",
    "??",
    "?.",
    "++",
    "--",
    "+=",
    "-=",
    "*=",
    "/=",
    "|=",
    "&=",
)

# After these tokens a "/" starts a division, not a regular expression
_DIVISION_PRECEDERS = {")", "]", "}"}


@dataclass
class Token:
    """
    A single token in TypeScript source.

    Attributes:
        type: Type of token
        value: Token text (unquoted contents for strings)
        start: Offset of the first character
        end: Offset just past the last character
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        newline_before: A line break separates this token from the previous one
    """

    type: TokenType
    value: str
    start: int
    end: int
    line: int
    column: int
    newline_before: bool = False

    def is_punct(self, value: str) -> bool:
        return self.type == TokenType.PUNCT and self.value == value

    def is_word(self, value: str) -> bool:
        return self.type == TokenType.IDENTIFIER and self.value == value

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


def is_identifier_start(ch: str) -> bool:
    return ch.isalpha() or ch in ("_", "$")


def is_identifier_part(ch: str) -> bool:
    return ch.isalnum() or ch in ("_", "$")


class Lexer:
    """
    Lexer for TypeScript source.

    Produces tokens for identifiers, literals and punctuation; skips
    whitespace and comments.
    """

    def __init__(self, text: str, file: Path):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Source file path (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []
        self.saw_newline = False

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def error(self, message: str, line: int, column: int) -> ParseError:
        """Build a ParseError pointing at a source position."""
        return make_parse_error(
            message, self.file, line, column, snippet=source_line(self.text, line)
        )

    def skip_trivia(self) -> None:
        """Skip whitespace and comments, remembering line breaks."""
        while True:
            ch = self.current_char()
            if ch is None:
                return
            if ch == "\n":
                self.saw_newline = True
                self.advance()
            elif ch.isspace() or ch == "\ufeff":
                self.advance()
            elif ch == "/" and self.peek_char() == "/":
                while self.current_char() not in (None, "\n"):
                    self.advance()
            elif ch == "/" and self.peek_char() == "*":
                self.skip_block_comment()
            else:
                return

    def skip_block_comment(self) -> None:
        start_line = self.line
        start_col = self.column
        self.advance()
        self.advance()
        while True:
            ch = self.current_char()
            if ch is None:
                raise self.error("Unterminated block comment", start_line, start_col)
            if ch == "*" and self.peek_char() == "/":
                self.advance()
                self.advance()
                return
            if ch == "\n":
                self.saw_newline = True
            self.advance()

    def read_string(self) -> str:
        """Read a single- or double-quoted string."""
        start_line = self.line
        start_col = self.column
        quote = self.current_char()
        self.advance()

        chars = []
        while True:
            current = self.current_char()
            if current is None or current == quote or current == "\n":
                break

            if current == "\\":
                self.advance()
                escape_char = self.current_char()
                if escape_char == "n":
                    chars.append("\n")
                elif escape_char == "t":
                    chars.append("\t")
                elif escape_char == "\n":
                    pass  # line continuation
                elif escape_char:
                    chars.append(escape_char)
                self.advance()
            else:
                chars.append(current)
                self.advance()

        if self.current_char() != quote:
            raise self.error("Unterminated string literal", start_line, start_col)

        self.advance()
        return "".join(chars)

    def read_template(self) -> str:
        """Read a template literal, including nested ``${...}`` expressions."""
        start_line = self.line
        start_col = self.column
        start = self.pos
        self.advance()

        while True:
            ch = self.current_char()
            if ch is None:
                raise self.error("Unterminated template literal", start_line, start_col)
            if ch == "\\":
                self.advance()
                self.advance()
            elif ch == "`":
                self.advance()
                return self.text[start + 1 : self.pos - 1]
            elif ch == "$" and self.peek_char() == "{":
                self.advance()
                self.advance()
                self.skip_template_expression(start_line, start_col)
            else:
                self.advance()

    def skip_template_expression(self, start_line: int, start_col: int) -> None:
        depth = 1
        while depth:
            ch = self.current_char()
            if ch is None:
                raise self.error("Unterminated template literal", start_line, start_col)
            if ch in ('"', "'"):
                self.read_string()
            elif ch == "`":
                self.read_template()
            elif ch == "/" and self.peek_char() in ("/", "*"):
                self.skip_trivia()
            else:
                if ch == "{":
                    depth += 1
                elif ch == "}":
                    depth -= 1
                self.advance()

    def read_regex(self) -> str:
        """Read a regular expression literal and its flags."""
        start = self.pos
        self.advance()
        in_class = False
        while True:
            ch = self.current_char()
            if ch is None or ch == "\n":
                break
            if ch == "\\":
                self.advance()
            elif ch == "[":
                in_class = True
            elif ch == "]":
                in_class = False
            elif ch == "/" and not in_class:
                self.advance()
                break
            self.advance()
        while (ch := self.current_char()) and is_identifier_part(ch):
            self.advance()
        return self.text[start : self.pos]

    def read_number(self) -> str:
        """Read a numeric literal (decimal, hex, separators, bigint suffix)."""
        start = self.pos
        current = self.current_char()
        while current and (is_identifier_part(current) or current == "."):
            self.advance()
            current = self.current_char()
        return self.text[start : self.pos]

    def read_identifier(self) -> str:
        """Read an identifier or keyword."""
        start = self.pos
        current = self.current_char()
        while current and is_identifier_part(current):
            self.advance()
            current = self.current_char()
        return self.text[start : self.pos]

    def regex_allowed(self) -> bool:
        """Whether a "/" at the current position starts a regex literal."""
        if not self.tokens:
            return True
        prev = self.tokens[-1]
        if prev.type in (TokenType.IDENTIFIER, TokenType.NUMBER, TokenType.STRING):
            return prev.type == TokenType.IDENTIFIER and prev.value in (
                "return",
                "typeof",
                "case",
                "in",
                "of",
                "new",
                "delete",
                "void",
                "throw",
            )
        if prev.type in (TokenType.TEMPLATE, TokenType.REGEX):
            return False
        return prev.value not in _DIVISION_PRECEDERS

    def emit(self, token_type: TokenType, value: str, start: int, line: int, col: int) -> None:
        self.tokens.append(
            Token(token_type, value, start, self.pos, line, col, self.saw_newline)
        )
        self.saw_newline = False

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens ending with EOF

        Raises:
            ParseError: If a string, template literal or comment is unterminated
        """
        while True:
            self.skip_trivia()
            ch = self.current_char()
            if ch is None:
                break

            start = self.pos
            token_line = self.line
            token_col = self.column

            if ch in ('"', "'"):
                value = self.read_string()
                self.emit(TokenType.STRING, value, start, token_line, token_col)

            elif ch == "`":
                value = self.read_template()
                self.emit(TokenType.TEMPLATE, value, start, token_line, token_col)

            elif ch.isdigit() or (ch == "." and (self.peek_char() or "").isdigit()):
                value = self.read_number()
                self.emit(TokenType.NUMBER, value, start, token_line, token_col)

            elif is_identifier_start(ch) or ch == "#":
                if ch == "#":
                    self.advance()
                value = self.read_identifier()
                if ch == "#":
                    value = "#" + value
                self.emit(TokenType.IDENTIFIER, value, start, token_line, token_col)

            elif ch == "/" and self.regex_allowed():
                value = self.read_regex()
                self.emit(TokenType.REGEX, value, start, token_line, token_col)

            else:
                for punct in MULTI_CHAR_PUNCT:
                    if self.text.startswith(punct, self.pos):
                        break
                else:
                    punct = ch
                for _ in punct:
                    self.advance()
                self.emit(TokenType.PUNCT, punct, start, token_line, token_col)

        self.tokens.append(
            Token(TokenType.EOF, "", self.pos, self.pos, self.line, self.column, self.saw_newline)
        )
        return self.tokens


def tokenize(text: str, file: Path) -> list[Token]:
    """
    Convenience function to tokenize TypeScript source.

    Args:
        text: Source text
        file: Source file path

    Returns:
        List of tokens

    Raises:
        ParseError: If a literal or comment is unterminated
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()
