"""
Declaration-level parser for AcuMate screen TypeScript sources.

Turns the token stream from the lexer into a ``SourceModule``: the file's
imports and re-exports, its class declarations (decorators, heritage and
member declarations) and its interface declarations. Statement and method
bodies are skipped with bracket balancing; only the declaration surface
that screen metadata depends on is modelled.
"""

from dataclasses import dataclass, field
from pathlib import Path

from .errors import make_parse_error, source_line
from .lexer import Token, TokenType, tokenize

# Words that may precede a top-level class declaration
DECLARATION_MODIFIERS = {"export", "default", "abstract", "declare"}

# Words that may precede a member name inside a class body
MEMBER_MODIFIERS = {
    "public",
    "private",
    "protected",
    "readonly",
    "static",
    "declare",
    "override",
    "abstract",
    "accessor",
    "async",
    "get",
    "set",
}

# A line break after one of these does not end a member
CONTINUES_AFTER = {
    ".",
    "?.",
    ",",
    "=",
    "=>",
    "|",
    "&",
    "?",
    ":",
    "+",
    "-",
    "*",
    "/",
    "%",
    "&&",
    "||",
    "??",
    "==",
    "===",
    "!=",
    "!==",
    "<",
    "!",
    "(",
    "[",
    "{",
}

# A line break before one of these does not end a member
CONTINUES_BEFORE = {
    ".",
    "?.",
    ",",
    "=>",
    "|",
    "&",
    "?",
    ":",
    "=",
    "+",
    "*",
    "/",
    "%",
    "&&",
    "||",
    "??",
    ">",
    "==",
    "===",
    "!=",
    "!==",
}

CONTINUATION_WORDS = {"new", "typeof", "keyof", "extends", "in", "instanceof", "as"}

# An object type literal "{" follows one of these in a type position
TYPE_BRACE_PRECEDERS = {":", "|", "&", ",", "<", "(", "[", "=>", "keyof"}

_OPENERS = {"(": ")", "[": "]", "{": "}"}


@dataclass
class StringLiteral:
    """A string literal argument; offsets cover the text between the quotes."""

    value: str
    start: int
    end: int
    line: int
    column: int


@dataclass
class Decorator:
    """
    A decorator applied to a class or member.

    Attributes:
        name: Decorator name (last segment of a dotted name)
        arguments: Positional string-literal arguments
        properties: String-valued properties of object-literal arguments
        start: Offset of the "@"
        end: Offset just past the decorator
    """

    name: str
    arguments: list[StringLiteral] = field(default_factory=list)
    properties: dict[str, StringLiteral] = field(default_factory=dict)
    start: int = 0
    end: int = 0


@dataclass
class TypeReference:
    """A declared type reference with the names of its type arguments."""

    name: str
    arguments: list[str] = field(default_factory=list)


@dataclass
class CallInitializer:
    """
    A call-shaped initializer such as ``createSingle(OrderHeader)``.

    Non-identifier arguments are recorded as empty strings.
    """

    callee: str
    arguments: list[str] = field(default_factory=list)


@dataclass
class MemberDecl:
    name: str
    start: int
    end: int
    line: int
    column: int
    decorators: list[Decorator] = field(default_factory=list)
    type_ref: TypeReference | None = None
    initializer: CallInitializer | None = None


@dataclass
class ClassDecl:
    """
    A class declaration.

    Attributes:
        name: Class name
        heritage: Names in the ``extends`` clause (dotted names kept whole)
        implements: Names in the ``implements`` clause
        members: Property declarations in source order
        decorators: Class decorators
        start: Offset of the declaration, decorators included
        end: Offset just past the closing brace
        line: Line of the class name (1-indexed)
        column: Column of the class name (1-indexed)
    """

    name: str
    heritage: list[str] = field(default_factory=list)
    implements: list[str] = field(default_factory=list)
    members: list[MemberDecl] = field(default_factory=list)
    decorators: list[Decorator] = field(default_factory=list)
    start: int = 0
    end: int = 0
    line: int = 1
    column: int = 1
    is_default: bool = False


@dataclass
class InterfaceDecl:
    name: str
    heritage: list[str] = field(default_factory=list)
    start: int = 0
    end: int = 0


@dataclass
class ImportBinding:
    """One imported name: ``imported`` is a name, "default" or "*"."""

    local: str
    imported: str


@dataclass
class ImportDecl:
    specifier: str
    bindings: list[ImportBinding] = field(default_factory=list)


@dataclass
class ReExport:
    """
    An ``export ... from`` statement.

    ``names`` maps exported name to original name; ``None`` means ``export *``.
    """

    specifier: str
    names: dict[str, str] | None = None


@dataclass
class SourceModule:
    """Declaration surface of one TypeScript file."""

    path: Path
    text: str
    imports: list[ImportDecl] = field(default_factory=list)
    re_exports: list[ReExport] = field(default_factory=list)
    classes: list[ClassDecl] = field(default_factory=list)
    interfaces: list[InterfaceDecl] = field(default_factory=list)

    def find_class(self, name: str) -> ClassDecl | None:
        for decl in self.classes:
            if decl.name == name:
                return decl
        return None

    def default_class(self) -> ClassDecl | None:
        for decl in self.classes:
            if decl.is_default:
                return decl
        return None

    def interface_heritage(self, name: str) -> list[str]:
        """Heritage of every interface merged with ``name``."""
        heritage: list[str] = []
        for decl in self.interfaces:
            if decl.name == name:
                heritage.extend(decl.heritage)
        return heritage

    @property
    def relative_specifiers(self) -> list[str]:
        """Relative module specifiers of imports and re-exports, in order."""
        specifiers = [imp.specifier for imp in self.imports] + [
            exp.specifier for exp in self.re_exports
        ]
        seen: list[str] = []
        for spec in specifiers:
            if is_relative_specifier(spec) and spec not in seen:
                seen.append(spec)
        return seen


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../")


class DeclarationParser:
    """
    Parser for the declaration surface of a TypeScript file.

    Scans the token stream linearly. Import/export statements, decorators,
    classes and interfaces are parsed; everything else is stepped over.
    """

    def __init__(self, tokens: list[Token], file: Path, text: str):
        """
        Initialize parser.

        Args:
            tokens: List of tokens from lexer
            file: Source file path (for error reporting)
            text: Source text the tokens came from
        """
        self.tokens = tokens
        self.file = file
        self.text = text
        self.pos = 0

    def current_token(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def previous_token(self) -> Token | None:
        if self.pos == 0:
            return None
        return self.tokens[self.pos - 1]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def at_eof(self) -> bool:
        return self.current_token().type == TokenType.EOF

    def error(self, message: str, token: Token):
        return make_parse_error(
            message,
            self.file,
            token.line,
            token.column,
            snippet=source_line(self.text, token.line),
        )

    # ------------------------------------------------------------------
    # Module level
    # ------------------------------------------------------------------

    def parse_module(self) -> SourceModule:
        """
        Parse the whole token stream.

        Raises:
            ParseError: If a class body or bracket pair is never closed
        """
        module = SourceModule(path=self.file, text=self.text)
        pending: list[Decorator] = []

        while not self.at_eof():
            tok = self.current_token()
            prev = self.previous_token()
            after_dot = prev is not None and prev.type == TokenType.PUNCT and prev.value in (
                ".",
                "?.",
            )

            if tok.is_punct("@") and self.peek_token().type == TokenType.IDENTIFIER:
                pending.append(self.parse_decorator())
                continue

            if tok.is_word("import") and not after_dot:
                nxt = self.peek_token()
                if not (nxt.is_punct("(") or nxt.is_punct(".")):
                    decl = self.parse_import()
                    if decl is not None:
                        module.imports.append(decl)
                    pending = []
                    continue

            if tok.is_word("export") and not after_dot:
                if self._at_re_export():
                    re_export = self.parse_re_export()
                    if re_export is not None:
                        module.re_exports.append(re_export)
                    pending = []
                    continue
                self.advance()
                continue

            if tok.type == TokenType.IDENTIFIER and tok.value in DECLARATION_MODIFIERS:
                self.advance()
                continue

            if tok.is_word("class") and not after_dot and self._at_class_head():
                decl = self.parse_class(pending)
                if decl is not None:
                    module.classes.append(decl)
                pending = []
                continue

            if (
                tok.is_word("interface")
                and not after_dot
                and self.peek_token().type == TokenType.IDENTIFIER
            ):
                module.interfaces.append(self.parse_interface())
                pending = []
                continue

            pending = []
            self.advance()

        return module

    def _at_class_head(self) -> bool:
        nxt = self.peek_token()
        return nxt.type == TokenType.IDENTIFIER or nxt.is_punct("{") or nxt.is_punct("<")

    def _at_re_export(self) -> bool:
        nxt = self.peek_token()
        if nxt.is_punct("*") or nxt.is_punct("{"):
            return True
        after = self.peek_token(2)
        return nxt.is_word("type") and (after.is_punct("{") or after.is_punct("*"))

    def parse_import(self) -> ImportDecl | None:
        """Parse an import statement; returns None for shapes it does not model."""
        self.advance()  # import
        tok = self.current_token()
        if tok.is_word("type") and self.peek_token().type != TokenType.STRING:
            nxt = self.peek_token()
            if not (nxt.is_word("from") or nxt.is_punct(",")):
                self.advance()

        if self.current_token().type == TokenType.STRING:
            return ImportDecl(specifier=self.advance().value)

        bindings: list[ImportBinding] = []
        tok = self.current_token()
        if tok.type == TokenType.IDENTIFIER and not tok.is_word("from"):
            if self.peek_token().is_punct("="):
                return None  # import X = require(...)
            bindings.append(ImportBinding(local=tok.value, imported="default"))
            self.advance()
            if self.current_token().is_punct(","):
                self.advance()
        elif tok.is_word("from") and self.peek_token().is_word("from"):
            bindings.append(ImportBinding(local="from", imported="default"))
            self.advance()

        tok = self.current_token()
        if tok.is_punct("*"):
            self.advance()
            if not self.current_token().is_word("as"):
                return None
            self.advance()
            local = self.advance()
            bindings.append(ImportBinding(local=local.value, imported="*"))
        elif tok.is_punct("{"):
            self.advance()
            for exported, local in self.parse_name_list():
                bindings.append(ImportBinding(local=local, imported=exported))

        if not self.current_token().is_word("from"):
            return None
        self.advance()
        spec = self.current_token()
        if spec.type != TokenType.STRING:
            return None
        self.advance()
        return ImportDecl(specifier=spec.value, bindings=bindings)

    def parse_re_export(self) -> ReExport | None:
        """Parse ``export * from`` / ``export {..} from``; local export lists yield None."""
        self.advance()  # export
        if self.current_token().is_word("type"):
            self.advance()

        names: dict[str, str] | None
        if self.current_token().is_punct("*"):
            self.advance()
            names = None
            if self.current_token().is_word("as"):
                self.advance()
                names = {self.advance().value: "*"}
        else:
            self.advance()  # {
            names = {alias: original for original, alias in self.parse_name_list()}

        if not self.current_token().is_word("from"):
            return None
        self.advance()
        spec = self.current_token()
        if spec.type != TokenType.STRING:
            return None
        self.advance()
        return ReExport(specifier=spec.value, names=names)

    def parse_name_list(self) -> list[tuple[str, str]]:
        """
        Parse ``A, B as C, type D }`` after an opening brace.

        Returns:
            (original name, local name) pairs
        """
        pairs: list[tuple[str, str]] = []
        while not self.at_eof():
            tok = self.current_token()
            if tok.is_punct("}"):
                self.advance()
                break
            if tok.is_punct(","):
                self.advance()
                continue
            if tok.is_word("type") and self.peek_token().type in (
                TokenType.IDENTIFIER,
                TokenType.STRING,
            ) and not self.peek_token().is_word("as"):
                self.advance()
            name = self.advance().value
            local = name
            if self.current_token().is_word("as"):
                self.advance()
                local = self.advance().value
            pairs.append((name, local))
        return pairs

    # ------------------------------------------------------------------
    # Decorators
    # ------------------------------------------------------------------

    def parse_decorator(self) -> Decorator:
        """Parse ``@name`` or ``@name(args)``."""
        at = self.advance()
        name = self.parse_dotted_name().rsplit(".", 1)[-1]
        decorator = Decorator(name=name, start=at.start)

        if self.current_token().is_punct("("):
            self.advance()
            while not self.at_eof():
                tok = self.current_token()
                if tok.is_punct(")"):
                    self.advance()
                    break
                if tok.is_punct(","):
                    self.advance()
                    continue
                nxt = self.peek_token()
                if tok.type == TokenType.STRING and (nxt.is_punct(",") or nxt.is_punct(")")):
                    decorator.arguments.append(self.string_literal(self.advance()))
                elif tok.is_punct("{"):
                    decorator.properties.update(self.parse_object_literal())
                else:
                    self.skip_expression(stop_at={",", ")"})

        prev = self.previous_token()
        decorator.end = prev.end if prev else at.end
        return decorator

    def parse_object_literal(self) -> dict[str, StringLiteral]:
        """Parse an object literal, keeping only string-valued properties."""
        props: dict[str, StringLiteral] = {}
        self.advance()  # {
        while not self.at_eof():
            tok = self.current_token()
            if tok.is_punct("}"):
                self.advance()
                break
            if tok.is_punct(","):
                self.advance()
                continue
            if tok.type in (TokenType.IDENTIFIER, TokenType.STRING) and self.peek_token().is_punct(
                ":"
            ):
                key = self.advance().value
                self.advance()  # :
                value = self.current_token()
                after = self.peek_token()
                if value.type == TokenType.STRING and (after.is_punct(",") or after.is_punct("}")):
                    props[key] = self.string_literal(self.advance())
                    continue
            self.skip_expression(stop_at={",", "}"})
        return props

    def string_literal(self, token: Token) -> StringLiteral:
        return StringLiteral(
            value=token.value,
            start=token.start + 1,
            end=token.end - 1,
            line=token.line,
            column=token.column + 1,
        )

    def parse_dotted_name(self) -> str:
        parts = [self.advance().value]
        while self.current_token().is_punct(".") and self.peek_token().type == TokenType.IDENTIFIER:
            self.advance()
            parts.append(self.advance().value)
        return ".".join(parts)

    # ------------------------------------------------------------------
    # Classes and interfaces
    # ------------------------------------------------------------------

    def parse_class(self, decorators: list[Decorator]) -> ClassDecl | None:
        """
        Parse a class declaration starting at the ``class`` keyword.

        Anonymous class expressions are consumed and return None.
        """
        is_default = any(
            tok.is_word("default") for tok in self.tokens[max(0, self.pos - 2) : self.pos]
        )
        class_tok = self.advance()
        name_tok: Token | None = None
        tok = self.current_token()
        if tok.type == TokenType.IDENTIFIER and tok.value not in ("extends", "implements"):
            name_tok = self.advance()

        if self.current_token().is_punct("<"):
            self.skip_balanced("<", ">")

        heritage: list[str] = []
        implements: list[str] = []
        while True:
            tok = self.current_token()
            if tok.is_word("extends"):
                self.advance()
                heritage.extend(self.parse_heritage_list())
            elif tok.is_word("implements"):
                self.advance()
                implements.extend(self.parse_heritage_list())
            else:
                break

        if not self.current_token().is_punct("{"):
            return None

        members, end = self.parse_class_body()
        if name_tok is None:
            return None

        return ClassDecl(
            name=name_tok.value,
            heritage=heritage,
            implements=implements,
            members=members,
            decorators=list(decorators),
            start=decorators[0].start if decorators else class_tok.start,
            end=end,
            line=name_tok.line,
            column=name_tok.column,
            is_default=is_default,
        )

    def parse_heritage_list(self) -> list[str]:
        """Parse ``A, ns.B<T>, mixin(C)`` up to the class or interface body."""
        names: list[str] = []
        while self.current_token().type == TokenType.IDENTIFIER:
            tok = self.current_token()
            if tok.value in ("extends", "implements"):
                break
            names.append(self.parse_dotted_name())
            if self.current_token().is_punct("<"):
                self.skip_balanced("<", ">")
            if self.current_token().is_punct("("):
                self.skip_balanced("(", ")")
            if not self.current_token().is_punct(","):
                break
            self.advance()
        return names

    def parse_interface(self) -> InterfaceDecl:
        start = self.advance().start  # interface
        name = self.advance().value
        if self.current_token().is_punct("<"):
            self.skip_balanced("<", ">")
        heritage: list[str] = []
        if self.current_token().is_word("extends"):
            self.advance()
            heritage = self.parse_heritage_list()
        end = self.current_token().end
        if self.current_token().is_punct("{"):
            end = self.skip_balanced("{", "}")
        return InterfaceDecl(name=name, heritage=heritage, start=start, end=end)

    def parse_class_body(self) -> tuple[list[MemberDecl], int]:
        """Parse members between braces; returns members and the body end offset."""
        open_tok = self.advance()
        members: list[MemberDecl] = []

        while True:
            tok = self.current_token()
            if tok.type == TokenType.EOF:
                raise self.error("Unterminated class body", open_tok)
            if tok.is_punct("}"):
                self.advance()
                return members, tok.end
            if tok.is_punct(";") or tok.is_punct(","):
                self.advance()
                continue

            before = self.pos
            member = self.parse_member()
            if member is not None:
                members.append(member)
            if self.pos == before:
                self.advance()

    def parse_member(self) -> MemberDecl | None:
        """Parse one class member; methods, accessors and index signatures yield None."""
        decorators: list[Decorator] = []
        while self.current_token().is_punct("@") and self.peek_token().type == TokenType.IDENTIFIER:
            decorators.append(self.parse_decorator())

        while self._at_member_modifier():
            if self.current_token().is_word("static") and self.peek_token().is_punct("{"):
                self.advance()
                self.skip_balanced("{", "}")
                return None
            self.advance()

        if self.current_token().is_punct("*"):
            self.advance()

        tok = self.current_token()
        if tok.is_punct("["):
            self.skip_balanced("[", "]")
            if self.current_token().is_punct("?") or self.current_token().is_punct("!"):
                self.advance()
            if self.current_token().is_punct("(") or self.current_token().is_punct("<"):
                self.skip_method()
            else:
                self.skip_type()
                self.skip_expression()
            return None
        if tok.type not in (TokenType.IDENTIFIER, TokenType.STRING, TokenType.NUMBER):
            return None

        name_tok = self.advance()
        if self.current_token().is_punct("?") or self.current_token().is_punct("!"):
            self.advance()

        if self.current_token().is_punct("(") or self.current_token().is_punct("<"):
            self.skip_method()
            return None

        type_ref: TypeReference | None = None
        if self.current_token().is_punct(":"):
            self.advance()
            type_ref = self.parse_type_annotation()

        initializer: CallInitializer | None = None
        if self.current_token().is_punct("="):
            self.advance()
            initializer = self.parse_initializer()

        prev = self.previous_token()
        end = prev.end if prev else name_tok.end
        if self.current_token().is_punct(";"):
            self.advance()

        return MemberDecl(
            name=name_tok.value,
            start=name_tok.start,
            end=end,
            line=name_tok.line,
            column=name_tok.column,
            decorators=decorators,
            type_ref=type_ref,
            initializer=initializer,
        )

    def _at_member_modifier(self) -> bool:
        tok = self.current_token()
        if tok.type != TokenType.IDENTIFIER or tok.value not in MEMBER_MODIFIERS:
            return False
        nxt = self.peek_token()
        if nxt.newline_before:
            return False
        if tok.is_word("static") and nxt.is_punct("{"):
            return True
        return nxt.type in (TokenType.IDENTIFIER, TokenType.STRING, TokenType.NUMBER) or (
            nxt.is_punct("[") or nxt.is_punct("*")
        )

    def parse_type_annotation(self) -> TypeReference | None:
        """Parse a declared type; only a leading (generic) type reference is modelled."""
        type_ref: TypeReference | None = None
        tok = self.current_token()
        if tok.type == TokenType.IDENTIFIER and tok.value not in ("typeof", "keyof"):
            name = self.parse_dotted_name().rsplit(".", 1)[-1]
            arguments: list[str] = []
            if self.current_token().is_punct("<"):
                arguments = self.parse_type_arguments()
            type_ref = TypeReference(name=name, arguments=arguments)
        self.skip_type()
        return type_ref

    def parse_type_arguments(self) -> list[str]:
        """Parse ``<A, ns.B, C<D>>``; returns the leading name of each argument."""
        open_tok = self.advance()
        arguments: list[str] = []
        depth = 1
        expect_argument = True
        while depth:
            tok = self.current_token()
            if tok.type == TokenType.EOF:
                raise self.error("Unterminated type argument list", open_tok)
            if depth == 1 and expect_argument:
                expect_argument = False
                if tok.type == TokenType.IDENTIFIER:
                    arguments.append(self.parse_dotted_name().rsplit(".", 1)[-1])
                    continue
                arguments.append("")
            if tok.type == TokenType.PUNCT:
                if tok.value in ("<", "(", "[", "{"):
                    depth += 1
                elif tok.value in (">", ")", "]", "}"):
                    depth -= 1
                elif tok.value == "," and depth == 1:
                    expect_argument = True
            self.advance()
        return arguments

    def parse_initializer(self) -> CallInitializer | None:
        """Parse an initializer; only ``callee(args)`` shapes are modelled."""
        initializer: CallInitializer | None = None
        tok = self.current_token()
        if tok.type == TokenType.IDENTIFIER and not tok.is_word("new"):
            start = self.pos
            callee = self.parse_dotted_name().rsplit(".", 1)[-1]
            if self.current_token().is_punct("<") and self._type_arguments_then_call():
                self.skip_balanced("<", ">")
            if self.current_token().is_punct("("):
                initializer = CallInitializer(callee=callee, arguments=self.parse_call_arguments())
            else:
                self.pos = start
        self.skip_expression()
        return initializer

    def parse_call_arguments(self) -> list[str]:
        self.advance()  # (
        arguments: list[str] = []
        while not self.at_eof():
            tok = self.current_token()
            if tok.is_punct(")"):
                self.advance()
                break
            if tok.is_punct(","):
                self.advance()
                continue
            start = self.pos
            self.skip_expression(stop_at={",", ")"})
            arg_tokens = self.tokens[start : self.pos]
            if len(arg_tokens) == 1 and arg_tokens[0].type == TokenType.IDENTIFIER:
                arguments.append(arg_tokens[0].value)
            else:
                arguments.append("")
        return arguments

    def _type_arguments_then_call(self) -> bool:
        """Lookahead: does the "<" at the cursor close into "(" on the same statement?"""
        depth = 0
        pos = self.pos
        while pos < len(self.tokens):
            tok = self.tokens[pos]
            if tok.type == TokenType.EOF or (pos > self.pos and tok.newline_before):
                return False
            if tok.is_punct("<"):
                depth += 1
            elif tok.is_punct(">"):
                depth -= 1
                if depth == 0:
                    nxt = self.tokens[pos + 1] if pos + 1 < len(self.tokens) else tok
                    return nxt.is_punct("(")
            elif tok.type == TokenType.PUNCT and tok.value in (";", "{", "}", "=", "(", ")"):
                return False
            pos += 1
        return False

    # ------------------------------------------------------------------
    # Skipping
    # ------------------------------------------------------------------

    def skip_balanced(self, opener: str, closer: str) -> int:
        """
        Skip from an opening bracket through its matching closer.

        Returns:
            Offset just past the closing token

        Raises:
            ParseError: If the bracket is never closed
        """
        open_tok = self.advance()
        depth = 1
        while True:
            tok = self.current_token()
            if tok.type == TokenType.EOF:
                raise self.error(f"Unbalanced '{opener}'", open_tok)
            self.advance()
            if tok.is_punct(opener):
                depth += 1
            elif tok.is_punct(closer):
                depth -= 1
                if depth == 0:
                    return tok.end

    def skip_method(self) -> None:
        """Skip type parameters, parameters, return type and body of a method."""
        if self.current_token().is_punct("<"):
            self.skip_balanced("<", ">")
        if self.current_token().is_punct("("):
            self.skip_balanced("(", ")")
        if self.current_token().is_punct(":"):
            self.advance()
            self.skip_type()
        if self.current_token().is_punct("{"):
            self.skip_balanced("{", "}")

    def skip_type(self) -> None:
        """Skip the remainder of a type, stopping before "=", a body "{" or a member end."""
        depth = 0
        while not self.at_eof():
            tok = self.current_token()
            if depth == 0:
                if tok.type == TokenType.PUNCT and tok.value in (";", "}", "=", ")", "]", ","):
                    return
                if tok.is_punct(">"):
                    return
                if self._ends_statement(tok):
                    return
                if tok.is_punct("{"):
                    prev = self.previous_token()
                    if prev is None or prev.value not in TYPE_BRACE_PRECEDERS:
                        return
                    self.skip_balanced("{", "}")
                    continue
            if tok.type == TokenType.PUNCT:
                if tok.value in ("(", "[", "<", "{"):
                    depth += 1
                elif tok.value in (")", "]", ">", "}"):
                    depth -= 1
            self.advance()

    def skip_expression(self, stop_at: set[str] | None = None) -> None:
        """Skip an expression up to a member end or one of ``stop_at`` at depth 0."""
        stops = stop_at or {";", "}"}
        depth = 0
        start = self.pos
        while not self.at_eof():
            tok = self.current_token()
            if depth == 0:
                if tok.type == TokenType.PUNCT and (
                    tok.value in stops or tok.value in (")", "]", "}")
                ):
                    return
                if self.pos > start and stop_at is None and self._ends_statement(tok):
                    return
            if tok.type == TokenType.PUNCT:
                if tok.value in _OPENERS:
                    depth += 1
                elif tok.value in (")", "]", "}"):
                    depth -= 1
            self.advance()

    def _ends_statement(self, tok: Token) -> bool:
        """Automatic semicolon insertion: a line break ends the member unless it continues."""
        if not tok.newline_before:
            return False
        if tok.type == TokenType.PUNCT and tok.value in CONTINUES_BEFORE:
            return False
        if tok.type == TokenType.IDENTIFIER and tok.value in ("as", "in", "instanceof", "extends"):
            return False
        prev = self.previous_token()
        if prev is None:
            return True
        if prev.type == TokenType.PUNCT and prev.value in CONTINUES_AFTER:
            return False
        if prev.type == TokenType.IDENTIFIER and prev.value in CONTINUATION_WORDS:
            return False
        return True


def parse_source(text: str, file: Path) -> SourceModule:
    """
    Parse TypeScript source into its declaration surface.

    Args:
        text: Source text
        file: Source file path

    Returns:
        Parsed SourceModule

    Raises:
        ParseError: If the source cannot be tokenized or a bracket is unbalanced
    """
    tokens = tokenize(text, file)
    parser = DeclarationParser(tokens, file, text)
    return parser.parse_module()
