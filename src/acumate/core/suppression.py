"""
Inline suppression directives.

Markup files use HTML comments, TypeScript files use line or block comments:

    <!-- acumate-disable-next-line htmlValidator -->
    <!-- acumate-disable-file all -->
    // acumate-disable-next-line graphInfo
    /* acumate-disable-next-line graphInfo */
    // acumate-disable-file graphInfo

A next-line directive on line N covers diagnostics reported on line N+1. A
file directive covers the whole file wherever it appears. Codes are
case-insensitive and ``all`` covers every code.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from .ir import Diagnostic

ALL_CODES = "all"
NEXT_LINE_MARKER = "acumate-disable-next-line"
FILE_MARKER = "acumate-disable-file"


class SuppressionLanguage(StrEnum):
    HTML = "html"
    TYPESCRIPT = "ts"


@dataclass(frozen=True)
class LineDirective:
    """Suppresses ``codes`` on ``target_line`` (0-indexed)."""

    target_line: int
    codes: frozenset[str]


@dataclass(frozen=True)
class FileDirective:
    """Suppresses ``codes`` everywhere in the file."""

    codes: frozenset[str]


SuppressionDirective = LineDirective | FileDirective

_HTML_NEXT_LINE = re.compile(r"<!--\s*acumate-disable-next-line\s+([^>]+?)-->", re.IGNORECASE)
_HTML_FILE = re.compile(r"<!--\s*acumate-disable-file\s+([^>]+?)-->", re.IGNORECASE)
_TS_NEXT_LINE = re.compile(r"//\s*acumate-disable-next-line\s+(.+)", re.IGNORECASE)
_TS_NEXT_LINE_BLOCK = re.compile(r"/\*\s*acumate-disable-next-line\s+([^*]+)\*/", re.IGNORECASE)
_TS_FILE = re.compile(r"//\s*acumate-disable-file\s+(.+)", re.IGNORECASE)
_TS_FILE_BLOCK = re.compile(r"/\*\s*acumate-disable-file\s+([^*]+)\*/", re.IGNORECASE)

_CODE_SEPARATOR = re.compile(r"[\s,]+")
_LINE_BREAK = re.compile(r"\r?\n")


def split_codes(raw: str) -> frozenset[str]:
    return frozenset(code.lower() for code in _CODE_SEPARATOR.split(raw.strip()) if code)


def normalize_code(code: str | int | None) -> str | None:
    if code is None:
        return None
    normalized = str(code).strip().lower()
    return normalized or None


def language_for_path(path: str) -> SuppressionLanguage:
    lowered = path.lower()
    if lowered.endswith(".html") or lowered.endswith(".htm"):
        return SuppressionLanguage.HTML
    return SuppressionLanguage.TYPESCRIPT


def _line_matches(line: str, language: SuppressionLanguage, file_wide: bool) -> list[str]:
    if language == SuppressionLanguage.HTML:
        pattern = _HTML_FILE if file_wide else _HTML_NEXT_LINE
        return [match.group(1) for match in pattern.finditer(line)]

    line_pattern, block_pattern = (
        (_TS_FILE, _TS_FILE_BLOCK) if file_wide else (_TS_NEXT_LINE, _TS_NEXT_LINE_BLOCK)
    )
    match = line_pattern.search(line)
    if match:
        return [match.group(1)]
    match = block_pattern.search(line)
    if match:
        return [match.group(1)]
    return []


def parse_directives(text: str, language: SuppressionLanguage | str) -> list[SuppressionDirective]:
    """Extract every suppression directive from a document."""
    language = SuppressionLanguage(language)
    directives: list[SuppressionDirective] = []
    if not text:
        return directives

    for index, line in enumerate(_LINE_BREAK.split(text)):
        lowered = line.lower()
        if NEXT_LINE_MARKER in lowered:
            for raw in _line_matches(line, language, file_wide=False):
                codes = split_codes(raw)
                if codes:
                    directives.append(LineDirective(target_line=index + 1, codes=codes))
        if FILE_MARKER in lowered:
            for raw in _line_matches(line, language, file_wide=True):
                codes = split_codes(raw)
                if codes:
                    directives.append(FileDirective(codes=codes))

    return directives


class SuppressionEngine:
    """
    Answers whether a diagnostic on a given line is suppressed.

    Directives are indexed by target line at build time.
    """

    def __init__(self, directives: Iterable[SuppressionDirective] = ()):
        self.directives = list(directives)
        self._file_codes: set[str] = set()
        self._line_codes: dict[int, set[str]] = {}
        for directive in self.directives:
            if isinstance(directive, FileDirective):
                self._file_codes.update(directive.codes)
            else:
                self._line_codes.setdefault(directive.target_line, set()).update(directive.codes)

    @classmethod
    def build(cls, text: str, language: SuppressionLanguage | str) -> "SuppressionEngine":
        return cls(parse_directives(text, language))

    @property
    def has_directives(self) -> bool:
        return bool(self.directives)

    def is_suppressed(self, line: int, code: str | int | None) -> bool:
        if not self.directives:
            return False

        normalized = normalize_code(code)
        if normalized is None:
            return False

        if ALL_CODES in self._file_codes or normalized in self._file_codes:
            return True

        codes = self._line_codes.get(line)
        if codes is None:
            return False
        return ALL_CODES in codes or normalized in codes


def create_suppression_engine(text: str, language: SuppressionLanguage | str) -> SuppressionEngine:
    return SuppressionEngine.build(text, language)


def filter_diagnostics(
    diagnostics: Iterable[Diagnostic], engine: SuppressionEngine
) -> list[Diagnostic]:
    """Drop diagnostics covered by a directive."""
    return [d for d in diagnostics if not engine.is_suppressed(d.line, d.effective_code)]


def build_suppression_comment(
    language: SuppressionLanguage | str, code: str, file_wide: bool = False
) -> str:
    """Render directive text that suppresses ``code``, for insertion above a line."""
    marker = FILE_MARKER if file_wide else NEXT_LINE_MARKER
    if SuppressionLanguage(language) == SuppressionLanguage.HTML:
        return f"<!-- {marker} {code} -->"
    return f"// {marker} {code}"
