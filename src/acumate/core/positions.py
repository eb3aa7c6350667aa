"""Offset to (line, character) mapping for diagnostics."""

import re
from bisect import bisect_right

from .ir import Position, Range

_NEWLINE = re.compile(r"\n")


class LineIndex:
    """Line-start table over a document's text."""

    def __init__(self, text: str):
        self.text = text
        self.line_starts = [0] + [m.end() for m in _NEWLINE.finditer(text)]

    def offset_at(self, line: int, column: int) -> int:
        """Offset of a 1-indexed line and 0-indexed column."""
        if line - 1 >= len(self.line_starts):
            return len(self.text)
        return self.line_starts[line - 1] + column

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self.text)))
        line = bisect_right(self.line_starts, offset) - 1
        return Position(line=line, character=offset - self.line_starts[line])

    def range_of(self, start: int, end: int) -> Range:
        return Range(start=self.position_at(start), end=self.position_at(end))
