"""Markup DOM for AcuMate screen HTML.

Parses screen templates into a lightweight element tree that keeps source
offsets: element start/end and, for each attribute, the span of its value.
Positions are what diagnostics and editor lookups need, so the tree is built
from ``html.parser`` events plus the raw start-tag text.

The parser does not report values it drops or never finished (``view.bind=``
while typing, a missing closing quote). For those, ``scan_attribute_at_offset``
and ``scan_attribute_value_span`` read the source text directly. They are
the fallback path and are only consulted when the tree has no attribute
information for the offset in question.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from html.parser import HTMLParser
from pathlib import Path

from .errors import make_parse_error, source_line
from .ir import Position, Range
from .positions import LineIndex

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

VIEW_BINDING_ATTR = "view.bind"
USING_TAG = "using"
USING_VIEW_ATTR = "view"

_ATTR_NAME_CHARS = re.compile(r"[A-Za-z0-9_.:\-]")
_TAG_NAME = re.compile(r"<\s*[^\s/>]+")
_ATTR = re.compile(
    r"""([^\s"'>/=]+)(?:\s*=\s*(?:"([^"]*)"?|'([^']*)'?|([^\s"'=<>`]+)))?"""
)


@dataclass
class AttributeSpan:
    """
    Source location of one attribute.

    Offsets are absolute; ``value_start``/``value_end`` exclude quotes and
    are None for valueless attributes.
    """

    name: str
    name_start: int
    value_start: int | None = None
    value_end: int | None = None


@dataclass
class MarkupElement:
    """Element node with source offsets."""

    tag: str
    attrs: dict[str, str | None] = field(default_factory=dict)
    children: list[MarkupElement] = field(default_factory=list)
    parent: MarkupElement | None = field(default=None, repr=False)
    start: int = 0
    end: int = 0
    start_tag_end: int = 0
    attr_spans: dict[str, AttributeSpan] = field(default_factory=dict)

    def has_attr(self, name: str) -> bool:
        return name in self.attrs

    def get_attr(self, name: str, default: str = "") -> str:
        return self.attrs.get(name, default) or default

    def iter(self) -> Iterator[MarkupElement]:
        """Depth-first iteration over descendants (self excluded)."""
        for child in self.children:
            yield child
            yield from child.iter()


@dataclass
class ScannedAttribute:
    """Attribute text read directly from source by the fallback scanner."""

    attribute_name: str
    value: str
    value_start: int
    value_end: int


@dataclass
class AttributeContext:
    """The attribute whose value covers an offset."""

    attribute_name: str
    value: str
    value_range: Range
    tag_name: str
    element: MarkupElement


class MarkupDocument:
    """A parsed markup document: element tree plus offset/position mapping."""

    def __init__(self, text: str, root: MarkupElement):
        self.text = text
        self.root = root
        self.lines = LineIndex(text)

    @property
    def nodes(self) -> list[MarkupElement]:
        return self.root.children

    def elements(self) -> Iterator[MarkupElement]:
        return self.root.iter()

    def offset_at(self, line: int, column: int) -> int:
        """Offset of a 1-indexed line and 0-indexed column."""
        return self.lines.offset_at(line, column)

    def position_at(self, offset: int) -> Position:
        return self.lines.position_at(offset)

    def range_of(self, start: int, end: int) -> Range:
        return self.lines.range_of(start, end)

    def element_range(self, element: MarkupElement) -> Range:
        return self.range_of(element.start, element.end)

    def attribute_value_range(self, element: MarkupElement, name: str) -> Range | None:
        span = attribute_value_span(self.text, element, name)
        if span is None:
            return None
        return self.range_of(*span)


class _TreeBuilder(HTMLParser):
    """Build a MarkupElement tree with offsets from raw markup."""

    def __init__(self, text: str) -> None:
        super().__init__(convert_charrefs=True)
        self.text = text
        self.root = MarkupElement(tag="#root", end=len(text))
        self._stack: list[MarkupElement] = [self.root]
        self._lines = LineIndex(text)

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._lines.offset_at(line, column)

    def _open(self, tag: str, attrs: list[tuple[str, str | None]]) -> MarkupElement:
        start = self._offset()
        raw = self.get_starttag_text() or ""
        parent = self._stack[-1]
        elem = MarkupElement(
            tag=tag,
            attrs=dict(attrs),
            parent=parent,
            start=start,
            end=start + len(raw),
            start_tag_end=start + len(raw),
            attr_spans=parse_attribute_spans(raw, start),
        )
        parent.children.append(elem)
        return elem

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        elem = self._open(tag, attrs)
        # Void elements don't get pushed
        if tag not in VOID_ELEMENTS:
            self._stack.append(elem)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._open(tag, attrs)

    def handle_endtag(self, tag: str) -> None:
        if not any(elem.tag == tag for elem in self._stack[1:]):
            return
        start = self._offset()
        close = self.text.find(">", start)
        end = close + 1 if close >= 0 else len(self.text)
        while len(self._stack) > 1:
            elem = self._stack.pop()
            if elem.tag == tag:
                elem.end = end
                break
            elem.end = start

    def finish(self) -> MarkupElement:
        self.close()
        while len(self._stack) > 1:
            self._stack.pop().end = len(self.text)
        return self.root


def parse_attribute_spans(raw_start_tag: str, offset: int) -> dict[str, AttributeSpan]:
    """Locate attribute names and values inside raw start-tag text."""
    spans: dict[str, AttributeSpan] = {}
    name_match = _TAG_NAME.match(raw_start_tag)
    if not name_match:
        return spans

    for match in _ATTR.finditer(raw_start_tag, name_match.end()):
        name = match.group(1).lower()
        if name in spans:
            continue
        span = AttributeSpan(name=name, name_start=offset + match.start(1))
        for group in (2, 3, 4):
            if match.group(group) is not None:
                span.value_start = offset + match.start(group)
                span.value_end = offset + match.end(group)
                break
        spans[name] = span
    return spans


def parse_markup(text: str, file: Path | None = None) -> MarkupDocument:
    """
    Parse markup into a MarkupDocument.

    Raises:
        ParseError: If the underlying parser rejects the input
    """
    builder = _TreeBuilder(text)
    try:
        builder.feed(text)
        root = builder.finish()
    except AssertionError as e:
        line, column = builder.getpos()
        raise make_parse_error(
            str(e) or "Malformed markup",
            file or Path("<markup>"),
            line,
            column + 1,
            snippet=source_line(text, line),
        ) from e
    return MarkupDocument(text, root)


def find_node_at_offset(nodes: list[MarkupElement], offset: int) -> MarkupElement | None:
    """Find the deepest element whose source span covers ``offset``."""
    for node in nodes:
        if node.start <= offset <= node.end:
            if node.children:
                hit = find_node_at_offset(node.children, offset)
                if hit is not None:
                    return hit
            return node
    return None


def find_parent_view_name(element: MarkupElement | None) -> str | None:
    """
    Find the view a nested element is scoped to.

    Climbs ancestors to the nearest ``view.bind`` value, or the ``view``
    attribute of an enclosing ``<using>`` element.
    """
    current = element.parent if element is not None else None
    while current is not None:
        binding = current.attrs.get(VIEW_BINDING_ATTR)
        if binding:
            return binding
        if current.tag == USING_TAG:
            using_view = current.attrs.get(USING_VIEW_ATTR)
            if using_view:
                return using_view
        current = current.parent
    return None


def attribute_value_span(text: str, element: MarkupElement, name: str) -> tuple[int, int] | None:
    """Offsets of an attribute's value, falling back to a text scan of the element."""
    span = element.attr_spans.get(name)
    if span is not None and span.value_start is not None and span.value_end is not None:
        return span.value_start, span.value_end
    value = element.attrs.get(name)
    if value is None:
        return None
    return scan_attribute_value_span(text, element, name, value)


def attribute_context_at(document: MarkupDocument, offset: int) -> AttributeContext | None:
    """
    Describe the attribute value under ``offset``.

    Uses the parsed attribute spans first; falls back to scanning the raw
    text when the parser recorded nothing covering the offset.
    """
    element = find_node_at_offset(document.nodes, offset)
    if element is None:
        return None

    for span in element.attr_spans.values():
        if span.value_start is None or span.value_end is None:
            continue
        if span.value_start <= offset <= span.value_end and span.name in element.attrs:
            return AttributeContext(
                attribute_name=span.name,
                value=element.attrs[span.name] or "",
                value_range=document.range_of(span.value_start, span.value_end),
                tag_name=element.tag,
                element=element,
            )

    scanned = scan_attribute_at_offset(document.text, offset)
    if scanned is None:
        return None
    name = scanned.attribute_name or scan_attribute_name_before(document.text, scanned.value_start)
    if not name:
        return None
    name = name.lower()
    if name not in element.attrs:
        return None
    value = element.attrs[name]
    return AttributeContext(
        attribute_name=name,
        value=value if value is not None else scanned.value,
        value_range=document.range_of(scanned.value_start, scanned.value_end),
        tag_name=element.tag,
        element=element,
    )


# ----------------------------------------------------------------------
# Fallback scanner
# ----------------------------------------------------------------------


def scan_attribute_name_before(text: str, value_start: int) -> str | None:
    """Fallback: walk back from a value start to the attribute name before "="."""
    current = value_start - 1
    while current >= 0 and text[current] != "=":
        if text[current] in "<>":
            return None
        current -= 1
    if current < 0:
        return None

    current -= 1
    while current >= 0 and text[current].isspace():
        current -= 1

    name_end = current
    while current >= 0 and _ATTR_NAME_CHARS.match(text[current]):
        current -= 1
    return text[current + 1 : name_end + 1] or None


def scan_attribute_at_offset(text: str, offset: int) -> ScannedAttribute | None:
    """
    Fallback: read the attribute whose value covers ``offset`` from raw text.

    Handles values the parser drops: empty quoted values, a missing closing
    quote (the value then ends at the offset), unquoted empty values
    (``view.bind=``) and an offset sitting on the closing ``>``.
    """
    bounded = max(0, min(offset, len(text)))
    cursor = bounded
    if cursor == len(text):
        cursor -= 1
    if cursor < 0:
        return None
    if text[cursor] == ">":
        cursor -= 1
    while cursor >= 0 and text[cursor] != "=":
        if text[cursor] in "<>":
            return None
        cursor -= 1
    if cursor < 0:
        return None

    name_end = cursor - 1
    while name_end >= 0 and text[name_end].isspace():
        name_end -= 1
    if name_end < 0:
        return None
    name_start = name_end
    while name_start >= 0 and _ATTR_NAME_CHARS.match(text[name_start]):
        name_start -= 1
    attribute_name = text[name_start + 1 : name_end + 1]

    value_cursor = cursor + 1
    while value_cursor < len(text) and text[value_cursor].isspace():
        value_cursor += 1

    first = text[value_cursor] if value_cursor < len(text) else ""
    if first in ('"', "'"):
        value_start = value_cursor + 1
        value_end = text.find(first, value_start)
        if value_end < 0:
            value_end = max(value_start, bounded)
        if bounded < value_start or bounded > value_end:
            return None
    else:
        value_start = value_cursor
        value_end = value_cursor
        while value_end < len(text) and not (text[value_end].isspace() or text[value_end] == ">"):
            value_end += 1
        if bounded < value_start:
            return None
        if bounded > value_end and not (value_end == value_start and bounded == value_start):
            return None

    return ScannedAttribute(
        attribute_name=attribute_name,
        value=text[value_start:value_end],
        value_start=value_start,
        value_end=value_end,
    )


def scan_attribute_value_span(
    text: str, element: MarkupElement, name: str, value: str
) -> tuple[int, int] | None:
    """Fallback: search an element's source text for ``name=value`` and return the value span."""
    start_tag_end = element.start_tag_end or element.end
    chunk = text[element.start:start_tag_end]
    lowered = chunk.lower()
    target = name.lower()
    search = 0

    while search < len(lowered):
        index = lowered.find(target, search)
        if index < 0:
            break
        if index > 0 and _ATTR_NAME_CHARS.match(lowered[index - 1]):
            search = index + len(target)
            continue

        cursor = index + len(target)
        while cursor < len(chunk) and chunk[cursor].isspace():
            cursor += 1
        if cursor >= len(chunk) or chunk[cursor] != "=":
            search = index + len(target)
            continue
        cursor += 1
        while cursor < len(chunk) and chunk[cursor].isspace():
            cursor += 1
        if cursor >= len(chunk):
            break

        if chunk[cursor] in ('"', "'"):
            value_start = cursor + 1
            value_end = chunk.find(chunk[cursor], value_start)
            if value_end < 0:
                value_end = len(chunk)
        else:
            value_start = cursor
            value_end = cursor
            while value_end < len(chunk) and not (
                chunk[value_end].isspace() or chunk[value_end] == ">"
            ):
                value_end += 1

        if chunk[value_start:value_end] == value:
            return element.start + value_start, element.start + value_end
        search = value_end + 1

    return None
