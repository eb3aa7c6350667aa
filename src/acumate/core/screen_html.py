"""
Companion HTML resources of a screen template.

An extension template (``<Screen>/extensions/<Name>.html``) places its
fields relative to the base screen's markup through CSS selectors in the
``before``/``after``/``append``/``prepend``/``move`` attributes. The base
document is parsed with BeautifulSoup so those selectors can be evaluated.

The same module reads the parameter list of ``qp-include`` templates and
the predefined ``qp-template`` layout names shipped with the
client-controls package. Every resource is cached by path and reloaded
when the file's modification time changes.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from .errors import ParseError
from .markup import USING_TAG, USING_VIEW_ATTR, VIEW_BINDING_ATTR, parse_markup

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXTENSIONS_DIR = "extensions"
CUSTOMIZATION_SELECTOR_ATTRS = ("before", "after", "append", "prepend", "prepand", "move")
# Selectors that place the field inside the matched element
NESTING_SELECTOR_ATTRS = frozenset({"append", "prepend", "prepand"})

INCLUDE_PARAMETERS_TAG = "qp-include-parameters"
REQUIRED_SUFFIX = ".required"

CLIENT_CONTROLS_PACKAGES = ("client-controls", "@acumatica/client-controls")
SCREEN_TEMPLATES_MODULE = Path("controls", "container", "template", "qp-template.js")
_SCREEN_TEMPLATE_SET = re.compile(r"""ScreenTemplates\.set\(\s*(["'`])([^"'`]+?)\1\s*,""")


def is_customization_selector(attribute_name: str | None) -> bool:
    return bool(attribute_name) and attribute_name.lower() in CUSTOMIZATION_SELECTOR_ATTRS


# ---------------------------------------------------------------------------
# Base screen document
# ---------------------------------------------------------------------------


@dataclass
class SelectorQuery:
    """Elements matched by a selector; ``error`` is set when it does not parse."""

    nodes: list[Tag]
    error: str | None = None


@dataclass
class BaseScreenDocument:
    """Parsed markup of the screen an extension template customizes."""

    path: Path
    soup: BeautifulSoup

    @classmethod
    def parse(cls, path: Path, text: str) -> BaseScreenDocument:
        return cls(path=path, soup=BeautifulSoup(text, "html.parser"))

    def select(self, selector: str) -> SelectorQuery:
        selector = selector.strip()
        if not selector:
            return SelectorQuery(nodes=[])
        try:
            return SelectorQuery(nodes=list(self.soup.select(selector)))
        except SelectorSyntaxError as e:
            return SelectorQuery(nodes=[], error=str(e).splitlines()[0])

    def view_name_for(self, selector: str, inside: bool = False) -> str | None:
        """
        View scoping the first element the selector matches, if any.

        With ``inside`` the matched element's own binding counts too.
        """
        for node in self.select(selector).nodes:
            view_name = find_tag_view_name(node, include_self=inside)
            if view_name:
                return view_name
        return None


def find_tag_view_name(tag: Tag, include_self: bool = False) -> str | None:
    """Nearest ``view.bind`` or ``<using view>`` among a tag's ancestors."""
    candidates = [tag, *tag.parents] if include_self else tag.parents
    for parent in candidates:
        binding = parent.get(VIEW_BINDING_ATTR)
        if binding:
            return binding
        if parent.name == USING_TAG:
            using_view = parent.get(USING_VIEW_ATTR)
            if using_view:
                return using_view
    return None


def resolve_base_screen_html_path(html_path: str | Path) -> Path | None:
    """
    Base screen markup of an extension template.

    ``.../SO301000/extensions/SO301000_Ext.html`` maps to
    ``.../SO301000/SO301000.html`` (or ``.htm``). Templates outside an
    ``extensions`` directory have no base screen.
    """
    parts = Path(os.path.normpath(html_path)).parts
    for index in range(len(parts) - 2, 0, -1):
        if parts[index].lower() == EXTENSIONS_DIR:
            screen_dir = Path(*parts[:index])
            break
    else:
        return None

    for suffix in (".html", ".htm"):
        candidate = screen_dir / f"{screen_dir.name}{suffix}"
        if candidate.is_file():
            return candidate
    return None


# ---------------------------------------------------------------------------
# qp-include templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncludeParameter:
    name: str
    required: bool = False
    default: str | None = None


@dataclass
class IncludeMetadata:
    """Parameters an include template declares on ``<qp-include-parameters>``."""

    path: Path
    parameters: list[IncludeParameter]

    def parameter_names(self) -> set[str]:
        return {parameter.name for parameter in self.parameters}


def parse_include_parameters(text: str) -> list[IncludeParameter]:
    """
    Read the parameter list of an include template.

    ``name.required`` marks a required parameter; any other attribute is
    optional, with its value as the default.
    """
    try:
        document = parse_markup(text)
    except ParseError as e:
        logger.debug("Cannot parse include template: %s", e)
        return []

    node = next((el for el in document.elements() if el.tag == INCLUDE_PARAMETERS_TAG), None)
    if node is None:
        return []

    parameters: dict[str, IncludeParameter] = {}
    for raw_name, value in node.attrs.items():
        name = raw_name
        required = name.endswith(REQUIRED_SUFFIX)
        if required:
            name = name[: -len(REQUIRED_SUFFIX)]
        if not name:
            continue
        default = value if not required and value and value != raw_name else None
        if name not in parameters or required:
            parameters[name] = IncludeParameter(name=name, required=required, default=default)
    return list(parameters.values())


def resolve_include_path(
    url: str, source_path: str | Path, roots: Iterable[str | Path] = ()
) -> Path | None:
    """
    Locate an include template.

    Tried in order: relative to the including template, relative to each of
    its ancestor directories, relative to each project root, then relative
    to the working directory. Absolute URLs are used as they are.
    """
    relative = url.replace("\\", "/")
    if not relative:
        return None
    directory = Path(source_path).resolve().parent
    candidates = [
        directory / relative,
        *(ancestor / relative for ancestor in directory.parents),
        *(Path(root) / relative for root in roots),
        Path.cwd() / relative,
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    return None


# ---------------------------------------------------------------------------
# qp-template names
# ---------------------------------------------------------------------------


def find_client_controls_root(start: str | Path, roots: Iterable[str | Path] = ()) -> Path | None:
    """Closest client-controls package above ``start`` (then above each root)."""
    for origin in (Path(start), *(Path(root) for root in roots)):
        directory = origin.resolve()
        if not directory.is_dir():
            directory = directory.parent
        for current in (directory, *directory.parents):
            for package in CLIENT_CONTROLS_PACKAGES:
                for candidate in (current / "node_modules" / package, current / package):
                    if candidate.is_dir():
                        return candidate
    return None


def parse_screen_templates(text: str) -> frozenset[str]:
    """Template names registered with ``ScreenTemplates.set("name", ...)``."""
    names = (match.group(2).strip() for match in _SCREEN_TEMPLATE_SET.finditer(text))
    return frozenset(name for name in names if name)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class _FileCache(Generic[T]):
    """Parsed-file cache keyed by path, invalidated by modification time."""

    def __init__(self, parse: Callable[[Path, str], T]) -> None:
        self._parse = parse
        self._entries: dict[str, tuple[float, T]] = {}

    def load(self, path: Path) -> T | None:
        key = os.path.normcase(os.path.abspath(path))
        try:
            mtime = os.stat(key).st_mtime
        except OSError as e:
            logger.debug("Cannot stat %s: %s", path, e)
            return None

        entry = self._entries.get(key)
        if entry is not None and entry[0] == mtime:
            return entry[1]
        try:
            text = Path(key).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", path, e)
            return None

        value = self._parse(path, text)
        self._entries[key] = (mtime, value)
        return value

    def clear(self) -> None:
        self._entries.clear()


class ScreenHtmlCache:
    """Base screens, include templates and screen template names of a run."""

    def __init__(self) -> None:
        self._base_screens = _FileCache(BaseScreenDocument.parse)
        self._includes = _FileCache(
            lambda path, text: IncludeMetadata(path=path, parameters=parse_include_parameters(text))
        )
        self._templates = _FileCache(lambda path, text: parse_screen_templates(text))

    def base_screen(self, html_path: Path) -> BaseScreenDocument | None:
        base_path = resolve_base_screen_html_path(html_path)
        if base_path is None:
            return None
        return self._base_screens.load(base_path)

    def include(
        self, url: str, source_path: Path, roots: Iterable[str | Path] = ()
    ) -> IncludeMetadata | None:
        include_path = resolve_include_path(url, source_path, roots)
        if include_path is None:
            return None
        return self._includes.load(include_path)

    def screen_templates(self, start: Path, roots: Iterable[str | Path] = ()) -> frozenset[str]:
        package = find_client_controls_root(start, roots)
        if package is None:
            return frozenset()
        return self._templates.load(package / SCREEN_TEMPLATES_MODULE) or frozenset()

    def invalidate(self) -> None:
        self._base_screens.clear()
        self._includes.clear()
        self._templates.clear()
