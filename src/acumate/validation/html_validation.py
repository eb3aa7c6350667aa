"""
Markup validation against screen TypeScript metadata.

Walks a parsed screen template and checks every binding it makes
(``view.bind``, ``<using view>``, ``<qp-panel id>``, ``state.bind``,
``control-state.bind`` and ``<field name>``) against the classes collected
from the screen's TypeScript files. Extension templates also have their
placement selectors checked against the base screen markup, and
``qp-include``/``qp-template`` usages are checked against the include
template and the client-controls layout list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable
from functools import partial
from pathlib import Path

from acumate.context import AcuMateContext
from acumate.core.collector import collect_from_files, filter_classes_by_source
from acumate.core.errors import ParseError
from acumate.core.ir import (
    ClassInfo,
    ClassKind,
    Diagnostic,
    DiagnosticSeverity,
    DiagnosticSource,
    Position,
    PropertyKind,
    Range,
    ViewResolution,
)
from acumate.core.markup import (
    USING_TAG,
    USING_VIEW_ATTR,
    VIEW_BINDING_ATTR,
    MarkupDocument,
    MarkupElement,
    find_parent_view_name,
    parse_markup,
)
from acumate.core.resolver import ViewResolver
from acumate.core.screen_html import (
    NESTING_SELECTOR_ATTRS,
    BaseScreenDocument,
    IncludeMetadata,
    is_customization_selector,
)
from acumate.core.suppression import (
    SuppressionLanguage,
    create_suppression_engine,
    filter_diagnostics,
)

from .feature_gating import filter_feature_gated

logger = logging.getLogger(__name__)

HTML_VALIDATOR_CODE = DiagnosticSource.HTML.value

FIELD_TAG = "field"
PANEL_TAG = "qp-panel"
QP_FIELD_TAG = "qp-field"
ACTION_BINDING_ATTR = "state.bind"
CONTROL_STATE_ATTR = "control-state.bind"
INCLUDE_TAG = "qp-include"
TEMPLATE_TAG = "qp-template"
INCLUDE_URL_ATTR = "url"
INCLUDE_INTRINSIC_ATTRS = frozenset({"id", "class", "style", "slot"})


def _is_valid_view(resolution: ViewResolution | None) -> bool:
    return (
        resolution is not None
        and bool(resolution.property.view_class_name)
        and resolution.view_class is not None
        and resolution.view_class.declared_kind == ClassKind.VIEW
    )


class _MarkupValidator:
    """One validation pass over a parsed document."""

    def __init__(
        self,
        document: MarkupDocument,
        resolver: ViewResolver,
        can_validate_actions: bool,
        base_screen: BaseScreenDocument | None = None,
        screen_templates: Collection[str] = (),
        includes: Callable[[str], IncludeMetadata | None] | None = None,
    ):
        self.document = document
        self.resolver = resolver
        self.can_validate_actions = can_validate_actions
        self.base_screen = base_screen
        self.screen_templates = screen_templates
        self.includes = includes
        self.diagnostics: list[Diagnostic] = []

    def report(
        self,
        element: MarkupElement,
        message: str,
        *,
        attribute: str | None = None,
        origin_class: str | None = None,
    ) -> None:
        range_ = None
        if attribute is not None:
            range_ = self.document.attribute_value_range(element, attribute)
        if range_ is None:
            range_ = self.document.element_range(element)
        self.diagnostics.append(
            Diagnostic(
                range=range_,
                message=message,
                severity=DiagnosticSeverity.WARNING,
                source=HTML_VALIDATOR_CODE,
                code=HTML_VALIDATOR_CODE,
                origin_class=origin_class,
            )
        )

    def walk(self, elements: list[MarkupElement], panel_view: ClassInfo | None = None) -> None:
        for element in elements:
            next_panel_view = panel_view
            if self.resolver.has_screen_metadata:
                self.check_view_binding(element)
                next_panel_view = self.check_panel(element) or panel_view
                self.check_using(element)
            self.check_action_binding(element, panel_view)
            self.check_include(element)
            self.check_template_name(element)
            self.check_field_selectors(element)
            if self.resolver.has_screen_metadata:
                self.check_control_state(element)
                self.check_field(element)
            if element.children:
                self.walk(element.children, next_panel_view)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def check_view_binding(self, element: MarkupElement) -> None:
        view_name = element.attrs.get(VIEW_BINDING_ATTR)
        if not view_name:
            return
        resolution = self.resolver.resolve(view_name)
        if not _is_valid_view(resolution):
            self.report(
                element,
                f'The <{element.tag}> element must be bound to a valid view; "{view_name}" '
                "is not a view of this screen.",
                origin_class=resolution.screen_class if resolution else None,
            )

    def check_panel(self, element: MarkupElement) -> ClassInfo | None:
        """Validate a panel id; returns the panel's view class for its descendants."""
        if element.tag != PANEL_TAG:
            return None
        panel_id = (element.attrs.get("id") or "").strip()
        if not panel_id:
            return None
        resolution = self.resolver.resolve(panel_id)
        if resolution is None:
            self.report(
                element,
                f'The <qp-panel> id must reference a valid view; "{panel_id}" is not declared.',
            )
            return None
        return resolution.view_class

    def check_using(self, element: MarkupElement) -> None:
        if element.tag != USING_TAG:
            return
        view_name = element.attrs.get(USING_VIEW_ATTR)
        if not view_name:
            return
        resolution = self.resolver.resolve(view_name)
        if not _is_valid_view(resolution):
            self.report(
                element,
                f'The <using> element must reference a valid view; "{view_name}" '
                "is not a view of this screen.",
                origin_class=resolution.screen_class if resolution else None,
            )

    def check_action_binding(self, element: MarkupElement, panel_view: ClassInfo | None) -> None:
        if not self.can_validate_actions:
            return
        action_name = element.attrs.get(ACTION_BINDING_ATTR)
        if not action_name:
            return
        if action_name in self.resolver.actions:
            return
        if panel_view is not None:
            panel_property = panel_view.properties.get(action_name)
            if panel_property is not None and panel_property.kind == PropertyKind.ACTION:
                return
        self.report(
            element,
            f'The state.bind attribute must reference a valid PXAction; "{action_name}" '
            "is not declared.",
            attribute=ACTION_BINDING_ATTR,
        )

    def check_control_state(self, element: MarkupElement) -> None:
        if element.tag != QP_FIELD_TAG:
            return
        binding = element.attrs.get(CONTROL_STATE_ATTR)
        if not binding:
            return

        parts = binding.split(".")
        if len(parts) != 2:
            self.report(
                element,
                "The control-state.bind attribute must use the <view>.<field> format.",
                attribute=CONTROL_STATE_ATTR,
            )
            return

        view_name, field_name = (part.strip() for part in parts)
        if not view_name or not field_name:
            self.report(
                element,
                "The control-state.bind attribute must include both a view and field name.",
                attribute=CONTROL_STATE_ATTR,
            )
            return

        resolution = self.resolver.resolve(view_name)
        view_class = resolution.view_class if resolution else None
        if view_class is None:
            self.report(
                element,
                f'The control-state.bind attribute references unknown view "{view_name}".',
                attribute=CONTROL_STATE_ATTR,
                origin_class=resolution.screen_class if resolution else None,
            )
            return

        field_property = view_class.properties.get(field_name)
        if field_property is None or field_property.kind != PropertyKind.FIELD:
            self.report(
                element,
                f'The control-state.bind attribute references unknown field "{field_name}" '
                f'on view "{view_name}".',
                attribute=CONTROL_STATE_ATTR,
                origin_class=resolution.screen_class if resolution else None,
            )

    def check_field(self, element: MarkupElement) -> None:
        if element.tag != FIELD_TAG:
            return
        field_name = element.attrs.get("name")
        if not field_name:
            return
        # Replacement fields are not bound to the view
        if element.has_attr("unbound") and element.has_attr("replace-content"):
            return

        view_name = find_parent_view_name(element) or self.selector_view_name(element)
        resolution = self.resolver.resolve(view_name)
        view_class = resolution.view_class if resolution else None
        field_property = view_class.properties.get(field_name) if view_class else None
        if field_property is not None and field_property.kind == PropertyKind.FIELD:
            return

        if view_name:
            message = f'The field "{field_name}" is not defined on view "{view_name}".'
        else:
            message = (
                f'The <field> element must be bound to the valid field; "{field_name}" '
                "has no enclosing view."
            )
        self.report(
            element,
            message,
            origin_class=resolution.screen_class if resolution else None,
        )

    # ------------------------------------------------------------------
    # Extension selectors
    # ------------------------------------------------------------------

    def _selectors(self, element: MarkupElement) -> list[tuple[str, str]]:
        return [
            (name, value)
            for name, value in element.attrs.items()
            if is_customization_selector(name) and value and value.strip()
        ]

    def selector_view_name(self, element: MarkupElement) -> str | None:
        """View of the base screen element an extension field is placed against."""
        if self.base_screen is None:
            return None
        for name, selector in self._selectors(element):
            view_name = self.base_screen.view_name_for(
                selector, inside=name in NESTING_SELECTOR_ATTRS
            )
            if view_name:
                return view_name
        return None

    def check_field_selectors(self, element: MarkupElement) -> None:
        if self.base_screen is None or element.tag != FIELD_TAG:
            return
        for name, selector in self._selectors(element):
            query = self.base_screen.select(selector)
            if query.error:
                self.report(
                    element,
                    f'The {name} selector "{selector}" is not a valid CSS selector '
                    f"({query.error}).",
                    attribute=name,
                )
            elif not query.nodes:
                self.report(
                    element,
                    f'The {name} selector "{selector}" does not match any elements in '
                    f"{self.base_screen.path.name}.",
                    attribute=name,
                )

    # ------------------------------------------------------------------
    # Includes and layout templates
    # ------------------------------------------------------------------

    def check_include(self, element: MarkupElement) -> None:
        if self.includes is None or element.tag != INCLUDE_TAG:
            return
        url = element.attrs.get(INCLUDE_URL_ATTR)
        if not url:
            return
        metadata = self.includes(url)
        if metadata is None or not metadata.parameters:
            return

        for parameter in metadata.parameters:
            if parameter.required and not element.has_attr(parameter.name):
                self.report(
                    element,
                    f'The qp-include is missing required parameter "{parameter.name}".',
                )

        known = metadata.parameter_names()
        for name in element.attrs:
            if name == INCLUDE_URL_ATTR or _is_intrinsic_include_attr(name) or name in known:
                continue
            self.report(
                element,
                f'The qp-include attribute "{name}" is not defined by the include template.',
            )

    def check_template_name(self, element: MarkupElement) -> None:
        if not self.screen_templates or element.tag != TEMPLATE_TAG:
            return
        template_name = element.attrs.get("name")
        if template_name and template_name not in self.screen_templates:
            self.report(
                element,
                f'The qp-template name "{template_name}" is not one of the predefined '
                "screen templates.",
            )


def _is_intrinsic_include_attr(name: str) -> bool:
    return (
        name in INCLUDE_INTRINSIC_ATTRS
        or name.startswith(("data-", "aria-"))
        or "." in name
    )


def _parse_failure(error: ParseError) -> Diagnostic:
    origin = Position(line=0, character=0)
    return Diagnostic(
        range=Range(start=origin, end=origin),
        message=f"Parsing error: {error.message}",
        severity=DiagnosticSeverity.ERROR,
        source=HTML_VALIDATOR_CODE,
        code=HTML_VALIDATOR_CODE,
    )


def validate_markup(
    markup_text: str,
    class_infos: Iterable[ClassInfo],
    source_paths: Iterable[str | Path] | None = None,
    file: Path | None = None,
    *,
    base_screen: BaseScreenDocument | None = None,
    screen_templates: Collection[str] = (),
    includes: Callable[[str], IncludeMetadata | None] | None = None,
) -> list[Diagnostic]:
    """
    Validate one markup document against collected class metadata.

    Args:
        markup_text: Document text
        class_infos: Every class reachable from the screen's TypeScript files
        source_paths: The screen's own TypeScript files; only classes
            declared there act as screens. All classes act as screens when None.
        file: Document path, used in parse error context
        base_screen: Markup of the screen an extension template customizes
        screen_templates: Known ``qp-template`` names; names are not checked when empty
        includes: Looks up the parameters of a ``qp-include`` url

    Returns:
        Diagnostics in document order (suppression not applied)
    """
    class_infos = list(class_infos)
    relevant = None
    if source_paths is not None:
        relevant = filter_classes_by_source(class_infos, source_paths)

    try:
        document = parse_markup(markup_text, file)
    except ParseError as e:
        logger.debug("Markup parse failed for %s: %s", file, e)
        return [_parse_failure(e)]

    resolver = ViewResolver(class_infos, relevant)
    validator = _MarkupValidator(
        document,
        resolver,
        can_validate_actions=bool(class_infos),
        base_screen=base_screen,
        screen_templates=screen_templates,
        includes=includes,
    )
    validator.walk(document.nodes)
    return validator.diagnostics


def find_related_ts_files(html_path: Path) -> list[Path]:
    """
    TypeScript files that define the screen behind a template.

    The sibling with the same stem wins; otherwise every non-declaration
    ``.ts`` file in the template's directory.
    """
    sibling = html_path.with_suffix(".ts")
    if sibling.is_file():
        return [sibling]
    if not html_path.parent.is_dir():
        return []
    return sorted(
        path
        for path in html_path.parent.iterdir()
        if path.is_file() and path.suffix == ".ts" and not path.name.endswith(".d.ts")
    )


async def validate_html_document(
    path: Path,
    context: AcuMateContext,
    text: str | None = None,
) -> list[Diagnostic]:
    """
    Full validation pass for one template file.

    Collects the related TypeScript classes, validates the markup, drops
    diagnostics of feature-gated screens and applies suppression directives.

    Raises:
        OSError: If ``text`` is None and the file cannot be read
    """
    if text is None:
        text = path.read_text(encoding="utf-8")

    ts_files = find_related_ts_files(path)
    class_infos = collect_from_files(ts_files, context.collector) if ts_files else []
    logger.debug(
        "Validating %s against %d classes from %d files", path, len(class_infos), len(ts_files)
    )

    html = context.screen_html
    roots = [context.manifest.root]
    diagnostics = validate_markup(
        text,
        class_infos,
        ts_files,
        file=path,
        base_screen=html.base_screen(path),
        screen_templates=html.screen_templates(path, roots),
        includes=partial(html.include, source_path=path, roots=roots),
    )
    if diagnostics and any(info.features for info in class_infos):
        disabled = await context.features.disabled_features()
        diagnostics = filter_feature_gated(diagnostics, class_infos, disabled)

    engine = create_suppression_engine(text, SuppressionLanguage.HTML)
    return filter_diagnostics(diagnostics, engine)
