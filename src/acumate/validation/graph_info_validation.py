"""
Screen TypeScript validation against backend graph metadata.

A screen declares its backend graph with ``@graphInfo({graphType: "..."})``.
This pass checks that the graph exists on the connected server and that
the views, actions and view fields the screen declares exist in the graph
structure the server reports. Backend names are compared case-insensitively.
"""

from __future__ import annotations

import logging
from pathlib import Path

from acumate.context import AcuMateContext
from acumate.core.backend_metadata import (
    BackendViewMetadata,
    build_backend_action_set,
    build_backend_view_map,
    normalize_meta_name,
)
from acumate.core.collector import GRAPH_INFO_DECORATOR, SourceFileCache
from acumate.core.ir import (
    ClassInfo,
    ClassKind,
    Diagnostic,
    DiagnosticSeverity,
    DiagnosticSource,
    GraphModel,
    GraphStructure,
    PropertyInfo,
    PropertyKind,
    Range,
)
from acumate.core.positions import LineIndex
from acumate.core.resolver import create_class_info_lookup
from acumate.core.suppression import (
    SuppressionLanguage,
    create_suppression_engine,
    filter_diagnostics,
)
from acumate.core.ts_parser import SourceModule, StringLiteral

from .feature_gating import filter_feature_gated

logger = logging.getLogger(__name__)

GRAPH_INFO_CODE = DiagnosticSource.GRAPH_INFO.value
GRAPH_TYPE_PROPERTY = "graphType"

# View fields with this prefix are custom and unknown to the backend
CUSTOM_FIELD_PREFIX = "__"


def find_graph_type_literals(module: SourceModule) -> list[StringLiteral]:
    """``graphType`` literals of every ``@graphInfo`` class decorator, in source order."""
    literals: list[StringLiteral] = []
    for decl in module.classes:
        for decorator in decl.decorators:
            if decorator.name.lower() != GRAPH_INFO_DECORATOR:
                continue
            literal = decorator.properties.get(GRAPH_TYPE_PROPERTY)
            if literal is not None:
                literals.append(literal)
    literals.sort(key=lambda literal: literal.start)
    return literals


class _GraphComparison:
    """Compares the screen classes of one file with one graph structure."""

    def __init__(
        self,
        path: Path,
        lines: LineIndex,
        graph_name: str,
        structure: GraphStructure,
        class_infos: list[ClassInfo],
    ):
        self.path_key = SourceFileCache.key_for(path)
        self.lines = lines
        self.graph_name = graph_name
        self.views = build_backend_view_map(structure)
        self.actions = build_backend_action_set(structure)
        self.lookup = create_class_info_lookup(class_infos)
        self.class_infos = class_infos
        self.diagnostics: list[Diagnostic] = []
        self._reported: set[tuple[int, str]] = set()

    def in_document(self, item: ClassInfo | PropertyInfo) -> bool:
        if item.source_path is None:
            return False
        return SourceFileCache.key_for(item.source_path) == self.path_key

    def report(self, prop: PropertyInfo, message: str, origin_class: str) -> None:
        key = (prop.start, message)
        if key in self._reported:
            return
        self._reported.add(key)
        self.diagnostics.append(
            Diagnostic(
                range=self.lines.range_of(prop.start, prop.end),
                message=message,
                severity=DiagnosticSeverity.WARNING,
                source=GRAPH_INFO_CODE,
                code=GRAPH_INFO_CODE,
                origin_class=origin_class,
            )
        )

    def run(self) -> list[Diagnostic]:
        screens = [info for info in self.class_infos if info.is_screen and self.in_document(info)]
        for screen in screens:
            for prop in screen.properties.values():
                if not self.in_document(prop):
                    continue
                if prop.is_view:
                    backend_view = self.views.get(normalize_meta_name(prop.name) or "")
                    if backend_view is None:
                        self.report(
                            prop,
                            f'The PXScreen declares view "{prop.name}" which does not exist '
                            f'in graph "{self.graph_name}".',
                            screen.class_name,
                        )
                        continue
                    view_class = self.lookup.get(prop.view_class_name or "")
                    if view_class is not None:
                        self.check_view_fields(view_class, backend_view, screen.class_name)
                elif prop.kind == PropertyKind.ACTION:
                    if normalize_meta_name(prop.name) not in self.actions:
                        self.report(
                            prop,
                            f'The PXScreen declares action "{prop.name}" which does not exist '
                            f'in graph "{self.graph_name}".',
                            screen.class_name,
                        )

        for info in self.class_infos:
            if info.declared_kind == ClassKind.VIEW and self.in_document(info):
                self.check_link_commands(info)
        return self.diagnostics

    def check_view_fields(
        self, view_class: ClassInfo, backend_view: BackendViewMetadata, screen_name: str
    ) -> None:
        for prop in view_class.properties.values():
            if prop.kind != PropertyKind.FIELD or not self.in_document(prop):
                continue
            if prop.name.startswith(CUSTOM_FIELD_PREFIX):
                continue
            if normalize_meta_name(prop.name) in backend_view.fields:
                continue
            self.report(
                prop,
                f'The view "{view_class.class_name}" declares field "{prop.name}" which does '
                f'not exist in view "{backend_view.view_name}" of graph "{self.graph_name}".',
                screen_name,
            )

    def check_link_commands(self, view_class: ClassInfo) -> None:
        for prop in view_class.properties.values():
            if not prop.link_command or not self.in_document(prop):
                continue
            if normalize_meta_name(prop.link_command) in self.actions:
                continue
            self.report(
                prop,
                f'The @linkCommand action "{prop.link_command}" on field "{prop.name}" does '
                f'not exist in graph "{self.graph_name}".',
                self._binding_screen(view_class) or view_class.class_name,
            )

    def _binding_screen(self, view_class: ClassInfo) -> str | None:
        for info in self.class_infos:
            if not info.is_screen:
                continue
            for prop in info.properties.values():
                if prop.is_view and prop.view_class_name == view_class.class_name:
                    return info.class_name
        return None


async def collect_graph_info_diagnostics(
    text: str,
    path: Path,
    context: AcuMateContext,
    graphs: list[GraphModel] | None = None,
) -> list[Diagnostic]:
    """
    Validate one screen TypeScript file against backend graph metadata.

    Args:
        text: File text
        path: File path
        context: Runtime context providing backend metadata
        graphs: Graph list to use instead of asking the backend

    Returns:
        Diagnostics (feature gating and suppression not applied); empty when
        no graph list is available
    """
    if graphs is None:
        graphs = await context.graphs.get()
    valid_names = {graph.name for graph in graphs or [] if graph.name}
    if not valid_names:
        return []

    module = context.collector.load_module(path, text)
    if module is None:
        return []

    lines = LineIndex(text)
    diagnostics: list[Diagnostic] = []
    literals = find_graph_type_literals(module)
    for literal in literals:
        graph_name = literal.value.strip()
        if not graph_name or graph_name in valid_names:
            continue
        # Range covers the quotes
        start = lines.position_at(literal.start - 1)
        end = lines.position_at(literal.end + 1)
        diagnostics.append(
            Diagnostic(
                range=Range(start=start, end=end),
                message=f'The graphType "{graph_name}" is not available on the connected server.',
                severity=DiagnosticSeverity.WARNING,
                source=GRAPH_INFO_CODE,
                code=GRAPH_INFO_CODE,
            )
        )

    if not literals:
        return diagnostics
    graph_name = literals[0].value.strip()
    if not graph_name or graph_name not in valid_names:
        return diagnostics

    structure = await context.get_graph_structure(graph_name)
    if structure is None:
        logger.debug("No structure for graph %s; skipping member checks", graph_name)
        return diagnostics

    class_infos = context.collector.collect(text, path)
    comparison = _GraphComparison(path, lines, graph_name, structure, class_infos)
    diagnostics.extend(comparison.run())
    return diagnostics


async def validate_ts_document(
    path: Path,
    context: AcuMateContext,
    text: str | None = None,
    graphs: list[GraphModel] | None = None,
) -> list[Diagnostic]:
    """
    Full graphInfo pass for one TypeScript file: diagnostics, feature gating, suppression.

    Raises:
        OSError: If ``text`` is None and the file cannot be read
    """
    if text is None:
        text = path.read_text(encoding="utf-8")

    diagnostics = await collect_graph_info_diagnostics(text, path, context, graphs)
    if not diagnostics:
        return diagnostics

    class_infos = context.collector.collect(text, path)
    if any(info.features for info in class_infos):
        disabled = await context.features.disabled_features()
        diagnostics = filter_feature_gated(diagnostics, class_infos, disabled)

    engine = create_suppression_engine(text, SuppressionLanguage.TYPESCRIPT)
    return filter_diagnostics(diagnostics, engine)
