"""
Class metadata types for AcuMate IR.

This module contains the normalized property model extracted from screen
TypeScript sources: classes, their declared members, and view bindings
resolved against them.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ClassKind(StrEnum):
    """Designated base types that make a class a screen or a view."""

    SCREEN = "PXScreen"
    VIEW = "PXView"


class PropertyKind(StrEnum):
    """Kinds of class members that markup can bind to."""

    ACTION = "action"
    FIELD = "field"
    VIEW = "view"
    VIEW_COLLECTION = "viewCollection"
    UNKNOWN = "unknown"


VIEW_KINDS = frozenset({PropertyKind.VIEW, PropertyKind.VIEW_COLLECTION})


class PropertyInfo(BaseModel):
    """
    A declared class member, classified by kind.

    Attributes:
        name: Member name as written in source
        kind: Member kind derived from its declared type or initializer
        type_name: Declared type name (e.g. ``PXFieldState``), if any
        view_class_name: Class of the nested view for view members
        declaring_class: Class that declares the member (may be an ancestor)
        source_path: File that declares the member
        start: Offset of the member name in its file
        end: Offset just past the member declaration
        line: 0-indexed line of the member name
        link_command: Backend action named by ``@linkCommand("...")``
    """

    name: str
    kind: PropertyKind
    type_name: str | None = None
    view_class_name: str | None = None
    declaring_class: str | None = None
    source_path: Path | None = None
    start: int = 0
    end: int = 0
    line: int = 0
    link_command: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_view(self) -> bool:
        return self.kind in VIEW_KINDS


class ClassInfo(BaseModel):
    """
    A class declaration with its flattened member map.

    Inherited members are merged in before the class's own members, so a
    descendant declaration always replaces an ancestor one.

    Attributes:
        class_name: Declared class name
        declared_kind: Screen or View when the heritage chain reaches a base type
        properties: Ordered member map, inherited members included
        source_path: File declaring the class
        start: Offset of the class declaration (decorators included)
        end: Offset just past the closing brace
        line: 0-indexed line of the class name
        graph_type: ``graphType`` from ``@graphInfo({...})``
        features: Feature names from ``@featureInstalled("...")``
    """

    class_name: str
    declared_kind: ClassKind | None = None
    properties: dict[str, PropertyInfo] = Field(default_factory=dict)
    source_path: Path | None = None
    start: int = 0
    end: int = 0
    line: int = 0
    graph_type: str | None = None
    features: list[str] = Field(default_factory=list)

    @property
    def is_screen(self) -> bool:
        return self.declared_kind == ClassKind.SCREEN

    @property
    def is_view(self) -> bool:
        return self.declared_kind == ClassKind.VIEW


class ViewResolution(BaseModel):
    """
    Result of resolving a markup binding name against screen classes.

    Attributes:
        property: Screen member matching the binding name
        view_class: Class info of the nested view type, when known
        screen_class: Name of the screen class owning the member
    """

    property: PropertyInfo
    view_class: ClassInfo | None = None
    screen_class: str | None = None
