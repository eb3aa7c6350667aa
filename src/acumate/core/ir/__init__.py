"""
AcuMate Intermediate Representation (IR) types.

Types are organized into submodules and re-exported from this package.
"""

# Source classes
from .classes import (
    VIEW_KINDS,
    ClassInfo,
    ClassKind,
    PropertyInfo,
    PropertyKind,
    ViewResolution,
)

# Diagnostics
from .diagnostics import (
    Diagnostic,
    DiagnosticSeverity,
    DiagnosticSource,
    Position,
    Range,
)

# Backend metadata
from .metadata import (
    ActionMeta,
    BaseMetaItem,
    FeatureModel,
    FieldMeta,
    GraphModel,
    GraphStructure,
    ViewMeta,
)

__all__ = [
    "VIEW_KINDS",
    "ClassInfo",
    "ClassKind",
    "PropertyInfo",
    "PropertyKind",
    "ViewResolution",
    "Diagnostic",
    "DiagnosticSeverity",
    "DiagnosticSource",
    "Position",
    "Range",
    "ActionMeta",
    "BaseMetaItem",
    "FeatureModel",
    "FieldMeta",
    "GraphModel",
    "GraphStructure",
    "ViewMeta",
]
