"""Core AcuMate functionality: IR, TypeScript collection, resolution, markup, suppression."""

from . import ir
from .backend_metadata import (
    build_backend_action_map,
    build_backend_action_set,
    build_backend_field_map,
    build_backend_view_map,
    normalize_meta_name,
)
from .collector import SourceFileCache, SourcePropertyCollector, collect, collect_from_files
from .errors import (
    AcuMateError,
    BackendError,
    ConfigError,
    ErrorContext,
    ParseError,
)
from .manifest import AcuMateManifest, load_manifest
from .resolver import ViewResolver, create_class_info_lookup, resolve_view_binding
from .screen_html import ScreenHtmlCache
from .suppression import SuppressionEngine, create_suppression_engine

__all__ = [
    "ir",
    "AcuMateError",
    "BackendError",
    "ConfigError",
    "ErrorContext",
    "ParseError",
    "AcuMateManifest",
    "load_manifest",
    "SourceFileCache",
    "SourcePropertyCollector",
    "ScreenHtmlCache",
    "collect",
    "collect_from_files",
    "build_backend_action_map",
    "build_backend_action_set",
    "build_backend_field_map",
    "build_backend_view_map",
    "normalize_meta_name",
    "ViewResolver",
    "create_class_info_lookup",
    "resolve_view_binding",
    "SuppressionEngine",
    "create_suppression_engine",
]
