"""Validation passes over screen templates and screen TypeScript."""

from .graph_info_validation import collect_graph_info_diagnostics, validate_ts_document
from .html_validation import validate_html_document, validate_markup
from .workspace import SweepResult, validate_workspace_html, validate_workspace_ts

__all__ = [
    "SweepResult",
    "collect_graph_info_diagnostics",
    "validate_html_document",
    "validate_markup",
    "validate_ts_document",
    "validate_workspace_html",
    "validate_workspace_ts",
]
