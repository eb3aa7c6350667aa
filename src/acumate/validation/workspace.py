"""
Workspace validation sweep.

Runs the markup or graphInfo pass over every matching file under a screens
root. A file that cannot be read or validated is logged and recorded as a
failure; the sweep continues with the next file.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from acumate.context import AcuMateContext
from acumate.core.errors import AcuMateError
from acumate.core.ir import Diagnostic

from .graph_info_validation import validate_ts_document
from .html_validation import validate_html_document

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = frozenset({"node_modules", ".git", ".vscode-test", "out", "dist", "bin", "obj"})


@dataclass
class FileReport:
    path: Path
    diagnostics: list[Diagnostic]


@dataclass
class SweepResult:
    """Outcome of one sweep."""

    root: Path
    files_checked: int = 0
    reports: list[FileReport] = field(default_factory=list)
    failures: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def total_diagnostics(self) -> int:
        return sum(len(report.diagnostics) for report in self.reports)


def collect_files(root: Path, suffix: str, exclude: Iterable[str] = DEFAULT_EXCLUDES) -> list[Path]:
    """Files under ``root`` ending in ``suffix`` (case-insensitive), skipping excluded dirs."""
    excluded = set(exclude)
    suffix = suffix.lower()
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if name not in excluded]
        for filename in filenames:
            if filename.lower().endswith(suffix):
                found.append(Path(dirpath) / filename)
    return sorted(found)


def collect_html_files(root: Path, exclude: Iterable[str] = DEFAULT_EXCLUDES) -> list[Path]:
    return collect_files(root, ".html", exclude)


def collect_typescript_files(root: Path, exclude: Iterable[str] = DEFAULT_EXCLUDES) -> list[Path]:
    files = collect_files(root, ".ts", exclude)
    return [path for path in files if not path.name.lower().endswith(".d.ts")]


async def validate_workspace_html(
    root: Path, context: AcuMateContext, exclude: Iterable[str] | None = None
) -> SweepResult:
    """Validate every template under ``root``."""
    files = collect_html_files(root, exclude if exclude is not None else _excludes(context))
    logger.info("Validating %d HTML files under %s", len(files), root)

    result = SweepResult(root=root)
    for path in files:
        try:
            diagnostics = await validate_html_document(path, context)
        except (OSError, UnicodeDecodeError, AcuMateError) as e:
            logger.warning("Failed to validate %s: %s", path, e)
            result.failures.append((path, str(e)))
            continue
        result.files_checked += 1
        if diagnostics:
            result.reports.append(FileReport(path=path, diagnostics=diagnostics))
    return result


async def validate_workspace_ts(
    root: Path, context: AcuMateContext, exclude: Iterable[str] | None = None
) -> SweepResult:
    """
    Validate every screen TypeScript file under ``root`` against backend metadata.

    The graph list is fetched once for the whole sweep. Without one (backend
    disabled or unreachable) no file is checked.
    """
    result = SweepResult(root=root)
    graphs = await context.graphs.get()
    if not graphs:
        logger.warning("No backend graph metadata available; skipping TypeScript validation")
        return result

    files = collect_typescript_files(root, exclude if exclude is not None else _excludes(context))
    logger.info("Validating %d TypeScript files under %s", len(files), root)

    for path in files:
        try:
            diagnostics = await validate_ts_document(path, context, graphs=graphs)
        except (OSError, UnicodeDecodeError, AcuMateError) as e:
            logger.warning("Failed to validate %s: %s", path, e)
            result.failures.append((path, str(e)))
            continue
        result.files_checked += 1
        if diagnostics:
            result.reports.append(FileReport(path=path, diagnostics=diagnostics))
    return result


def _excludes(context: AcuMateContext) -> set[str]:
    return set(DEFAULT_EXCLUDES) | set(context.manifest.validation.exclude)
