"""Shared CLI helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from acumate.context import AcuMateContext
from acumate.core.errors import ConfigError

# Exit code for problems that keep a command from running at all
USAGE_ERROR = 2


@dataclass
class CliState:
    config_path: Path | None = None
    verbose: bool = False


def load_context(ctx: typer.Context) -> AcuMateContext:
    """Build the runtime context from the configured manifest.

    Exits with code 2 if the manifest is invalid.
    """
    state = ctx.find_object(CliState) or CliState()
    try:
        return AcuMateContext.load(state.config_path)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=USAGE_ERROR)


def resolve_root(root: Path | None, context: AcuMateContext) -> Path:
    """Resolve the sweep root, defaulting to the manifest's screens root."""
    resolved = root.resolve() if root is not None else context.manifest.screens_root
    if not resolved.is_dir():
        typer.echo(f"Folder does not exist: {resolved}", err=True)
        raise typer.Exit(code=USAGE_ERROR)
    return resolved
