"""
Validation commands.

- acumate validate html [ROOT]: templates checked against their screen TypeScript
- acumate validate ts [ROOT]: screen TypeScript checked against backend graph metadata

Both exit with code 1 when any diagnostic is reported or a file fails to
validate.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from acumate.cli.common import USAGE_ERROR, load_context, resolve_root
from acumate.cli.output import OutputFormat, render_human, render_vscode
from acumate.validation.workspace import (
    SweepResult,
    validate_workspace_html,
    validate_workspace_ts,
)

validate_app = typer.Typer(
    help="Validate screens under a folder",
    no_args_is_help=True,
)

console = Console()


def _report(result: SweepResult, output_format: OutputFormat, kind: str) -> None:
    if output_format == OutputFormat.VSCODE:
        render_vscode(result)
    else:
        render_human(console, result, kind)

    if result.total_diagnostics or result.failures:
        raise typer.Exit(code=1)


@validate_app.command(name="html")
def validate_html_command(
    ctx: typer.Context,
    root: Annotated[
        Path | None,
        typer.Argument(help="Folder containing HTML screens (default: screens_root)"),
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.HUMAN,
) -> None:
    """Validate HTML templates against their screen TypeScript."""
    context = load_context(ctx)
    resolved = resolve_root(root, context)
    result = asyncio.run(validate_workspace_html(resolved, context))

    if not result.files_checked and not result.failures:
        if output_format == OutputFormat.HUMAN:
            console.print(f"[dim]No HTML files found under {resolved}.[/dim]")
        return
    _report(result, output_format, "HTML")


@validate_app.command(name="ts")
def validate_ts_command(
    ctx: typer.Context,
    root: Annotated[
        Path | None,
        typer.Argument(help="Folder containing screen TypeScript (default: screens_root)"),
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.HUMAN,
) -> None:
    """Validate screen TypeScript against backend graph metadata."""
    context = load_context(ctx)
    if not context.use_backend:
        typer.echo(
            "TypeScript validation requires backend metadata. "
            "Set use_backend = true in the [backend] section of acumate.toml.",
            err=True,
        )
        raise typer.Exit(code=USAGE_ERROR)

    resolved = resolve_root(root, context)
    result = asyncio.run(validate_workspace_ts(resolved, context))
    _report(result, output_format, "TypeScript")
