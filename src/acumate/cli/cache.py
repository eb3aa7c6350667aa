"""Persistent metadata cache commands."""

from __future__ import annotations

import typer
from rich.console import Console

from acumate.cli.common import load_context

cache_app = typer.Typer(
    help="Backend metadata cache commands",
    no_args_is_help=True,
)

console = Console()


@cache_app.command(name="clear")
def clear_command(ctx: typer.Context) -> None:
    """Drop cached graph, structure and feature metadata."""
    context = load_context(ctx)
    try:
        context.clear_cache()
    except OSError as e:
        console.print(f"[red]Failed to clear cache: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Cleared metadata cache at {context.manifest.cache_path}[/green]")
