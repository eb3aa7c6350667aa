"""Rendering of sweep results for the terminal and for editor problem matchers."""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from acumate.core.ir import Diagnostic, DiagnosticSeverity
from acumate.validation.workspace import SweepResult


class OutputFormat(StrEnum):
    HUMAN = "human"
    VSCODE = "vscode"


_SEVERITY_STYLE = {
    DiagnosticSeverity.ERROR: "red",
    DiagnosticSeverity.WARNING: "yellow",
    DiagnosticSeverity.INFORMATION: "blue",
    DiagnosticSeverity.HINT: "dim",
}


def _relative(path: Path, base: Path) -> str:
    try:
        return os.path.relpath(path, base)
    except ValueError:
        return str(path)


def _one_line(message: str) -> str:
    return " ".join(message.split())


def format_vscode_line(path: Path, diagnostic: Diagnostic) -> str:
    """``file:line:col: severity: message [code]`` with 1-indexed line and column."""
    start = diagnostic.range.start
    return (
        f"{path}:{start.line + 1}:{start.character + 1}: {diagnostic.severity.value}: "
        f"{_one_line(diagnostic.message)} [{diagnostic.effective_code}]"
    )


def render_vscode(result: SweepResult) -> None:
    for report in result.reports:
        for diagnostic in report.diagnostics:
            typer.echo(format_vscode_line(report.path, diagnostic))


def render_human(console: Console, result: SweepResult, kind: str) -> None:
    for report in result.reports:
        console.print(f"[bold]{_relative(report.path, result.root)}[/bold]")
        for diagnostic in report.diagnostics:
            style = _SEVERITY_STYLE.get(diagnostic.severity, "white")
            severity = diagnostic.severity.value.capitalize()
            console.print(
                f"  [{style}]\\[{severity}][/{style}] line {diagnostic.line + 1}: "
                f"{_one_line(diagnostic.message)}",
                highlight=False,
            )
        console.print()

    for path, reason in result.failures:
        console.print(f"[red]Failed to validate {_relative(path, result.root)}: {reason}[/red]")

    table = Table(title=f"AcuMate {kind} validation")
    table.add_column("Files checked", justify="right")
    table.add_column("Files with issues", justify="right")
    table.add_column("Diagnostics", justify="right")
    table.add_column("Failures", justify="right")
    table.add_row(
        str(result.files_checked),
        str(len(result.reports)),
        str(result.total_diagnostics),
        str(len(result.failures)),
    )
    console.print(table)

    if result.total_diagnostics:
        console.print(
            f"[yellow]{result.total_diagnostics} diagnostic(s) across "
            f"{len(result.reports)} file(s)[/yellow]"
        )
    else:
        console.print("[green]No diagnostics reported.[/green]")
