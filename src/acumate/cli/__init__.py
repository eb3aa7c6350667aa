"""
AcuMate CLI.

Commands:
- acumate validate html [ROOT]: Validate screen templates against screen TypeScript
- acumate validate ts [ROOT]: Validate screen TypeScript against backend graph metadata
- acumate cache clear: Drop the persistent backend metadata cache
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from acumate._version import get_version
from acumate.cli.cache import cache_app
from acumate.cli.common import CliState
from acumate.cli.validate import validate_app

app = typer.Typer(
    help="Cross-file validation of AcuMate screen TypeScript and HTML templates.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"acumate version {get_version()}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to acumate.toml (default: ./acumate.toml)"),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Enable debug logging")
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """AcuMate CLI main callback for global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = CliState(config_path=config, verbose=verbose)


app.add_typer(validate_app, name="validate")
app.add_typer(cache_app, name="cache")


def main(argv: list[str] | None = None) -> None:
    app(args=argv, standalone_mode=True)


__all__ = ["app", "main", "CliState"]


if __name__ == "__main__":
    main(sys.argv[1:])
