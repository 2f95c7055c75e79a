"""bagforge CLI - Main application entry point.

Registers the pack, unpack and size commands and the global options shared
by all of them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from bagforge.cli.command_base import CliOptions
from bagforge.cli.commands import pack_command, size_command, unpack_command
from bagforge.cli.console import set_verbose_mode

app = typer.Typer(
    name="bagforge",
    help="Pack and restore repository collections as BagIt AIPs",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from bagforge import __version__

        typer.echo(f"bagforge {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to bagforge.yaml"
    ),
    snapshot: Optional[Path] = typer.Option(
        None, "--snapshot", "-s", help="Repository snapshot (overrides config)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Debug logging and full tracebacks"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """bagforge - archival packages for repository collections."""
    set_verbose_mode(verbose)
    ctx.obj = CliOptions(config_path=config, snapshot_path=snapshot, verbose=verbose)


app.command("pack")(pack_command)
app.command("unpack")(unpack_command)
app.command("size")(size_command)


def cli_main() -> None:
    """Entry point for console_scripts."""
    app()


if __name__ == "__main__":
    cli_main()
