"""Entry point for voicefit."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
import typer
from rich.console import Console
from typer.core import TyperGroup

from voicefit import __version__
from voicefit.commands.history import delete_command, history_command
from voicefit.commands.overview import overview_command
from voicefit.commands.record import record_command
from voicefit.core.config import ConfigError, default_config_path, load_config, resolve_sessions_file
from voicefit.core.logs import configure_logging
from voicefit.core.state import CLIState

DEFAULT_VIEW = "overview"


class DefaultViewGroup(TyperGroup):
    """Unknown command names open the default view instead of failing."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        command = super().get_command(ctx, cmd_name)
        if command is None and not cmd_name.startswith("-"):
            return super().get_command(ctx, DEFAULT_VIEW)
        return command


app = typer.Typer(
    cls=DefaultViewGroup,
    add_completion=False,
    help="Log workouts by voice",
    invoke_without_command=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output JSON where available"),
    plain_output: bool = typer.Option(
        False,
        "--plain",
        help="Output plain text (no rich formatting/tables)",
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Quiet output"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """Initialize global CLI state."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if json_output and plain_output:
        typer.echo("Options --json and --plain are mutually exclusive.")
        raise typer.Exit(code=2)

    configure_logging(verbose=verbose, quiet=quiet)

    cfg_path = (config or default_config_path()).expanduser().resolve()
    try:
        cfg = load_config(cfg_path)
    except ConfigError as exc:
        typer.echo(f"Config error: {exc}")
        raise typer.Exit(code=2)

    console = Console(
        quiet=quiet,
        no_color=plain_output,
        log_time=False,
        log_path=False,
    )
    ctx.obj = CLIState(
        json_output=(json_output and not plain_output),
        plain_output=plain_output,
        verbose=verbose,
        quiet=quiet,
        config_path=cfg_path,
        config=cfg,
        sessions_file=resolve_sessions_file(cfg),
        console=console,
    )

    if ctx.invoked_subcommand is None:
        overview_command(ctx)


app.command("overview")(overview_command)
app.command("record")(record_command)
app.command("history")(history_command)
app.command("delete")(delete_command)


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
