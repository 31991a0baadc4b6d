"""Unified CLI entry point for pagepulse.

Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml -> .env -> env vars (PAGEPULSE_* with double underscores) -> CLI flags.
"""

from __future__ import annotations

import typer

from pagepulse.cli.db_cmd import db_app
from pagepulse.cli.run_cmd import run_command
from pagepulse.cli.settings_cmd import settings_app

try:
    from importlib.metadata import version

    VERSION = version("pagepulse")
except Exception:
    VERSION = "unknown"

APP_HELP = (
    "pagepulse — unattended browser sessions with per-request network telemetry. "
    "Config precedence: settings.default.toml -> settings.{env}.toml -> settings.local.toml -> env vars (PAGEPULSE_* with __) -> CLI flags."
)

app = typer.Typer(add_completion=True, help=APP_HELP)

app.command("run")(run_command)
app.add_typer(db_app, name="db")
app.add_typer(settings_app, name="settings")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context, version: bool = typer.Option(False, "--version", help="Show version and exit.")) -> None:
    """Show help when no subcommand is provided."""
    if version:
        typer.echo(f"pagepulse {VERSION}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
