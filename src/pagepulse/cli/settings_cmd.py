"""CLI commands for inspecting and validating pagepulse settings."""

from __future__ import annotations

import json

import typer
from rich.console import Console

settings_app = typer.Typer(help="Inspect and validate pagepulse configuration.")
console = Console()

_SECRET_FIELDS = {"password"}


@settings_app.command("show")
def show_settings() -> None:
    """Display the currently resolved settings (secrets masked)."""
    from pagepulse.settings import get_settings

    data = get_settings().model_dump(mode="json")
    for key in _SECRET_FIELDS:
        if data["database"].get(key):
            data["database"][key] = "****"
    console.print_json(json.dumps(data, indent=2, default=str))


@settings_app.command("validate")
def validate_settings() -> None:
    """Validate settings and report any issues."""
    from pagepulse.settings import get_settings

    try:
        settings = get_settings()
        console.print("[green]✓[/green] Settings are valid.")
        console.print(f"  Environment: {settings.env}")
        console.print(f"  Variant: {settings.session.variant} -> {settings.target_url}")
        console.print(f"  Telemetry tag: {settings.session.environment}")
        console.print(f"  Database backend: {settings.database.backend}")
    except Exception as e:
        console.print(f"[red]✗[/red] Settings validation failed: {e}")
        raise typer.Exit(code=1)
