"""CLI commands for provisioning the telemetry datastore."""

from __future__ import annotations

import typer
from rich.console import Console

db_app = typer.Typer(help="Provision and inspect the telemetry datastore.")
console = Console()


@db_app.command("init")
def init_db() -> None:
    """Create the namespace and the ``request`` table if they are missing."""
    from pagepulse.store.telemetry_store import TelemetryStore

    try:
        store = TelemetryStore(create_tables=True)
    except Exception as e:
        console.print(f"[red]✗[/red] Could not provision the datastore: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Datastore ready ({store.engine.dialect.name}).")
    store.close()


@db_app.command("count")
def count_rows(
    environment: str = typer.Option(None, "--environment", "-e", help="Only count rows with this tag."),
) -> None:
    """Print the number of stored telemetry rows."""
    from pagepulse.store.telemetry_store import TelemetryStore

    store = TelemetryStore(create_tables=False)
    try:
        console.print(store.count_rows(environment=environment))
    finally:
        store.close()
