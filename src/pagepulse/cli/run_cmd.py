"""CLI command for running the collector service."""

from __future__ import annotations

import os
from typing import Optional

import typer
from rich.console import Console

console = Console()


def run_command(
    variant: Optional[str] = typer.Option(
        None, "--variant", "-v", help="Interaction driver: engagement or idle.", envvar="PAGEPULSE_SESSION__VARIANT"
    ),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Target page (feed URL or idle page URL)."),
    environment: Optional[str] = typer.Option(
        None, "--environment", "-e", help="Environment tag stamped on every telemetry row."
    ),
    restart_threshold: Optional[float] = typer.Option(
        None, "--restart-threshold", help="Session lifetime in minutes before a full restart."
    ),
    refresh_threshold: Optional[int] = typer.Option(
        None, "--refresh-threshold", help="Engagement cycles per navigation."
    ),
) -> None:
    """Run the browser session supervisor until interrupted.

    Reads PAGEPULSE_* env vars as defaults; flags override them.
    """
    if variant:
        os.environ["PAGEPULSE_SESSION__VARIANT"] = variant
    if url:
        key = "PAGEPULSE_IDLE__PAGE_URL" if _resolve_variant(variant) == "idle" else "PAGEPULSE_ENGAGEMENT__FEED_URL"
        os.environ[key] = url
    if environment:
        os.environ["PAGEPULSE_SESSION__ENVIRONMENT"] = environment
    if restart_threshold is not None:
        os.environ["PAGEPULSE_SESSION__RESTART_THRESHOLD_MINUTES"] = str(restart_threshold)
    if refresh_threshold is not None:
        os.environ["PAGEPULSE_ENGAGEMENT__REFRESH_THRESHOLD"] = str(refresh_threshold)

    from pagepulse.worker.service import main

    exit_code = main()

    if exit_code != 0:
        console.print("[red]Collector failed to start.[/red]")
        raise typer.Exit(code=exit_code)

    console.print("[green]Collector stopped.[/green]")


def _resolve_variant(flag: Optional[str]) -> str:
    """Variant from the flag, else from the layered settings (TOML profiles included)."""
    if flag:
        return flag.strip().lower()

    from pydantic import ValidationError

    from pagepulse.settings import Settings

    try:
        return Settings().session.variant
    except ValidationError:
        # The service reports invalid settings when it starts
        return ""
