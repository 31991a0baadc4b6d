"""pagepulse store: SQL schema, engine helpers, and TelemetryStore."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pagepulse.settings.config import DatabaseSettings
    from pagepulse.store.telemetry_store import TelemetryStore


def build_telemetry_store(
    db_path: str | Path | None = None,
    *,
    database: "DatabaseSettings | None" = None,
) -> "TelemetryStore":
    """Factory: return a ``TelemetryStore`` for the given database section.

    When *database* is ``None`` the store falls back to
    ``get_settings().database`` (explicit URL, PostgreSQL, or local SQLite).

    Args:
        db_path: Optional override for a SQLite file path.
        database: Database settings section to connect with.

    Returns:
        A connected :class:`TelemetryStore` instance.
    """
    from pagepulse.store.telemetry_store import TelemetryStore

    if database is None:
        from pagepulse.settings import get_settings

        database = get_settings().database
    return TelemetryStore(db_path=db_path, database=database, create_tables=database.create_tables)
