"""Telemetry persistence store.

``TelemetryStore`` follows the constructor / session pattern of the other
stores: accept an optional *db_path* for convenience, a SQLAlchemy *url*, or
a pre-built *session_factory* for shared engines and test fixtures.

The store is write-once: the only operation the capture pipeline needs is
``insert_row``. Reads exist for diagnostics and tests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from pagepulse.models.telemetry import TelemetryRow
from pagepulse.store.sql import build_session_factory, create_schema, request_table

logger = logging.getLogger(__name__)


class TelemetryStore:
    """Persist ``TelemetryRow`` records into the ``request`` table.

    Args:
        db_path: Convenience path for a local SQLite file.
        url: SQLAlchemy URL (takes precedence over *db_path*).
        database: ``DatabaseSettings`` used when neither *url* nor *db_path* is given.
        session_factory: Pre-configured ``sessionmaker``.
        create_tables: Create the namespace and table if they are missing.
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        url: str | None = None,
        database: Any = None,
        session_factory: sessionmaker | None = None,
        create_tables: bool = True,
    ) -> None:
        if session_factory is not None:
            self._session_factory = session_factory
        else:
            self._session_factory = build_session_factory(db_path=db_path, url=url, database=database)

        if create_tables:
            create_schema(self._session_factory.kw["bind"])

    @property
    def engine(self) -> sa.Engine:
        """The engine behind this store."""
        return self._session_factory.kw["bind"]

    def insert_row(self, row: TelemetryRow) -> None:
        """Insert one telemetry row and commit.

        Blocking; the async capture pipeline calls it through
        ``asyncio.to_thread``.
        """
        with self._session_factory() as session:
            session.execute(sa.insert(request_table).values(**row.to_record()))
            session.commit()
        logger.debug("[Request] %s", row.url)

    def count_rows(self, *, environment: str | None = None) -> int:
        """Return the number of stored rows, optionally for one environment tag."""
        stmt = sa.select(sa.func.count()).select_from(request_table)
        if environment is not None:
            stmt = stmt.where(request_table.c.environment == environment)
        with self._session_factory() as session:
            return int(session.execute(stmt).scalar_one())

    def fetch_rows(self, *, domain: str | None = None, limit: int = 100) -> list[dict[str, Any]]:
        """Return the most recent rows as dicts, optionally filtered by domain."""
        stmt = sa.select(request_table).order_by(request_table.c.start_time.desc()).limit(limit)
        if domain is not None:
            stmt = stmt.where(request_table.c.domain == domain)
        with self._session_factory() as session:
            rows = session.execute(stmt).all()
        return [dict(r._mapping) for r in rows]

    def close(self) -> None:
        """Dispose of pooled connections."""
        self.engine.dispose()
        logger.info("[Database] disconnected")
