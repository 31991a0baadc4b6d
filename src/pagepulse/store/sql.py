"""SQLAlchemy table definitions for telemetry persistence.

The ``request`` table is declared without a schema. On PostgreSQL it is
namespaced under ``DatabaseSettings.schema_name`` (``ipv6`` by default) via
``schema_translate_map`` so the same ``METADATA`` serves SQLite and
PostgreSQL without duplicating the table definition.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

TIMESTAMP = sa.DateTime(timezone=True)
TIMING = sa.Float()

METADATA = sa.MetaData()

# ---------------------------------------------------------------------------
# request: one row per completed network request
# ---------------------------------------------------------------------------

request_table = sa.Table(
    "request",
    METADATA,
    sa.Column("url", sa.Text(), nullable=False),
    sa.Column("resource_type", sa.Text(), nullable=True),
    sa.Column("request_headers_size", sa.Integer(), nullable=True),
    sa.Column("request_body_size", sa.Integer(), nullable=True),
    sa.Column("response_headers_size", sa.Integer(), nullable=True),
    sa.Column("response_body_size", sa.Integer(), nullable=True),
    sa.Column("ip", sa.Text(), nullable=True),
    sa.Column("start_time", TIMESTAMP, nullable=True),
    sa.Column("domain_lookup_start", TIMING, nullable=True),
    sa.Column("domain_lookup_end", TIMING, nullable=True),
    sa.Column("connect_start", TIMING, nullable=True),
    sa.Column("secure_connection_start", TIMING, nullable=True),
    sa.Column("connect_end", TIMING, nullable=True),
    sa.Column("request_start", TIMING, nullable=True),
    sa.Column("response_start", TIMING, nullable=True),
    sa.Column("response_end", TIMING, nullable=True),
    sa.Column("environment", sa.Text(), nullable=True),
    sa.Column("domain", sa.Text(), nullable=True),
)
sa.Index("idx_request_start_time", request_table.c.start_time)
sa.Index("idx_request_domain", request_table.c.domain)


# ---------------------------------------------------------------------------
# Engine / session helpers
# ---------------------------------------------------------------------------


def build_engine(
    *,
    db_path: str | Path | None = None,
    url: str | None = None,
    database: Any = None,
    echo: bool = False,
) -> sa.Engine:
    """Create a SQLAlchemy engine for the telemetry database.

    Resolution order:

    - explicit *url* (any SQLAlchemy URL),
    - explicit *db_path* (SQLite file),
    - *database* (a ``DatabaseSettings``), falling back to
      ``get_settings().database``: ``url`` if set, otherwise the
      ``postgresql`` backend via ``pg8000`` or the local SQLite file.

    Args:
        db_path: Override path for a SQLite file.
        url: Override SQLAlchemy URL.
        database: Database settings section to resolve from.
        echo: When True, log all SQL statements.
    """
    if url:
        return _create(url, echo=echo)
    if db_path is not None:
        return _build_sqlite_engine(db_path, echo=echo)

    db = database
    if db is None:
        from pagepulse.settings import get_settings

        db = get_settings().database
    if db.url:
        return _create(db.url, echo=echo, schema_name=db.schema_name)
    if db.backend == "postgresql":
        return _build_postgres_engine(db, echo=echo)
    return _build_sqlite_engine(db.sqlite_path, echo=echo)


def _build_sqlite_engine(db_path: str | Path, *, echo: bool = False) -> sa.Engine:
    resolved = Path(db_path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return sa.create_engine(
        f"sqlite:///{resolved.as_posix()}",
        echo=echo,
        pool_pre_ping=True,
        # Inserts run on worker threads via asyncio.to_thread
        connect_args={"check_same_thread": False, "timeout": 30},
    )


def _build_postgres_engine(db: Any, *, echo: bool = False) -> sa.Engine:
    """Build a PostgreSQL engine over ``pg8000`` from discrete settings.

    Raises:
        ValueError: When host, user or database name is missing.
    """
    if not all([db.host, db.user, db.database]):
        raise ValueError(
            "Missing PostgreSQL configuration: set PAGEPULSE_DATABASE__HOST, "
            "PAGEPULSE_DATABASE__USER and PAGEPULSE_DATABASE__DATABASE."
        )

    logger.info("Connecting to PostgreSQL: host=%s, user=%s, db=%s", db.host, db.user, db.database)
    url = sa.URL.create(
        "postgresql+pg8000",
        username=db.user,
        password=db.password or None,
        host=db.host,
        port=db.port,
        database=db.database,
    )
    return _create(url, echo=echo, schema_name=db.schema_name)


def _create(url: str | sa.URL, *, echo: bool = False, schema_name: str = "") -> sa.Engine:
    engine = sa.create_engine(url, echo=echo, pool_pre_ping=True)
    if schema_name and engine.dialect.name == "postgresql":
        engine = engine.execution_options(schema_translate_map={None: schema_name})
    return engine


def create_schema(engine: sa.Engine) -> None:
    """Create the namespace (PostgreSQL only) and the ``request`` table if missing."""
    schema_map = engine.get_execution_options().get("schema_translate_map") or {}
    schema_name = schema_map.get(None)
    with engine.begin() as conn:
        if schema_name and engine.dialect.name == "postgresql":
            conn.execute(sa.schema.CreateSchema(schema_name, if_not_exists=True))
        METADATA.create_all(conn)


def build_session_factory(
    *, db_path: str | Path | None = None, url: str | None = None, database: Any = None
) -> sessionmaker:
    """Return a ``sessionmaker`` bound to the telemetry engine."""
    engine = build_engine(db_path=db_path, url=url, database=database)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)
