"""pagepulse long-running collector service.

Runs the session supervisor until SIGINT/SIGTERM. Started by
``pagepulse run`` (which exports CLI flags as env vars first) or directly
with ``python -m pagepulse.worker.service``.

Environment variables:
    PAGEPULSE_ENV:        Settings profile; anything but ``local`` switches
                          logs to JSON (default: local).
    PAGEPULSE_LOG_LEVEL:  Root log level (default: INFO).
    PAGEPULSE_*:          Any settings field, see ``pagepulse settings show``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

logger = logging.getLogger(__name__)


def main() -> int:
    """Run the supervisor until a stop signal arrives.

    Returns:
        Exit code: 0 after a requested stop, 1 if settings are invalid.
    """
    _configure_logging()

    from pydantic import ValidationError

    from pagepulse.settings import get_settings

    try:
        settings = get_settings()
    except ValidationError as exc:
        logger.error("Invalid settings: %s", exc)
        return 1

    logger.info(
        "pagepulse starting: env=%s variant=%s url=%s",
        settings.env,
        settings.session.variant,
        settings.target_url,
    )
    asyncio.run(serve(settings))
    return 0


async def serve(settings) -> None:
    """Run a ``SessionSupervisor`` with signal handlers wired to ``stop()``."""
    from pagepulse.supervisor import SessionSupervisor

    supervisor = SessionSupervisor(settings)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, supervisor.stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support add_signal_handler
            logger.debug("Signal handler for %s not installed", sig)
    await supervisor.run()


def _configure_logging() -> None:
    """Set up logging for the service.

    Outside local runs (``PAGEPULSE_ENV != local``), emits JSON-structured
    logs compatible with Cloud Logging severity parsing::

        {"severity": "INFO", "message": "...", "logger": "..."}

    Locally, uses a human-readable plain-text format.
    """
    import json as _json

    log_level = os.environ.get("PAGEPULSE_LOG_LEVEL", "INFO").upper()
    env = os.environ.get("PAGEPULSE_ENV", "local").strip()

    if env != "local":

        class _CloudFormatter(logging.Formatter):
            """JSON formatter emitting Cloud Logging-compatible entries."""

            def format(self, record: logging.LogRecord) -> str:
                """Format a log record as a JSON object with severity."""
                entry = {
                    "severity": record.levelname,
                    "message": record.getMessage(),
                    "logger": record.name,
                    "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
                }
                if record.exc_info and record.exc_info[1]:
                    entry["exception"] = self.formatException(record.exc_info)
                return _json.dumps(entry, default=str)

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_CloudFormatter())
        logging.root.handlers.clear()
        logging.root.addHandler(handler)
        logging.root.setLevel(getattr(logging, log_level, logging.INFO))
    else:
        logging.basicConfig(
            level=getattr(logging, log_level, logging.INFO),
            format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            stream=sys.stderr,
        )

    # Quieten noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
