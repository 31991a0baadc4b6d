"""Session Supervisor — the top-level self-healing loop.

Each iteration builds a fresh ``SessionContext`` (datastore, writer, browser,
collector), runs the interaction driver under an elapsed-time guard, and on
any fatal condition tears everything down and starts over:

* restart threshold reached (``SessionExpiredError``),
* browser launch failure,
* any other exception escaping the driver (closed page, non-retryable
  navigation failure, ...).

Teardown never blocks a restart: each close step logs and swallows its own
error. There is no cap on restarts. ``stop()`` is the only way out of
``run()``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from pagepulse.browser.session_manager import BrowserSessionManager
from pagepulse.driver import InteractionDriver, build_driver
from pagepulse.exceptions import SessionExpiredError, ShutdownRequested
from pagepulse.models.states import DriverVariant
from pagepulse.session import SessionContext
from pagepulse.settings import Settings, get_settings
from pagepulse.store import build_telemetry_store
from pagepulse.store.telemetry_store import TelemetryStore
from pagepulse.telemetry.collector import NetworkCollector
from pagepulse.telemetry.writer import TelemetryWriter

logger = logging.getLogger(__name__)


class SessionSupervisor:
    """Create, monitor and restart browser sessions indefinitely.

    Args:
        settings: Resolved settings (defaults to ``get_settings()``).
        driver: Interaction driver (defaults to ``build_driver(settings)``).
        store_factory: Zero-arg callable returning a connected store.
        browser_factory: Zero-arg callable returning a ``BrowserSessionManager``.
        clock: Monotonic clock used for session lifetimes.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        driver: InteractionDriver | None = None,
        store_factory: Callable[[], TelemetryStore] | None = None,
        browser_factory: Callable[[], BrowserSessionManager] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_settings()
        self._driver = driver or build_driver(self._settings)
        self._store_factory = store_factory or (lambda: build_telemetry_store(database=self._settings.database))
        self._browser_factory = browser_factory or (lambda: BrowserSessionManager(self._settings.browser))
        self._clock = clock
        self._stop_event = asyncio.Event()
        self.iterations = 0
        self.session: SessionContext | None = None

    @property
    def guarded(self) -> bool:
        """Whether the driver runs under the restart-threshold guard."""
        if self._driver.variant is DriverVariant.IDLE:
            return True
        return self._settings.session.guard_engagement_lifetime

    def stop(self) -> None:
        """Ask ``run`` to tear down the live session and return."""
        if not self._stop_event.is_set():
            logger.info("[Supervisor] stop requested")
        self._stop_event.set()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run sessions back to back until ``stop()`` is called."""
        session_cfg = self._settings.session
        logger.info(
            "[Supervisor] starting: variant=%s environment=%s restart_threshold=%.1fmin guarded=%s",
            self._driver.variant.value,
            session_cfg.environment,
            session_cfg.restart_threshold_minutes,
            self.guarded,
        )

        while not self._stop_event.is_set():
            self.iterations += 1
            session = SessionContext(
                restart_threshold_s=session_cfg.restart_threshold_seconds,
                stop_event=self._stop_event,
                clock=self._clock,
            )
            self.session = session
            try:
                await self._open(session)
                await self._drive(session)
            except SessionExpiredError as exc:
                logger.info("[Session %s] threshold reached: %s", session.session_id, exc)
            except ShutdownRequested:
                logger.info("[Session %s] shutting down", session.session_id)
            except Exception:
                logger.exception("[Session %s] failed", session.session_id)
            finally:
                await self._teardown(session)
                self.session = None

            if self._stop_event.is_set():
                break
            logger.info("[Supervisor] restarting browser")
            await self._restart_delay(session_cfg.restart_delay_seconds)

        logger.info("[Supervisor] stopped after %d session(s)", self.iterations)

    async def _open(self, session: SessionContext) -> None:
        """Connect the datastore, launch the browser and wire the collector."""
        session.store = await asyncio.to_thread(self._store_factory)
        logger.info("[Database] connected")

        session.writer = TelemetryWriter(session.store, metrics=session.metrics)
        session.writer.start()

        session.browser = self._browser_factory()
        session.page = await session.browser.launch()

        session.collector = NetworkCollector(
            session.writer,
            environment=self._settings.session.environment,
            metrics=session.metrics,
        )
        session.collector.attach(session.page)
        logger.info("[Session %s] started", session.session_id)

    async def _drive(self, session: SessionContext) -> None:
        """Run the driver until the session expires, fails or is stopped."""
        while True:
            session.check_stop()
            session.check_expired()
            if not self.guarded:
                await self._driver.run(session)
                continue
            try:
                await asyncio.wait_for(self._driver.run(session), timeout=session.remaining())
            except asyncio.TimeoutError:
                raise SessionExpiredError(session.elapsed(), session.restart_threshold_s) from None

    async def _teardown(self, session: SessionContext) -> None:
        """Close browser, writer and datastore, suppressing every error."""
        if session.collector is not None:
            await self._quietly("collector", _as_async(session.collector.detach))
        if session.browser is not None:
            await self._quietly("browser", session.browser.close)
        if session.writer is not None:
            await self._quietly("writer", session.writer.stop)
        if session.store is not None:
            store = session.store
            await self._quietly("database", lambda: asyncio.to_thread(store.close))

        logger.info(
            "[Session %s] ended after %.0fs: %s",
            session.session_id,
            session.elapsed(),
            session.metrics.summary(),
        )

    @staticmethod
    async def _quietly(label: str, close: Callable[[], Awaitable[object]]) -> None:
        try:
            await close()
        except Exception as exc:
            logger.warning("[Supervisor] %s teardown failed (ignored): %s", label, exc)

    async def _restart_delay(self, seconds: float) -> None:
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass


def _as_async(fn: Callable[[], object]) -> Callable[[], Awaitable[object]]:
    async def _call() -> object:
        return fn()

    return _call
