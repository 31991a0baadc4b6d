"""SessionContext: everything one supervisor iteration owns.

A session bundles the browser manager and its page, the telemetry store,
writer and collector, the lifetime budget and the shared stop event. The
supervisor creates it, passes it by reference to the driver, and is the only
party allowed to close it.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable
from uuid import uuid4

from pagepulse.exceptions import SessionExpiredError, ShutdownRequested
from pagepulse.metrics import SessionMetrics

if TYPE_CHECKING:
    from playwright.async_api import Page

    from pagepulse.browser.session_manager import BrowserSessionManager
    from pagepulse.store.telemetry_store import TelemetryStore
    from pagepulse.telemetry.collector import NetworkCollector
    from pagepulse.telemetry.writer import TelemetryWriter


@dataclass
class SessionContext:
    """Live state of one browser session."""

    restart_threshold_s: float
    stop_event: asyncio.Event
    clock: Callable[[], float] = time.monotonic
    session_id: str = field(default_factory=lambda: uuid4().hex[:8])
    started_at: float = 0.0

    browser: "BrowserSessionManager | None" = None
    page: "Page | None" = None
    store: "TelemetryStore | None" = None
    writer: "TelemetryWriter | None" = None
    collector: "NetworkCollector | None" = None
    metrics: SessionMetrics = field(default_factory=SessionMetrics)

    def __post_init__(self) -> None:
        if not self.started_at:
            self.started_at = self.clock()

    # ------------------------------------------------------------------
    # Lifetime budget
    # ------------------------------------------------------------------

    def elapsed(self) -> float:
        """Seconds since the session started."""
        return self.clock() - self.started_at

    def remaining(self) -> float:
        """Seconds left before the restart threshold (never negative)."""
        return max(self.restart_threshold_s - self.elapsed(), 0.0)

    def expired(self) -> bool:
        return self.elapsed() >= self.restart_threshold_s

    def check_expired(self) -> None:
        """Raise ``SessionExpiredError`` once the restart threshold is exceeded."""
        if self.expired():
            raise SessionExpiredError(self.elapsed(), self.restart_threshold_s)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @property
    def stopping(self) -> bool:
        return self.stop_event.is_set()

    def check_stop(self) -> None:
        """Raise ``ShutdownRequested`` if the supervisor is stopping."""
        if self.stop_event.is_set():
            raise ShutdownRequested()

    async def sleep(self, seconds: float) -> None:
        """Pause for *seconds*, waking early (and raising) on shutdown."""
        self.check_stop()
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise ShutdownRequested()
