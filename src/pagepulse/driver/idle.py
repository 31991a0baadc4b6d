"""Passive idle-presence loop.

States: NAVIGATE → IDLE_WAIT → RETURN.

Loads the page once and holds it open for the rest of the session's lifetime
budget while the collector records whatever the page fetches in the
background. A navigation timeout returns immediately without idling; the
supervisor's elapsed-time check decides what happens next.
"""

from __future__ import annotations

import logging

from pagepulse.driver.base import BaseDriver
from pagepulse.models.states import DriverState, DriverVariant
from pagepulse.session import SessionContext

logger = logging.getLogger(__name__)


class IdleDriver(BaseDriver):
    """Hold one page open for the rest of the session; returns after one pass."""

    variant = DriverVariant.IDLE

    async def run(self, session: SessionContext) -> None:
        if not await self._navigate(session):
            self._transition(DriverState.RETURN)
            return

        self._transition(DriverState.IDLE_WAIT)
        seconds = session.remaining()
        logger.info("[Idle] holding page for %.0fs", seconds)
        await session.sleep(seconds)
        session.metrics.record_idle(seconds)
        self._transition(DriverState.RETURN)
