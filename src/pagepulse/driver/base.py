"""Shared interaction-driver plumbing: protocol, state transitions, navigation."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from playwright.async_api import TimeoutError as PlaywrightTimeout

from pagepulse.browser.navigation import goto
from pagepulse.models.states import STATE_TRANSITIONS, DriverState, DriverVariant
from pagepulse.session import SessionContext

logger = logging.getLogger(__name__)


@runtime_checkable
class InteractionDriver(Protocol):
    """A state machine that acts on the session's single page."""

    variant: DriverVariant

    async def run(self, session: SessionContext) -> None:
        """Drive the page. May return (idle) or loop until cancelled (engagement)."""
        ...


class BaseDriver:
    """State tracking and timed navigation shared by both variants.

    Args:
        url: Target page.
        timeout_ms: Navigation timeout per wait strategy.
        wait_until: Preferred Playwright wait strategy.
    """

    variant: DriverVariant
    # Navigation failures that count as a failed attempt instead of ending the run
    retry_on: tuple[type[Exception], ...] = (PlaywrightTimeout,)

    def __init__(self, url: str, *, timeout_ms: int = 30_000, wait_until: str = "load") -> None:
        self.url = url
        self._timeout_ms = timeout_ms
        self._wait_until = wait_until
        self.state = DriverState.INIT

    def _transition(self, new_state: DriverState) -> None:
        allowed = STATE_TRANSITIONS[self.variant].get(self.state, [])
        if allowed and new_state not in allowed:
            logger.warning(
                "Non-standard transition: %s → %s (allowed: %s)",
                self.state.value, new_state.value, [s.value for s in allowed],
            )
        if new_state != self.state:
            logger.debug("State: %s → %s", self.state.value, new_state.value)
        self.state = new_state

    async def _navigate(self, session: SessionContext) -> bool:
        """Load the target URL once.

        Returns:
            True on success, False on a failure listed in ``retry_on``.
            A closed page always propagates.
        """
        session.check_stop()
        self._transition(DriverState.NAVIGATE)
        logger.info("[Refresh] start %s", self.url)
        try:
            await goto(session.page, self.url, timeout_ms=self._timeout_ms, wait_until=self._wait_until)
        except self.retry_on as exc:
            if session.page.is_closed():
                raise
            if isinstance(exc, PlaywrightTimeout):
                logger.warning("[Refresh] timeout")
                session.metrics.record_navigation("timeout")
            else:
                logger.warning("[Refresh] failed: %s", exc)
                session.metrics.record_navigation("error")
            return False
        logger.info("[Refresh] done")
        session.metrics.record_navigation("ok")
        return True
