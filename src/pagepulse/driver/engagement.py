"""Continuous engagement loop (feed click-through and scroll).

States: NAVIGATE → ENGAGE × refresh_threshold → NAVIGATE, forever.

Each engagement cycle clicks the first visible content tile below the page
landmark, waits for the loading indicator to come and go, then always
dismisses the overlay and scrolls one viewport. Timeouts inside the click
chain are logged and swallowed; the tail still runs. A failed navigation
(timeout or network error) is retried immediately and indefinitely.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from pagepulse.driver.base import BaseDriver
from pagepulse.exceptions import NavigationError
from pagepulse.models.states import DriverState, DriverVariant
from pagepulse.session import SessionContext
from pagepulse.settings.config import EngagementSettings

logger = logging.getLogger(__name__)


class EngagementDriver(BaseDriver):
    """Feed click-through and scroll loop; never returns on its own.

    Any navigation failure is retried while the page is open, including
    connection resets and non-retryable ``NavigationError``s.

    Args:
        settings: Engagement section (feed URL, selectors, timeouts, pauses).
        timeout_ms: Navigation timeout.
        wait_until: Preferred navigation wait strategy.
    """

    variant = DriverVariant.ENGAGEMENT
    retry_on = (PlaywrightError, NavigationError)

    def __init__(self, settings: EngagementSettings, *, timeout_ms: int = 30_000, wait_until: str = "load") -> None:
        super().__init__(settings.feed_url, timeout_ms=timeout_ms, wait_until=wait_until)
        self._cfg = settings

    @property
    def refresh_threshold(self) -> int:
        return self._cfg.refresh_threshold

    def target_selector(self, viewport_height: int) -> str:
        """First-content locator: visible tiles below the landmark, within one viewport."""
        return f"{self._cfg.content_selector}:below({self._cfg.landmark_selector}, {viewport_height})"

    async def run(self, session: SessionContext) -> None:
        page = session.page
        height = await page.evaluate("window.innerHeight")

        while True:
            while not await self._navigate(session):
                pass

            self._transition(DriverState.ENGAGE)
            for i in range(self.refresh_threshold):
                await self.engage_cycle(session, i, height)

    async def engage_cycle(self, session: SessionContext, index: int, viewport_height: int) -> bool:
        """Run one locate-click-wait-dismiss-scroll cycle.

        Returns:
            True if the click and loading-indicator sequence completed.
        """
        cfg = self._cfg
        page = session.page
        total = self.refresh_threshold

        outcome = await self._click_through(session, index, viewport_height)
        session.metrics.record_cycle(outcome)

        await page.keyboard.press(cfg.dismiss_key)
        await session.sleep(cfg.dismiss_pause_ms / 1000)
        await page.keyboard.press(cfg.scroll_key)
        await session.sleep(cfg.scroll_pause_ms / 1000)
        logger.info("[Scrolling] %d/%d done", index, total)
        return outcome == "landed"

    async def _click_through(self, session: SessionContext, index: int, viewport_height: int) -> str:
        cfg = self._cfg
        page = session.page
        total = self.refresh_threshold
        target = page.locator(self.target_selector(viewport_height)).first

        try:
            await target.click(timeout=cfg.click_timeout_ms)
            await page.wait_for_selector(
                cfg.loading_indicator_selector, state="attached", timeout=cfg.indicator_appear_timeout_ms
            )
            await page.wait_for_selector(
                cfg.loading_indicator_selector, state="detached", timeout=cfg.indicator_disappear_timeout_ms
            )
            await session.sleep(cfg.settle_ms / 1000)
        except PlaywrightTimeout:
            logger.info("[ClickImage] %d/%d timeout", index, total)
            return "timeout"
        except PlaywrightError as exc:
            logger.info("[ClickImage] %d/%d failed: %s", index, total, exc)
            return "error"

        logger.info("[ClickImage] %d/%d clicked", index, total)
        return "landed"
