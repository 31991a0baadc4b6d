"""Browser Session Manager — one browser, one context, exactly one page.

``launch`` starts Playwright, a fresh browser instance and a single context
(optionally restored from a storage-state artifact), and returns the primary
page. Any further page the target site opens (pop-ups, ``target=_blank``
tabs) is closed as soon as it appears. Closing the primary page closes the
browser, so no browser process outlives its page.

Launch failures are not retried here; they propagate to the supervisor.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Page, Playwright, async_playwright

from pagepulse.settings.config import BrowserSettings

logger = logging.getLogger(__name__)


class BrowserSessionManager:
    """Own one Playwright browser instance and its single page.

    Args:
        settings: Browser section of the pagepulse settings.
    """

    def __init__(self, settings: BrowserSettings) -> None:
        self._settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self.extra_pages_closed: int = 0

    # ------------------------------------------------------------------
    # Launch args
    # ------------------------------------------------------------------

    def launch_args(self) -> dict[str, Any]:
        """Keyword arguments for ``BrowserType.launch``."""
        args: dict[str, Any] = {"headless": self._settings.headless}
        if self._settings.channel:
            args["channel"] = self._settings.channel
        if self._settings.start_maximized:
            args["args"] = ["--start-maximized"]
        return args

    def context_args(self) -> dict[str, Any]:
        """Keyword arguments for ``Browser.new_context``."""
        ctx: dict[str, Any] = {}
        if self._settings.start_maximized:
            # Let the window size drive the viewport
            ctx["no_viewport"] = True
        state = self._settings.storage_state
        if state:
            if not Path(state).is_file():
                raise FileNotFoundError(f"Storage state not found: {state}")
            ctx["storage_state"] = state
        return ctx

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def page(self) -> Page | None:
        return self._page

    async def launch(self) -> Page:
        """Start a fresh browser and return its only page."""
        self._playwright = await async_playwright().start()
        browser_type = getattr(self._playwright, self._settings.browser_type)
        self._browser = await browser_type.launch(**self.launch_args())
        self._context = await self._browser.new_context(**self.context_args())
        self._page = await self._context.new_page()

        self._context.on("page", self._close_extra_page)
        self._page.once("close", self._on_primary_closed)

        logger.info(
            "[Browser] launched (%s%s, headless=%s)",
            self._settings.browser_type,
            f"/{self._settings.channel}" if self._settings.channel else "",
            self._settings.headless,
        )
        return self._page

    async def close(self) -> None:
        """Close the browser and stop Playwright.

        Errors propagate; the supervisor decides whether to suppress them.
        """
        browser, playwright = self._browser, self._playwright
        self._browser = self._context = self._page = None
        self._playwright = None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()
        logger.info("[Browser] closed")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _close_extra_page(self, page: Page) -> None:
        """Enforce the single-page invariant."""
        if page is self._page:
            return
        self.extra_pages_closed += 1
        logger.info("[Browser] closing extra page %s", page.url)
        try:
            await page.close()
        except PlaywrightError as exc:
            logger.debug("Extra page already gone: %s", exc)

    async def _on_primary_closed(self, page: Page) -> None:
        """Primary page closed: take the browser down with it."""
        browser = self._browser
        if browser is None:
            return
        logger.info("[Browser] primary page closed, closing browser")
        try:
            await browser.close()
        except PlaywrightError as exc:
            logger.debug("Browser already closed: %s", exc)
