"""Interaction drivers.

Two variants act on the session's single page, selected by deployment:

* ``engagement``: continuous feed click-through and scroll (never returns).
* ``idle``: navigate once and hold the page open (returns when idle ends).
"""

from __future__ import annotations

from pagepulse.driver.base import BaseDriver, InteractionDriver
from pagepulse.driver.engagement import EngagementDriver
from pagepulse.driver.idle import IdleDriver
from pagepulse.models.states import DriverVariant
from pagepulse.settings.config import Settings

__all__ = ["BaseDriver", "EngagementDriver", "IdleDriver", "InteractionDriver", "build_driver"]


def build_driver(settings: Settings) -> InteractionDriver:
    """Return the driver for ``settings.session.variant``."""
    variant = DriverVariant(settings.session.variant)
    nav = {"timeout_ms": settings.browser.timeout_ms, "wait_until": settings.browser.wait_until}
    if variant is DriverVariant.IDLE:
        return IdleDriver(settings.idle.page_url, **nav)
    return EngagementDriver(settings.engagement, **nav)
