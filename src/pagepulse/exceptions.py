"""pagepulse exception hierarchy."""

from __future__ import annotations


class PagePulseError(Exception):
    """Base exception for all pagepulse-specific errors."""


class SessionExpiredError(PagePulseError):
    """Raised when a session outlives its configured restart threshold.

    Attributes:
        elapsed_s: Seconds the session has been alive.
        threshold_s: The configured restart threshold in seconds.
    """

    def __init__(self, elapsed_s: float, threshold_s: float) -> None:
        self.elapsed_s = elapsed_s
        self.threshold_s = threshold_s
        super().__init__(f"Session alive {elapsed_s:.1f}s, restart threshold is {threshold_s:.1f}s")


class ShutdownRequested(PagePulseError):
    """Raised at a suspension point once the supervisor has been asked to stop."""


class NavigationError(PagePulseError):
    """Raised when navigation fails for a reason that retrying will not fix.

    Attributes:
        url: The URL that could not be loaded.
        reason: Short human-readable cause (e.g. ``name not resolved``).
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")
