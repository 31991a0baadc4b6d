"""Lightweight per-session counters for the capture pipeline and drivers.

Tracks how many requests were observed, how many rows reached the datastore,
failed or were dropped at teardown, and how the interaction driver fared
(navigations, timeouts, engagement cycles, clicks). The supervisor logs the
summary when a session is torn down.
"""

from __future__ import annotations


class SessionMetrics:
    """Collects per-session counters during a supervisor iteration."""

    def __init__(self) -> None:
        self._telemetry: dict[str, int] = {
            "observed": 0,
            "extraction_failed": 0,
            "submitted": 0,
            "written": 0,
            "write_failed": 0,
            "dropped": 0,
            "non_monotonic": 0,
        }
        self._navigation: dict[str, int] = {"ok": 0, "timeout": 0, "error": 0}
        self._cycles: int = 0
        self._clicks: dict[str, int] = {"landed": 0, "timeout": 0, "error": 0}
        self._idle_seconds: float = 0.0

    # ------------------------------------------------------------------
    # Recording helpers
    # ------------------------------------------------------------------

    def record_request(self, extracted: bool) -> None:
        """Record a finished request and whether a row could be built from it."""
        self._telemetry["observed"] += 1
        if not extracted:
            self._telemetry["extraction_failed"] += 1

    def record_non_monotonic(self) -> None:
        """Record a row whose timing offsets go backwards."""
        self._telemetry["non_monotonic"] += 1

    def record_submitted(self) -> None:
        self._telemetry["submitted"] += 1

    def record_write(self, success: bool) -> None:
        """Record the outcome of one insert attempt."""
        self._telemetry["written" if success else "write_failed"] += 1

    def record_dropped(self, count: int) -> None:
        """Record rows still queued when the writer was stopped."""
        self._telemetry["dropped"] += count

    def record_navigation(self, outcome: str) -> None:
        """Record one navigation attempt: ``ok``, ``timeout`` or ``error``."""
        self._navigation[outcome if outcome in self._navigation else "error"] += 1

    def record_cycle(self, outcome: str) -> None:
        """Record one engagement cycle: ``landed``, ``timeout`` or ``error``."""
        self._cycles += 1
        key = outcome if outcome in self._clicks else "error"
        self._clicks[key] += 1

    def record_idle(self, seconds: float) -> None:
        self._idle_seconds += seconds

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    @property
    def rows_written(self) -> int:
        return self._telemetry["written"]

    @property
    def cycles(self) -> int:
        return self._cycles

    def summary(self) -> dict:
        """Produce a summary dict suitable for logging or JSON serialization."""
        return {
            "telemetry": dict(self._telemetry),
            "navigation": dict(self._navigation),
            "engagement": {"cycles": self._cycles, "clicks": dict(self._clicks)},
            "idle_seconds": round(self._idle_seconds, 1),
        }
