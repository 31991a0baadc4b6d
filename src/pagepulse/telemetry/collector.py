"""Network telemetry capture for a Playwright page.

``NetworkCollector`` listens for ``requestfinished`` on the observed page and
turns every completed request into a ``TelemetryRow`` handed to the
``TelemetryWriter``. Playwright dispatches each event to its own task, so
captures run interleaved with (and independent of) the interaction driver.
"""

from __future__ import annotations

import logging

from playwright.async_api import Page, Request, Response

from pagepulse.metrics import SessionMetrics
from pagepulse.models.telemetry import TelemetryRow
from pagepulse.telemetry.writer import TelemetryWriter

logger = logging.getLogger(__name__)

REQUEST_FINISHED = "requestfinished"


async def server_ip(response: Response | None) -> str | None:
    """Best-effort resolved server IP for *response*; ``None`` if unavailable."""
    if response is None:
        return None
    try:
        addr = await response.server_addr()
    except Exception as exc:
        logger.debug("server_addr unavailable for %s: %s", response.url, exc)
        return None
    return addr.get("ipAddress") if addr else None


async def extract_row(request: Request, environment: str) -> TelemetryRow:
    """Read sizes, timing and server address from a finished *request*."""
    response = await request.response()
    sizes = await request.sizes()
    return TelemetryRow.build(
        url=request.url,
        resource_type=request.resource_type,
        sizes=sizes,
        timing=request.timing,
        ip=await server_ip(response),
        environment=environment,
    )


class NetworkCollector:
    """Forward one telemetry row per completed request to the writer.

    Args:
        writer: Fire-and-forget row handoff.
        environment: Environment tag stamped on every row.
        metrics: Optional per-session counters.
    """

    def __init__(
        self,
        writer: TelemetryWriter,
        *,
        environment: str,
        metrics: SessionMetrics | None = None,
    ) -> None:
        self._writer = writer
        self._environment = environment
        self._metrics = metrics or SessionMetrics()
        self._page: Page | None = None

    def attach(self, page: Page) -> None:
        """Start observing *page*."""
        page.on(REQUEST_FINISHED, self.on_request_finished)
        self._page = page
        logger.info("[Collector] observing network activity (environment=%s)", self._environment)

    def detach(self) -> None:
        """Stop observing the attached page, if any."""
        if self._page is not None:
            self._page.remove_listener(REQUEST_FINISHED, self.on_request_finished)
            self._page = None

    async def on_request_finished(self, request: Request) -> None:
        """Handle one ``requestfinished`` event. Never raises."""
        try:
            row = await extract_row(request, self._environment)
        except Exception as exc:
            # Typically the page or browser closed while the request was in flight
            logger.debug("[Collector] could not read telemetry for %s: %s", request.url, exc)
            self._metrics.record_request(extracted=False)
            return

        self._metrics.record_request(extracted=True)
        if not row.timing.is_monotonic():
            logger.debug("[Collector] non-monotonic timing for %s: %s", row.url, row.timing.offsets())
            self._metrics.record_non_monotonic()
        self._writer.submit(row)
