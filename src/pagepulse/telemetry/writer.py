"""Fire-and-forget handoff of telemetry rows to the datastore.

``submit`` never blocks and never raises into the caller: rows are placed on
an unbounded ``asyncio.Queue`` and a single consumer task inserts them via
``asyncio.to_thread`` so the blocking SQLAlchemy call never stalls the event
loop (and therefore never stalls the interaction driver).

Delivery is best-effort. A failed insert is logged and discarded, with no
retry and no back-pressure. Rows still queued when the writer is stopped are
dropped. Sustained datastore failure therefore loses telemetry; a bounded
queue with a drop-oldest or spill-to-disk policy would be the place to start
if that ever matters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from pagepulse.metrics import SessionMetrics
from pagepulse.models.telemetry import TelemetryRow

logger = logging.getLogger(__name__)


class RowSink(Protocol):
    """Anything with a blocking ``insert_row`` (``TelemetryStore`` in production)."""

    def insert_row(self, row: TelemetryRow) -> None: ...


class TelemetryWriter:
    """Single-consumer queue that writes telemetry rows in the background.

    Args:
        sink: Blocking row sink, normally a ``TelemetryStore``.
        metrics: Optional per-session counters.
    """

    def __init__(self, sink: RowSink, *, metrics: SessionMetrics | None = None) -> None:
        self._sink = sink
        self._metrics = metrics or SessionMetrics()
        self._queue: asyncio.Queue[TelemetryRow] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="telemetry-writer")

    async def stop(self) -> int:
        """Cancel the consumer and discard queued rows.

        Returns:
            The number of rows that were dropped.
        """
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.warning("[Telemetry] dropped %d queued rows at shutdown", dropped)
            self._metrics.record_dropped(dropped)
        return dropped

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Rows queued but not yet handed to the sink."""
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def submit(self, row: TelemetryRow) -> None:
        """Queue *row* for insertion and return immediately."""
        self._queue.put_nowait(row)
        self._metrics.record_submitted()

    async def drain(self) -> None:
        """Wait until every queued row has been attempted."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            row = await self._queue.get()
            try:
                await asyncio.to_thread(self._sink.insert_row, row)
            except Exception as exc:
                logger.warning("[Telemetry] insert failed for %s: %s", row.url, exc)
                self._metrics.record_write(False)
            else:
                self._metrics.record_write(True)
            finally:
                self._queue.task_done()
