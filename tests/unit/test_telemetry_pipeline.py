"""Unit tests for the capture pipeline: NetworkCollector and TelemetryWriter."""

from __future__ import annotations

import asyncio
import threading

import pytest

from conftest import DEFAULT_TIMING, make_page, make_request
from pagepulse.metrics import SessionMetrics
from pagepulse.models.telemetry import TelemetryRow
from pagepulse.telemetry.collector import REQUEST_FINISHED, NetworkCollector, extract_row, server_ip
from pagepulse.telemetry.writer import TelemetryWriter


class RecordingSink:
    """In-memory sink; fails for URLs listed in *fail_urls*."""

    def __init__(self, fail_urls: set[str] | None = None) -> None:
        self.rows: list[TelemetryRow] = []
        self.attempts = 0
        self._fail = fail_urls or set()

    def insert_row(self, row: TelemetryRow) -> None:
        self.attempts += 1
        if row.url in self._fail:
            raise RuntimeError("connection reset by peer")
        self.rows.append(row)


class BlockingSink(RecordingSink):
    """Sink whose inserts block until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def insert_row(self, row: TelemetryRow) -> None:
        self.release.wait(timeout=5)
        super().insert_row(row)


# ===================================================================
# Extraction
# ===================================================================


class TestExtractRow:
    """Reading telemetry off a finished request."""

    @pytest.mark.anyio
    async def test_extract_full_row(self) -> None:
        request = make_request("https://img.example.com/a/b.jpg", resource_type="image")
        row = await extract_row(request, "lab")
        assert row.url == "https://img.example.com/a/b.jpg"
        assert row.resource_type == "image"
        assert row.ip == "203.0.113.7"
        assert row.domain == "img.example.com"
        assert row.environment == "lab"
        assert row.timing.response_end == 55.25
        assert row.response_body_size == 18_230

    @pytest.mark.anyio
    async def test_ip_absent_when_server_addr_fails(self) -> None:
        request = make_request(server_addr_error=RuntimeError("target closed"))
        row = await extract_row(request, "lab")
        assert row.ip is None

    @pytest.mark.anyio
    async def test_ip_absent_for_cached_response(self) -> None:
        row = await extract_row(make_request(ip=None), "lab")
        assert row.ip is None

    @pytest.mark.anyio
    async def test_server_ip_without_response(self) -> None:
        assert await server_ip(None) is None


# ===================================================================
# Collector
# ===================================================================


class TestNetworkCollector:
    """One submission per finished request."""

    def test_attach_registers_handler(self) -> None:
        page = make_page()
        collector = NetworkCollector(TelemetryWriter(RecordingSink()), environment="lab")
        collector.attach(page)
        assert page.handlers[REQUEST_FINISHED] == [collector.on_request_finished]

    def test_detach_removes_handler(self) -> None:
        page = make_page()
        collector = NetworkCollector(TelemetryWriter(RecordingSink()), environment="lab")
        collector.attach(page)
        collector.detach()
        page.remove_listener.assert_called_once_with(REQUEST_FINISHED, collector.on_request_finished)

    @pytest.mark.anyio
    async def test_every_finished_request_submitted_once(self) -> None:
        sink = RecordingSink()
        metrics = SessionMetrics()
        writer = TelemetryWriter(sink, metrics=metrics)
        collector = NetworkCollector(writer, environment="lab", metrics=metrics)
        writer.start()

        urls = [f"https://cdn{i}.example.com/r.js" for i in range(25)]
        await asyncio.gather(*(collector.on_request_finished(make_request(u)) for u in urls))
        await writer.drain()
        await writer.stop()

        assert sorted(r.url for r in sink.rows) == sorted(urls)
        assert sink.attempts == 25
        assert all(r.environment == "lab" for r in sink.rows)
        assert metrics.summary()["telemetry"]["observed"] == 25

    @pytest.mark.anyio
    async def test_extraction_failure_is_swallowed(self) -> None:
        sink = RecordingSink()
        metrics = SessionMetrics()
        writer = TelemetryWriter(sink, metrics=metrics)
        collector = NetworkCollector(writer, environment="lab", metrics=metrics)
        request = make_request()
        request.sizes.side_effect = RuntimeError("Target page, context or browser has been closed")

        await collector.on_request_finished(request)

        assert writer.pending == 0
        assert metrics.summary()["telemetry"]["extraction_failed"] == 1

    @pytest.mark.anyio
    async def test_non_monotonic_timing_counted_and_kept(self) -> None:
        metrics = SessionMetrics()
        writer = TelemetryWriter(RecordingSink(), metrics=metrics)
        collector = NetworkCollector(writer, environment="lab", metrics=metrics)
        timing = dict(DEFAULT_TIMING, responseStart=60.0, responseEnd=50.0)

        await collector.on_request_finished(make_request(timing=timing))
        await collector.on_request_finished(make_request())

        assert writer.pending == 2
        assert metrics.summary()["telemetry"]["non_monotonic"] == 1
        await writer.stop()


# ===================================================================
# Writer
# ===================================================================


class TestTelemetryWriter:
    """Fire-and-forget semantics."""

    @pytest.mark.anyio
    async def test_partial_failures_do_not_stop_remaining_writes(self) -> None:
        """N failing inserts out of M leave the other M-N written."""
        rows = [TelemetryRow(url=f"https://e.example.com/{i}", resource_type="xhr") for i in range(10)]
        failing = {rows[i].url for i in (1, 4, 7)}
        sink = RecordingSink(fail_urls=failing)
        metrics = SessionMetrics()
        writer = TelemetryWriter(sink, metrics=metrics)
        writer.start()

        for row in rows:
            writer.submit(row)
        await writer.drain()
        await writer.stop()

        assert sink.attempts == 10
        assert len(sink.rows) == 7
        assert {r.url for r in sink.rows}.isdisjoint(failing)
        summary = metrics.summary()["telemetry"]
        assert summary["written"] == 7
        assert summary["write_failed"] == 3

    @pytest.mark.anyio
    async def test_submit_does_not_wait_for_sink(self) -> None:
        """A stalled datastore never blocks the producer."""
        sink = BlockingSink()
        writer = TelemetryWriter(sink)
        writer.start()

        for i in range(50):
            writer.submit(TelemetryRow(url=f"https://s.example.com/{i}", resource_type="image"))
        # Producer finished while the first insert is still stuck
        assert writer.pending >= 49
        assert sink.rows == []

        sink.release.set()
        await writer.drain()
        await writer.stop()
        assert len(sink.rows) == 50

    @pytest.mark.anyio
    async def test_stop_drops_queued_rows(self) -> None:
        metrics = SessionMetrics()
        writer = TelemetryWriter(RecordingSink(), metrics=metrics)
        for i in range(3):
            writer.submit(TelemetryRow(url=f"https://d.example.com/{i}", resource_type="font"))

        dropped = await writer.stop()

        assert dropped == 3
        assert writer.pending == 0
        assert metrics.summary()["telemetry"]["dropped"] == 3

    @pytest.mark.anyio
    async def test_start_is_idempotent(self) -> None:
        writer = TelemetryWriter(RecordingSink())
        writer.start()
        writer.start()
        assert writer.running
        await writer.stop()
        assert not writer.running
