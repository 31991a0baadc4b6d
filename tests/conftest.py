"""pagepulse test configuration — shared fixtures for unit tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Clear the settings LRU cache between tests."""
    from pagepulse.settings.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture()
def telemetry_store(tmp_path: Path):
    """Create a disposable ``TelemetryStore`` backed by a temporary SQLite DB."""
    from pagepulse.store.telemetry_store import TelemetryStore

    store = TelemetryStore(db_path=tmp_path / "telemetry.db")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------

DEFAULT_TIMING: dict[str, float] = {
    "startTime": 1_700_000_000_000.0,
    "domainLookupStart": 1.5,
    "domainLookupEnd": 4.0,
    "connectStart": 4.0,
    "secureConnectionStart": 6.0,
    "connectEnd": 12.0,
    "requestStart": 12.5,
    "responseStart": 40.0,
    "responseEnd": 55.25,
}

DEFAULT_SIZES: dict[str, int] = {
    "requestBodySize": 0,
    "requestHeadersSize": 410,
    "responseBodySize": 18_230,
    "responseHeadersSize": 620,
}


def make_request(
    url: str = "https://img.example.com/a/b.jpg",
    *,
    resource_type: str = "image",
    timing: dict[str, Any] | None = None,
    sizes: dict[str, Any] | None = None,
    ip: str | None = "203.0.113.7",
    server_addr_error: Exception | None = None,
) -> MagicMock:
    """Build a fake ``playwright.async_api.Request`` for a finished request."""
    response = MagicMock(name="response")
    response.url = url
    if server_addr_error is not None:
        response.server_addr = AsyncMock(side_effect=server_addr_error)
    else:
        response.server_addr = AsyncMock(return_value={"ipAddress": ip, "port": 443} if ip else None)

    request = MagicMock(name="request")
    request.url = url
    request.resource_type = resource_type
    request.timing = dict(DEFAULT_TIMING if timing is None else timing)
    request.sizes = AsyncMock(return_value=dict(DEFAULT_SIZES if sizes is None else sizes))
    request.response = AsyncMock(return_value=response)
    return request


def make_page(viewport_height: int = 900) -> MagicMock:
    """Build a fake ``Page`` recording event handlers registered via ``on``."""
    page = MagicMock(name="page")
    page.handlers = {}

    def _on(event: str, handler: Any) -> None:
        page.handlers.setdefault(event, []).append(handler)

    page.on.side_effect = _on
    page.goto = AsyncMock(return_value=None)
    page.is_closed = MagicMock(return_value=False)
    page.evaluate = AsyncMock(return_value=viewport_height)
    page.wait_for_selector = AsyncMock(return_value=None)
    page.keyboard.press = AsyncMock(return_value=None)
    page.locator.return_value.first.click = AsyncMock(return_value=None)
    return page


@pytest.fixture()
def fake_page() -> MagicMock:
    return make_page()


@pytest.fixture()
def session(fake_page: MagicMock):
    """A ``SessionContext`` bound to a fake page with a one-hour budget."""
    from pagepulse.session import SessionContext

    return SessionContext(restart_threshold_s=3600, stop_event=asyncio.Event(), page=fake_page)


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that require a real browser or database")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")


@pytest.fixture()
def anyio_backend() -> str:
    """The code under test is asyncio-based; run anyio-marked tests on asyncio only."""
    return "asyncio"
