"""Telemetry row models.

A ``TelemetryRow`` describes one completed network request: its identity,
byte sizes, the resolved server address and Playwright's resource timing.
Rows are immutable and written exactly once.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

# Playwright resource-timing keys, in the order the timings are taken.
# ``startTime`` is wall-clock epoch milliseconds; the rest are offsets from it.
TIMING_KEYS: dict[str, str] = {
    "start_time": "startTime",
    "domain_lookup_start": "domainLookupStart",
    "domain_lookup_end": "domainLookupEnd",
    "connect_start": "connectStart",
    "secure_connection_start": "secureConnectionStart",
    "connect_end": "connectEnd",
    "request_start": "requestStart",
    "response_start": "responseStart",
    "response_end": "responseEnd",
}

SIZE_KEYS: dict[str, str] = {
    "request_headers_size": "requestHeadersSize",
    "request_body_size": "requestBodySize",
    "response_headers_size": "responseHeadersSize",
    "response_body_size": "responseBodySize",
}


def _defined(value: Any) -> float | None:
    """Playwright reports unavailable timings as ``-1``."""
    if value is None:
        return None
    value = float(value)
    return None if value < 0 else value


def hostname_of(url: str) -> str:
    """Return the hostname of *url*, or an empty string.

    IPv6 literals keep their brackets (``[2001:db8::1]``) as in the URL.
    """
    host = urlparse(url).hostname or ""
    if ":" in host:
        return f"[{host}]"
    return host


class RequestTiming(BaseModel):
    """Navigation-relative resource timing for a single request."""

    model_config = ConfigDict(frozen=True)

    start_time: float | None = None
    domain_lookup_start: float | None = None
    domain_lookup_end: float | None = None
    connect_start: float | None = None
    secure_connection_start: float | None = None
    connect_end: float | None = None
    request_start: float | None = None
    response_start: float | None = None
    response_end: float | None = None

    @classmethod
    def from_playwright(cls, timing: Mapping[str, Any]) -> "RequestTiming":
        """Build from the dict returned by ``Request.timing``."""
        return cls(**{field: _defined(timing.get(key)) for field, key in TIMING_KEYS.items()})

    @property
    def started_at(self) -> datetime | None:
        """``start_time`` as a UTC datetime."""
        if self.start_time is None:
            return None
        return datetime.fromtimestamp(self.start_time / 1000.0, tz=timezone.utc)

    def offsets(self) -> list[float | None]:
        """Relative offsets in documented order, with ``start_time`` as 0."""
        head = [0.0 if self.start_time is not None else None]
        return head + [getattr(self, field) for field in list(TIMING_KEYS)[1:]]

    def is_monotonic(self) -> bool:
        """True when every defined offset is >= the defined offsets before it."""
        last = None
        for value in self.offsets():
            if value is None:
                continue
            if last is not None and value < last:
                return False
            last = value
        return True


class TelemetryRow(BaseModel):
    """One persisted record describing a completed network request."""

    model_config = ConfigDict(frozen=True)

    url: str
    resource_type: str
    request_headers_size: int | None = None
    request_body_size: int | None = None
    response_headers_size: int | None = None
    response_body_size: int | None = None
    ip: str | None = None
    timing: RequestTiming = Field(default_factory=RequestTiming)
    environment: str = ""
    domain: str = ""

    @classmethod
    def build(
        cls,
        *,
        url: str,
        resource_type: str,
        sizes: Mapping[str, Any],
        timing: Mapping[str, Any],
        ip: str | None,
        environment: str,
    ) -> "TelemetryRow":
        """Assemble a row from raw Playwright ``sizes()`` / ``timing`` dicts."""
        return cls(
            url=url,
            resource_type=resource_type,
            ip=ip,
            timing=RequestTiming.from_playwright(timing),
            environment=environment,
            domain=hostname_of(url),
            **{field: sizes.get(key) for field, key in SIZE_KEYS.items()},
        )

    def to_record(self) -> dict[str, Any]:
        """Column mapping for the ``request`` table."""
        record: dict[str, Any] = {
            "url": self.url,
            "resource_type": self.resource_type,
            "request_headers_size": self.request_headers_size,
            "request_body_size": self.request_body_size,
            "response_headers_size": self.response_headers_size,
            "response_body_size": self.response_body_size,
            "ip": self.ip,
            "start_time": self.timing.started_at,
            "environment": self.environment,
            "domain": self.domain,
        }
        for field in list(TIMING_KEYS)[1:]:
            record[field] = getattr(self.timing, field)
        return record
