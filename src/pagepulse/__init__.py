"""pagepulse — unattended browser sessions with per-request network telemetry capture."""

from __future__ import annotations

try:
    from importlib.metadata import version

    __version__ = version("pagepulse")
except Exception:
    __version__ = "0.0.0"
