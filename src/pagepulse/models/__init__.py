"""Data models: telemetry rows and driver state definitions."""
