"""Water level telemetry test harness."""

__version__ = "0.1.0"
