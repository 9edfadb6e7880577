"""Logging setup and hot-path profiling."""

from __future__ import annotations

from sql_fingerprint.telemetry.json_logging import JSONFormatter, configure_logging
from sql_fingerprint.telemetry.profiling import ProfileCollector, ProfileResult, profile_operation

__all__ = [
    "JSONFormatter",
    "ProfileCollector",
    "ProfileResult",
    "configure_logging",
    "profile_operation",
]
