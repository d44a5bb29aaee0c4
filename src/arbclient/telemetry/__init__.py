"""Telemetry module for logging, metrics, and reporting."""

from arbclient.telemetry.logger import QueueLogging, setup_logging
from arbclient.telemetry.metrics import MetricsCollector, SessionStats
from arbclient.telemetry.reporter import CLIReporter


__all__ = [
    "CLIReporter",
    "MetricsCollector",
    "QueueLogging",
    "SessionStats",
    "setup_logging",
]
