"""Monitoring utilities."""

from chainledger.monitoring.logging import configure_logging
from chainledger.monitoring.metrics import Metrics

__all__ = [
    "configure_logging",
    "Metrics",
]
