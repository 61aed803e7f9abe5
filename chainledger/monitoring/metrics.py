"""Prometheus metrics definitions."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


class Metrics:
    """Counters for the accounting engine."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        registry = registry if registry is not None else REGISTRY
        self.events_processed_total = Counter(
            "events_processed_total",
            "Events applied to the ledgers",
            ["kind"],
            registry=registry,
        )
        self.events_ignored_total = Counter(
            "events_ignored_total",
            "Events with a kind the ledgers do not react to",
            registry=registry,
        )
        self.consistency_violations_total = Counter(
            "consistency_violations_total",
            "Updates skipped because of a data-consistency violation",
            ["kind"],
            registry=registry,
        )
        self.points_forfeited_total = Counter(
            "points_forfeited_total",
            "Reward points removed by unstake forfeiture",
            registry=registry,
        )
        self.last_block_number = Gauge(
            "last_block_number",
            "Block number of the last applied event",
            registry=registry,
        )
