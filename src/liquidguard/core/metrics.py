"""
LiquidGuard - Prometheus Metrics

Counters, gauges and histograms describing hook engine activity:
- Liquidations dispatched and skipped
- LP rebalances and user position range updates
- Capability probe failures
- Per-pool volatility
- Hook latency

Each HookMetrics instance owns a private CollectorRegistry unless one is
supplied, so several engines can run in one process.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class HookMetrics:
    """Prometheus metrics collector for the hook engine."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.liquidations_total = Counter(
            "liquidguard_liquidations_total",
            "Liquidations dispatched to lending protocols",
            ["protocol_shape"],
            registry=self.registry,
        )

        self.liquidations_skipped_total = Counter(
            "liquidguard_liquidations_skipped_total",
            "Liquidation intents not executed",
            ["reason"],
            registry=self.registry,
        )

        self.rebalances_total = Counter(
            "liquidguard_rebalances_total",
            "LP optimizer repositions executed",
            registry=self.registry,
        )

        self.position_range_updates_total = Counter(
            "liquidguard_position_range_updates_total",
            "Auto-rebalance range updates applied to user positions",
            registry=self.registry,
        )

        self.probe_failures_total = Counter(
            "liquidguard_probe_failures_total",
            "Adapters that matched no known protocol shape",
            registry=self.registry,
        )

        self.pool_volatility = Gauge(
            "liquidguard_pool_volatility",
            "Latest pool-level volatility score (0-100)",
            ["pool"],
            registry=self.registry,
        )

        self.hook_latency_seconds = Histogram(
            "liquidguard_hook_latency_seconds",
            "Time spent inside hook entry points",
            ["hook"],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
            registry=self.registry,
        )

    @contextmanager
    def time_hook(self, hook: str) -> Iterator[None]:
        """Observe the duration of a hook invocation."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.hook_latency_seconds.labels(hook=hook).observe(
                time.perf_counter() - start
            )

    def export(self) -> bytes:
        """Render metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
