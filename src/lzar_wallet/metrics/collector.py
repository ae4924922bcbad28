"""Metrics collector: Prometheus counters, gauges, histograms.

- ``lzar_settlement_submissions_total`` counter (operation, outcome)
- ``lzar_settlement_duration_seconds`` histogram (operation)
- ``lzar_webhook_events_total`` counter (event, outcome)
- ``lzar_cron_duration_seconds`` histogram (job)
- ``lzar_cron_last_execution_timestamp`` gauge (job)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "lzar"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level wallet engine metrics.

    All histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._settlement_total = self._collector.counter(
            f"{_PREFIX}_settlement_submissions",
            "Settlement API submissions by operation and outcome",
            ("operation", "outcome"),
        )
        self._settlement_duration = self._collector.histogram(
            f"{_PREFIX}_settlement_duration_seconds",
            "Settlement API submission duration",
            ("operation",),
        )
        self._webhook_total = self._collector.counter(
            f"{_PREFIX}_webhook_events",
            "Inbound settlement webhook events by type and outcome",
            ("event", "outcome"),
        )
        self._cron_duration = self._collector.histogram(
            f"{_PREFIX}_cron_duration_seconds",
            "Background job duration",
            ("job",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_timestamp",
            "Unix time of the last background job run",
            ("job",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the Prometheus registry."""
        return self._collector.registry

    @contextmanager
    def track_settlement(self, operation: str) -> Iterator[None]:
        """Time a settlement API call."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._settlement_duration.labels(operation=operation).observe(
                time.monotonic() - start
            )

    def settlement_submitted(self, operation: str, outcome: str) -> None:
        """Count a settlement submission outcome."""
        self._settlement_total.labels(operation=operation, outcome=outcome).inc()

    def webhook_received(self, event: str, outcome: str) -> None:
        """Count an inbound webhook event."""
        self._webhook_total.labels(event=event, outcome=outcome).inc()

    @contextmanager
    def track_cron(self, job: str) -> Iterator[None]:
        """Time a cron job run and record its last execution."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._cron_duration.labels(job=job).observe(time.monotonic() - start)
            self._cron_last.labels(job=job).set(time.time())
