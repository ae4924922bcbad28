"""Prometheus counters, histograms and gauges for the wallet engine and API."""

from __future__ import annotations

from lzar_wallet.metrics.collector import EngineMetrics, MetricsCollector

__all__ = ["EngineMetrics", "MetricsCollector"]
