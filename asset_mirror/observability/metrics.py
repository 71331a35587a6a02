"""
Metrics — Counters, gauges and histograms for mirror routing.

Exposition is compatible with the Prometheus text format.

## Usage

    from asset_mirror.observability.metrics import metrics

    metrics.increment("probes_total")
    metrics.timing("probe_duration_seconds", 0.042)
    metrics.set_gauge("registered_mirrors", 3)

    output = metrics.export_prometheus()
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional

Labels = Optional[Dict[str, str]]


@dataclass
class MetricPoint:
    """A single metric data point."""

    name: str
    value: float
    timestamp: float
    labels: Dict[str, str] = field(default_factory=dict)


class _LabeledMetric(ABC):
    """Shared label-key handling for all metric kinds."""

    kind = "untyped"

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._lock = Lock()

    @staticmethod
    def _labels_key(labels: Labels) -> str:
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    @staticmethod
    def _split_key(key: str) -> Dict[str, str]:
        if not key:
            return {}
        return dict(pair.split("=", 1) for pair in key.split(","))

    @abstractmethod
    def export(self) -> List[MetricPoint]:
        """Current values as points, one per label set."""


class Counter(_LabeledMetric):
    """A monotonically increasing counter."""

    kind = "counter"

    def __init__(self, name: str, help_text: str = ""):
        super().__init__(name, help_text)
        self._values: Dict[str, float] = defaultdict(float)

    def inc(self, value: float = 1, labels: Labels = None) -> None:
        key = self._labels_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: Labels = None) -> float:
        return self._values.get(self._labels_key(labels), 0)

    def total(self) -> float:
        """Sum across all label sets."""
        with self._lock:
            return sum(self._values.values())

    def export(self) -> List[MetricPoint]:
        now = time.time()
        with self._lock:
            items = list(self._values.items())
        return [MetricPoint(self.name, value, now, self._split_key(key)) for key, value in items]


class Gauge(_LabeledMetric):
    """A gauge that can go up and down."""

    kind = "gauge"

    def __init__(self, name: str, help_text: str = ""):
        super().__init__(name, help_text)
        self._values: Dict[str, float] = {}

    def set(self, value: float, labels: Labels = None) -> None:
        key = self._labels_key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1, labels: Labels = None) -> None:
        key = self._labels_key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + value

    def get(self, labels: Labels = None) -> float:
        return self._values.get(self._labels_key(labels), 0)

    def export(self) -> List[MetricPoint]:
        now = time.time()
        with self._lock:
            items = list(self._values.items())
        return [MetricPoint(self.name, value, now, self._split_key(key)) for key, value in items]


class Histogram(_LabeledMetric):
    """A histogram for latency distributions."""

    kind = "histogram"

    # Probe latencies cluster well under a second
    DEFAULT_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, float("inf"))

    def __init__(self, name: str, help_text: str = "", buckets: Optional[tuple] = None):
        super().__init__(name, help_text)
        self.buckets = buckets or self.DEFAULT_BUCKETS
        self._counts: Dict[str, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[str, float] = defaultdict(float)
        self._totals: Dict[str, int] = defaultdict(int)

    def observe(self, value: float, labels: Labels = None) -> None:
        key = self._labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._totals[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1
                    break

    def summary(self, labels: Labels = None) -> Dict[str, float]:
        key = self._labels_key(labels)
        return {"sum": self._sums.get(key, 0.0), "count": self._totals.get(key, 0)}

    def export(self) -> List[MetricPoint]:
        points = []
        now = time.time()
        with self._lock:
            keys = set(self._sums) | set(self._counts)
            for key in keys:
                labels = self._split_key(key)
                cumulative = 0
                for bucket in self.buckets:
                    cumulative += self._counts[key].get(bucket, 0)
                    le = "+Inf" if bucket == float("inf") else str(bucket)
                    points.append(MetricPoint(f"{self.name}_bucket", cumulative, now, {**labels, "le": le}))
                points.append(MetricPoint(f"{self.name}_sum", self._sums[key], now, labels))
                points.append(MetricPoint(f"{self.name}_count", self._totals[key], now, labels))
        return points


class MetricsRegistry:
    """
    Central registry for all metrics.

    Metric names are prefixed, e.g. "probes_total" is exported as
    "asset_mirror_probes_total".
    """

    def __init__(self, prefix: str = "asset_mirror"):
        self.prefix = prefix
        self._metrics: Dict[str, _LabeledMetric] = {}
        self._lock = Lock()
        self._register_common_metrics()

    def _register_common_metrics(self) -> None:
        # Racing
        self.counter("probes_total", "Endpoint probes issued")
        self.counter("probe_failures_total", "Endpoint probes that failed or timed out")
        self.histogram("probe_duration_seconds", "Endpoint probe latency")
        self.counter("selections_total", "Endpoint races run, by result")

        # Activation
        self.counter("activations_total", "Activation requests, by result")
        self.gauge("active_mirror_epoch", "Current activation epoch")
        self.gauge("registered_mirrors", "Mirrors in the location registry")

        # Rewrite path
        self.counter("rewrite_cache_hits_total", "Identifier rewrites served from cache")
        self.counter("rewrite_cache_misses_total", "Identifier rewrites computed")

        # Manifest host protection
        self.gauge("circuit_breaker_state", "Circuit breaker state (0=closed, 1=open, 2=half-open)")

    def _get_or_create(self, cls, name: str, help_text: str):
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            metric = self._metrics.get(full_name)
            if metric is None:
                metric = cls(full_name, help_text)
                self._metrics[full_name] = metric
            elif not isinstance(metric, cls):
                raise TypeError(f"Metric {full_name} already registered as {metric.kind}")
            return metric

    def counter(self, name: str, help_text: str = "") -> Counter:
        return self._get_or_create(Counter, name, help_text)

    def gauge(self, name: str, help_text: str = "") -> Gauge:
        return self._get_or_create(Gauge, name, help_text)

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        return self._get_or_create(Histogram, name, help_text)

    # Convenience methods
    def increment(self, name: str, value: float = 1, labels: Labels = None) -> None:
        self.counter(name).inc(value, labels)

    def set_gauge(self, name: str, value: float, labels: Labels = None) -> None:
        self.gauge(name).set(value, labels)

    def timing(self, name: str, seconds: float, labels: Labels = None) -> None:
        self.histogram(name).observe(seconds, labels)

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []
        with self._lock:
            registered = list(self._metrics.values())
        for metric in registered:
            lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            for point in metric.export():
                lines.append(f"{point.name}{self._format_labels(point.labels)} {point.value}")
        return "\n".join(lines)

    def export_json(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "counters": {},
            "gauges": {},
            "histograms": {},
        }
        with self._lock:
            registered = list(self._metrics.items())
        for name, metric in registered:
            if isinstance(metric, Counter):
                result["counters"][name] = metric.total()
            elif isinstance(metric, Gauge):
                result["gauges"][name] = metric.get()
            elif isinstance(metric, Histogram):
                result["histograms"][name] = metric.summary()
        return result

    @staticmethod
    def _format_labels(labels: Dict[str, str]) -> str:
        if not labels:
            return ""
        pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"


# Global metrics instance
metrics = MetricsRegistry()
