"""Prometheus-style metrics for the indexer, encoded in the OpenMetrics text format."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """Return ``count`` bucket bounds starting at ``start``, each ``factor`` times the last."""
    buckets = []
    bound = float(start)
    for _ in range(count):
        buckets.append(bound)
        bound *= factor
    return buckets


def _format_float(value: float) -> str:
    return repr(float(value))


class Gauge:
    """A floating point value that can go up and down."""

    kind = "gauge"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def get(self) -> float:
        with self._lock:
            return self._value

    def _samples(self, family: str) -> Iterator[str]:
        yield f"{family} {_format_float(self.get())}"


class Counter:
    """A monotonically increasing integer count."""

    kind = "counter"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def inc(self) -> None:
        with self._lock:
            self._value += 1

    def get(self) -> int:
        with self._lock:
            return self._value

    def _samples(self, family: str) -> Iterator[str]:
        yield f"{family}_total {self.get()}"


class Histogram:
    """Observations counted into buckets with fixed upper bounds."""

    kind = "histogram"

    def __init__(self, buckets: list[float]) -> None:
        self.buckets = tuple(float(bound) for bound in buckets)
        self._lock = threading.Lock()
        self._counts = [0] * (len(self.buckets) + 1)
        self._sum = 0.0
        self._count = 0

    def observe(self, value: float) -> None:
        value = float(value)
        index = next(
            (i for i, bound in enumerate(self.buckets) if value <= bound), len(self.buckets)
        )
        with self._lock:
            self._counts[index] += 1
            self._sum += value
            self._count += 1

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def sum(self) -> float:
        with self._lock:
            return self._sum

    def cumulative_counts(self) -> list[int]:
        """Cumulative count per bucket bound, the last entry being the +Inf bucket."""
        with self._lock:
            counts = list(self._counts)
        totals = []
        running = 0
        for count in counts:
            running += count
            totals.append(running)
        return totals

    def _samples(self, family: str) -> Iterator[str]:
        with self._lock:
            total, observed = self._sum, self._count
        yield f"{family}_sum {_format_float(total)}"
        yield f"{family}_count {observed}"
        cumulative = self.cumulative_counts()
        for bound, count in zip(self.buckets, cumulative):
            yield f'{family}_bucket{{le="{_format_float(bound)}"}} {count}'
        yield f'{family}_bucket{{le="+Inf"}} {cumulative[-1]}'


class _Metric(Protocol):
    kind: str

    def _samples(self, family: str) -> Iterator[str]: ...


@dataclass(frozen=True)
class _Registration:
    name: str
    help: str
    metric: _Metric

    @property
    def family(self) -> str:
        if self.metric.kind == "counter" and self.name.endswith("_total"):
            return self.name[: -len("_total")]
        return self.name


class Metrics:
    """The indexer's metric collectors and the registry that encodes them."""

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._registry: list[_Registration] = []

        self.health_status = self._register(
            "alephium_indexer_health_status",
            "Health status of the indexer (1 = healthy, 0 = unhealthy)",
            Gauge(),
        )
        self.current_block_height = self._register(
            "alephium_indexer_current_block_height",
            "Current block height indexed by the indexer",
            Gauge(),
        )
        self.latest_network_block_height = self._register(
            "alephium_indexer_latest_network_block_height",
            "Latest block height available on the Alephium network",
            Gauge(),
        )
        self.blocks_behind_count = self._register(
            "alephium_indexer_blocks_behind_count",
            "Number of blocks the indexer is behind the network",
            Gauge(),
        )
        self.last_successful_sync_timestamp = self._register(
            "alephium_indexer_last_successful_sync_timestamp",
            "Unix timestamp of the last successful sync operation",
            Gauge(),
        )
        self.memory_usage_bytes = self._register(
            "alephium_indexer_memory_usage_bytes",
            "Current memory usage of the indexer in bytes",
            Gauge(),
        )
        self.cpu_utilization_percent = self._register(
            "alephium_indexer_cpu_utilization_percent",
            "Current CPU utilization percentage",
            Gauge(),
        )
        self.disk_usage_bytes = self._register(
            "alephium_indexer_disk_usage_bytes",
            "Current disk usage for indexed data in bytes",
            Gauge(),
        )
        self.api_endpoint_latency = self._register(
            "alephium_indexer_api_endpoint_duration_seconds",
            "Histogram of API endpoint response times in seconds",
            Histogram(exponential_buckets(0.001, 2.0, 10)),
        )
        self.node_request_latency = self._register(
            "alephium_indexer_node_request_duration_seconds",
            "Histogram of Alephium node request latencies in seconds",
            Histogram(exponential_buckets(0.001, 2.0, 10)),
        )
        self.api_requests_total = self._register(
            "alephium_indexer_api_requests_total",
            "Total number of API requests received",
            Counter(),
        )
        self.node_requests_total = self._register(
            "alephium_indexer_node_requests_total",
            "Total number of requests made to Alephium nodes",
            Counter(),
        )

    def _register(self, name, help_text, metric):
        with self._registry_lock:
            self._registry.append(_Registration(name, help_text, metric))
        return metric

    def set_health_status(self, healthy: bool) -> None:
        """Set the health status: 1 for healthy, 0 for unhealthy."""
        self.health_status.set(1.0 if healthy else 0.0)

    def update_sync_status(self, current_height: int, network_height: int) -> None:
        """Record the indexed and network heights and stamp the sync time."""
        self.current_block_height.set(current_height)
        self.latest_network_block_height.set(network_height)
        self.blocks_behind_count.set(max(network_height - current_height, 0))
        self.last_successful_sync_timestamp.set(int(time.time()))

    def update_resource_usage(
        self, memory_bytes: int, cpu_percent: float, disk_bytes: int
    ) -> None:
        self.memory_usage_bytes.set(memory_bytes)
        self.cpu_utilization_percent.set(cpu_percent)
        self.disk_usage_bytes.set(disk_bytes)

    def record_api_latency(self, duration_seconds: float) -> None:
        self.api_endpoint_latency.observe(duration_seconds)
        self.api_requests_total.inc()

    def record_node_latency(self, duration_seconds: float) -> None:
        self.node_request_latency.observe(duration_seconds)
        self.node_requests_total.inc()

    def encode_metrics(self) -> str:
        """Render every registered metric in the OpenMetrics text format."""
        with self._registry_lock:
            registrations = list(self._registry)
        lines = []
        for registration in registrations:
            family = registration.family
            lines.append(f"# HELP {family} {registration.help}.")
            lines.append(f"# TYPE {family} {registration.metric.kind}")
            lines.extend(registration.metric._samples(family))
        lines.append("# EOF")
        return "\n".join(lines) + "\n"