from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Protocol

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_configured = False


def configure_otel(service_name: str) -> None:
    global _configured
    if _configured:
        return
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _configured = True


@dataclass(frozen=True)
class SearchMetric:
    status: str
    strategy_name: str
    cache_hit: bool
    result_count: int
    duration_ms: float


class SearchMetricCollector(Protocol):
    def observe(self, metric: SearchMetric) -> None: ...

    def increment_upstream_error(self, provider: str) -> None: ...


class InMemorySearchMetricsCollector(SearchMetricCollector):
    def __init__(self) -> None:
        self._metrics: list[SearchMetric] = []
        self.upstream_errors: dict[str, int] = defaultdict(int)

    def observe(self, metric: SearchMetric) -> None:
        self._metrics.append(metric)

    def increment_upstream_error(self, provider: str) -> None:
        self.upstream_errors[provider] += 1

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusSearchMetricsCollector(SearchMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "facility_search_requests_total",
            "Total facility searches",
            labelnames=("status", "strategy", "cache_hit"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "facility_search_duration_ms",
            "Facility search latency in milliseconds",
            labelnames=("status",),
            buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 20000),
            registry=self._registry,
        )
        self._upstream_error_counter = Counter(
            "facility_search_upstream_errors_total",
            "Recovered upstream failures",
            labelnames=("provider",),
            registry=self._registry,
        )

    def observe(self, metric: SearchMetric) -> None:
        cache_hit = "true" if metric.cache_hit else "false"
        self._request_counter.labels(metric.status, metric.strategy_name, cache_hit).inc()
        self._latency_histogram.labels(metric.status).observe(metric.duration_ms)

    def increment_upstream_error(self, provider: str) -> None:
        self._upstream_error_counter.labels(provider).inc()

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")
