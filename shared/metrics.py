"""
Prometheus metrics for the laundromatzat portfolio backend.

Instruments are registered once per registry and labelled by service, so
several collectors can share the default registry.
"""

import threading
from typing import Any, Dict, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

PREFIX = "laundromatzat"

_instruments: Dict[int, Dict[str, Any]] = {}
_instruments_lock = threading.Lock()


def _build_instruments(registry: CollectorRegistry) -> Dict[str, Any]:
    return {
        "http_requests": Counter(
            f"{PREFIX}_http_requests_total",
            "HTTP requests served",
            ["service", "method", "endpoint", "status_code"],
            registry=registry,
        ),
        "http_duration": Histogram(
            f"{PREFIX}_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "endpoint"],
            registry=registry,
        ),
        "health_checks": Counter(
            f"{PREFIX}_health_checks_total",
            "Health check results",
            ["service", "status"],
            registry=registry,
        ),
        "errors": Counter(
            f"{PREFIX}_errors_total",
            "Errors returned to callers, by error code",
            ["service", "code"],
            registry=registry,
        ),
        "db_operations": Counter(
            f"{PREFIX}_db_operations_total",
            "Relational store operations",
            ["service", "table", "operation"],
            registry=registry,
        ),
    }


def _instruments_for(registry: CollectorRegistry) -> Dict[str, Any]:
    with _instruments_lock:
        instruments = _instruments.get(id(registry))
        if instruments is None:
            instruments = _build_instruments(registry)
            _instruments[id(registry)] = instruments
        return instruments


class MetricsCollector:
    """Records request, error and persistence metrics for one service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or REGISTRY
        self._metrics = _instruments_for(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self._metrics["http_requests"].labels(
            service=self.service_name,
            method=method,
            endpoint=endpoint,
            status_code=str(status_code),
        ).inc()
        self._metrics["http_duration"].labels(
            service=self.service_name,
            method=method,
            endpoint=endpoint,
        ).observe(duration)

    def record_health_check(self, status: str):
        self._metrics["health_checks"].labels(service=self.service_name, status=status).inc()

    def record_error(self, code: str):
        self._metrics["errors"].labels(service=self.service_name, code=code).inc()

    def record_db_operation(self, table: str, operation: str):
        self._metrics["db_operations"].labels(service=self.service_name, table=table, operation=operation).inc()


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Process-wide collector for *service_name* on the default registry."""
    with _collectors_lock:
        collector = _collectors.get(service_name)
        if collector is None:
            collector = MetricsCollector(service_name)
            _collectors[service_name] = collector
        return collector
