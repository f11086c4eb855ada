"""
Prometheus counters for the payment service.

The coordinator only sees the ``MetricsSink`` protocol; the sink is handed to
it at construction time.
"""
from typing import Dict, Optional, Protocol

from prometheus_client import REGISTRY, CollectorRegistry, Counter

COMPLETED_PAYMENTS = "completed_payments_total"


class MetricsSink(Protocol):
    def increment(self, counter_name: str) -> None: ...


class PrometheusMetricsSink:
    """Counters registered against a prometheus_client registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY
        self._counters: Dict[str, Counter] = {
            COMPLETED_PAYMENTS: Counter(
                COMPLETED_PAYMENTS,
                "Payments completed successfully",
                ["service"],
                registry=self.registry,
            ),
        }

    def increment(self, counter_name: str) -> None:
        self._counters[counter_name].labels(service="payment").inc()


_default_sink: Optional[PrometheusMetricsSink] = None


def get_metrics_sink() -> PrometheusMetricsSink:
    """Process-wide sink bound to the default registry, created on first use."""
    global _default_sink
    if _default_sink is None:
        _default_sink = PrometheusMetricsSink()
    return _default_sink
