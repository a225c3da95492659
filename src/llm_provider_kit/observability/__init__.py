# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability for LLM providers.

This package provides:
- MetricsCollectorProtocol: The single-method sink interface (emit)
- MetricsCollector: Aggregating collector with snapshots and subscriptions
- MetricEvent / MetricFilter: Event and subscription filter types
- Metric name constants for Prometheus export
"""

from .collector import (
    METRIC_DEFINITIONS,
    MetricDefinition,
    MetricsCollector,
    Subscription,
    get_metrics_collector,
    reset_metrics_collector,
)
from .constants import LATENCY_BUCKETS, METRIC_PREFIX
from .events import FAILURE_EVENT_TYPES, MetricEvent, MetricEventType, MetricFilter
from .protocols import MetricsCollectorProtocol
from .snapshots import (
    ErrorMetrics,
    LatencyMetrics,
    MetricsSnapshot,
    ModelMetricsSnapshot,
    ProviderMetricsSnapshot,
    TokenMetrics,
)

__all__ = [
    "FAILURE_EVENT_TYPES",
    "LATENCY_BUCKETS",
    "METRIC_DEFINITIONS",
    "METRIC_PREFIX",
    "ErrorMetrics",
    "LatencyMetrics",
    "MetricDefinition",
    "MetricEvent",
    "MetricEventType",
    "MetricFilter",
    "MetricsCollector",
    "MetricsCollectorProtocol",
    "MetricsSnapshot",
    "ModelMetricsSnapshot",
    "ProviderMetricsSnapshot",
    "Subscription",
    "TokenMetrics",
    "get_metrics_collector",
    "reset_metrics_collector",
]
