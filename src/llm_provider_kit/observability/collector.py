# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Event-based metrics collector with snapshots, subscriptions and Prometheus.

This module provides the MetricsCollector class, the bundled implementation
of MetricsCollectorProtocol.

Features:
    1. Thread-safe aggregation of events (global, per provider, per model)
    2. Point-in-time snapshots including latency percentiles
    3. Filtered subscriptions with bounded, drop-oldest buffers
    4. Mirroring into prometheus_client counters and histograms
    5. Optional HTTP server for Prometheus scraping

Usage:
    >>> from llm_provider_kit.observability import MetricEvent, MetricEventType
    >>> collector = get_metrics_collector()
    >>> collector.emit(MetricEvent(MetricEventType.REQUEST, provider_name="openai"))
    >>> snapshot = collector.get_snapshot()

Thread Safety:
    All operations are thread-safe. Uses RLock for reentrant locking.
    emit() never blocks on subscribers: a full subscription buffer drops its
    oldest event instead.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import Counter as Tally, deque
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server as _start_http_server,
)

from ..config import MetricsConfig
from .constants import (
    LATENCY_BUCKETS,
    PROVIDER_FAILURES_TOTAL,
    PROVIDER_HEALTH_CHECKS_TOTAL,
    PROVIDER_LATENCY_SECONDS,
    PROVIDER_RATE_LIMITS_TOTAL,
    PROVIDER_REQUESTS_TOTAL,
    PROVIDER_SUCCESSES_TOTAL,
    PROVIDER_TIMEOUTS_TOTAL,
    PROVIDER_TOKENS_TOTAL,
    SUBSCRIPTION_DROPPED_EVENTS_TOTAL,
)
from .events import MetricEvent, MetricEventType, MetricFilter
from .snapshots import (
    ErrorMetrics,
    LatencyMetrics,
    MetricsSnapshot,
    ModelMetricsSnapshot,
    ProviderMetricsSnapshot,
    TokenMetrics,
)

logger = logging.getLogger(__name__)


@dataclass
class MetricDefinition:
    """Schema for a Prometheus metric created by the collector."""

    name: str
    metric_type: str  # 'counter', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


_PROVIDER_LABELS = ("provider", "provider_type", "model_id")

METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    PROVIDER_REQUESTS_TOTAL: MetricDefinition(
        PROVIDER_REQUESTS_TOTAL, "counter", "Total provider requests started", _PROVIDER_LABELS
    ),
    PROVIDER_SUCCESSES_TOTAL: MetricDefinition(
        PROVIDER_SUCCESSES_TOTAL, "counter", "Total successful provider requests", _PROVIDER_LABELS
    ),
    PROVIDER_FAILURES_TOTAL: MetricDefinition(
        PROVIDER_FAILURES_TOTAL,
        "counter",
        "Total failed provider requests",
        (*_PROVIDER_LABELS, "error_type"),
    ),
    PROVIDER_RATE_LIMITS_TOTAL: MetricDefinition(
        PROVIDER_RATE_LIMITS_TOTAL, "counter", "Total rate-limit responses", _PROVIDER_LABELS
    ),
    PROVIDER_TIMEOUTS_TOTAL: MetricDefinition(
        PROVIDER_TIMEOUTS_TOTAL, "counter", "Total provider request timeouts", _PROVIDER_LABELS
    ),
    PROVIDER_HEALTH_CHECKS_TOTAL: MetricDefinition(
        PROVIDER_HEALTH_CHECKS_TOTAL,
        "counter",
        "Total provider health checks",
        ("provider", "provider_type"),
    ),
    PROVIDER_TOKENS_TOTAL: MetricDefinition(
        PROVIDER_TOKENS_TOTAL, "counter", "Total tokens consumed", _PROVIDER_LABELS
    ),
    PROVIDER_LATENCY_SECONDS: MetricDefinition(
        PROVIDER_LATENCY_SECONDS,
        "histogram",
        "Provider request latency in seconds",
        ("provider", "provider_type"),
        LATENCY_BUCKETS,
    ),
    SUBSCRIPTION_DROPPED_EVENTS_TOTAL: MetricDefinition(
        SUBSCRIPTION_DROPPED_EVENTS_TOTAL,
        "counter",
        "Events dropped from full subscription buffers",
    ),
}


# =============================================================================
# Subscriptions
# =============================================================================


class Subscription:
    """
    A bounded stream of events matching an optional filter.

    When the buffer is full the oldest event is discarded and
    ``overflow_count`` is incremented, so a slow consumer never stalls
    producers.
    """

    def __init__(
        self,
        subscription_id: int,
        buffer_size: int,
        event_filter: MetricFilter | None,
        collector: MetricsCollector,
    ) -> None:
        self.id = subscription_id
        self.filter = event_filter
        self._buffer: deque[MetricEvent] = deque(maxlen=buffer_size)
        self._cond = threading.Condition()
        self._collector = collector
        self._overflow_count = 0
        self._closed = False

    @property
    def buffer_size(self) -> int:
        return self._buffer.maxlen or 0

    @property
    def overflow_count(self) -> int:
        with self._cond:
            return self._overflow_count

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._buffer)

    def _offer(self, event: MetricEvent) -> bool:
        """Buffer ``event`` if it matches. Returns True when an old event was dropped."""
        if self.filter is not None and not self.filter.matches(event):
            return False
        with self._cond:
            if self._closed:
                return False
            dropped = len(self._buffer) == self._buffer.maxlen
            self._buffer.append(event)
            if dropped:
                self._overflow_count += 1
                if self._overflow_count == 1:
                    logger.warning(
                        f"Subscription {self.id} buffer full ({self.buffer_size}); "
                        "dropping oldest events"
                    )
            self._cond.notify()
            return dropped

    def get(self, timeout: float | None = None) -> MetricEvent | None:
        """
        Pop the oldest buffered event.

        Blocks up to ``timeout`` seconds (forever if None). Returns None on
        timeout or once the subscription is closed and drained.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._buffer or self._closed, timeout=timeout)
            if self._buffer:
                return self._buffer.popleft()
            return None

    def drain(self) -> list[MetricEvent]:
        """Pop every buffered event without blocking."""
        with self._cond:
            events = list(self._buffer)
            self._buffer.clear()
            return events

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        self._collector._remove_subscription(self.id)
        self._close()

    def _close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


# =============================================================================
# Aggregates
# =============================================================================


class _Aggregate:
    """Mutable counters behind one snapshot. Callers hold the collector lock."""

    def __init__(self, max_latency_samples: int) -> None:
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.latency_count = 0
        self.latency_total = 0.0
        self.latency_samples: deque[float] = deque(maxlen=max_latency_samples)
        self.total_tokens = 0
        self.input_tokens = 0
        self.output_tokens = 0
        self.errors_by_type: Tally[str] = Tally()
        self.rate_limit_errors = 0
        self.timeout_errors = 0
        self.last_request_time: datetime | None = None

    def record(self, event: MetricEvent) -> None:
        if event.type == MetricEventType.REQUEST:
            self.total_requests += 1
            self.last_request_time = event.timestamp
        elif event.type == MetricEventType.SUCCESS:
            self.successful_requests += 1
            self.total_tokens += event.total_tokens
            self.input_tokens += event.input_tokens
            self.output_tokens += event.output_tokens
        elif event.is_failure:
            self.failed_requests += 1
            self.errors_by_type[event.error_type or event.type.value] += 1
            if event.type == MetricEventType.RATE_LIMIT:
                self.rate_limit_errors += 1
            elif event.type == MetricEventType.TIMEOUT:
                self.timeout_errors += 1

        if event.latency > 0 and event.type != MetricEventType.REQUEST:
            self.latency_count += 1
            self.latency_total += event.latency
            self.latency_samples.append(event.latency)

    @property
    def success_rate(self) -> float:
        completed = self.successful_requests + self.failed_requests
        return self.successful_requests / completed if completed else 0.0

    def latency(self) -> LatencyMetrics:
        return LatencyMetrics.from_samples(
            list(self.latency_samples), self.latency_count, self.latency_total
        )

    def tokens(self) -> TokenMetrics:
        return TokenMetrics(
            total_tokens=self.total_tokens,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )

    def errors(self) -> ErrorMetrics:
        return ErrorMetrics(
            total_errors=self.failed_requests,
            errors_by_type=dict(self.errors_by_type),
            rate_limit_errors=self.rate_limit_errors,
            timeout_errors=self.timeout_errors,
        )


class _ProviderAggregate(_Aggregate):
    def __init__(self, name: str, provider_type: str, max_latency_samples: int) -> None:
        super().__init__(max_latency_samples)
        self.name = name
        self.provider_type = provider_type
        self.health_checks = 0
        self.health_check_failures = 0
        self.model_usage: Tally[str] = Tally()

    def record(self, event: MetricEvent) -> None:
        super().record(event)
        if event.provider_type:
            self.provider_type = event.provider_type
        if event.type == MetricEventType.HEALTH_CHECK:
            self.health_checks += 1
            if event.error_type or event.error_message:
                self.health_check_failures += 1
        elif event.type == MetricEventType.REQUEST and event.model_id:
            self.model_usage[event.model_id] += 1

    def snapshot(self) -> ProviderMetricsSnapshot:
        return ProviderMetricsSnapshot(
            provider_name=self.name,
            provider_type=self.provider_type,
            total_requests=self.total_requests,
            successful_requests=self.successful_requests,
            failed_requests=self.failed_requests,
            success_rate=self.success_rate,
            latency=self.latency(),
            tokens=self.tokens(),
            errors=self.errors(),
            health_checks=self.health_checks,
            health_check_failures=self.health_check_failures,
            rate_limit_hits=self.rate_limit_errors,
            model_usage=dict(self.model_usage),
            last_request_time=self.last_request_time,
        )


class _ModelAggregate(_Aggregate):
    def __init__(self, model_id: str, max_latency_samples: int) -> None:
        super().__init__(max_latency_samples)
        self.model_id = model_id
        self.provider_name = ""
        self.provider_type = ""

    def record(self, event: MetricEvent) -> None:
        super().record(event)
        self.provider_name = event.provider_name or self.provider_name
        self.provider_type = event.provider_type or self.provider_type

    def snapshot(self) -> ModelMetricsSnapshot:
        avg_tokens = (
            self.total_tokens / self.successful_requests if self.successful_requests else 0.0
        )
        return ModelMetricsSnapshot(
            model_id=self.model_id,
            provider_name=self.provider_name,
            provider_type=self.provider_type,
            total_requests=self.total_requests,
            successful_requests=self.successful_requests,
            failed_requests=self.failed_requests,
            success_rate=self.success_rate,
            latency=self.latency(),
            tokens=self.tokens(),
            errors=self.errors(),
            average_tokens_per_request=avg_tokens,
            last_request_time=self.last_request_time,
        )


# =============================================================================
# Collector
# =============================================================================


class MetricsCollector:
    """
    Thread-safe metrics collector.

    Implements MetricsCollectorProtocol and adds aggregation, snapshots,
    subscriptions and Prometheus export.

    Attributes:
        config: Collector configuration
    """

    def __init__(
        self,
        config: MetricsConfig | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            config: Collector configuration (defaults to MetricsConfig())
            registry: Prometheus CollectorRegistry; the process-wide default
                registry is used when omitted. Pass a fresh registry in tests.
        """
        self.config = config or MetricsConfig()
        self._registry = registry if registry is not None else REGISTRY
        self._enable_prometheus = self.config.enable_prometheus
        self._lock = threading.RLock()

        self._global = _Aggregate(self.config.max_latency_samples)
        self._providers: dict[str, _ProviderAggregate] = {}
        self._models: dict[str, _ModelAggregate] = {}
        self._first_request_time: datetime | None = None
        self._last_updated: datetime | None = None

        self._subscriptions: dict[int, Subscription] = {}
        self._subscription_ids = itertools.count(1)
        self._closed = False

        self._prom_counters: dict[str, Any] = {}
        self._prom_histograms: dict[str, Any] = {}
        self._prom_failed: set[str] = set()
        self._server_running = False

        logger.debug(
            f"MetricsCollector initialized (prometheus={self._enable_prometheus})"
        )

    # === Prometheus Metrics ===

    def _get_or_create_prom_counter(self, name: str) -> Any | None:
        """Get or create a Prometheus counter."""
        if not self._enable_prometheus or name in self._prom_failed:
            return None

        if name not in self._prom_counters:
            defn = METRIC_DEFINITIONS[name]
            try:
                self._prom_counters[name] = Counter(
                    name,
                    defn.description,
                    list(defn.label_names),
                    registry=self._registry,
                )
            except ValueError as e:
                logger.warning(f"Failed to create Prometheus counter {name}: {e}")
                self._prom_failed.add(name)
                return None

        return self._prom_counters.get(name)

    def _get_or_create_prom_histogram(self, name: str) -> Any | None:
        """Get or create a Prometheus histogram."""
        if not self._enable_prometheus or name in self._prom_failed:
            return None

        if name not in self._prom_histograms:
            defn = METRIC_DEFINITIONS[name]
            try:
                self._prom_histograms[name] = Histogram(
                    name,
                    defn.description,
                    list(defn.label_names),
                    buckets=defn.buckets or LATENCY_BUCKETS,
                    registry=self._registry,
                )
            except ValueError as e:
                logger.warning(f"Failed to create Prometheus histogram {name}: {e}")
                self._prom_failed.add(name)
                return None

        return self._prom_histograms.get(name)

    def unregister_prometheus(self) -> None:
        """
        Remove this collector's metrics from its Prometheus registry.

        A later collector on the same registry can then create them again.
        Metrics touched after this call are re-created on demand.
        """
        with self._lock:
            metrics = [*self._prom_counters.values(), *self._prom_histograms.values()]
            self._prom_counters.clear()
            self._prom_histograms.clear()
            self._prom_failed.clear()

        for metric in metrics:
            try:
                self._registry.unregister(metric)
            except KeyError:
                logger.debug(f"Prometheus metric {metric!r} was not registered")
        logger.debug(f"Unregistered {len(metrics)} Prometheus metrics")

    def _inc(self, name: str, labels: dict[str, str], amount: float = 1) -> None:
        counter = self._get_or_create_prom_counter(name)
        if counter is None:
            return
        try:
            (counter.labels(**labels) if labels else counter).inc(amount)
        except ValueError as e:
            logger.debug(f"Prometheus counter update failed for {name}: {e}")

    def _export(self, event: MetricEvent) -> None:
        labels = {
            "provider": event.provider_name,
            "provider_type": event.provider_type,
            "model_id": event.model_id,
        }
        if event.type == MetricEventType.REQUEST:
            self._inc(PROVIDER_REQUESTS_TOTAL, labels)
        elif event.type == MetricEventType.SUCCESS:
            self._inc(PROVIDER_SUCCESSES_TOTAL, labels)
            if event.total_tokens > 0:
                self._inc(PROVIDER_TOKENS_TOTAL, labels, event.total_tokens)
        elif event.type == MetricEventType.HEALTH_CHECK:
            self._inc(
                PROVIDER_HEALTH_CHECKS_TOTAL,
                {"provider": event.provider_name, "provider_type": event.provider_type},
            )
        elif event.is_failure:
            self._inc(
                PROVIDER_FAILURES_TOTAL,
                {**labels, "error_type": event.error_type or event.type.value},
            )
            if event.type == MetricEventType.RATE_LIMIT:
                self._inc(PROVIDER_RATE_LIMITS_TOTAL, labels)
            elif event.type == MetricEventType.TIMEOUT:
                self._inc(PROVIDER_TIMEOUTS_TOTAL, labels)

        if event.latency > 0 and event.type != MetricEventType.REQUEST:
            histogram = self._get_or_create_prom_histogram(PROVIDER_LATENCY_SECONDS)
            if histogram is not None:
                histogram.labels(
                    provider=event.provider_name, provider_type=event.provider_type
                ).observe(event.latency)

    # === Recording ===

    def emit(self, event: MetricEvent) -> None:
        """
        Record ``event`` and fan it out to matching subscriptions.

        Events emitted after close() are ignored.
        """
        with self._lock:
            if self._closed:
                logger.debug(f"Ignoring {event.type.value} event on closed collector")
                return

            self._global.record(event)
            if event.provider_name:
                provider = self._providers.get(event.provider_name)
                if provider is None:
                    provider = _ProviderAggregate(
                        event.provider_name,
                        event.provider_type,
                        self.config.max_latency_samples,
                    )
                    self._providers[event.provider_name] = provider
                provider.record(event)
            if event.model_id:
                model = self._models.get(event.model_id)
                if model is None:
                    model = _ModelAggregate(event.model_id, self.config.max_latency_samples)
                    self._models[event.model_id] = model
                model.record(event)

            if event.type == MetricEventType.REQUEST and self._first_request_time is None:
                self._first_request_time = event.timestamp
            self._last_updated = datetime.now(timezone.utc)

            self._export(event)
            subscriptions = list(self._subscriptions.values())

        dropped = sum(1 for sub in subscriptions if sub._offer(event))
        if dropped:
            with self._lock:
                self._inc(SUBSCRIPTION_DROPPED_EVENTS_TOTAL, {}, dropped)

    def emit_many(self, events: Iterable[MetricEvent]) -> None:
        for event in events:
            self.emit(event)

    # === Snapshots ===

    def get_snapshot(self) -> MetricsSnapshot:
        """Return a copy of the global aggregates including every provider and model."""
        with self._lock:
            now = datetime.now(timezone.utc)
            uptime = now - self._first_request_time if self._first_request_time else timedelta()
            return MetricsSnapshot(
                total_requests=self._global.total_requests,
                successful_requests=self._global.successful_requests,
                failed_requests=self._global.failed_requests,
                success_rate=self._global.success_rate,
                latency=self._global.latency(),
                tokens=self._global.tokens(),
                errors=self._global.errors(),
                providers={name: p.snapshot() for name, p in self._providers.items()},
                models={model_id: m.snapshot() for model_id, m in self._models.items()},
                first_request_time=self._first_request_time,
                last_updated=self._last_updated,
                uptime=uptime,
            )

    def get_provider_metrics(self, provider_name: str) -> ProviderMetricsSnapshot | None:
        with self._lock:
            provider = self._providers.get(provider_name)
            return provider.snapshot() if provider else None

    def get_model_metrics(self, model_id: str) -> ModelMetricsSnapshot | None:
        with self._lock:
            model = self._models.get(model_id)
            return model.snapshot() if model else None

    def provider_names(self) -> list[str]:
        with self._lock:
            return sorted(self._providers)

    def model_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._models)

    # === Subscriptions ===

    def subscribe(
        self,
        buffer_size: int | None = None,
        event_filter: MetricFilter | None = None,
    ) -> Subscription:
        """
        Subscribe to future events.

        Args:
            buffer_size: Buffer capacity (defaults to config.subscription_buffer_size)
            event_filter: Only events matching this filter are delivered

        Raises:
            ValueError: If buffer_size is less than 1
            RuntimeError: If the collector is closed
        """
        size = self.config.subscription_buffer_size if buffer_size is None else buffer_size
        if size < 1:
            raise ValueError("buffer_size must be at least 1")
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot subscribe to a closed metrics collector")
            sub = Subscription(next(self._subscription_ids), size, event_filter, self)
            self._subscriptions[sub.id] = sub
        logger.debug(f"Subscription {sub.id} created (buffer_size={size})")
        return sub

    def _remove_subscription(self, subscription_id: int) -> None:
        with self._lock:
            self._subscriptions.pop(subscription_id, None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # === Lifecycle ===

    def reset(self) -> None:
        """Clear every aggregate. Subscriptions stay active."""
        with self._lock:
            self._global = _Aggregate(self.config.max_latency_samples)
            self._providers.clear()
            self._models.clear()
            self._first_request_time = None
            self._last_updated = None

        logger.debug("Metrics collector reset")

    def close(self) -> None:
        """Close every subscription and stop accepting events. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for sub in subscriptions:
            sub._close()
        logger.debug(f"Metrics collector closed ({len(subscriptions)} subscriptions)")

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # === Prometheus HTTP Server ===

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus HTTP server for metrics scraping.

        Args:
            host: Host to bind to (default: 127.0.0.1 for localhost only).
                  Use "0.0.0.0" for external access in containerized environments.
            port: Port to bind to

        Returns:
            True if the server is running, False if it failed to start
        """
        if self._server_running:
            logger.warning("Prometheus server already running")
            return True

        try:
            _start_http_server(port, addr=host, registry=self._registry)
        except OSError as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            return False
        self._server_running = True
        logger.info(f"Prometheus metrics server started on {host}:{port}")
        return True

    @property
    def prometheus_enabled(self) -> bool:
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        return self._server_running


# =============================================================================
# Singleton Pattern
# =============================================================================

_global_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector(config: MetricsConfig | None = None) -> MetricsCollector:
    """
    Get or create the global metrics collector singleton.

    Args:
        config: Collector configuration (only used on first call)
    """
    global _global_collector

    if _global_collector is None:
        with _collector_lock:
            if _global_collector is None:
                _global_collector = MetricsCollector(config)

    return _global_collector


def reset_metrics_collector() -> None:
    """
    Discard the global collector (mainly for testing).

    The old collector is closed, so its subscriptions end, and its
    Prometheus metrics are unregistered so the next collector can export.
    """
    global _global_collector
    with _collector_lock:
        if _global_collector:
            _global_collector.close()
            _global_collector.unregister_prometheus()
        _global_collector = None


__all__ = [
    "METRIC_DEFINITIONS",
    "MetricDefinition",
    "MetricsCollector",
    "Subscription",
    "get_metrics_collector",
    "reset_metrics_collector",
]
