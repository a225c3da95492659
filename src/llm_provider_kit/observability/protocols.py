# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for metrics collectors.

The core library depends on exactly one collector operation, ``emit()``.
Snapshots and subscriptions are features of the bundled MetricsCollector,
not requirements on custom implementations.

Design Goals:
    1. Protocol-based - Allow duck typing and custom implementations
    2. Thread-safe - Events may be emitted from any thread
    3. Non-blocking - emit() must never wait on a slow consumer
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .events import MetricEvent


@runtime_checkable
class MetricsCollectorProtocol(Protocol):
    """
    Protocol for metrics sinks.

    Example:
        >>> class LoggingCollector:
        ...     def emit(self, event):
        ...         logger.info(f"{event.type.value} {event.provider_name}")
        >>>
        >>> isinstance(LoggingCollector(), MetricsCollectorProtocol)
        True
    """

    def emit(self, event: MetricEvent) -> None:
        """
        Record a single event.

        Must be thread-safe, must not block on consumers and must not
        raise for well-formed events.
        """
        ...


__all__ = ["MetricsCollectorProtocol"]
