# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Metric event and subscription filter types."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class MetricEventType(str, Enum):
    """
    Kinds of metric events.

    error, rate_limit and timeout all count as failed requests in the
    collector aggregates.
    """

    REQUEST = "request"
    SUCCESS = "success"
    ERROR = "error"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    HEALTH_CHECK = "health_check"


FAILURE_EVENT_TYPES = frozenset(
    {MetricEventType.ERROR, MetricEventType.RATE_LIMIT, MetricEventType.TIMEOUT}
)


@dataclass
class MetricEvent:
    """
    A single metrics event emitted by a provider or the test engine.

    Attributes:
        type: Event kind
        provider_name: Provider instance name (e.g. 'openai-prod')
        provider_type: Provider kind (e.g. 'openai')
        model_id: Model identifier, empty if not model-specific
        latency: Request latency in seconds (0 if not measured)
        tokens_used: Total tokens consumed
        input_tokens: Input tokens consumed
        output_tokens: Output tokens produced
        error_message: Error text for failure events
        error_type: Classified error kind for failure events
        status_code: HTTP status code, 0 if unknown
        timestamp: When the event occurred (UTC)
        metadata: Additional free-form data
    """

    type: MetricEventType
    provider_name: str = ""
    provider_type: str = ""
    model_id: str = ""
    latency: float = 0.0
    tokens_used: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    error_message: str = ""
    error_type: str = ""
    status_code: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_failure(self) -> bool:
        return self.type in FAILURE_EVENT_TYPES

    @property
    def total_tokens(self) -> int:
        """Reported total, or input + output when no total was given."""
        return self.tokens_used or (self.input_tokens + self.output_tokens)


@dataclass(frozen=True)
class MetricFilter:
    """
    Criteria for filtered subscriptions.

    An event matches when it satisfies ALL non-empty criteria; an empty
    collection matches everything for that dimension.

    Attributes:
        provider_names: Accepted provider instance names
        provider_types: Accepted provider kinds
        model_ids: Accepted model identifiers
        event_types: Accepted event kinds
        min_latency: Minimum latency in seconds (0 disables)
        error_types: Accepted error kinds; events without an error kind pass
    """

    provider_names: Collection[str] = ()
    provider_types: Collection[str] = ()
    model_ids: Collection[str] = ()
    event_types: Collection[MetricEventType] = ()
    min_latency: float = 0.0
    error_types: Collection[str] = ()

    def matches(self, event: MetricEvent) -> bool:
        if self.provider_names and event.provider_name not in self.provider_names:
            return False
        if self.provider_types and event.provider_type not in self.provider_types:
            return False
        if self.model_ids and event.model_id not in self.model_ids:
            return False
        if self.event_types and event.type not in self.event_types:
            return False
        if self.min_latency > 0 and event.latency < self.min_latency:
            return False
        if self.error_types and event.error_type and event.error_type not in self.error_types:
            return False
        return True


__all__ = ["FAILURE_EVENT_TYPES", "MetricEvent", "MetricEventType", "MetricFilter"]
