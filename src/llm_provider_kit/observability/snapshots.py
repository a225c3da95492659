# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Point-in-time views of collector aggregates.

Snapshots are plain copies: mutating one never affects the collector.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta


@dataclass
class LatencyMetrics:
    """Latency statistics in seconds over the retained samples."""

    count: int = 0
    total: float = 0.0
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0

    @classmethod
    def from_samples(cls, samples: Sequence[float], count: int, total: float) -> LatencyMetrics:
        """
        Build statistics from retained samples.

        ``count`` and ``total`` cover every observation, while min, max and
        the percentiles only see the retained window.
        """
        if not samples:
            return cls(count=count, total=total)
        ordered = sorted(samples)
        return cls(
            count=count,
            total=total,
            average=total / count if count else 0.0,
            min=ordered[0],
            max=ordered[-1],
            p50=percentile(ordered, 50),
            p75=percentile(ordered, 75),
            p90=percentile(ordered, 90),
            p95=percentile(ordered, 95),
            p99=percentile(ordered, 99),
        )


def percentile(ordered: Sequence[float], pct: float) -> float:
    """Nearest-rank percentile of an already sorted sequence."""
    if not ordered:
        return 0.0
    index = int(round(pct / 100.0 * (len(ordered) - 1)))
    return ordered[max(0, min(index, len(ordered) - 1))]


@dataclass
class TokenMetrics:
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class ErrorMetrics:
    """Failure counts. ``errors_by_type`` is keyed by classified error kind."""

    total_errors: int = 0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    rate_limit_errors: int = 0
    timeout_errors: int = 0


@dataclass
class ModelMetricsSnapshot:
    model_id: str
    provider_name: str = ""
    provider_type: str = ""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    success_rate: float = 0.0
    latency: LatencyMetrics = field(default_factory=LatencyMetrics)
    tokens: TokenMetrics = field(default_factory=TokenMetrics)
    errors: ErrorMetrics = field(default_factory=ErrorMetrics)
    average_tokens_per_request: float = 0.0
    last_request_time: datetime | None = None


@dataclass
class ProviderMetricsSnapshot:
    """
    Aggregates for one provider instance.

    ``model_usage`` maps model id to the number of request events seen for
    that model on this provider.
    """

    provider_name: str
    provider_type: str = ""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    success_rate: float = 0.0
    latency: LatencyMetrics = field(default_factory=LatencyMetrics)
    tokens: TokenMetrics = field(default_factory=TokenMetrics)
    errors: ErrorMetrics = field(default_factory=ErrorMetrics)
    health_checks: int = 0
    health_check_failures: int = 0
    rate_limit_hits: int = 0
    model_usage: dict[str, int] = field(default_factory=dict)
    last_request_time: datetime | None = None


@dataclass
class MetricsSnapshot:
    """Global view across all providers and models."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    success_rate: float = 0.0
    latency: LatencyMetrics = field(default_factory=LatencyMetrics)
    tokens: TokenMetrics = field(default_factory=TokenMetrics)
    errors: ErrorMetrics = field(default_factory=ErrorMetrics)
    providers: dict[str, ProviderMetricsSnapshot] = field(default_factory=dict)
    models: dict[str, ModelMetricsSnapshot] = field(default_factory=dict)
    first_request_time: datetime | None = None
    last_updated: datetime | None = None
    uptime: timedelta = field(default_factory=timedelta)


__all__ = [
    "ErrorMetrics",
    "LatencyMetrics",
    "MetricsSnapshot",
    "ModelMetricsSnapshot",
    "ProviderMetricsSnapshot",
    "TokenMetrics",
    "percentile",
]
