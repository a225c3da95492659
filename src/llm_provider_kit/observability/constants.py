# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `llm_provider_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`

Labels:
    To prevent label cardinality explosion, use only:
    - `provider` - Provider instance name (openai-prod, anthropic)
    - `provider_type` - Provider kind (openai, anthropic, gemini)
    - `model_id` - Model name (gpt-4, claude-3-opus)
    - `error_type` - Classified error kind (timeout_error, rate_limit_error)

    NEVER use:
    - `request_id` - Unique per request (unbounded!)
    - `error_message` - Free text (unbounded!)

Usage:
    >>> from llm_provider_kit.observability.constants import PROVIDER_REQUESTS_TOTAL
    >>> print(PROVIDER_REQUESTS_TOTAL)
    'llm_provider_requests_total'
"""


# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "llm_provider"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Request Metrics
# =============================================================================

PROVIDER_REQUESTS_TOTAL = f"{METRIC_PREFIX}_requests_total"
"""Total requests started against a provider."""

PROVIDER_SUCCESSES_TOTAL = f"{METRIC_PREFIX}_successes_total"
"""Total requests completed successfully."""

PROVIDER_FAILURES_TOTAL = f"{METRIC_PREFIX}_failures_total"
"""Total requests that failed (error, rate limit, timeout)."""

PROVIDER_RATE_LIMITS_TOTAL = f"{METRIC_PREFIX}_rate_limits_total"
"""Total rate-limit responses."""

PROVIDER_TIMEOUTS_TOTAL = f"{METRIC_PREFIX}_timeouts_total"
"""Total request timeouts."""

PROVIDER_HEALTH_CHECKS_TOTAL = f"{METRIC_PREFIX}_health_checks_total"
"""Total health checks performed."""

PROVIDER_TOKENS_TOTAL = f"{METRIC_PREFIX}_tokens_total"
"""Total tokens consumed."""

PROVIDER_LATENCY_SECONDS = f"{METRIC_PREFIX}_latency_seconds"
"""Latency of completed requests (histogram)."""


# =============================================================================
# Subscription Metrics
# =============================================================================

SUBSCRIPTION_DROPPED_EVENTS_TOTAL = f"{METRIC_PREFIX}_subscription_dropped_events_total"
"""Total events dropped from full subscription buffers."""


# =============================================================================
# Histogram Buckets
# =============================================================================

LATENCY_BUCKETS: list[float] = [
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
]
"""Latency buckets for provider request histograms (in seconds)."""


__all__ = [
    "LATENCY_BUCKETS",
    "METRIC_PREFIX",
    "PROVIDER_FAILURES_TOTAL",
    "PROVIDER_HEALTH_CHECKS_TOTAL",
    "PROVIDER_LATENCY_SECONDS",
    "PROVIDER_RATE_LIMITS_TOTAL",
    "PROVIDER_REQUESTS_TOTAL",
    "PROVIDER_SUCCESSES_TOTAL",
    "PROVIDER_TIMEOUTS_TOTAL",
    "PROVIDER_TOKENS_TOTAL",
    "SUBSCRIPTION_DROPPED_EVENTS_TOTAL",
]
