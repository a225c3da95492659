# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Configuration for the LLM provider kit.

This module provides configuration classes for the provider test engine,
the rate limit tracker and the metrics collector. Provider configuration
itself lives in ``types.provider.ProviderConfig``.
"""

from dataclasses import dataclass


@dataclass
class EngineConfig:
    """
    Configuration for the ProviderTestEngine.

    Each phase bound applies on top of the overall deadline passed to
    ``test_provider()``; the tighter of the two wins.
    """

    # === Phase Timeouts ===

    connectivity_timeout: float = 30.0
    """Upper bound for a provider's connectivity test in seconds."""

    health_check_timeout: float = 10.0
    """Upper bound for the health-check fallback in seconds."""

    model_fetch_timeout: float | None = None
    """Upper bound for model listing in seconds. None means only the overall deadline applies."""

    # === Phases ===

    fetch_models: bool = True
    """Run the model listing phase for providers that support it."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.connectivity_timeout <= 0:
            raise ValueError("connectivity_timeout must be positive")
        if self.health_check_timeout <= 0:
            raise ValueError("health_check_timeout must be positive")
        if self.model_fetch_timeout is not None and self.model_fetch_timeout <= 0:
            raise ValueError("model_fetch_timeout must be positive or None")


@dataclass
class TrackerConfig:
    """Configuration for the RateLimitTracker."""

    default_throttle_threshold: float = 0.8
    """Usage ratio used when should_throttle() receives a ratio outside [0, 1]."""

    def __post_init__(self) -> None:
        if not 0 <= self.default_throttle_threshold <= 1.0:
            raise ValueError("default_throttle_threshold must be between 0 and 1.0")


@dataclass
class MetricsConfig:
    """Configuration for the MetricsCollector."""

    subscription_buffer_size: int = 100
    """Default capacity of a subscription buffer before the oldest events are dropped."""

    max_latency_samples: int = 1000
    """Latency samples kept per aggregate for percentile calculation."""

    enable_prometheus: bool = True
    """Mirror events into prometheus_client counters and histograms."""

    def __post_init__(self) -> None:
        if self.subscription_buffer_size < 1:
            raise ValueError("subscription_buffer_size must be at least 1")
        if self.max_latency_samples < 1:
            raise ValueError("max_latency_samples must be at least 1")


__all__ = ["EngineConfig", "MetricsConfig", "TrackerConfig"]
