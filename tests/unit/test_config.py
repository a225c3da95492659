# SPDX-License-Identifier: Apache-2.0
"""Unit tests for engine, tracker and metrics configuration."""

from __future__ import annotations

import pytest

from llm_provider_kit.config import EngineConfig, MetricsConfig, TrackerConfig


class TestEngineConfig:
    """Test EngineConfig defaults and validation."""

    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.connectivity_timeout == 30.0
        assert config.health_check_timeout == 10.0
        assert config.model_fetch_timeout is None
        assert config.fetch_models is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"connectivity_timeout": 0},
            {"health_check_timeout": -1.0},
            {"model_fetch_timeout": 0.0},
        ],
    )
    def test_rejects_non_positive_timeouts(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            EngineConfig(**kwargs)


class TestTrackerConfig:
    """Test TrackerConfig validation."""

    def test_default_threshold(self) -> None:
        assert TrackerConfig().default_throttle_threshold == 0.8

    @pytest.mark.parametrize("threshold", [-0.01, 1.01])
    def test_threshold_range(self, threshold: float) -> None:
        with pytest.raises(ValueError):
            TrackerConfig(default_throttle_threshold=threshold)


class TestMetricsConfig:
    """Test MetricsConfig validation."""

    def test_defaults(self) -> None:
        config = MetricsConfig()
        assert config.subscription_buffer_size == 100
        assert config.max_latency_samples == 1000
        assert config.enable_prometheus is True

    def test_invalid_sizes(self) -> None:
        with pytest.raises(ValueError):
            MetricsConfig(subscription_buffer_size=0)
        with pytest.raises(ValueError):
            MetricsConfig(max_latency_samples=0)
