# SPDX-License-Identifier: Apache-2.0
"""
Unit tests for ProviderTestEngine.

Tests cover:
- Successful probes (API key, OAuth with refresh, health-check fallback)
- Configuration failures
- Authentication failures
- Connectivity and model-fetch failure classification
- Phase timeouts, overall deadlines and cancellation
- Metrics events
- Concurrent probes

Capability detection uses runtime-checkable protocols, so the providers
below are plain classes exposing exactly the methods they support.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import Mock

import pytest

from llm_provider_kit.config import EngineConfig, MetricsConfig
from llm_provider_kit.diagnostics import SKIP_REASON_NO_TEST_METHOD, ProviderTestEngine
from llm_provider_kit.observability import MetricEvent, MetricEventType, MetricsCollector
from llm_provider_kit.registry import ProviderRegistry
from llm_provider_kit.types import (
    ProviderConfig,
    TestErrorType,
    TestPhase,
    TestStatus,
    TokenInfo,
)

PAST = datetime.now(timezone.utc) - timedelta(hours=1)
FUTURE = datetime.now(timezone.utc) + timedelta(hours=1)


# =============================================================================
# Fake providers
# =============================================================================


class ChatOnlyProvider:
    def __init__(self, config: ProviderConfig | None = None) -> None:
        self.config = config

    async def chat_completion(self, request: Any) -> Any:
        return {"echo": request}


class ConnectableProvider(ChatOnlyProvider):
    """Connectivity-testable and model-listing provider."""

    def __init__(
        self,
        models: list[Any] | None = None,
        connectivity_error: BaseException | None = None,
        models_error: BaseException | None = None,
        delay: float = 0.0,
        models_delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.models = models if models is not None else []
        self.connectivity_error = connectivity_error
        self.models_error = models_error
        self.delay = delay
        self.models_delay = models_delay
        self.connectivity_calls = 0

    async def test_connectivity(self) -> None:
        self.connectivity_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.connectivity_error is not None:
            raise self.connectivity_error

    async def list_models(self) -> list[Any]:
        if self.models_delay:
            await asyncio.sleep(self.models_delay)
        if self.models_error is not None:
            raise self.models_error
        return self.models


class HealthCheckOnlyProvider(ChatOnlyProvider):
    def __init__(self, health_error: BaseException | None = None) -> None:
        super().__init__()
        self.health_error = health_error

    async def health_check(self) -> None:
        if self.health_error is not None:
            raise self.health_error


class OAuthFakeProvider(ChatOnlyProvider):
    """OAuth provider replaying a scripted sequence of validation outcomes."""

    def __init__(
        self,
        tokens: list[TokenInfo | BaseException | None],
        refresh_error: BaseException | None = None,
    ) -> None:
        super().__init__()
        self.tokens = list(tokens)
        self.refresh_error = refresh_error
        self.refresh_calls = 0

    async def validate_token(self) -> TokenInfo:
        outcome = self.tokens.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome  # type: ignore[return-value]

    async def refresh_token(self) -> None:
        self.refresh_calls += 1
        if self.refresh_error is not None:
            raise self.refresh_error


class RecordingCollector:
    def __init__(self) -> None:
        self.events: list[MetricEvent] = []

    def emit(self, event: MetricEvent) -> None:
        self.events.append(event)


def _engine(
    kind: str, provider: Any, config: EngineConfig | None = None, metrics: Any = None
) -> ProviderTestEngine:
    registry = ProviderRegistry()
    registry.register(kind, lambda cfg: provider)
    return ProviderTestEngine(registry, config=config, metrics=metrics)


# =============================================================================
# Success paths
# =============================================================================


class TestSuccessfulProbes:
    """Test probes that pass every phase."""

    @pytest.mark.asyncio
    async def test_openai_success(self) -> None:
        """API-key provider with connectivity test and two models."""
        provider = ConnectableProvider(models=[{"id": "gpt-4"}, {"id": "gpt-3.5-turbo"}])
        engine = _engine("openai", provider)

        result = await engine.test_provider("openai", {"api_key": "k"})

        assert result.status == TestStatus.SUCCESS
        assert result.phase == TestPhase.COMPLETED
        assert result.models_count == 2
        assert result.details["auth_method"] == "api_key"
        assert result.details["supports_connectivity_test"] == "true"
        assert result.details["supports_models"] == "true"
        assert result.details["supports_oauth"] == "false"
        assert result.details["connectivity_method"] == "connectivity_test"
        assert result.details["connectivity_test"] == "passed"
        assert result.details["config_validated"] == "true"
        assert result.details["models_count"] == "2"
        assert result.provider_type == "openai"
        assert result.test_error is None
        assert result.duration >= timedelta(0)

    @pytest.mark.asyncio
    async def test_gemini_oauth_refresh(self) -> None:
        """An expired token is refreshed and re-validated."""
        provider = OAuthFakeProvider(
            [
                TokenInfo(valid=True, expires_at=PAST),
                TokenInfo(valid=True, expires_at=FUTURE, scopes=["cloud-platform", "userinfo"]),
            ]
        )
        engine = _engine("gemini", provider)

        result = await engine.test_provider("gemini", {})

        assert result.status == TestStatus.SUCCESS
        assert result.details["auth_method"] == "oauth"
        assert result.details["token_refreshed"] == "true"
        assert result.details["token_valid"] == "true"
        assert result.details["token_scopes"] == "cloud-platform,userinfo"
        assert result.details["token_expires_at"] == FUTURE.isoformat()
        assert provider.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_valid_token_is_not_refreshed(self) -> None:
        provider = OAuthFakeProvider([TokenInfo(valid=True)])
        result = await _engine("gemini", provider).test_provider("gemini", {})
        assert result.is_success()
        assert provider.refresh_calls == 0
        assert "token_refreshed" not in result.details

    @pytest.mark.asyncio
    async def test_alias_is_canonicalized(self) -> None:
        result = await _engine("openai", ConnectableProvider()).test_provider(" GPT ", {})
        assert result.is_success()
        assert result.provider_type == "openai"
        assert result.details["provider_name"] == " GPT "

    @pytest.mark.asyncio
    async def test_virtual_provider_skips_connectivity(self) -> None:
        result = await _engine("fallback", ChatOnlyProvider()).test_provider("fallback", {})
        assert result.is_success()
        assert result.models_count == 0
        assert result.details["connectivity_test"] == "skipped"
        assert result.details["skip_reason"] == SKIP_REASON_NO_TEST_METHOD
        assert "connectivity_method" not in result.details

    @pytest.mark.asyncio
    async def test_health_check_fallback(self) -> None:
        result = await _engine("ollama", HealthCheckOnlyProvider()).test_provider("ollama", {})
        assert result.is_success()
        assert result.details["connectivity_method"] == "health_check"
        assert result.details["supports_health_check"] == "true"
        assert result.details["connectivity_test"] == "passed"

    @pytest.mark.asyncio
    async def test_provider_config_object(self) -> None:
        seen: list[ProviderConfig] = []
        registry = ProviderRegistry()
        registry.register("openai", lambda cfg: seen.append(cfg) or ConnectableProvider())
        engine = ProviderTestEngine(registry)

        result = await engine.test_provider("openai", ProviderConfig(api_key="sk-1"))

        assert result.is_success()
        assert seen[0].type == "openai"
        assert seen[0].api_key == "sk-1"

    @pytest.mark.asyncio
    async def test_model_fetch_disabled(self) -> None:
        provider = ConnectableProvider(models=[{"id": "a"}])
        engine = _engine("openai", provider, config=EngineConfig(fetch_models=False))
        result = await engine.test_provider("openai", {})
        assert result.is_success()
        assert result.models_count == 0
        assert "models_count" not in result.details


# =============================================================================
# Configuration failures
# =============================================================================


class TestConfigurationFailures:
    """Test failures before a provider exists."""

    @pytest.mark.asyncio
    async def test_unregistered_provider(self) -> None:
        engine = ProviderTestEngine(ProviderRegistry())
        result = await engine.test_provider("mistral", {})
        assert result.status == TestStatus.CONFIG_FAILED
        assert result.phase == TestPhase.CONFIGURATION
        assert result.is_retryable() is False
        assert "not registered" in result.error

    @pytest.mark.asyncio
    async def test_invalid_mapping(self) -> None:
        result = await _engine("openai", ConnectableProvider()).test_provider(
            "openai", {"api_key": 123}
        )
        assert result.status == TestStatus.CONFIG_FAILED
        assert "config_validated" not in result.details

    @pytest.mark.asyncio
    async def test_unsupported_config_type(self) -> None:
        result = await _engine("openai", ConnectableProvider()).test_provider(
            "openai", 42  # type: ignore[arg-type]
        )
        assert result.status == TestStatus.CONFIG_FAILED
        assert result.error == "unsupported configuration type: int"

    @pytest.mark.asyncio
    async def test_non_string_name(self) -> None:
        collector = RecordingCollector()
        engine = _engine("openai", ConnectableProvider(), metrics=collector)
        result = await engine.test_provider(None, {})  # type: ignore[arg-type]

        assert result.status == TestStatus.CONFIG_FAILED
        assert result.phase == TestPhase.CONFIGURATION
        assert result.error == "provider name must be a string, got NoneType"
        assert result.details["provider_name"] == "None"
        assert [e.type for e in collector.events] == [
            MetricEventType.REQUEST,
            MetricEventType.ERROR,
        ]

    @pytest.mark.asyncio
    async def test_factory_failure(self) -> None:
        def broken(config: ProviderConfig) -> Any:
            raise RuntimeError("api_key is required")

        registry = ProviderRegistry()
        registry.register("openai", broken)
        result = await ProviderTestEngine(registry).test_provider("openai", {})

        assert result.status == TestStatus.CONFIG_FAILED
        assert result.details["config_validated"] == "true"
        assert "api_key is required" in result.details["creation_error"]


# =============================================================================
# Authentication failures
# =============================================================================


class TestAuthenticationFailures:
    """Test OAuth failure classification."""

    @pytest.mark.asyncio
    async def test_invalid_token(self) -> None:
        provider = OAuthFakeProvider([TokenInfo(valid=False)])
        result = await _engine("gemini", provider).test_provider("gemini", {})
        assert result.status == TestStatus.AUTH_FAILED
        assert result.phase == TestPhase.AUTHENTICATION
        assert result.error == "OAuth token is not valid"

    @pytest.mark.parametrize(
        "message,status",
        [
            ("token expired", TestStatus.TOKEN_FAILED),
            ("invalid_client", TestStatus.AUTH_FAILED),
            ("oauth endpoint down", TestStatus.OAUTH_FAILED),
        ],
    )
    @pytest.mark.asyncio
    async def test_validation_error(self, message: str, status: TestStatus) -> None:
        provider = OAuthFakeProvider([RuntimeError(message)])
        result = await _engine("gemini", provider).test_provider("gemini", {})
        assert result.status == status
        assert result.error == message
        assert result.is_retryable() is False

    @pytest.mark.asyncio
    async def test_refresh_failure(self) -> None:
        provider = OAuthFakeProvider(
            [TokenInfo(valid=True, expires_at=PAST)],
            refresh_error=RuntimeError("refresh endpoint returned 400"),
        )
        result = await _engine("gemini", provider).test_provider("gemini", {})
        assert result.status == TestStatus.TOKEN_FAILED
        assert result.error == "Token expired and refresh failed"
        assert result.test_error is not None
        assert result.test_error.original_error == "refresh endpoint returned 400"

    @pytest.mark.asyncio
    async def test_still_expired_after_refresh(self) -> None:
        provider = OAuthFakeProvider(
            [TokenInfo(valid=True, expires_at=PAST), TokenInfo(valid=True, expires_at=PAST)]
        )
        result = await _engine("gemini", provider).test_provider("gemini", {})
        assert result.status == TestStatus.TOKEN_FAILED

    @pytest.mark.asyncio
    async def test_malformed_token_is_unknown_error(self) -> None:
        provider = OAuthFakeProvider([None])
        result = await _engine("gemini", provider).test_provider("gemini", {})
        assert result.status == TestStatus.UNKNOWN_ERROR
        assert result.phase == TestPhase.AUTHENTICATION


# =============================================================================
# Connectivity and model fetch failures
# =============================================================================


class TestConnectivityFailures:
    """Test connectivity and model-fetch classification."""

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        provider = ConnectableProvider(connectivity_error=RuntimeError("rate limit exceeded"))
        result = await _engine("openai", provider).test_provider("openai", {})
        assert result.status == TestStatus.RATE_LIMITED
        assert result.phase == TestPhase.CONNECTIVITY
        assert result.is_retryable() is True

    @pytest.mark.asyncio
    async def test_server_error_status_code(self) -> None:
        provider = ConnectableProvider(
            connectivity_error=RuntimeError("HTTP 503 Service Unavailable")
        )
        result = await _engine("openai", provider).test_provider("openai", {})
        assert result.status == TestStatus.SERVER_ERROR
        assert result.test_error is not None
        assert result.test_error.status_code == 503
        assert result.is_retryable() is True

    @pytest.mark.asyncio
    async def test_health_check_failure(self) -> None:
        provider = HealthCheckOnlyProvider(health_error=ConnectionError("connection refused"))
        result = await _engine("ollama", provider).test_provider("ollama", {})
        assert result.status == TestStatus.CONNECTIVITY_FAILED
        assert result.details["connectivity_method"] == "health_check"

    @pytest.mark.asyncio
    async def test_model_fetch_failure(self) -> None:
        provider = ConnectableProvider(models_error=RuntimeError("models API unavailable"))
        result = await _engine("openai", provider).test_provider("openai", {})
        assert result.status == TestStatus.CONNECTIVITY_FAILED
        assert result.phase == TestPhase.MODEL_FETCH
        assert result.error == "Failed to fetch models"
        assert result.details["models_error"] == "models API unavailable"
        assert result.details["connectivity_test"] == "passed"


# =============================================================================
# Timeouts and cancellation
# =============================================================================


class TestTimeouts:
    """Test phase bounds, overall deadlines and cancellation."""

    @pytest.mark.asyncio
    async def test_connectivity_phase_timeout(self) -> None:
        provider = ConnectableProvider(delay=5.0)
        engine = _engine("openai", provider, config=EngineConfig(connectivity_timeout=0.05))
        result = await engine.test_provider("openai", {})
        assert result.status == TestStatus.TIMEOUT_FAILED
        assert result.phase == TestPhase.CONNECTIVITY
        assert result.error == "connectivity_test timed out after 0.05s"
        assert result.is_retryable() is True

    @pytest.mark.asyncio
    async def test_overall_deadline(self) -> None:
        provider = ConnectableProvider(delay=5.0)
        result = await _engine("openai", provider).test_provider("openai", {}, timeout=0.05)
        assert result.status == TestStatus.TIMEOUT_FAILED
        assert result.duration < timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_model_fetch_timeout(self) -> None:
        provider = ConnectableProvider(models_delay=5.0)
        engine = _engine("openai", provider, config=EngineConfig(model_fetch_timeout=0.05))
        result = await engine.test_provider("openai", {})
        assert result.status == TestStatus.CONNECTIVITY_FAILED
        assert result.phase == TestPhase.MODEL_FETCH
        assert "timed out" in result.details["models_error"]

    @pytest.mark.asyncio
    async def test_provider_raised_cancellation_is_a_timeout(self) -> None:
        provider = ConnectableProvider(connectivity_error=asyncio.CancelledError())
        result = await _engine("openai", provider).test_provider("openai", {})
        assert result.status == TestStatus.TIMEOUT_FAILED

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self) -> None:
        provider = ConnectableProvider(delay=10.0)
        engine = _engine("openai", provider)
        task = asyncio.create_task(engine.test_provider("openai", {}))
        while provider.connectivity_calls == 0:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# =============================================================================
# Metrics
# =============================================================================


class TestMetrics:
    """Test events emitted by the engine."""

    @pytest.mark.asyncio
    async def test_success_events(self) -> None:
        collector = RecordingCollector()
        engine = _engine("openai", ConnectableProvider(), metrics=collector)
        await engine.test_provider("gpt", {})

        assert [e.type for e in collector.events] == [
            MetricEventType.REQUEST,
            MetricEventType.SUCCESS,
        ]
        assert all(e.provider_name == "openai" for e in collector.events)
        assert all(e.provider_type == "openai" for e in collector.events)
        assert collector.events[1].latency >= 0

    @pytest.mark.parametrize(
        "error,event_type,error_type",
        [
            (RuntimeError("rate limit exceeded"), MetricEventType.RATE_LIMIT, "rate_limit_error"),
            (RuntimeError("read timeout"), MetricEventType.TIMEOUT, "timeout_error"),
            (RuntimeError("HTTP 502 bad gateway"), MetricEventType.ERROR, "server_error"),
        ],
    )
    @pytest.mark.asyncio
    async def test_failure_events(
        self, error: Exception, event_type: MetricEventType, error_type: str
    ) -> None:
        collector = RecordingCollector()
        engine = _engine("openai", ConnectableProvider(connectivity_error=error), metrics=collector)
        await engine.test_provider("openai", {})

        failure = collector.events[-1]
        assert failure.type == event_type
        assert failure.error_type == error_type
        assert failure.error_message == str(error)

    @pytest.mark.asyncio
    async def test_with_metrics_collector(self) -> None:
        collector = MetricsCollector(MetricsConfig(enable_prometheus=False))
        engine = _engine("openai", ConnectableProvider(), metrics=collector)
        await engine.test_provider("openai", {})
        await engine.test_provider("missing", {})

        snapshot = collector.get_snapshot()
        assert snapshot.total_requests == 2
        assert snapshot.successful_requests == 1
        assert snapshot.errors.errors_by_type == {"config_error": 1}

    @pytest.mark.asyncio
    async def test_aliases_share_provider_aggregate(self) -> None:
        collector = MetricsCollector(MetricsConfig(enable_prometheus=False))
        engine = _engine("openai", ConnectableProvider(), metrics=collector)
        for name in ("openai", "GPT", " gpt "):
            await engine.test_provider(name, {})

        assert collector.provider_names() == ["openai"]
        openai = collector.get_provider_metrics("openai")
        assert openai is not None
        assert openai.total_requests == 3

    @pytest.mark.asyncio
    async def test_failing_sink_is_logged_and_ignored(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        sink = Mock()
        sink.emit.side_effect = RuntimeError("sink down")
        provider = ConnectableProvider(
            connectivity_error=RuntimeError("HTTP 503 Service Unavailable")
        )
        engine = _engine("openai", provider, metrics=sink)

        with caplog.at_level(logging.WARNING, logger="llm_provider_kit.diagnostics.engine"):
            result = await engine.test_provider("openai", {"api_key": "k"})

        assert result.status == TestStatus.SERVER_ERROR
        assert result.test_error is not None
        assert result.test_error.error_type == TestErrorType.SERVER_ERROR
        assert result.test_error.status_code == 503
        assert sink.emit.call_count == 2
        assert "sink down" in caplog.text


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentProbes:
    """Test that probes share no state."""

    @pytest.mark.asyncio
    async def test_gather(self) -> None:
        registry = ProviderRegistry()
        registry.register(
            "openai", lambda cfg: ConnectableProvider(models=[{"id": cfg.name}], delay=0.01)
        )
        registry.register(
            "anthropic",
            lambda cfg: ConnectableProvider(connectivity_error=RuntimeError("HTTP 401 unauthorized")),
        )
        engine = ProviderTestEngine(registry)

        names = ["openai", "claude"] * 5
        results = await asyncio.gather(
            *(engine.test_provider(n, {"name": f"{n}-{i}"}) for i, n in enumerate(names))
        )

        for name, result in zip(names, results):
            assert result.details["provider_name"] == name
            if name == "openai":
                assert result.is_success()
                assert result.models_count == 1
            else:
                assert result.status == TestStatus.AUTH_FAILED
                assert result.test_error is not None
                assert result.test_error.error_type == TestErrorType.AUTH
                assert result.test_error.status_code == 401
