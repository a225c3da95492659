# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Phased diagnostic probe of a registered provider.

A probe runs four totally ordered phases against a freshly created provider:

    1. Configuration  - canonicalize the name, build a ProviderConfig, create
    2. Authentication - validate (and refresh) OAuth tokens, or note API key use
    3. Connectivity   - connectivity test, else health check, else skipped
    4. Model fetch    - list models when the provider supports it

Every provider failure is classified into a TestResult; nothing a provider
raises escapes ``test_provider()``. Cancelling the calling task is the one
exception: the CancelledError propagates unchanged.

Each phase has its own upper bound on top of the overall deadline passed to
``test_provider()``. The tighter of the two applies.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, TypeVar

from ..config import EngineConfig
from ..exceptions import (
    ConfigurationError,
    ProviderCreationError,
    ProviderNotRegisteredError,
)
from ..observability.events import MetricEvent, MetricEventType
from ..observability.protocols import MetricsCollectorProtocol
from ..protocols.capabilities import ProviderCapabilities, probe_capabilities
from ..registry import ProviderRegistry
from ..types.provider import AuthMethod, ProviderConfig, TokenInfo
from ..types.test_result import (
    TestErrorType,
    TestPhase,
    TestResult,
    new_error_result,
    new_success_result,
)
from .classifier import classify_auth_error, classify_connectivity_error, error_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

SKIP_REASON_NO_TEST_METHOD = "no_test_method_available"

_EVENT_TYPE_FOR_ERROR = {
    TestErrorType.RATE_LIMIT: MetricEventType.RATE_LIMIT,
    TestErrorType.TIMEOUT: MetricEventType.TIMEOUT,
}


class _PhaseFailed(Exception):
    """Internal signal carrying the classified result of a failed phase."""

    def __init__(self, result: TestResult):
        super().__init__(result.error)
        self.result = result


class _CallTimedOut(Exception):
    def __init__(self, limit: float | None):
        super().__init__(f"timed out after {limit:g}s" if limit is not None else "timed out")
        self.limit = limit


@dataclass
class _Probe:
    """Per-call state. The engine itself holds none, so probes can run concurrently."""

    name: str
    provider_type: str
    started: float
    deadline: float | None
    phase: TestPhase = TestPhase.CONFIGURATION
    details: dict[str, str] = field(default_factory=dict)

    def elapsed(self) -> timedelta:
        return timedelta(seconds=time.monotonic() - self.started)

    def bound(self, phase_limit: float | None) -> float | None:
        """Tighter of ``phase_limit`` and the time left before the deadline."""
        if self.deadline is None:
            return phase_limit
        remaining = max(0.0, self.deadline - time.monotonic())
        return remaining if phase_limit is None else min(phase_limit, remaining)

    def fail(
        self,
        error_type: TestErrorType,
        message: str,
        status_code: int = 0,
        original_error: str = "",
    ) -> _PhaseFailed:
        result = new_error_result(
            self.provider_type,
            error_type,
            message,
            self.phase,
            self.elapsed(),
            status_code=status_code,
            original_error=original_error,
        )
        return _PhaseFailed(result)


def _caller_cancelled() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class ProviderTestEngine:
    """
    Runs diagnostic probes against providers created from a registry.

    Attributes:
        registry: Source of provider factories
        config: Phase timeouts and options
        metrics: Optional sink for request/success/error events

    Example:
        >>> engine = ProviderTestEngine(registry)
        >>> result = await engine.test_provider("gpt", {"api_key": "sk-..."}, timeout=60)
        >>> result.is_success()
        True
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: EngineConfig | None = None,
        metrics: MetricsCollectorProtocol | None = None,
    ):
        self.registry = registry
        self.config = config or EngineConfig()
        self.metrics = metrics

    async def test_provider(
        self,
        name: str,
        config: ProviderConfig | Mapping[str, Any],
        timeout: float | None = None,
    ) -> TestResult:
        """
        Probe the provider registered under ``name`` (or one of its aliases).

        Args:
            name: Provider name, canonicalized through PROVIDER_ALIASES
            config: A ProviderConfig or a generic string-to-value mapping
            timeout: Overall deadline in seconds, None for no deadline

        Returns:
            A classified TestResult; never None

        Raises:
            asyncio.CancelledError: If the calling task is cancelled
        """
        started = time.monotonic()
        probe = _Probe(
            name=str(name),
            provider_type="",
            started=started,
            deadline=started + timeout if timeout is not None else None,
        )
        probe.details["provider_name"] = probe.name

        try:
            result = await self._run_phases(probe, name, config)
        except _PhaseFailed as failed:
            result = failed.result
        except asyncio.CancelledError:
            if _caller_cancelled():
                raise
            result = probe.fail(TestErrorType.TIMEOUT, "probe was cancelled").result
        except Exception as e:
            logger.exception(f"Unexpected error while testing {probe.provider_type}: {e}")
            result = probe.fail(
                TestErrorType.UNKNOWN, error_message(e), original_error=repr(e)
            ).result

        return self._finish(probe, result)

    # === Phases ===

    async def _run_phases(
        self, probe: _Probe, name: Any, config: ProviderConfig | Mapping[str, Any]
    ) -> TestResult:
        if not isinstance(name, str):
            self._emit(probe, MetricEventType.REQUEST)
            raise probe.fail(
                TestErrorType.CONFIG,
                f"provider name must be a string, got {type(name).__name__}",
            )
        probe.provider_type = self.registry.canonicalize(name)
        self._emit(probe, MetricEventType.REQUEST)

        provider = self._configure(probe, config)

        probe.phase = TestPhase.AUTHENTICATION
        capabilities = probe_capabilities(provider)
        probe.details.update(capabilities.to_details())
        await self._authenticate(probe, provider, capabilities)

        probe.phase = TestPhase.CONNECTIVITY
        await self._check_connectivity(probe, provider, capabilities)

        models_count = 0
        if self.config.fetch_models and capabilities.model_listing:
            probe.phase = TestPhase.MODEL_FETCH
            models_count = await self._fetch_models(probe, provider)

        probe.phase = TestPhase.COMPLETED
        return new_success_result(probe.provider_type, models_count, probe.elapsed())

    def _configure(self, probe: _Probe, config: ProviderConfig | Mapping[str, Any]) -> Any:
        if isinstance(config, ProviderConfig):
            provider_config = config.with_type(probe.provider_type)
        elif isinstance(config, Mapping):
            try:
                provider_config = ProviderConfig.from_mapping(probe.provider_type, config)
            except ConfigurationError as e:
                raise probe.fail(TestErrorType.CONFIG, str(e)) from e
        else:
            raise probe.fail(
                TestErrorType.CONFIG,
                f"unsupported configuration type: {type(config).__name__}",
            )
        probe.details["config_validated"] = "true"

        try:
            return self.registry.create(probe.provider_type, provider_config)
        except ProviderNotRegisteredError as e:
            raise probe.fail(TestErrorType.CONFIG, str(e)) from e
        except ProviderCreationError as e:
            probe.details["creation_error"] = str(e)
            raise probe.fail(
                TestErrorType.CONFIG, f"failed to create provider {probe.provider_type}"
            ) from e

    async def _authenticate(
        self, probe: _Probe, provider: Any, capabilities: ProviderCapabilities
    ) -> None:
        if not capabilities.oauth:
            probe.details["auth_method"] = AuthMethod.API_KEY.value
            return

        probe.details["auth_method"] = AuthMethod.OAUTH.value
        try:
            token = await self._call(probe, provider.validate_token, None)
        except _CallTimedOut as e:
            raise probe.fail(TestErrorType.TIMEOUT, f"token validation {e}") from e
        except Exception as e:
            raise probe.fail(classify_auth_error(e), error_message(e)) from e

        if token.is_expired():
            token = await self._refresh(probe, provider)
            probe.details["token_refreshed"] = "true"
        elif not token.valid:
            raise probe.fail(TestErrorType.AUTH, "OAuth token is not valid")

        probe.details["token_valid"] = "true"
        if token.expires_at is not None:
            probe.details["token_expires_at"] = token.expires_at.isoformat()
        if token.scopes:
            probe.details["token_scopes"] = ",".join(token.scopes)

    async def _refresh(self, probe: _Probe, provider: Any) -> TokenInfo:
        try:
            await self._call(probe, provider.refresh_token, None)
        except Exception as e:
            raise probe.fail(
                TestErrorType.TOKEN,
                "Token expired and refresh failed",
                original_error=error_message(e),
            ) from e

        try:
            token = await self._call(probe, provider.validate_token, None)
        except Exception as e:
            raise probe.fail(
                TestErrorType.TOKEN,
                "Token validation failed after refresh",
                original_error=error_message(e),
            ) from e
        if not token.valid or token.is_expired():
            raise probe.fail(TestErrorType.TOKEN, "Token still invalid after refresh")
        return token

    async def _check_connectivity(
        self, probe: _Probe, provider: Any, capabilities: ProviderCapabilities
    ) -> None:
        if capabilities.connectivity_test:
            method, call, limit = (
                "connectivity_test",
                provider.test_connectivity,
                self.config.connectivity_timeout,
            )
        elif capabilities.health_check:
            method, call, limit = (
                "health_check",
                provider.health_check,
                self.config.health_check_timeout,
            )
        else:
            probe.details["connectivity_test"] = "skipped"
            probe.details["skip_reason"] = SKIP_REASON_NO_TEST_METHOD
            return

        probe.details["connectivity_method"] = method
        try:
            await self._call(probe, call, limit)
        except _CallTimedOut as e:
            raise probe.fail(TestErrorType.TIMEOUT, f"{method} {e}") from e
        except Exception as e:
            classification = classify_connectivity_error(e)
            raise probe.fail(
                classification.error_type,
                error_message(e),
                status_code=classification.status_code,
            ) from e
        probe.details["connectivity_test"] = "passed"

    async def _fetch_models(self, probe: _Probe, provider: Any) -> int:
        try:
            models = await self._call(
                probe, provider.list_models, self.config.model_fetch_timeout
            )
            count = len(models) if models is not None else 0
        except Exception as e:
            probe.details["models_error"] = error_message(e)
            raise probe.fail(
                TestErrorType.CONNECTIVITY,
                "Failed to fetch models",
                original_error=error_message(e),
            ) from e
        probe.details["models_count"] = str(count)
        return count

    # === Helpers ===

    async def _call(
        self,
        probe: _Probe,
        func: Callable[[], Awaitable[T]],
        phase_limit: float | None,
    ) -> T:
        """
        Await ``func()`` under the tighter of ``phase_limit`` and the deadline.

        Raises:
            _CallTimedOut: If the bound elapsed
            asyncio.CancelledError: If the calling task was cancelled
        """
        limit = probe.bound(phase_limit)
        try:
            return await asyncio.wait_for(func(), timeout=limit)
        except asyncio.CancelledError:
            if _caller_cancelled():
                raise
            raise _CallTimedOut(limit) from None
        except asyncio.TimeoutError as e:
            raise _CallTimedOut(limit) from e

    def _finish(self, probe: _Probe, result: TestResult) -> TestResult:
        result.duration = probe.elapsed()
        result.details = {**probe.details, **result.details}

        if result.is_success():
            self._emit(probe, MetricEventType.SUCCESS, latency=result.duration)
            logger.info(
                f"Provider {probe.provider_type} passed in "
                f"{result.duration.total_seconds():.3f}s "
                f"(models={result.models_count})"
            )
        else:
            error_type = result.test_error.error_type if result.test_error else TestErrorType.UNKNOWN
            self._emit(
                probe,
                _EVENT_TYPE_FOR_ERROR.get(error_type, MetricEventType.ERROR),
                latency=result.duration,
                error_type=error_type.value,
                error_message=result.error,
                status_code=result.test_error.status_code if result.test_error else 0,
            )
            logger.info(
                f"Provider {probe.provider_type} failed in phase {result.phase.value}: "
                f"{result.error_summary()}"
            )
        return result

    def _emit(
        self,
        probe: _Probe,
        event_type: MetricEventType,
        latency: timedelta | None = None,
        error_type: str = "",
        error_message: str = "",
        status_code: int = 0,
    ) -> None:
        if self.metrics is None:
            return
        event = MetricEvent(
            type=event_type,
            provider_name=probe.provider_type,
            provider_type=probe.provider_type,
            latency=latency.total_seconds() if latency else 0.0,
            error_type=error_type,
            error_message=error_message,
            status_code=status_code,
        )
        try:
            self.metrics.emit(event)
        except Exception as e:
            logger.warning(
                f"Metrics collector failed on {event_type.value} event for "
                f"{probe.provider_type}: {e}"
            )


__all__ = ["SKIP_REASON_NO_TEST_METHOD", "ProviderTestEngine"]
