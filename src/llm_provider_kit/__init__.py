# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""LLM Provider Kit - Rate limit tracking and diagnostics for LLM providers.

This library provides the provider-independent core of an LLM client SDK:
normalized rate limit headers, admission control, provider health probes
and metrics.

Key Features:
    - Rate limit header parsers for OpenAI, Anthropic, Gemini, Cerebras,
      Qwen/DashScope and OpenRouter style APIs
    - Thread-safe rate limit tracker with admission, wait-time and
      throttle queries
    - Phased provider diagnostics with classified, serializable results
    - Runtime capability probing through protocol-based interfaces
    - Event-based metrics with snapshots, subscriptions and Prometheus export

Quick Start:
    >>> from llm_provider_kit import ProviderRegistry, ProviderTestEngine
    >>>
    >>> registry = ProviderRegistry()
    >>> registry.register("openai", lambda config: MyOpenAIProvider(config))
    >>> engine = ProviderTestEngine(registry)
    >>> result = await engine.test_provider("gpt", {"api_key": "sk-..."})
    >>> print(result.to_json())

    >>> from llm_provider_kit import RateLimitTracker, get_parser
    >>> tracker = RateLimitTracker()
    >>> tracker.update(get_parser("openai").parse(response.headers, "gpt-4"))
    >>> if not tracker.can_make_request("gpt-4", estimated_tokens=500):
    ...     await asyncio.sleep(tracker.get_wait_time("gpt-4"))

Main Exports:
    - RateLimitTracker, get_parser: Rate limit tracking
    - ProviderRegistry, ProviderTestEngine: Provider diagnostics
    - MetricsCollector: Metrics aggregation
    - TestResult and factories: Probe results

Version: 1.0.0
"""

__version__ = "1.0.0"

from .config import EngineConfig, MetricsConfig, TrackerConfig
from .diagnostics import ProviderTestEngine
from .exceptions import (
    ConfigurationError,
    ProviderCreationError,
    ProviderKitError,
    ProviderNotRegisteredError,
    RateLimitParseError,
)
from .observability import (
    MetricEvent,
    MetricEventType,
    MetricFilter,
    MetricsCollector,
    MetricsCollectorProtocol,
    get_metrics_collector,
    reset_metrics_collector,
)
from .protocols import (
    ChatProvider,
    ConnectivityTestable,
    HealthCheckProvider,
    ModelListingProvider,
    OAuthProvider,
    ProviderCapabilities,
    probe_capabilities,
)
from .ratelimit import RateLimitParser, RateLimitTracker, get_parser
from .registry import PROVIDER_ALIASES, ProviderRegistry, canonicalize_provider_name
from .types import (
    Model,
    ProviderConfig,
    ProviderType,
    RateLimitInfo,
    TestError,
    TestErrorType,
    TestPhase,
    TestResult,
    TestStatus,
    TokenInfo,
)

__all__ = [
    "PROVIDER_ALIASES",
    "ChatProvider",
    "ConfigurationError",
    "ConnectivityTestable",
    "EngineConfig",
    "HealthCheckProvider",
    "MetricEvent",
    "MetricEventType",
    "MetricFilter",
    "MetricsCollector",
    "MetricsCollectorProtocol",
    "MetricsConfig",
    "Model",
    "ModelListingProvider",
    "OAuthProvider",
    "ProviderCapabilities",
    "ProviderConfig",
    "ProviderCreationError",
    "ProviderKitError",
    "ProviderNotRegisteredError",
    "ProviderRegistry",
    "ProviderTestEngine",
    "ProviderType",
    "RateLimitInfo",
    "RateLimitParseError",
    "RateLimitParser",
    "RateLimitTracker",
    "TestError",
    "TestErrorType",
    "TestPhase",
    "TestResult",
    "TestStatus",
    "TokenInfo",
    "TrackerConfig",
    "__version__",
    "canonicalize_provider_name",
    "get_metrics_collector",
    "get_parser",
    "probe_capabilities",
    "reset_metrics_collector",
]
