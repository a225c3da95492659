# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider factory registry and provider-name canonicalization.

Factories are registered once per provider kind, typically at start-up, and
then used concurrently. Registration takes an internal lock, but callers
should finish registering before they start creating providers in parallel.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from .exceptions import ProviderCreationError, ProviderNotRegisteredError
from .observability.protocols import MetricsCollectorProtocol
from .protocols.provider import MetricsAwareProvider
from .types.provider import ProviderConfig, ProviderType

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderConfig], Any]
"""Builds a provider from its config. Returning None means "unsupported"."""


PROVIDER_ALIASES: dict[str, str] = {
    "openai": ProviderType.OPENAI.value,
    "gpt": ProviderType.OPENAI.value,
    "anthropic": ProviderType.ANTHROPIC.value,
    "claude": ProviderType.ANTHROPIC.value,
    "gemini": ProviderType.GEMINI.value,
    "xai": ProviderType.XAI.value,
    "x.ai": ProviderType.XAI.value,
    "llamacpp": ProviderType.LLAMACPP.value,
    "llama.cpp": ProviderType.LLAMACPP.value,
    "loadbalance": ProviderType.LOADBALANCE.value,
    "load-balance": ProviderType.LOADBALANCE.value,
}
"""Case-insensitive user spellings mapped to canonical provider kinds."""


def canonicalize_provider_name(name: str, registered_kinds: Iterable[str] = ()) -> str:
    """
    Map user input to a canonical provider kind.

    Input is trimmed and lower-cased, then looked up in PROVIDER_ALIASES.
    Names that are not aliases match registered kinds case-insensitively.
    Anything else is returned normalized, to be tried as an exact kind.

    Example:
        >>> canonicalize_provider_name("  Claude ")
        'anthropic'
        >>> canonicalize_provider_name("MyProxy", ["myproxy"])
        'myproxy'
    """
    normalized = name.strip().lower()
    alias = PROVIDER_ALIASES.get(normalized)
    if alias is not None:
        return alias
    for kind in registered_kinds:
        if str(kind).lower() == normalized:
            return str(kind)
    return normalized


class ProviderRegistry:
    """
    Registry of provider factories keyed by provider kind.

    Kinds are plain strings; ProviderType members may be used
    interchangeably with their values.

    Example:
        >>> registry = ProviderRegistry()
        >>> registry.register(ProviderType.OPENAI, OpenAIProvider)
        >>> provider = registry.create("openai", ProviderConfig(api_key="sk-..."))
    """

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}
        self._lock = threading.RLock()
        self._metrics: MetricsCollectorProtocol | None = None

    def register(self, provider_type: str, factory: ProviderFactory) -> None:
        """
        Install ``factory`` for ``provider_type``, replacing any previous one.

        Raises:
            ValueError: If the kind is empty
            TypeError: If the factory is not callable
        """
        kind = str(provider_type)
        if not kind:
            raise ValueError("provider_type must be non-empty")
        if not callable(factory):
            raise TypeError(f"factory for {kind} must be callable")
        with self._lock:
            replaced = kind in self._factories
            self._factories[kind] = factory
        logger.debug(f"Registered provider factory for {kind} (replaced={replaced})")

    def unregister(self, provider_type: str) -> bool:
        """Remove the factory for ``provider_type``. Returns False if none was registered."""
        with self._lock:
            return self._factories.pop(str(provider_type), None) is not None

    def is_registered(self, provider_type: str) -> bool:
        with self._lock:
            return str(provider_type) in self._factories

    def list_kinds(self) -> list[str]:
        """Registered provider kinds, sorted."""
        with self._lock:
            return sorted(self._factories)

    def canonicalize(self, name: str) -> str:
        """canonicalize_provider_name() against this registry's kinds."""
        return canonicalize_provider_name(name, self.list_kinds())

    def set_metrics_collector(self, collector: MetricsCollectorProtocol | None) -> None:
        """Providers created from now on that accept a collector receive ``collector``."""
        with self._lock:
            self._metrics = collector

    def create(self, provider_type: str, config: ProviderConfig) -> Any:
        """
        Look up and invoke the factory for ``provider_type``.

        The config passed to the factory is bound to ``provider_type`` unless
        it already names a type.

        Raises:
            ProviderNotRegisteredError: If no factory is registered
            ProviderCreationError: If the factory raises or returns None
        """
        kind = str(provider_type)
        with self._lock:
            factory = self._factories.get(kind)
            metrics = self._metrics
        if factory is None:
            raise ProviderNotRegisteredError(kind)

        try:
            provider = factory(config.with_type(kind))
        except Exception as e:
            raise ProviderCreationError(
                f"factory for {kind} failed: {e}", provider_type=kind
            ) from e
        if provider is None:
            raise ProviderCreationError(
                f"factory for {kind} returned no provider", provider_type=kind
            )

        if metrics is not None and isinstance(provider, MetricsAwareProvider):
            provider.set_metrics_collector(metrics)
        logger.debug(f"Created provider {type(provider).__name__} for {kind}")
        return provider

    def __contains__(self, provider_type: object) -> bool:
        return isinstance(provider_type, str) and self.is_registered(provider_type)

    def __len__(self) -> int:
        with self._lock:
            return len(self._factories)


__all__ = [
    "PROVIDER_ALIASES",
    "ProviderFactory",
    "ProviderRegistry",
    "canonicalize_provider_name",
]
