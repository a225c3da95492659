# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Runtime capability probing for provider objects.

Capabilities are discovered from the constructed provider rather than
declared up front. A capability counts as present only when the provider
satisfies its protocol AND the method is callable, so a stray non-callable
attribute with the right name is not mistaken for support.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .provider import (
    ChatProvider,
    ConnectivityTestable,
    HealthCheckProvider,
    ModelListingProvider,
    OAuthProvider,
)


class ProviderCapability(str, Enum):
    """Capability tags a provider may expose."""

    CHAT_COMPLETION = "chat_completion"
    MODEL_LISTING = "model_listing"
    CONNECTIVITY_TEST = "connectivity_test"
    OAUTH = "oauth"
    HEALTH_CHECK = "health_check"


_CAPABILITY_CHECKS: dict[ProviderCapability, tuple[type, tuple[str, ...]]] = {
    ProviderCapability.CHAT_COMPLETION: (ChatProvider, ("chat_completion",)),
    ProviderCapability.MODEL_LISTING: (ModelListingProvider, ("list_models",)),
    ProviderCapability.CONNECTIVITY_TEST: (ConnectivityTestable, ("test_connectivity",)),
    ProviderCapability.OAUTH: (OAuthProvider, ("validate_token", "refresh_token")),
    ProviderCapability.HEALTH_CHECK: (HealthCheckProvider, ("health_check",)),
}


def _has_capability(provider: Any, capability: ProviderCapability) -> bool:
    if provider is None:
        return False
    protocol, methods = _CAPABILITY_CHECKS[capability]
    if not isinstance(provider, protocol):
        return False
    return all(callable(getattr(provider, name, None)) for name in methods)


@dataclass(frozen=True)
class ProviderCapabilities:
    """
    Capabilities confirmed on a provider object.

    Attributes:
        chat_completion: Provider implements chat completion
        model_listing: Provider can list models
        connectivity_test: Provider has a connectivity test
        oauth: Provider validates and refreshes OAuth tokens
        health_check: Provider has a health-check endpoint
    """

    chat_completion: bool = False
    model_listing: bool = False
    connectivity_test: bool = False
    oauth: bool = False
    health_check: bool = False

    def has(self, capability: ProviderCapability) -> bool:
        return bool(getattr(self, capability.value))

    def tags(self) -> frozenset[ProviderCapability]:
        return frozenset(c for c in ProviderCapability if self.has(c))

    def to_details(self) -> dict[str, str]:
        """Capability flags in the detail-map form used by test results."""
        return {
            "supports_oauth": _flag(self.oauth),
            "supports_connectivity_test": _flag(self.connectivity_test),
            "supports_health_check": _flag(self.health_check),
            "supports_models": _flag(self.model_listing),
        }


def _flag(value: bool) -> str:
    return "true" if value else "false"


def probe_capabilities(provider: Any) -> ProviderCapabilities:
    """Detect every optional capability of ``provider``."""
    return ProviderCapabilities(
        chat_completion=_has_capability(provider, ProviderCapability.CHAT_COMPLETION),
        model_listing=_has_capability(provider, ProviderCapability.MODEL_LISTING),
        connectivity_test=_has_capability(provider, ProviderCapability.CONNECTIVITY_TEST),
        oauth=_has_capability(provider, ProviderCapability.OAUTH),
        health_check=_has_capability(provider, ProviderCapability.HEALTH_CHECK),
    )


def is_oauth_provider(provider: Any) -> bool:
    return _has_capability(provider, ProviderCapability.OAUTH)


def is_testable_provider(provider: Any) -> bool:
    return _has_capability(provider, ProviderCapability.CONNECTIVITY_TEST)


def is_model_listing_provider(provider: Any) -> bool:
    return _has_capability(provider, ProviderCapability.MODEL_LISTING)


def is_health_check_provider(provider: Any) -> bool:
    return _has_capability(provider, ProviderCapability.HEALTH_CHECK)


def as_oauth_provider(provider: Any) -> OAuthProvider | None:
    """Return ``provider`` typed as an OAuthProvider, or None."""
    return provider if is_oauth_provider(provider) else None


def as_testable_provider(provider: Any) -> ConnectivityTestable | None:
    return provider if is_testable_provider(provider) else None


def as_model_listing_provider(provider: Any) -> ModelListingProvider | None:
    return provider if is_model_listing_provider(provider) else None


def as_health_check_provider(provider: Any) -> HealthCheckProvider | None:
    return provider if is_health_check_provider(provider) else None


__all__ = [
    "ProviderCapabilities",
    "ProviderCapability",
    "as_health_check_provider",
    "as_model_listing_provider",
    "as_oauth_provider",
    "as_testable_provider",
    "is_health_check_provider",
    "is_model_listing_provider",
    "is_oauth_provider",
    "is_testable_provider",
    "probe_capabilities",
]
