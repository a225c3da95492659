# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocols for provider capabilities.

A provider object is anything a registered factory returns. Beyond chat
completion, which every provider offers, each capability is an independent
protocol. The test engine only uses a capability after
``protocols.capabilities.probe_capabilities()`` has confirmed it.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from ..types.provider import TokenInfo


@runtime_checkable
class ChatProvider(Protocol):
    """
    Minimal protocol every provider satisfies.

    Request and response shapes are provider-specific and outside the
    scope of this library.
    """

    async def chat_completion(self, request: Any) -> Any:
        """Send a chat-completion request and return the provider's response."""
        ...


@runtime_checkable
class ModelListingProvider(Protocol):
    """Provider that can list the models it serves."""

    async def list_models(self) -> Sequence[Any]:
        """
        Return the available models.

        Any sequence is accepted (typically ``types.provider.Model``
        objects); the test engine only counts the entries.
        """
        ...


@runtime_checkable
class ConnectivityTestable(Protocol):
    """Provider with a cheap request that proves credentials and network path."""

    async def test_connectivity(self) -> None:
        """
        Perform a minimal authenticated request.

        Raises:
            Exception: Any failure. The message is classified by substring,
                so include the HTTP status code when one is available
                (e.g. "HTTP 503: service unavailable").
        """
        ...


@runtime_checkable
class HealthCheckProvider(Protocol):
    """Provider exposing a health endpoint, used when no connectivity test exists."""

    async def health_check(self) -> None:
        """Raise on an unhealthy provider; return normally otherwise."""
        ...


@runtime_checkable
class OAuthProvider(Protocol):
    """Provider authenticated with OAuth tokens."""

    async def validate_token(self) -> TokenInfo:
        """
        Validate the current access token.

        Returns:
            TokenInfo describing the token. ``valid=False`` means the
            provider rejected it.

        Raises:
            Exception: Validation failed. Messages mentioning "expired",
                "invalid", "unauthorized" or "oauth" are classified
                accordingly.
        """
        ...

    async def refresh_token(self) -> None:
        """Obtain a new access token using the refresh token."""
        ...


@runtime_checkable
class MetricsAwareProvider(Protocol):
    """Provider that reports its own request metrics to a collector."""

    def set_metrics_collector(self, collector: Any) -> None:
        ...


__all__ = [
    "ChatProvider",
    "ConnectivityTestable",
    "HealthCheckProvider",
    "MetricsAwareProvider",
    "ModelListingProvider",
    "OAuthProvider",
]
