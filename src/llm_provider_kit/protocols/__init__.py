# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for provider capabilities.

Available protocols:
- ChatProvider: Chat completion, offered by every provider
- ModelListingProvider: Lists available models
- ConnectivityTestable: Minimal authenticated request
- HealthCheckProvider: Health endpoint (fallback connectivity check)
- OAuthProvider: OAuth token validation and refresh
- MetricsAwareProvider: Accepts a metrics collector

Capability probing:
- probe_capabilities(): Detect every capability of a provider object
- is_* / as_* helpers for individual capabilities
"""

from .capabilities import (
    ProviderCapabilities,
    ProviderCapability,
    as_health_check_provider,
    as_model_listing_provider,
    as_oauth_provider,
    as_testable_provider,
    is_health_check_provider,
    is_model_listing_provider,
    is_oauth_provider,
    is_testable_provider,
    probe_capabilities,
)
from .provider import (
    ChatProvider,
    ConnectivityTestable,
    HealthCheckProvider,
    MetricsAwareProvider,
    ModelListingProvider,
    OAuthProvider,
)

__all__ = [
    "ChatProvider",
    "ConnectivityTestable",
    "HealthCheckProvider",
    "MetricsAwareProvider",
    "ModelListingProvider",
    "OAuthProvider",
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
