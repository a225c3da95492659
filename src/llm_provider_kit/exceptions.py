# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the LLM provider kit.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from ProviderKitError, making it easy to catch
all library-related exceptions with a single except clause.

Note that rate limit parsers and the tracker never raise on malformed
data, and the provider test engine converts every provider failure into a
classified TestResult. These exceptions surface only from the registry,
configuration conversion and explicit validation helpers.
"""


class ProviderKitError(Exception):
    """Base exception for all provider kit errors.

    Example:
        try:
            provider = registry.create("openai", config)
        except ProviderKitError as e:
            logger.error(f"Provider kit error: {e}")
    """

    pass


class ConfigurationError(ProviderKitError):
    """Raised when a provider configuration is invalid.

    Common causes include:
    - A configuration value of an unsupported type (neither a ProviderConfig
      nor a mapping)
    - Type mismatches in configuration fields (e.g. a non-string api_key)

    Attributes:
        field: Name of the offending field, when known.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ProviderNotRegisteredError(ProviderKitError):
    """Raised when no factory is registered for a provider kind.

    Attributes:
        provider_type: The provider kind that was looked up.

    Example:
        try:
            provider = registry.create("mistral", config)
        except ProviderNotRegisteredError as e:
            logger.warning(f"'{e.provider_type}' is not available")
    """

    def __init__(self, provider_type: str):
        super().__init__(f"provider type {provider_type} not registered")
        self.provider_type = provider_type


class ProviderCreationError(ProviderKitError):
    """Raised when a registered factory fails to produce a provider.

    This covers both a factory that raises and a factory that returns None,
    so callers never receive a missing provider object.

    Attributes:
        provider_type: The provider kind whose factory failed.
    """

    def __init__(self, message: str, provider_type: str):
        super().__init__(message)
        self.provider_type = provider_type


class RateLimitParseError(ProviderKitError):
    """Raised by strict parsing helpers when no rate limit data is present.

    Plain ``parse()`` calls never raise this; it is reserved for the
    ``parse_and_validate()`` style helpers that demand meaningful data.
    """

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider
