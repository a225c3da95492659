# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider identity and configuration types.

This module defines the canonical provider kinds, the validated provider
configuration model, and the small value types exchanged with providers
during a test probe (OAuth token information and model descriptors).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ConfigurationError


class ProviderType(str, Enum):
    """
    Canonical provider kinds.

    Members compare and hash equal to their string values, so registries
    keyed by plain strings accept either spelling.
    """

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    QWEN = "qwen"
    CEREBRAS = "cerebras"
    OPENROUTER = "openrouter"
    SYNTHETIC = "synthetic"
    XAI = "xai"
    FIREWORKS = "fireworks"
    DEEPSEEK = "deepseek"
    MISTRAL = "mistral"
    LMSTUDIO = "lmstudio"
    LLAMACPP = "llamacpp"
    OLLAMA = "ollama"

    # Virtual providers
    RACING = "racing"
    FALLBACK = "fallback"
    LOADBALANCE = "loadbalance"

    def __str__(self) -> str:
        return self.value


VIRTUAL_PROVIDER_TYPES = frozenset(
    {ProviderType.RACING, ProviderType.FALLBACK, ProviderType.LOADBALANCE}
)


class AuthMethod(str, Enum):
    """Authentication method reported by a provider probe."""

    API_KEY = "api_key"
    BEARER_TOKEN = "bearer_token"
    OAUTH = "oauth"
    CUSTOM = "custom"


class ToolFormat(str, Enum):
    """Wire format a provider uses for tool calling."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    XML = "xml"
    HERMES = "hermes"
    TEXT = "text"


# Keys of a generic config mapping that populate typed ProviderConfig fields.
_CONFIG_FIELD_KEYS = (
    "name",
    "base_url",
    "api_key",
    "api_key_env",
    "default_model",
    "description",
    "supports_streaming",
    "supports_tool_calling",
    "supports_responses_api",
    "max_tokens",
    "timeout",
    "tool_format",
    "enable_verbose_logging",
)


class ProviderConfig(BaseModel):
    """
    Validated configuration for a single provider instance.

    Factories registered with the ProviderRegistry receive one of these.
    ``provider_config`` holds free-form, provider-specific settings; when a
    config is built from a plain mapping the whole mapping is kept there so
    factories can read keys this model does not know about.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    type: str = ""
    name: str = ""
    base_url: str = ""
    api_key: str = ""
    api_key_env: str = ""
    default_model: str = ""
    description: str = ""
    provider_config: dict[str, Any] = Field(default_factory=dict)

    supports_streaming: bool = False
    supports_tool_calling: bool = False
    supports_responses_api: bool = False

    max_tokens: int = 0
    timeout: float | None = None
    """Request timeout in seconds."""

    tool_format: ToolFormat | None = None
    enable_verbose_logging: bool = False

    @classmethod
    def from_mapping(
        cls, provider_type: str, values: Mapping[str, Any]
    ) -> ProviderConfig:
        """Build a config from a generic string-to-value mapping.

        Raises:
            ConfigurationError: If a recognised key has a value of the wrong
                type (e.g. a non-string ``api_key``).
        """
        data: dict[str, Any] = {
            key: values[key]
            for key in _CONFIG_FIELD_KEYS
            if key in values and values[key] is not None
        }
        data["type"] = str(provider_type)
        data["provider_config"] = dict(values)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            loc = first.get("loc") or ()
            field_name = str(loc[0]) if loc else None
            raise ConfigurationError(
                f"invalid configuration for {provider_type}: {e.error_count()} "
                f"validation error(s), first on '{field_name}': {first.get('msg')}",
                field=field_name,
            ) from e

    def with_type(self, provider_type: str) -> ProviderConfig:
        """Return a copy of this config bound to ``provider_type``.

        An explicitly set type is preserved.
        """
        if self.type:
            return self.model_copy(deep=True)
        return self.model_copy(update={"type": str(provider_type)}, deep=True)


@dataclass
class TokenInfo:
    """
    OAuth token status returned by ``validate_token()``.

    Attributes:
        valid: Whether the provider considers the token usable.
        expires_at: Absolute expiry instant (UTC), or None if unknown.
        scopes: OAuth scopes granted to the token.
        user_info: User information reported by the OAuth provider.
    """

    valid: bool = False
    expires_at: datetime | None = None
    scopes: list[str] = field(default_factory=list)
    user_info: dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


@dataclass
class Model:
    """A model advertised by a provider's model-listing endpoint."""

    id: str
    name: str = ""
    provider: str = ""
    description: str = ""
    max_tokens: int = 0
    supports_streaming: bool = False
    supports_tool_calling: bool = False


__all__ = [
    "VIRTUAL_PROVIDER_TYPES",
    "AuthMethod",
    "Model",
    "ProviderConfig",
    "ProviderType",
    "TokenInfo",
    "ToolFormat",
]
