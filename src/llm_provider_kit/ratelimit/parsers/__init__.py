# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider-specific rate limit header parsers.

Use ``get_parser(kind)`` to obtain the parser for a provider kind.
OpenAI-compatible services share the OpenAI parser but tag their records
with their own provider kind.
"""

from __future__ import annotations

from collections.abc import Callable

from .anthropic import AnthropicParser
from .base import RateLimitParser
from .cerebras import CerebrasParser
from .gemini import GeminiParser
from .openai import OpenAIParser
from .openrouter import FREE_TIER_CREDIT_THRESHOLD, OpenRouterParser
from .qwen import UNIX_TIMESTAMP_THRESHOLD, QwenParser, parse_qwen_reset

# Provider kinds that speak the OpenAI header vocabulary
OPENAI_COMPATIBLE_KINDS = frozenset(
    {
        "openai",
        "xai",
        "fireworks",
        "deepseek",
        "mistral",
        "synthetic",
        "lmstudio",
        "llamacpp",
        "ollama",
    }
)

_PARSER_FACTORIES: dict[str, Callable[[], RateLimitParser]] = {
    "anthropic": AnthropicParser,
    "gemini": GeminiParser,
    "cerebras": CerebrasParser,
    "qwen": QwenParser,
    "openrouter": OpenRouterParser,
}


def get_parser(kind: str) -> RateLimitParser | None:
    """
    Return a new parser for a provider kind, or None if the kind has none.

    Args:
        kind: Provider kind tag (case-insensitive), e.g. 'openai', 'qwen'

    Example:
        >>> parser = get_parser("deepseek")
        >>> parser.provider_name
        'deepseek'
    """
    key = str(kind).strip().lower()
    if key in OPENAI_COMPATIBLE_KINDS:
        return OpenAIParser(provider_kind=key)
    factory = _PARSER_FACTORIES.get(key)
    return factory() if factory is not None else None


def supported_parser_kinds() -> list[str]:
    return sorted(OPENAI_COMPATIBLE_KINDS.union(_PARSER_FACTORIES))


__all__ = [
    "FREE_TIER_CREDIT_THRESHOLD",
    "OPENAI_COMPATIBLE_KINDS",
    "UNIX_TIMESTAMP_THRESHOLD",
    "AnthropicParser",
    "CerebrasParser",
    "GeminiParser",
    "OpenAIParser",
    "OpenRouterParser",
    "QwenParser",
    "RateLimitParser",
    "get_parser",
    "parse_qwen_reset",
    "supported_parser_kinds",
]
