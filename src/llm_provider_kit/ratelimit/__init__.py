# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Rate limit tracking layer.

This module provides:
- Header parsers that normalize each provider's rate limit headers into a
  RateLimitInfo
- RateLimitTracker for thread-safe admission, wait-time and throttle queries
- Formatting helpers for logs and diagnostics
"""

from .format import format_duration, format_rate_limit_info
from .headers import HeaderView
from .parsers import (
    OPENAI_COMPATIBLE_KINDS,
    AnthropicParser,
    CerebrasParser,
    GeminiParser,
    OpenAIParser,
    OpenRouterParser,
    QwenParser,
    RateLimitParser,
    get_parser,
    supported_parser_kinds,
)
from .tracker import RateLimitTracker

__all__ = [
    "OPENAI_COMPATIBLE_KINDS",
    "AnthropicParser",
    "CerebrasParser",
    "GeminiParser",
    "HeaderView",
    "OpenAIParser",
    "OpenRouterParser",
    "QwenParser",
    "RateLimitParser",
    "RateLimitTracker",
    "format_duration",
    "format_rate_limit_info",
    "get_parser",
    "supported_parser_kinds",
]
