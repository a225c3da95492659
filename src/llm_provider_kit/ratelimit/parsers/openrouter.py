# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
OpenRouter rate limit header parser.

OpenRouter uses a hybrid credit and request scheme:

    x-ratelimit-limit: Credits (fractional) or requests (integer) per window
    x-ratelimit-remaining: Credits or requests remaining
    x-ratelimit-reset: Reset instant in MILLISECONDS since the Unix epoch
    x-ratelimit-requests: Optional explicit request limit
    x-ratelimit-tokens: Optional explicit token limit
    x-ratelimit-free-tier: Optional explicit free-tier flag

A fractional ``x-ratelimit-limit`` is credits only. An integer-valued one is
ambiguous and populates both the credit and the request fields; the caller
disambiguates. Accounts with a credit limit of 10 or less are assumed to be
on the free tier unless the free-tier header says otherwise.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ...types.rate_limit import RateLimitInfo
from ..headers import HeaderView, from_unix_millis, parse_bool, parse_float, parse_int
from .base import RateLimitParser

logger = logging.getLogger(__name__)

FREE_TIER_CREDIT_THRESHOLD = 10.0


class OpenRouterParser(RateLimitParser):
    """Parser for OpenRouter credit/request headers with epoch-millisecond resets."""

    @property
    def provider_name(self) -> str:
        return "openrouter"

    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        self._parse_credit_window(headers, info)
        self._parse_reset(headers, info)
        self._parse_explicit_limits(headers, info)
        self._detect_free_tier(headers, info)

        request_id = headers.get("x-request-id")
        if request_id:
            info.request_id = request_id

    def _parse_credit_window(self, headers: HeaderView, info: RateLimitInfo) -> None:
        limit = parse_float(headers.get("x-ratelimit-limit"))
        if limit is not None:
            info.credits_limit = max(limit, 0.0)
            if limit.is_integer():
                info.requests_limit = int(limit)

        remaining = parse_float(headers.get("x-ratelimit-remaining"))
        if remaining is not None:
            info.credits_remaining = max(remaining, 0.0)
            if remaining.is_integer():
                info.requests_remaining = int(remaining)

    def _parse_reset(self, headers: HeaderView, info: RateLimitInfo) -> None:
        raw = headers.get("x-ratelimit-reset")
        if not raw:
            return
        millis = parse_int(raw)
        reset = from_unix_millis(millis) if millis is not None else None
        if reset is None:
            logger.debug(f"Skipping malformed x-ratelimit-reset={raw!r}")
            return
        # One reset instant covers both windows
        info.requests_reset = reset
        info.tokens_reset = reset

    def _parse_explicit_limits(self, headers: HeaderView, info: RateLimitInfo) -> None:
        # Explicit limits never lower a limit inferred from x-ratelimit-limit.
        requests = self._read_int(headers, "x-ratelimit-requests")
        if requests is not None:
            info.requests_limit = max(info.requests_limit, requests)

        tokens = self._read_int(headers, "x-ratelimit-tokens")
        if tokens is not None:
            info.tokens_limit = max(info.tokens_limit, tokens)

    def _detect_free_tier(self, headers: HeaderView, info: RateLimitInfo) -> None:
        if 0 < info.credits_limit <= FREE_TIER_CREDIT_THRESHOLD:
            info.is_free_tier = True

        raw = headers.get("x-ratelimit-free-tier")
        if raw:
            declared = parse_bool(raw)
            if declared is not None:
                info.is_free_tier = declared


__all__ = ["FREE_TIER_CREDIT_THRESHOLD", "OpenRouterParser"]
