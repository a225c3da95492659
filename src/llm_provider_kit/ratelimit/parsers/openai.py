# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
OpenAI rate limit header parser.

Header format:
    x-ratelimit-limit-requests: Maximum requests per window
    x-ratelimit-remaining-requests: Requests remaining in the window
    x-ratelimit-reset-requests: Duration until the window resets ("6m0s")
    x-ratelimit-limit-tokens: Maximum tokens per window
    x-ratelimit-remaining-tokens: Tokens remaining in the window
    x-ratelimit-reset-tokens: Duration until the token window resets
    x-request-id: Request identifier
    retry-after: Seconds to wait (429 responses)

Many services expose an OpenAI-compatible API with the same headers; they
reuse this parser with their own provider tag.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ...types.rate_limit import RateLimitInfo
from ..headers import HeaderView, offset_from_now, parse_duration
from .base import RateLimitParser

logger = logging.getLogger(__name__)


class OpenAIParser(RateLimitParser):
    """Parser for OpenAI-style ``x-ratelimit-*`` headers with duration resets."""

    def __init__(self, provider_kind: str = "openai"):
        self._provider_kind = str(provider_kind)

    @property
    def provider_name(self) -> str:
        return self._provider_kind

    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        for window in ("requests", "tokens"):
            limit = self._read_int(headers, f"x-ratelimit-limit-{window}")
            if limit is not None:
                setattr(info, f"{window}_limit", limit)

            remaining = self._read_int(headers, f"x-ratelimit-remaining-{window}")
            if remaining is not None:
                setattr(info, f"{window}_remaining", remaining)

            reset = self._read_duration_reset(headers, f"x-ratelimit-reset-{window}", now)
            if reset is not None:
                setattr(info, f"{window}_reset", reset)

        request_id = headers.get("x-request-id")
        if request_id:
            info.request_id = request_id

    @staticmethod
    def _read_duration_reset(
        headers: HeaderView, name: str, now: datetime
    ) -> datetime | None:
        raw = headers.get(name)
        if not raw:
            return None
        seconds = parse_duration(raw)
        if seconds is None:
            logger.debug(f"Skipping malformed duration header {name}={raw!r}")
            return None
        return offset_from_now(seconds, now)


__all__ = ["OpenAIParser"]
