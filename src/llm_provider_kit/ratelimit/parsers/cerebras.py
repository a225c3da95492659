# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Cerebras rate limit header parser.

Cerebras reports a daily request window and per-minute request and token
windows. Reset values are fractional seconds from now ("33011.382867").

    x-ratelimit-{limit,remaining,reset}-requests-day
    x-ratelimit-{limit,remaining,reset}-requests-minute
    x-ratelimit-{limit,remaining,reset}-tokens-minute

Per-minute windows map onto the standard request/token fields; the daily
window maps onto the daily request fields. ``cerebras-request-id``,
``cerebras-processing-time`` and ``cerebras-region`` are kept in the custom
map.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ...types.rate_limit import RateLimitInfo
from ..headers import HeaderView, offset_from_now, parse_float
from .base import RateLimitParser

logger = logging.getLogger(__name__)

# header suffix -> RateLimitInfo field prefix
_WINDOWS = (
    ("requests-minute", "requests"),
    ("tokens-minute", "tokens"),
    ("requests-day", "daily_requests"),
)

# header -> custom map key
_CUSTOM_HEADERS = (
    ("cerebras-request-id", "request_id"),
    ("cerebras-processing-time", "processing_time"),
    ("cerebras-region", "region"),
)


class CerebrasParser(RateLimitParser):
    """Parser for Cerebras daily and per-minute windows."""

    @property
    def provider_name(self) -> str:
        return "cerebras"

    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        for suffix, field_prefix in _WINDOWS:
            limit = self._read_int(headers, f"x-ratelimit-limit-{suffix}")
            if limit is not None:
                setattr(info, f"{field_prefix}_limit", limit)

            remaining = self._read_int(headers, f"x-ratelimit-remaining-{suffix}")
            if remaining is not None:
                setattr(info, f"{field_prefix}_remaining", remaining)

            raw_reset = headers.get(f"x-ratelimit-reset-{suffix}")
            if raw_reset:
                seconds = parse_float(raw_reset)
                if seconds is None:
                    logger.debug(f"Skipping malformed reset x-ratelimit-reset-{suffix}={raw_reset!r}")
                else:
                    reset = offset_from_now(seconds, now)
                    if reset is not None:
                        setattr(info, f"{field_prefix}_reset", reset)

        for header, key in _CUSTOM_HEADERS:
            value = headers.get(header)
            if value:
                info.custom_data[key] = value

        info.request_id = headers.get("cerebras-request-id") or headers.get("x-request-id")


__all__ = ["CerebrasParser"]
