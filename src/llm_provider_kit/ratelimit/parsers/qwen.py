# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Qwen (DashScope) rate limit header parser.

Qwen's compatible-mode API mixes several header families:

1. OpenAI-compatible ``x-ratelimit-*`` headers
2. Qwen-specific ``qwen-ratelimit-*`` headers
3. DashScope ``dashscope-ratelimit-*`` / ``x-dashscope-ratelimit-*`` headers
4. Request tracking headers (``x-request-id``, ``qwen-request-id``,
   ``req-cost-time``, ``req-arrive-time``, ``resp-start-time``)

Families are read in that order. The first family that reports a field
wins; later families only fill fields that are still zero. Every raw value
is also kept in the custom map under its lower-cased header name, since the
DashScope vocabulary is not formally documented.

Reset values are tried in order as a duration string ("60s"), integer
seconds (below 10^9: seconds from now; otherwise a Unix timestamp) and an
RFC 3339 timestamp.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ...types.rate_limit import RateLimitInfo
from ..headers import (
    HeaderView,
    from_unix_seconds,
    offset_from_now,
    parse_duration,
    parse_int,
    parse_retry_after,
    parse_rfc3339,
)
from .base import RateLimitParser

logger = logging.getLogger(__name__)

# Integers at or above this are Unix timestamps rather than relative seconds
UNIX_TIMESTAMP_THRESHOLD = 1_000_000_000

_TIMING_HEADERS = ("req-cost-time", "req-arrive-time", "resp-start-time")
_DASHSCOPE_PREFIXES = ("dashscope-ratelimit-", "x-dashscope-ratelimit-")
_LOGGED_PREFIXES = ("x-rat", "qwen-", "dashscope")
_LOGGED_HEADERS = frozenset(
    {"retry-after", "x-request-id", "req-cost-time", "req-arrive-time", "resp-start-time"}
)


def parse_qwen_reset(value: str, now: datetime) -> datetime | None:
    """Parse a Qwen reset value in any of its known encodings."""
    if not value:
        return None

    seconds = parse_duration(value)
    if seconds is not None:
        return offset_from_now(seconds, now)

    integer = parse_int(value)
    if integer is not None:
        if integer < UNIX_TIMESTAMP_THRESHOLD:
            return offset_from_now(integer, now)
        return from_unix_seconds(integer)

    return parse_rfc3339(value)


class QwenParser(RateLimitParser):
    """
    Parser for Qwen / DashScope headers.

    Args:
        log_headers: Log every rate-limit related header at DEBUG level.
            Useful for documenting the undocumented DashScope vocabulary.
    """

    def __init__(self, log_headers: bool = False):
        self.log_headers = log_headers

    @property
    def provider_name(self) -> str:
        return "qwen"

    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        if self.log_headers:
            self._log_rate_limit_headers(headers)

        self._parse_family(headers, info, now, "x-ratelimit")
        self._parse_family(headers, info, now, "qwen-ratelimit")

        raw_retry = headers.get("retry-after")
        if raw_retry and parse_retry_after(raw_retry, now) is not None:
            info.custom_data["retry-after"] = raw_retry

        self._parse_request_ids(headers, info)
        self._parse_timing_headers(headers, info)
        self._parse_dashscope_headers(headers, info, now)

        # Keep every other qwen-* header for reference
        for name, value in headers.items():
            lower = name.lower()
            if len(lower) > 5 and lower.startswith("qwen-"):
                info.custom_data[lower] = value

    def _parse_family(
        self, headers: HeaderView, info: RateLimitInfo, now: datetime, prefix: str
    ) -> None:
        for window in ("requests", "tokens"):
            for part in ("limit", "remaining"):
                name = f"{prefix}-{part}-{window}"
                raw = headers.get(name)
                value = parse_int(raw) if raw else None
                if value is None:
                    continue
                info.custom_data[name] = raw
                attr = f"{window}_{part}"
                if not getattr(info, attr):
                    setattr(info, attr, value)

            name = f"{prefix}-reset-{window}"
            raw = headers.get(name)
            if raw:
                info.custom_data[name] = raw
                reset = parse_qwen_reset(raw, now)
                attr = f"{window}_reset"
                if reset is not None and getattr(info, attr) is None:
                    setattr(info, attr, reset)

    def _parse_request_ids(self, headers: HeaderView, info: RateLimitInfo) -> None:
        request_id = headers.get("x-request-id")
        if request_id:
            info.request_id = request_id
            info.custom_data["x-request-id"] = request_id

        qwen_request_id = headers.get("qwen-request-id")
        if qwen_request_id:
            if not info.request_id:
                info.request_id = qwen_request_id
            info.custom_data["qwen-request-id"] = qwen_request_id

    def _parse_timing_headers(self, headers: HeaderView, info: RateLimitInfo) -> None:
        for name in _TIMING_HEADERS:
            value = headers.get(name)
            if not value:
                continue
            if name == "req-cost-time":
                cost_ms = parse_int(value)
                if cost_ms is not None:
                    info.custom_data["req-cost-time-ms"] = cost_ms
            info.custom_data[name] = value

    def _parse_dashscope_headers(
        self, headers: HeaderView, info: RateLimitInfo, now: datetime
    ) -> None:
        for name, value in headers.items():
            lower = name.lower()
            if not lower.startswith(_DASHSCOPE_PREFIXES):
                continue
            info.custom_data[lower] = value

            if lower.endswith("-requests"):
                window = "requests"
            elif lower.endswith("-tokens"):
                window = "tokens"
            else:
                continue

            if "-reset-" in lower:
                reset = parse_qwen_reset(value, now)
                attr = f"{window}_reset"
                if reset is not None and getattr(info, attr) is None:
                    setattr(info, attr, reset)
                continue

            if "-limit-" in lower:
                attr = f"{window}_limit"
            elif "-remaining-" in lower:
                attr = f"{window}_remaining"
            else:
                continue
            parsed = parse_int(value)
            if parsed is not None and not getattr(info, attr):
                setattr(info, attr, parsed)

    @staticmethod
    def _log_rate_limit_headers(headers: HeaderView) -> None:
        logger.debug("=== Qwen/DashScope rate limit headers ===")
        for name, value in headers.items():
            lower = name.lower()
            if lower.startswith(_LOGGED_PREFIXES) or lower in _LOGGED_HEADERS:
                logger.debug(f"{name}: {value}")
        logger.debug("=== End Qwen/DashScope rate limit headers ===")


__all__ = ["UNIX_TIMESTAMP_THRESHOLD", "QwenParser", "parse_qwen_reset"]
