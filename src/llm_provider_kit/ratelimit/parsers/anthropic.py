# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Anthropic rate limit header parser.

Anthropic reports four windows, each with limit, remaining and an RFC 3339
reset instant:

    anthropic-ratelimit-requests-{limit,remaining,reset}
    anthropic-ratelimit-tokens-{limit,remaining,reset}
    anthropic-ratelimit-input-tokens-{limit,remaining,reset}
    anthropic-ratelimit-output-tokens-{limit,remaining,reset}

plus ``request-id`` and ``retry-after`` (429 responses).
"""

from __future__ import annotations

import logging
from datetime import datetime

from ...exceptions import RateLimitParseError
from ...types.rate_limit import RateLimitInfo
from ..headers import HeadersInput, HeaderView, parse_rfc3339
from .base import RateLimitParser

logger = logging.getLogger(__name__)

# header window name -> RateLimitInfo field prefix
_WINDOWS = (
    ("requests", "requests"),
    ("tokens", "tokens"),
    ("input-tokens", "input_tokens"),
    ("output-tokens", "output_tokens"),
)


class AnthropicParser(RateLimitParser):
    """Parser for ``anthropic-ratelimit-*`` headers."""

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        for header_window, field_prefix in _WINDOWS:
            base = f"anthropic-ratelimit-{header_window}"

            limit = self._read_int(headers, f"{base}-limit")
            if limit is not None:
                setattr(info, f"{field_prefix}_limit", limit)

            remaining = self._read_int(headers, f"{base}-remaining")
            if remaining is not None:
                setattr(info, f"{field_prefix}_remaining", remaining)

            raw_reset = headers.get(f"{base}-reset")
            if raw_reset:
                reset = parse_rfc3339(raw_reset)
                if reset is None:
                    logger.debug(f"Skipping malformed timestamp {base}-reset={raw_reset!r}")
                else:
                    setattr(info, f"{field_prefix}_reset", reset)

        request_id = headers.get("request-id")
        if request_id:
            info.request_id = request_id

    def parse_and_validate(
        self, headers: HeadersInput, model: str, now: datetime | None = None
    ) -> RateLimitInfo:
        """Parse headers and require that some rate limit data was found.

        Raises:
            RateLimitParseError: If no limit and no request id is present.
        """
        info = self.parse(headers, model, now)
        has_data = (
            info.requests_limit > 0
            or info.tokens_limit > 0
            or info.input_tokens_limit > 0
            or info.output_tokens_limit > 0
            or bool(info.request_id)
        )
        if not has_data:
            raise RateLimitParseError(
                "no rate limit information found in headers", provider=self.provider_name
            )
        return info


__all__ = ["AnthropicParser"]
