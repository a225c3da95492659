# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Gemini rate limit header parser.

The Gemini API does not report rate limit windows on successful responses.
The only signal is ``retry-after`` on 429 responses, as integer seconds or
an HTTP date. Every limit field therefore stays at zero ("not reported"),
and callers needing proactive limiting for Gemini must track usage
client-side.
"""

from __future__ import annotations

from datetime import datetime

from ...types.rate_limit import RateLimitInfo
from ..headers import HeaderView
from .base import RateLimitParser


class GeminiParser(RateLimitParser):
    """Parser for Gemini responses: retry-after and request id only."""

    @property
    def provider_name(self) -> str:
        return "gemini"

    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        # retry-after is handled by the base class
        request_id = headers.get("x-request-id")
        if request_id:
            info.request_id = request_id


__all__ = ["GeminiParser"]
