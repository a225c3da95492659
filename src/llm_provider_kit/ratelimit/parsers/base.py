# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Base class for provider-specific rate limit header parsers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from ...types.rate_limit import RateLimitInfo
from ..headers import HeadersInput, HeaderView, as_header_view, parse_int, parse_retry_after

logger = logging.getLogger(__name__)


class RateLimitParser(ABC):
    """
    Abstract parser turning HTTP response headers into a RateLimitInfo.

    Each provider reports rate limits with its own header vocabulary and
    reset encoding, so each provider needs its own parser. Parsers are
    stateless and total:

    1. Missing or malformed values are skipped and leave the zero value
    2. ``parse()`` never raises on header content
    3. A Retry-After header is always recorded when present
    4. A request id header is always captured when present
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider kind tag written into every parsed record."""
        pass

    def parse(
        self, headers: HeadersInput, model: str, now: datetime | None = None
    ) -> RateLimitInfo:
        """Parse rate limit information from response headers.

        Args:
            headers: Response headers; any mapping or ``(name, value)`` pairs.
                Names are matched case-insensitively.
            model: Model identifier the response belongs to.
            now: Reference instant for relative reset encodings. Defaults to
                the current UTC time.

        Returns:
            A new RateLimitInfo. Fields the headers do not report keep their
            zero values.
        """
        now = now or datetime.now(timezone.utc)
        view = as_header_view(headers)
        info = RateLimitInfo(provider=self.provider_name, model=model, timestamp=now)
        self._parse(view, info, now)
        self._parse_retry_after(view, info, now)
        return info

    @abstractmethod
    def _parse(self, headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        """Fill ``info`` from ``headers``. Must not raise."""
        pass

    # === Shared helpers ===

    @staticmethod
    def _read_int(headers: HeaderView, name: str) -> int | None:
        raw = headers.get(name)
        if not raw:
            return None
        value = parse_int(raw)
        if value is None:
            logger.debug(f"Skipping malformed integer header {name}={raw!r}")
        return value

    @staticmethod
    def _parse_retry_after(headers: HeaderView, info: RateLimitInfo, now: datetime) -> None:
        raw = headers.get("retry-after")
        if not raw:
            return
        seconds = parse_retry_after(raw, now)
        if seconds is None:
            logger.debug(f"Skipping malformed retry-after header {raw!r}")
            return
        info.retry_after = seconds

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider_name={self.provider_name!r})"


__all__ = ["RateLimitParser"]
