# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
RateLimitTracker: thread-safe per-model rate limit state.

The tracker keeps the latest RateLimitInfo for each model and answers
admission, wait-time and throttling questions from it. It never delays or
rejects calls itself; callers decide what to do with the answers.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from ..config import TrackerConfig
from ..types.rate_limit import RateLimitInfo, ensure_utc
from .headers import HeadersInput
from .parsers.base import RateLimitParser

logger = logging.getLogger(__name__)


def _usage_at_or_above(remaining: float, limit: float, threshold: float) -> bool:
    return 1.0 - (remaining / limit) >= threshold


class RateLimitTracker:
    """
    Tracks the current rate limit state for each model.

    Storage: Dict[model_id, RateLimitInfo]

    - Entries are created on first update and replaced on every later
      update (latest wins, no merging)
    - Records are copied on the way in and on the way out, so callers can
      never mutate tracked state
    - Every operation runs under one lock and sees a coherent snapshot of
      the entry it reads; no I/O happens under the lock
    - Reads and writes share that one lock instead of a reader/writer
      lock. A critical section is a dict lookup and a record copy, so
      concurrent readers queue only for that long, and the GIL would
      serialize those bytecodes anyway

    Example:
        >>> tracker = RateLimitTracker()
        >>> tracker.update_from_headers(OpenAIParser(), response.headers, "gpt-4")
        >>> if not tracker.can_make_request("gpt-4", estimated_tokens=1500):
        ...     await asyncio.sleep(tracker.get_wait_time("gpt-4"))
    """

    def __init__(self, config: TrackerConfig | None = None):
        self._config = config or TrackerConfig()
        self._info: dict[str, RateLimitInfo] = {}
        self._last_update: datetime | None = None
        self._lock = threading.RLock()

    # === Writes ===

    def update(self, info: RateLimitInfo | None) -> None:
        """Replace the entry for ``info.model``. None is ignored."""
        if info is None:
            return
        snapshot = info.copy()
        with self._lock:
            self._info[snapshot.model] = snapshot
            self._last_update = datetime.now(timezone.utc)
        logger.debug(
            f"Updated rate limits for {snapshot.provider}/{snapshot.model}: "
            f"requests {snapshot.requests_remaining}/{snapshot.requests_limit}, "
            f"tokens {snapshot.tokens_remaining}/{snapshot.tokens_limit}"
        )

    def update_from_headers(
        self, parser: RateLimitParser, headers: HeadersInput, model: str
    ) -> RateLimitInfo:
        """Parse ``headers`` with ``parser``, store the result and return it."""
        info = parser.parse(headers, model)
        self.update(info)
        return info

    def remove(self, model: str) -> bool:
        with self._lock:
            return self._info.pop(model, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._info.clear()
            self._last_update = None

    # === Reads ===

    def get(self, model: str) -> RateLimitInfo | None:
        """Return a copy of the entry for ``model``, or None if not tracked."""
        with self._lock:
            info = self._info.get(model)
            return info.copy() if info is not None else None

    def models(self) -> list[str]:
        with self._lock:
            return list(self._info)

    @property
    def last_update(self) -> datetime | None:
        """When the tracker was last written to, or None if never."""
        with self._lock:
            return self._last_update

    def __len__(self) -> int:
        with self._lock:
            return len(self._info)

    def __contains__(self, model: object) -> bool:
        with self._lock:
            return model in self._info

    # === Admission ===

    def can_make_request(
        self, model: str, estimated_tokens: int = 0, now: datetime | None = None
    ) -> bool:
        """
        Whether a request for ``model`` is likely to be admitted.

        Decision tree:
            1. Untracked model: allow
            2. Request window reset already passed: allow (window rolled over)
            3. Deny if any of these hold:
               - request limit reported and nothing remaining
               - token or input-token window unexpired with fewer tokens
                 remaining than ``estimated_tokens``
               - daily window unexpired and nothing remaining
               - credit limit reported and no credits remaining
            4. Otherwise allow
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        with self._lock:
            info = self._info.get(model)
            if info is None:
                return True

            if RateLimitInfo.window_rolled_over(info.requests_reset, now):
                return True

            if info.requests_limit > 0 and info.requests_remaining <= 0:
                return False

            if estimated_tokens > 0:
                if (
                    RateLimitInfo.window_active(info.tokens_reset, now)
                    and info.tokens_limit > 0
                    and info.tokens_remaining < estimated_tokens
                ):
                    return False
                if (
                    RateLimitInfo.window_active(info.input_tokens_reset, now)
                    and info.input_tokens_limit > 0
                    and info.input_tokens_remaining < estimated_tokens
                ):
                    return False

            if (
                RateLimitInfo.window_active(info.daily_requests_reset, now)
                and info.daily_requests_limit > 0
                and info.daily_requests_remaining <= 0
            ):
                return False

            # Credits have no reset instant
            if info.credits_limit > 0 and info.credits_remaining <= 0:
                return False

            return True

    def get_wait_time(self, model: str, now: datetime | None = None) -> float:
        """
        Seconds to wait before the next request for ``model``.

        A positive retry-after wins. Otherwise this is the distance to the
        earliest reset instant still in the future, or 0.0 if there is none.
        """
        now = ensure_utc(now or datetime.now(timezone.utc))
        with self._lock:
            info = self._info.get(model)
            if info is None:
                return 0.0

            if info.retry_after > 0:
                return info.retry_after

            future_resets = [
                reset
                for reset in info.reset_times()
                if RateLimitInfo.window_active(reset, now)
            ]
            if not future_resets:
                return 0.0
            return (min(future_resets) - now).total_seconds()

    def should_throttle(
        self, model: str, threshold: float | None = None, now: datetime | None = None
    ) -> bool:
        """
        Whether usage of any active window has reached ``threshold``.

        Usage is ``1 - remaining / limit`` and is evaluated only for windows
        with a reported limit and a reset instant still in the future
        (credits, which have no reset, are always evaluated). A threshold
        outside [0, 1] falls back to the configured default (0.8).
        """
        if threshold is None or not 0 <= threshold <= 1:
            threshold = self._config.default_throttle_threshold
        now = ensure_utc(now or datetime.now(timezone.utc))

        with self._lock:
            info = self._info.get(model)
            if info is None:
                return False

            windows = (
                (info.requests_limit, info.requests_remaining, info.requests_reset),
                (info.tokens_limit, info.tokens_remaining, info.tokens_reset),
                (info.input_tokens_limit, info.input_tokens_remaining, info.input_tokens_reset),
                (info.output_tokens_limit, info.output_tokens_remaining, info.output_tokens_reset),
                (
                    info.daily_requests_limit,
                    info.daily_requests_remaining,
                    info.daily_requests_reset,
                ),
            )
            for limit, remaining, reset in windows:
                if limit <= 0 or not RateLimitInfo.window_active(reset, now):
                    continue
                if _usage_at_or_above(remaining, limit, threshold):
                    return True

            if info.credits_limit > 0 and _usage_at_or_above(
                info.credits_remaining, info.credits_limit, threshold
            ):
                return True

            return False


__all__ = ["RateLimitTracker"]
