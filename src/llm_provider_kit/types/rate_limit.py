# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Normalized rate limit record.

RateLimitInfo is the provider-agnostic value every header parser produces
and the RateLimitTracker stores. It carries the standard request/token
windows plus the optional windows only some providers report (split
input/output tokens, daily requests, credits).

Zero-value conventions:
    * A ``*_limit`` of 0 means the window was not reported, not that it is
      exhausted.
    * A ``*_reset`` of None means the reset instant is unknown.
    * Reset instants are timezone-aware UTC datetimes. A reset in the past
      means the window has already rolled over. Naive datetimes are taken
      to be UTC.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

_DATETIME_FIELDS = frozenset(
    {
        "timestamp",
        "requests_reset",
        "tokens_reset",
        "input_tokens_reset",
        "output_tokens_reset",
        "daily_requests_reset",
    }
)

# Fields that are always serialized, even when empty.
_IDENTITY_FIELDS = ("provider", "model")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class RateLimitInfo:
    """
    Rate limit state for one (provider kind, model) pair.

    Attributes:
        provider: Provider kind tag (e.g. 'openai', 'anthropic')
        model: Model identifier the headers were captured for
        timestamp: When this information was captured (UTC)
        requests_limit: Maximum requests in the current window
        requests_remaining: Requests remaining in the current window
        requests_reset: When the request window resets
        tokens_limit: Maximum tokens in the current window
        tokens_remaining: Tokens remaining in the current window
        tokens_reset: When the token window resets
        input_tokens_*: Input-token window (Anthropic)
        output_tokens_*: Output-token window (Anthropic)
        daily_requests_*: Per-day request window (Cerebras)
        credits_limit: Credits available (OpenRouter)
        credits_remaining: Credits remaining, fractional (OpenRouter)
        is_free_tier: Whether the account is on a free tier (OpenRouter)
        retry_after: Advisory wait in seconds from a Retry-After header
        request_id: Identifier of the request that produced the headers
        custom_data: Provider-specific values with no dedicated field
    """

    provider: str = ""
    model: str = ""
    timestamp: datetime | None = None

    # Standard request window
    requests_limit: int = 0
    requests_remaining: int = 0
    requests_reset: datetime | None = None

    # Standard token window
    tokens_limit: int = 0
    tokens_remaining: int = 0
    tokens_reset: datetime | None = None

    # Split token windows
    input_tokens_limit: int = 0
    input_tokens_remaining: int = 0
    input_tokens_reset: datetime | None = None
    output_tokens_limit: int = 0
    output_tokens_remaining: int = 0
    output_tokens_reset: datetime | None = None

    # Daily request window
    daily_requests_limit: int = 0
    daily_requests_remaining: int = 0
    daily_requests_reset: datetime | None = None

    # Credits
    credits_limit: float = 0.0
    credits_remaining: float = 0.0
    is_free_tier: bool = False

    # Advisory
    retry_after: float = 0.0
    request_id: str = ""
    custom_data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in _DATETIME_FIELDS:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, ensure_utc(value))

    # === Convenience predicates ===

    @staticmethod
    def window_rolled_over(reset: datetime | None, now: datetime | None = None) -> bool:
        """Whether a window with the given reset instant has already reset.

        An unknown reset (None) never counts as rolled over.
        """
        if reset is None:
            return False
        return ensure_utc(now or _utcnow()) > ensure_utc(reset)

    @staticmethod
    def window_active(reset: datetime | None, now: datetime | None = None) -> bool:
        """Whether a window has a known reset instant still in the future."""
        if reset is None:
            return False
        return ensure_utc(now or _utcnow()) < ensure_utc(reset)

    def requests_window_rolled_over(self, now: datetime | None = None) -> bool:
        return self.window_rolled_over(self.requests_reset, now)

    def reset_times(self) -> list[datetime | None]:
        """The reset instants considered when computing wait time."""
        resets = [
            self.requests_reset,
            self.tokens_reset,
            self.input_tokens_reset,
            self.output_tokens_reset,
            self.daily_requests_reset,
        ]
        return [ensure_utc(reset) if reset is not None else None for reset in resets]

    def has_data(self) -> bool:
        """Whether any limit or a request id was reported."""
        return bool(
            self.requests_limit > 0
            or self.tokens_limit > 0
            or self.input_tokens_limit > 0
            or self.output_tokens_limit > 0
            or self.daily_requests_limit > 0
            or self.credits_limit > 0
            or self.request_id
        )

    def copy(self) -> RateLimitInfo:
        """Return an independent copy (the custom map is deep-copied)."""
        return copy.deepcopy(self)

    # === Serialization ===

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dict, omitting zero and empty fields.

        Datetimes become ISO-8601 strings; ``retry_after`` stays in seconds.
        """
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _IDENTITY_FIELDS:
                result[f.name] = value
                continue
            if not value:
                continue
            if f.name in _DATETIME_FIELDS:
                result[f.name] = value.isoformat()
            elif f.name == "custom_data":
                result[f.name] = dict(value)
            else:
                result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RateLimitInfo:
        """Create a RateLimitInfo from the output of ``to_dict()``."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            if key in _DATETIME_FIELDS and isinstance(value, str):
                value = datetime.fromisoformat(value)
            elif key == "custom_data":
                value = dict(value)
            kwargs[key] = value
        return cls(**kwargs)


__all__ = ["RateLimitInfo", "ensure_utc"]
