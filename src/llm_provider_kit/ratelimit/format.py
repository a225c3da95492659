# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Human-readable formatting of rate limit state for logs and diagnostics."""

from __future__ import annotations

from datetime import datetime, timezone

from ..types.rate_limit import RateLimitInfo


def format_duration(seconds: float) -> str:
    """
    Format a duration compactly.

    Examples:
        >>> format_duration(45)
        '45s'
        >>> format_duration(360)
        '6m0s'
        >>> format_duration(5400)
        '1h30m'
    """
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        return f"{total // 60}m{total % 60}s"
    return f"{total // 3600}h{(total // 60) % 60}m"


def _resets_in(reset: datetime | None, now: datetime) -> str:
    if reset is None:
        return ""
    remaining = (reset - now).total_seconds()
    if remaining <= 0:
        return " (reset)"
    return f" (resets in {format_duration(round(remaining))})"


def format_rate_limit_info(info: RateLimitInfo | None, now: datetime | None = None) -> str:
    """Multi-line summary of every reported window in ``info``."""
    if info is None:
        return "No rate limit info available"

    now = now or datetime.now(timezone.utc)
    lines = [f"{info.provider or 'unknown'} rate limits for model '{info.model}':"]

    windows = (
        ("Requests", info.requests_limit, info.requests_remaining, info.requests_reset),
        ("Tokens", info.tokens_limit, info.tokens_remaining, info.tokens_reset),
        ("Input tokens", info.input_tokens_limit, info.input_tokens_remaining, info.input_tokens_reset),
        ("Output tokens", info.output_tokens_limit, info.output_tokens_remaining, info.output_tokens_reset),
        ("Daily requests", info.daily_requests_limit, info.daily_requests_remaining, info.daily_requests_reset),
    )
    for label, limit, remaining, reset in windows:
        if limit > 0:
            lines.append(f"  {label}: {remaining}/{limit} remaining{_resets_in(reset, now)}")

    if info.credits_limit > 0:
        tier = " (free tier)" if info.is_free_tier else ""
        lines.append(
            f"  Credits: {info.credits_remaining:g}/{info.credits_limit:g} remaining{tier}"
        )
    if info.retry_after > 0:
        lines.append(f"  Retry after: {format_duration(round(info.retry_after))}")
    if info.request_id:
        lines.append(f"  Request ID: {info.request_id}")
    if info.custom_data:
        lines.append("  Custom headers:")
        for key in sorted(info.custom_data):
            lines.append(f"    {key}: {info.custom_data[key]}")

    return "\n".join(lines)


__all__ = ["format_duration", "format_rate_limit_info"]
