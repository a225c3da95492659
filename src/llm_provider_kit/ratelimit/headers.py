# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Header access and value parsing helpers shared by the rate limit parsers.

Every helper here is total: malformed input yields None rather than an
exception, so parsers can simply skip fields they cannot read.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Union

logger = logging.getLogger(__name__)

HeadersInput = Union[Mapping[str, Any], Iterable[tuple[str, Any]], "HeaderView", None]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Integer: optional sign and ASCII digits only (no whitespace, no underscores)
_INT_RE = re.compile(r"[+-]?[0-9]+")

# Decimal float with optional exponent; inf/nan are rejected
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

# Duration strings such as "6m0s", "1h30m", "500ms", "1.5s"
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # micro sign
    "μs": 1e-6,  # greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_COMPONENT = r"(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"[+-]?(?:{_DURATION_COMPONENT})+")
_DURATION_PART_RE = re.compile(
    r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)"
)

_RFC3339_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:(Z)|([+-])(\d{2}):(\d{2}))",
    re.ASCII,
)


class HeaderView:
    """
    Case-insensitive, read-only view over HTTP response headers.

    Accepts a plain dict, any Mapping (including the case-insensitive header
    containers of common HTTP clients), or an iterable of ``(name, value)``
    pairs. A value may itself be a list of values; ``get()`` returns the
    first one, matching how HTTP clients expose single-valued headers.
    """

    __slots__ = ("_items", "_names")

    def __init__(self, headers: HeadersInput = None):
        self._items: dict[str, list[str]] = {}
        self._names: dict[str, str] = {}
        if headers is None:
            return
        if isinstance(headers, HeaderView):
            self._items = {k: list(v) for k, v in headers._items.items()}
            self._names = dict(headers._names)
            return

        pairs: Iterable[tuple[Any, Any]]
        if isinstance(headers, Mapping):
            pairs = headers.items()
        else:
            pairs = headers
        for name, value in pairs:
            self._add(name, value)

    def _add(self, name: Any, value: Any) -> None:
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if not isinstance(name, str):
            return
        key = name.lower()
        values = value if isinstance(value, (list, tuple)) else [value]
        bucket = self._items.setdefault(key, [])
        self._names.setdefault(key, name)
        for v in values:
            if isinstance(v, bytes):
                v = v.decode("latin-1")
            if v is None:
                continue
            bucket.append(str(v))

    def get(self, name: str) -> str:
        """Return the first value for ``name``, or an empty string."""
        values = self._items.get(name.lower())
        if not values:
            return ""
        return values[0]

    def get_all(self, name: str) -> list[str]:
        return list(self._items.get(name.lower(), ()))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and bool(self._items.get(name.lower()))

    def __iter__(self) -> Iterator[str]:
        """Iterate over header names as originally spelled."""
        for key, values in self._items.items():
            if values:
                yield self._names[key]

    def __len__(self) -> int:
        return sum(1 for values in self._items.values() if values)

    def items(self) -> Iterator[tuple[str, str]]:
        for name in self:
            yield name, self.get(name)

    def __repr__(self) -> str:
        return f"HeaderView({dict(self.items())!r})"


def as_header_view(headers: HeadersInput) -> HeaderView:
    if isinstance(headers, HeaderView):
        return headers
    try:
        return HeaderView(headers)
    except (TypeError, ValueError) as e:
        # Not a mapping or an iterable of pairs; treat as no headers.
        logger.debug(f"Ignoring unreadable headers object {type(headers).__name__}: {e}")
        return HeaderView()


# =============================================================================
# Scalar parsers
# =============================================================================


def parse_int(value: str) -> int | None:
    """Strict integer parse: ``[+-]?digits`` with nothing else."""
    if not value or not _INT_RE.fullmatch(value):
        return None
    return int(value)


def parse_float(value: str) -> float | None:
    """Strict finite decimal float parse."""
    if not value or not _FLOAT_RE.fullmatch(value):
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        return None
    return parsed


def parse_bool(value: str) -> bool | None:
    v = value.strip().lower()
    if v in ("1", "t", "true"):
        return True
    if v in ("0", "f", "false"):
        return False
    return None


def parse_duration(value: str) -> float | None:
    """
    Parse a duration string into seconds.

    Handles formats like '6m0s', '1h30m', '500ms', '1.5s' and the bare
    '0'. A unit is required for every other value.
    Returns None if parsing fails.
    """
    if not value:
        return None
    if value in ("0", "+0", "-0"):
        return 0.0
    if not _DURATION_RE.fullmatch(value):
        return None

    sign = -1.0 if value.startswith("-") else 1.0
    total_seconds = 0.0
    for amount_str, unit in _DURATION_PART_RE.findall(value):
        total_seconds += float(amount_str) * _DURATION_UNITS[unit]
    return sign * total_seconds


def parse_rfc3339(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    The date, time and offset parts are all required. Fractional seconds
    beyond microsecond precision are truncated.
    """
    if not value:
        return None
    match = _RFC3339_RE.fullmatch(value)
    if not match:
        return None
    (year, month, day, hour, minute, second, frac, zulu, sign, off_h, off_m) = match.groups()
    try:
        if zulu:
            tz = timezone.utc
        else:
            offset = timedelta(hours=int(off_h), minutes=int(off_m))
            tz = timezone(-offset if sign == "-" else offset)
        micros = int((frac or "0")[:6].ljust(6, "0"))
        parsed = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second), micros,
            tzinfo=tz,
        )
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def parse_http_date(value: str) -> datetime | None:
    """Parse an HTTP date (e.g. ``Wed, 21 Oct 2015 07:28:00 GMT``) as UTC."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def from_unix_millis(ms: int) -> datetime | None:
    """Exact conversion of milliseconds since the epoch to UTC."""
    try:
        return _EPOCH + timedelta(milliseconds=ms)
    except OverflowError:
        return None


def from_unix_seconds(seconds: int) -> datetime | None:
    try:
        return _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        return None


def offset_from_now(seconds: float, now: datetime) -> datetime | None:
    """``now + seconds`` or None when the result is out of range."""
    try:
        return now + timedelta(seconds=seconds)
    except OverflowError:
        return None


def parse_retry_after(value: str, now: datetime) -> float | None:
    """
    Parse a Retry-After value into non-negative seconds.

    Accepts integer seconds or an HTTP date; dates in the past clamp to 0.
    """
    seconds = parse_int(value)
    if seconds is not None:
        return float(max(seconds, 0))
    when = parse_http_date(value)
    if when is None:
        return None
    return max((when - now).total_seconds(), 0.0)


__all__ = [
    "HeaderView",
    "HeadersInput",
    "as_header_view",
    "from_unix_millis",
    "from_unix_seconds",
    "offset_from_now",
    "parse_bool",
    "parse_duration",
    "parse_float",
    "parse_http_date",
    "parse_int",
    "parse_retry_after",
    "parse_rfc3339",
]
