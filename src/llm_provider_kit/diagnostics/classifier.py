# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Best-effort classification of provider errors.

Remote services rarely return structured error codes through provider
clients, so errors are classified by message substrings. The substring
tables are plain data and can be extended without touching the engine.
Matching is case-insensitive and the first matching rule wins.
"""

from __future__ import annotations

import asyncio
import string
from dataclasses import dataclass

from ..types.test_result import TestErrorType

ErrorRule = tuple[tuple[str, ...], TestErrorType]

AUTH_ERROR_RULES: tuple[ErrorRule, ...] = (
    (("expired",), TestErrorType.TOKEN),
    (("invalid", "unauthorized"), TestErrorType.AUTH),
    (("oauth",), TestErrorType.OAUTH),
)
"""Rules for OAuth token validation failures. Unmatched errors are AUTH."""

CONNECTIVITY_ERROR_RULES: tuple[ErrorRule, ...] = (
    (("timeout", "timed out", "deadline"), TestErrorType.TIMEOUT),
    (("rate limit",), TestErrorType.RATE_LIMIT),
    (("unauthorized", "forbidden"), TestErrorType.AUTH),
)
"""Rules for connectivity and health-check failures, applied before status codes."""

_STATUS_MARKERS = ("http", "status", " error ", " response ")
_STATUS_LEAD_DIGITS = "12345"
_MARKER_LOOKAHEAD = 3


@dataclass(frozen=True)
class ErrorClassification:
    error_type: TestErrorType
    status_code: int = 0


def error_message(error: BaseException | str) -> str:
    """Text of ``error``, falling back to the exception class name."""
    if isinstance(error, str):
        return error
    return str(error) or type(error).__name__


def match_rules(message: str, rules: tuple[ErrorRule, ...]) -> TestErrorType | None:
    lowered = message.lower()
    for substrings, error_type in rules:
        if any(s in lowered for s in substrings):
            return error_type
    return None


def classify_auth_error(error: BaseException | str) -> TestErrorType:
    """Classify an OAuth token validation failure."""
    return match_rules(error_message(error), AUTH_ERROR_RULES) or TestErrorType.AUTH


def classify_connectivity_error(error: BaseException | str) -> ErrorClassification:
    """
    Classify a connectivity-test or health-check failure.

    Timeout exceptions are TIMEOUT regardless of their text. Otherwise the
    message is checked against CONNECTIVITY_ERROR_RULES, then an embedded
    HTTP status code decides: 5xx is SERVER_ERROR, anything else is
    CONNECTIVITY.
    """
    message = error_message(error)
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClassification(TestErrorType.TIMEOUT)

    status_code = extract_status_code(message)
    matched = match_rules(message, CONNECTIVITY_ERROR_RULES)
    if matched is not None:
        return ErrorClassification(matched, status_code)
    if status_code >= 500:
        return ErrorClassification(TestErrorType.SERVER_ERROR, status_code)
    return ErrorClassification(TestErrorType.CONNECTIVITY, status_code)


def _code_at(text: str, index: int) -> int:
    """A standalone three-digit status code starting at ``index``, or 0."""
    candidate = text[index : index + 3]
    if len(candidate) != 3 or not all(c in string.digits for c in candidate):
        return 0
    if index + 3 < len(text) and text[index + 3] in string.digits:
        return 0
    code = int(candidate)
    return code if 100 <= code < 600 else 0


def extract_status_code(message: str) -> int:
    """
    Find an HTTP status code in an error message.

    First looks for a marker ("http", "status", " error ", " response ")
    followed within three characters by a digit 1-5 that starts a
    three-digit code, then for any whitespace-separated integer in
    [100, 600). The first match wins; 0 means no code was found.

    Example:
        >>> extract_status_code("HTTP 503 Service Unavailable")
        503
        >>> extract_status_code("999 invalid code")
        0
    """
    lowered = message.lower()
    for marker in _STATUS_MARKERS:
        start = lowered.find(marker)
        while start != -1:
            after = start + len(marker)
            for index in range(after, min(after + _MARKER_LOOKAHEAD + 1, len(lowered))):
                if lowered[index] in _STATUS_LEAD_DIGITS:
                    code = _code_at(lowered, index)
                    if code:
                        return code
                    break
            start = lowered.find(marker, start + 1)

    for token in message.split():
        token = token.strip(string.punctuation)
        if token and all(c in string.digits for c in token):
            code = int(token)
            if 100 <= code < 600:
                return code
    return 0


__all__ = [
    "AUTH_ERROR_RULES",
    "CONNECTIVITY_ERROR_RULES",
    "ErrorClassification",
    "ErrorRule",
    "classify_auth_error",
    "classify_connectivity_error",
    "error_message",
    "extract_status_code",
    "match_rules",
]
