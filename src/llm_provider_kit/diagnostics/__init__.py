# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider diagnostics.

This package provides:
- ProviderTestEngine: Phased probe of a registered provider
- Error classification helpers used by the engine
"""

from .classifier import (
    AUTH_ERROR_RULES,
    CONNECTIVITY_ERROR_RULES,
    ErrorClassification,
    classify_auth_error,
    classify_connectivity_error,
    extract_status_code,
)
from .engine import SKIP_REASON_NO_TEST_METHOD, ProviderTestEngine

__all__ = [
    "AUTH_ERROR_RULES",
    "CONNECTIVITY_ERROR_RULES",
    "SKIP_REASON_NO_TEST_METHOD",
    "ErrorClassification",
    "ProviderTestEngine",
    "classify_auth_error",
    "classify_connectivity_error",
    "extract_status_code",
]
