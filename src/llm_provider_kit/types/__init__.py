# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions shared across the provider kit."""

from .provider import (
    VIRTUAL_PROVIDER_TYPES,
    AuthMethod,
    Model,
    ProviderConfig,
    ProviderType,
    TokenInfo,
    ToolFormat,
)
from .rate_limit import RateLimitInfo
from .test_result import (
    RETRYABLE_ERROR_TYPES,
    TestError,
    TestErrorType,
    TestPhase,
    TestResult,
    TestStatus,
    new_auth_error_result,
    new_config_error_result,
    new_connectivity_error_result,
    new_error_result,
    new_oauth_error_result,
    new_rate_limit_error_result,
    new_server_error_result,
    new_success_result,
    new_timeout_error_result,
    new_token_error_result,
    new_unknown_error_result,
)

__all__ = [
    "RETRYABLE_ERROR_TYPES",
    "VIRTUAL_PROVIDER_TYPES",
    # Provider types
    "AuthMethod",
    "Model",
    "ProviderConfig",
    "ProviderType",
    # Rate limit record
    "RateLimitInfo",
    # Test results
    "TestError",
    "TestErrorType",
    "TestPhase",
    "TestResult",
    "TestStatus",
    "TokenInfo",
    "ToolFormat",
    "new_auth_error_result",
    "new_config_error_result",
    "new_connectivity_error_result",
    "new_error_result",
    "new_oauth_error_result",
    "new_rate_limit_error_result",
    "new_server_error_result",
    "new_success_result",
    "new_timeout_error_result",
    "new_token_error_result",
    "new_unknown_error_result",
]
