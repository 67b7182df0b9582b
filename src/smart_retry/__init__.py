"""
Async retry orchestrator with exponential backoff, full jitter, global timeout
and cooperative cancellation.
"""
from .types import (
    RetryConfig,
    RetryOptions,
    RetryMetadata,
    RetryError,
    FailureKind,
)
from .config import (
    DEFAULT_RETRY_CONFIG,
    RetryConfigError,
    compute_backoff,
    apply_full_jitter,
    validate_config,
    merge_config,
    config_from_env,
)
from .policies import (
    RETRYABLE_NETWORK_CODES,
    is_network_error,
    extract_http_status,
    is_retryable_http_status,
    default_retry_policy,
)
from .clock import Clock, MonotonicClock
from .cancellation import (
    CancellationToken,
    Registration,
    SleepInterrupted,
    cancellable_sleep,
)
from .executor import (
    RetryExecutor,
    create_retry_executor,
    execute_with_retry,
    create_retry_wrapper,
)
from .transport import (
    IDEMPOTENT_METHODS,
    RetryableStatusError,
    RetryTransport,
)


__all__ = [
    # Types
    "RetryConfig",
    "RetryOptions",
    "RetryMetadata",
    "RetryError",
    "FailureKind",
    # Config
    "DEFAULT_RETRY_CONFIG",
    "RetryConfigError",
    "compute_backoff",
    "apply_full_jitter",
    "validate_config",
    "merge_config",
    "config_from_env",
    # Policies
    "RETRYABLE_NETWORK_CODES",
    "is_network_error",
    "extract_http_status",
    "is_retryable_http_status",
    "default_retry_policy",
    # Time and cancellation
    "Clock",
    "MonotonicClock",
    "CancellationToken",
    "Registration",
    "SleepInterrupted",
    "cancellable_sleep",
    # Executor
    "RetryExecutor",
    "create_retry_executor",
    "execute_with_retry",
    "create_retry_wrapper",
    # Transport
    "IDEMPOTENT_METHODS",
    "RetryableStatusError",
    "RetryTransport",
]


__version__ = "1.0.0"
