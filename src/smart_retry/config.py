"""
Configuration utilities for smart_retry
"""
import dataclasses
import logging
import math
import os
import random
from typing import Any, Callable, Optional

from .types import RetryConfig, RetryOptions

logger = logging.getLogger(__name__)


# Default retry configuration
DEFAULT_RETRY_CONFIG = RetryConfig(
    max_retries=3,
    base_delay_ms=300,
    max_delay_ms=5000,
    jitter=True,
)

ENV_PREFIX = "SMART_RETRY_"


class RetryConfigError(ValueError):
    """Raised when a retry configuration value is invalid."""
    pass


def compute_backoff(attempt_index: int, base_ms: float, cap_ms: float) -> float:
    """
    Calculate the exponential backoff delay for a retry.

    delay = min(cap, base * 2^attempt_index)

    An exponent large enough to overflow a float yields `cap_ms`.

    Args:
        attempt_index: Retry index (0-indexed, 0 = delay before the first retry)
        base_ms: Base delay in milliseconds
        cap_ms: Maximum delay in milliseconds

    Returns:
        Delay in milliseconds

    Example:
        compute_backoff(0, 300, 5000)  # 300
        compute_backoff(4, 300, 5000)  # 4800
        compute_backoff(5, 300, 5000)  # 5000
    """
    try:
        delay = math.ldexp(base_ms, attempt_index)
    except OverflowError:
        return cap_ms

    if not math.isfinite(delay):
        return cap_ms

    return min(cap_ms, delay)


def apply_full_jitter(delay_ms: float) -> float:
    """
    Apply "Full Jitter" to a computed delay.

    Args:
        delay_ms: Computed backoff delay in milliseconds

    Returns:
        A uniformly random delay in [0, delay_ms)
    """
    return random.random() * delay_ms


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def validate_config(config: RetryConfig) -> None:
    """
    Validate a retry configuration.

    NaN is rejected everywhere. Delays must be finite; an infinite timeout_ms
    is accepted and never expires.

    Args:
        config: Configuration to validate

    Raises:
        RetryConfigError: On the first violated constraint
    """
    max_retries = config.max_retries
    if not isinstance(max_retries, int) or isinstance(max_retries, bool):
        raise RetryConfigError(
            f"max_retries must be an integer, received {max_retries!r}"
        )
    if max_retries < 0:
        raise RetryConfigError(f"max_retries must be >= 0, received {max_retries}")

    base_delay_ms = config.base_delay_ms
    if not _is_number(base_delay_ms) or math.isinf(base_delay_ms) or base_delay_ms <= 0:
        raise RetryConfigError(f"base_delay_ms must be > 0, received {base_delay_ms!r}")

    max_delay_ms = config.max_delay_ms
    if not _is_number(max_delay_ms) or math.isinf(max_delay_ms):
        raise RetryConfigError(f"max_delay_ms must be finite, received {max_delay_ms!r}")
    if max_delay_ms < base_delay_ms:
        raise RetryConfigError(
            f"max_delay_ms ({max_delay_ms!r}) must be >= base_delay_ms ({base_delay_ms})"
        )

    if config.timeout_ms is not None and (
        not _is_number(config.timeout_ms) or config.timeout_ms <= 0
    ):
        raise RetryConfigError(f"timeout_ms must be > 0, received {config.timeout_ms!r}")

    if config.retry_on is not None and not callable(config.retry_on):
        raise RetryConfigError("retry_on must be callable")

    if config.on_retry is not None and not callable(config.on_retry):
        raise RetryConfigError("on_retry must be callable")


def merge_config(
    config: Optional[RetryConfig] = None,
    options: Optional[RetryOptions] = None,
) -> RetryConfig:
    """
    Merge configuration with defaults and per-operation options.

    When `config` is None a fresh copy of DEFAULT_RETRY_CONFIG is returned, so
    callers never hold the shared defaults instance.

    Args:
        config: User-provided configuration
        options: Per-operation overrides; None fields are ignored

    Returns:
        Complete configuration with defaults
    """
    merged = config if config is not None else dataclasses.replace(DEFAULT_RETRY_CONFIG)
    if options is None:
        return merged

    overrides = {
        name: getattr(options, name)
        for name in ("max_retries", "timeout_ms", "cancellation_token")
        if getattr(options, name) is not None
    }
    if not overrides:
        return merged
    return dataclasses.replace(merged, **overrides)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default: Any, convert: Callable[[str], Any]) -> Any:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return convert(raw)
    except ValueError as e:
        kind = "an integer" if convert is int else "a number"
        raise RetryConfigError(f"{name} must be {kind}, received {raw!r}") from e


def config_from_env(prefix: str = ENV_PREFIX, **overrides: Any) -> RetryConfig:
    """
    Build a retry configuration from environment variables.

    Reads {prefix}MAX_RETRIES, {prefix}BASE_DELAY_MS, {prefix}MAX_DELAY_MS,
    {prefix}JITTER and {prefix}TIMEOUT_MS. Unset variables fall back to
    DEFAULT_RETRY_CONFIG. Keyword overrides win over the environment.

    Args:
        prefix: Environment variable prefix
        **overrides: RetryConfig fields to set explicitly

    Returns:
        Validated configuration

    Raises:
        RetryConfigError: If a variable does not parse or the result is invalid
    """
    defaults = DEFAULT_RETRY_CONFIG
    values: dict[str, Any] = {
        "max_retries": _env_number(f"{prefix}MAX_RETRIES", defaults.max_retries, int),
        "base_delay_ms": _env_number(f"{prefix}BASE_DELAY_MS", defaults.base_delay_ms, float),
        "max_delay_ms": _env_number(f"{prefix}MAX_DELAY_MS", defaults.max_delay_ms, float),
        "jitter": _env_bool(os.getenv(f"{prefix}JITTER", str(defaults.jitter))),
        "timeout_ms": _env_number(f"{prefix}TIMEOUT_MS", defaults.timeout_ms, float),
    }
    values.update(overrides)

    config = RetryConfig(**values)
    logger.debug(
        f"config_from_env: prefix={prefix}, max_retries={config.max_retries}, "
        f"base_delay_ms={config.base_delay_ms}, max_delay_ms={config.max_delay_ms}, "
        f"jitter={config.jitter}, timeout_ms={config.timeout_ms}"
    )
    validate_config(config)
    return config
