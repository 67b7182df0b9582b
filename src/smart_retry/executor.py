"""
Main retry executor implementation
"""
import dataclasses
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .cancellation import CancellationToken, SleepInterrupted, cancellable_sleep
from .clock import DEFAULT_CLOCK, Clock
from .config import (
    apply_full_jitter,
    compute_backoff,
    merge_config,
    validate_config,
)
from .policies import default_retry_policy
from .types import (
    FailureKind,
    RetryConfig,
    RetryError,
    RetryMetadata,
    RetryOptions,
)

logger = logging.getLogger(__name__)


T = TypeVar("T")

Sleeper = Callable[[float, Optional[CancellationToken]], Awaitable[None]]


class RetryExecutor:
    """
    Retry Executor

    Provides retry logic with:
    - Configurable max retries
    - Exponential backoff with full jitter
    - Error classification (default policy or custom predicate)
    - Global timeout budget across all attempts
    - Cooperative cancellation

    The configuration is validated when the executor is created and again at
    the start of every execute() call. Each call keeps its own attempt state,
    so one executor can serve concurrent invocations. The operation must return
    an awaitable; a plain return value raises TypeError without retrying.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        *,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
        executor_id: Optional[str] = None,
    ):
        """
        Create a new RetryExecutor.

        Args:
            config: Retry configuration
            clock: Time source for elapsed-time checks
            sleep: Cancellable sleep used between attempts
            executor_id: Optional unique identifier

        Raises:
            RetryConfigError: If the configuration is invalid
        """
        self._config = merge_config(config)
        validate_config(self._config)
        self._clock = clock or DEFAULT_CLOCK
        self._sleep = sleep or cancellable_sleep
        self._id = executor_id or f"retry-{int(time.time() * 1000)}"

    async def execute(
        self,
        operation: Callable[[int], Awaitable[T]],
        options: Optional[RetryOptions] = None,
    ) -> T:
        """
        Execute an operation with retry logic.

        Args:
            operation: Async function receiving the 0-based attempt index
            options: Retry options for this execution

        Returns:
            The operation's result

        Raises:
            RetryError: On timeout, cancellation or exhausted retries
            RetryConfigError: If option overrides are invalid
            Exception: The operation's own error when the policy rejects a retry

        Example:
            executor = RetryExecutor(RetryConfig(max_retries=3))
            data = await executor.execute(lambda attempt: fetch_data())
        """
        config = merge_config(self._config, options)
        validate_config(config)

        max_retries = config.max_retries
        timeout_ms = config.timeout_ms
        token = config.cancellation_token
        should_retry = config.retry_on or default_retry_policy
        context = f" {options.metadata}" if options and options.metadata else ""

        start = self._clock.now_ms()

        if token is not None and token.is_cancelled:
            raise self._failure(FailureKind.CANCELLED, 0, start, token.reason)

        last_error: Optional[Exception] = None

        for attempt in range(max_retries + 1):
            self._check_timeout(timeout_ms, start, attempt, last_error)
            self._check_cancelled(token, start, attempt)

            try:
                pending = operation(attempt)
                if inspect.isawaitable(pending):
                    return await pending
            except Exception as error:
                last_error = error
                logger.debug(
                    f"RetryExecutor.execute: [{self._id}] attempt {attempt} failed "
                    f"with {type(error).__name__}: {error}{context}"
                )

                if attempt >= max_retries:
                    break

                if not should_retry(error, attempt):
                    logger.debug(
                        f"RetryExecutor.execute: [{self._id}] {type(error).__name__} "
                        f"is not retryable, giving up after {attempt + 1} attempt(s)"
                    )
                    raise
            else:
                raise TypeError(
                    f"operation must return an awaitable, got {type(pending).__name__}"
                )

            attempts_made = attempt + 1
            self._check_timeout(timeout_ms, start, attempts_made, last_error)
            self._check_cancelled(token, start, attempts_made)

            delay = compute_backoff(attempt, config.base_delay_ms, config.max_delay_ms)
            if config.jitter:
                delay = apply_full_jitter(delay)

            if timeout_ms is not None:
                elapsed = self._elapsed(start)
                remaining = timeout_ms - elapsed
                if remaining <= 0:
                    raise self._failure(FailureKind.TIMEOUT, attempts_made, start, last_error)
                delay = min(delay, remaining)

            if config.on_retry is not None:
                config.on_retry(last_error, attempt + 1, delay)

            logger.info(
                f"[{self._id}] Retry {attempt + 1}/{max_retries} after {delay:.0f}ms "
                f"({type(last_error).__name__})"
            )

            try:
                await self._sleep(delay, token)
            except SleepInterrupted as interrupted:
                raise self._failure(
                    FailureKind.CANCELLED, attempts_made, start, interrupted.reason
                )

        raise self._failure(FailureKind.EXHAUSTED, max_retries + 1, start, last_error)

    def _elapsed(self, start: float) -> float:
        return self._clock.now_ms() - start

    def _check_timeout(
        self,
        timeout_ms: Optional[float],
        start: float,
        attempts: int,
        last_error: Optional[Exception],
    ) -> None:
        if timeout_ms is not None and self._elapsed(start) >= timeout_ms:
            raise self._failure(FailureKind.TIMEOUT, attempts, start, last_error)

    def _check_cancelled(
        self,
        token: Optional[CancellationToken],
        start: float,
        attempts: int,
    ) -> None:
        if token is not None and token.is_cancelled:
            raise self._failure(FailureKind.CANCELLED, attempts, start, token.reason)

    def _failure(
        self,
        kind: FailureKind,
        attempts: int,
        start: float,
        cause: Any,
    ) -> RetryError:
        metadata = RetryMetadata(total_attempts=attempts, total_elapsed_ms=self._elapsed(start))
        logger.debug(
            f"RetryExecutor._failure: [{self._id}] {kind.value} after "
            f"{metadata.total_attempts} attempt(s), {metadata.total_elapsed_ms:.0f}ms"
        )
        return RetryError(kind, metadata, cause)

    @property
    def id(self) -> str:
        """Get the executor ID."""
        return self._id

    @property
    def config(self) -> RetryConfig:
        """Get the current configuration."""
        return self._config


def create_retry_executor(
    config: Optional[RetryConfig] = None,
    executor_id: Optional[str] = None,
) -> RetryExecutor:
    """Create a new retry executor."""
    return RetryExecutor(config, executor_id=executor_id)


def execute_with_retry(
    operation: Callable[[int], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    **overrides: Any,
) -> Awaitable[T]:
    """
    Execute an operation with retry logic (convenience function).

    The configuration is validated before this function returns, so an invalid
    value raises at the call site rather than when the result is awaited.

    Args:
        operation: Async function receiving the 0-based attempt index
        config: Retry configuration
        **overrides: RetryConfig fields applied on top of `config`

    Returns:
        Awaitable resolving to the operation's result

    Example:
        data = await execute_with_retry(
            lambda attempt: client.get("/data"),
            max_retries=5,
            base_delay_ms=200,
            timeout_ms=10_000,
        )
    """
    if overrides:
        config = dataclasses.replace(merge_config(config), **overrides)
    executor = RetryExecutor(config)
    return executor.execute(operation)


def create_retry_wrapper(
    config: Optional[RetryConfig] = None,
) -> Callable[[Callable[[int], Awaitable[T]], Optional[RetryOptions]], Awaitable[T]]:
    """
    Create a retry wrapper function.

    Args:
        config: Retry configuration

    Returns:
        Function that wraps operations with retry logic

    Example:
        with_retry = create_retry_wrapper(RetryConfig(max_retries=3))
        data = await with_retry(lambda attempt: fetch_data())
    """
    executor = RetryExecutor(config)

    async def wrapper(
        operation: Callable[[int], Awaitable[T]],
        options: Optional[RetryOptions] = None,
    ) -> T:
        return await executor.execute(operation, options)

    return wrapper
