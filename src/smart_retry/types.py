"""
Type definitions for smart_retry
"""
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from .cancellation import CancellationToken


# Retry predicate: (error, index of the attempt that just failed) -> retry?
RetryPredicate = Callable[[BaseException, int], bool]

# Retry hook: (error, upcoming retry number starting at 1, delay in ms)
RetryHook = Callable[[BaseException, int, float], None]


@dataclass
class RetryConfig:
    """Retry configuration"""

    max_retries: int = 3
    """Maximum number of retries after the initial attempt. Default: 3"""

    base_delay_ms: float = 300
    """Base delay for exponential backoff (milliseconds). Default: 300"""

    max_delay_ms: float = 5000
    """Maximum delay between retries (milliseconds). Default: 5000"""

    jitter: bool = True
    """Whether to apply full jitter to each computed delay. Default: True"""

    retry_on: Optional[RetryPredicate] = None
    """Custom retry predicate. Overrides the default policy entirely"""

    on_retry: Optional[RetryHook] = None
    """Callback invoked before each retry delay"""

    timeout_ms: Optional[float] = None
    """Global time budget across all attempts and delays (milliseconds)"""

    cancellation_token: Optional["CancellationToken"] = None
    """External cancellation signal"""


@dataclass
class RetryOptions:
    """Options for individual retry operations"""

    max_retries: Optional[int] = None
    """Override max retries for this operation"""

    timeout_ms: Optional[float] = None
    """Override the global time budget for this operation"""

    cancellation_token: Optional["CancellationToken"] = None
    """Cancellation signal for this operation"""

    metadata: Optional[dict[str, Any]] = None
    """Metadata for logging/debugging"""


@dataclass(frozen=True)
class RetryMetadata:
    """Metadata attached to every terminal retry failure"""

    total_attempts: int
    """Number of operation invocations actually made"""

    total_elapsed_ms: float
    """Wall-clock time from start to failure (milliseconds)"""


class FailureKind(str, Enum):
    """Terminal failure kind"""
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    EXHAUSTED = "exhausted"


class RetryError(Exception):
    """
    Terminal failure of a retried operation.

    A single error type tagged with a FailureKind. Callers dispatch on `kind`:

        try:
            await execute_with_retry(fetch_data, timeout_ms=5000)
        except RetryError as err:
            if err.kind is FailureKind.TIMEOUT:
                ...

    `cause` holds the last observed operation error (timeout, exhaustion) or the
    cancellation reason (cancellation). It may be None.
    """

    def __init__(
        self,
        kind: FailureKind,
        metadata: RetryMetadata,
        cause: Any = None,
    ) -> None:
        super().__init__(_format_message(kind, metadata))
        self.kind = kind
        self.metadata = metadata
        self.cause = cause
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    def __reduce__(self):
        return (self.__class__, (self.kind, self.metadata, self.cause))

    @property
    def total_attempts(self) -> int:
        return self.metadata.total_attempts

    @property
    def total_elapsed_ms(self) -> float:
        return self.metadata.total_elapsed_ms

    def __repr__(self) -> str:
        return (
            f"RetryError(kind={self.kind.value!r}, "
            f"total_attempts={self.total_attempts}, "
            f"total_elapsed_ms={self.total_elapsed_ms:.0f})"
        )


def _format_message(kind: FailureKind, metadata: RetryMetadata) -> str:
    elapsed = f"{metadata.total_elapsed_ms:.0f}ms"
    attempts = metadata.total_attempts
    if kind is FailureKind.TIMEOUT:
        return f"Retry timed out after {elapsed} ({attempts} attempt(s))"
    if kind is FailureKind.CANCELLED:
        return f"Retry cancelled after {elapsed} ({attempts} attempt(s))"
    return f"Retry exhausted after {attempts} attempt(s) over {elapsed}"
