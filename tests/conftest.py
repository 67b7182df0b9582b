"""Pytest configuration and fixtures for smart_retry tests."""
from typing import Callable, Optional

import pytest

from smart_retry import (
    CancellationToken,
    RetryConfig,
    RetryExecutor,
    SleepInterrupted,
)


class FakeClock:
    """Virtual clock advanced explicitly by tests and the fake sleeper."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self.current_ms = start_ms

    def now_ms(self) -> float:
        return self.current_ms

    def advance(self, ms: float) -> None:
        self.current_ms += ms


class RecordingSleeper:
    """Sleeper that records delays and advances the virtual clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, delay_ms: float, token: Optional[CancellationToken] = None) -> None:
        if token is not None and token.is_cancelled:
            raise SleepInterrupted(token.reason)
        self.delays.append(delay_ms)
        self.clock.advance(delay_ms)


@pytest.fixture
def clock() -> FakeClock:
    """Create a virtual clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def sleeper(clock: FakeClock) -> RecordingSleeper:
    """Create a recording sleeper bound to the virtual clock."""
    return RecordingSleeper(clock)


@pytest.fixture
def make_executor(
    clock: FakeClock,
    sleeper: RecordingSleeper,
) -> Callable[..., RetryExecutor]:
    """Factory for executors running on virtual time."""

    def factory(**config_fields) -> RetryExecutor:
        return RetryExecutor(RetryConfig(**config_fields), clock=clock, sleep=sleeper)

    return factory
