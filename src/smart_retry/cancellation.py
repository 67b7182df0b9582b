"""
Cancellation token and cancellable timer for smart_retry
"""
import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

logger = logging.getLogger(__name__)


CancellationCallback = Callable[[Any], None]


class SleepInterrupted(Exception):
    """Raised when a cancellable sleep is cut short by its token."""

    def __init__(self, reason: Any = None) -> None:
        super().__init__("Sleep interrupted by cancellation")
        self.reason = reason


class Registration:
    """Handle for a callback registered on a CancellationToken."""

    def __init__(self, token: "CancellationToken", callback: Optional[CancellationCallback]) -> None:
        self._token = token
        self._callback = callback

    @property
    def active(self) -> bool:
        """Whether the callback is still waiting to fire."""
        return self._callback is not None

    def _fire(self, reason: Any) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback(reason)

    def dispose(self) -> None:
        """Deregister the callback. Safe to call more than once."""
        if self._callback is None:
            return
        self._callback = None
        self._token._remove(self)


class CancellationToken:
    """
    Cooperative cancellation signal.

    Owned by the caller and shared with any number of retry invocations. Once
    cancelled it stays cancelled; the first reason wins. Callbacks are one-shot
    and run synchronously inside cancel(). Use from a single event loop thread.

    Example:
        token = CancellationToken()
        loop.call_later(2.0, token.cancel, "shutdown")
        await execute_with_retry(fetch_data, cancellation_token=token)
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Any = None
        self._registrations: list[Registration] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def listener_count(self) -> int:
        """Number of callbacks still registered."""
        return len(self._registrations)

    def cancel(self, reason: Any = None) -> None:
        """
        Signal cancellation and fire every registered callback once.

        Args:
            reason: Optional cancellation reason passed to callbacks

        Raises:
            The first exception raised by a callback, after all callbacks ran
        """
        if self._cancelled:
            return

        self._cancelled = True
        self._reason = reason
        registrations, self._registrations = self._registrations, []
        logger.debug(
            f"CancellationToken.cancel: reason={reason!r}, firing {len(registrations)} callback(s)"
        )

        first_error: Optional[Exception] = None
        for registration in registrations:
            try:
                registration._fire(reason)
            except Exception as error:
                if first_error is None:
                    first_error = error
        if first_error is not None:
            raise first_error

    def register(self, callback: CancellationCallback) -> Registration:
        """
        Register a one-shot cancellation callback.

        If the token is already cancelled the callback runs immediately and the
        returned registration is inactive.

        Args:
            callback: Called with the cancellation reason

        Returns:
            Registration handle used to deregister the callback
        """
        if self._cancelled:
            registration = Registration(self, None)
            callback(self._reason)
            return registration

        registration = Registration(self, callback)
        self._registrations.append(registration)
        return registration

    @contextmanager
    def listen(self, callback: CancellationCallback) -> Iterator[Registration]:
        """Register `callback` for the duration of the block."""
        registration = self.register(callback)
        try:
            yield registration
        finally:
            registration.dispose()

    def _remove(self, registration: Registration) -> None:
        if registration in self._registrations:
            self._registrations.remove(registration)


async def cancellable_sleep(
    delay_ms: float,
    token: Optional[CancellationToken] = None,
) -> None:
    """
    Sleep for a duration, waking early if the token is cancelled.

    The timer handle and the token listener are released on every exit path,
    including cancellation of the awaiting task.

    Args:
        delay_ms: Duration in milliseconds
        token: Optional cancellation token

    Raises:
        SleepInterrupted: If the token is or becomes cancelled
    """
    if token is not None and token.is_cancelled:
        raise SleepInterrupted(token.reason)

    loop = asyncio.get_running_loop()
    waiter = loop.create_future()

    def _wake() -> None:
        if not waiter.done():
            waiter.set_result(None)

    def _interrupt(reason: Any) -> None:
        if not waiter.done():
            waiter.set_exception(SleepInterrupted(reason))

    handle = loop.call_later(max(delay_ms, 0) / 1000, _wake)
    try:
        if token is None:
            await waiter
        else:
            with token.listen(_interrupt):
                await waiter
    finally:
        handle.cancel()
