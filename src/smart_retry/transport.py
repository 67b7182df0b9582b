"""
Retry transport wrapper for httpx
"""
import logging
from typing import Iterable, Optional

import httpx

from .executor import RetryExecutor, Sleeper
from .policies import is_retryable_http_status
from .types import FailureKind, RetryConfig, RetryError

logger = logging.getLogger(__name__)


# Idempotent HTTP methods that are safe to retry
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE", "TRACE"})


class RetryableStatusError(Exception):
    """Raised for a response whose status code warrants a retry."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response
        self.status = response.status_code


class RetryTransport(httpx.AsyncBaseTransport):
    """
    Retry transport wrapper for httpx.

    Wraps another transport and runs idempotent requests through a
    RetryExecutor. Responses with status 429 or 5xx are retried like transport
    errors; once retries run out the last such response is returned as-is.

    Example:
        base = httpx.AsyncHTTPTransport()
        transport = RetryTransport(base, config=RetryConfig(max_retries=3))
        client = httpx.AsyncClient(transport=transport)
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport,
        *,
        config: Optional[RetryConfig] = None,
        retry_methods: Iterable[str] = IDEMPOTENT_METHODS,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        """
        Create a new RetryTransport.

        Args:
            inner: The wrapped transport to delegate requests to
            config: Retry configuration
            retry_methods: HTTP methods that may be retried
            sleep: Cancellable sleep used between attempts
        """
        self._inner = inner
        self._retry_methods = frozenset(method.upper() for method in retry_methods)
        self._executor = RetryExecutor(config, sleep=sleep)

    @property
    def config(self) -> RetryConfig:
        return self._executor.config

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle an async HTTP request with retry logic"""
        if request.method.upper() not in self._retry_methods:
            return await self._inner.handle_async_request(request)

        async def send(attempt: int) -> httpx.Response:
            response = await self._inner.handle_async_request(request)
            if is_retryable_http_status(response):
                await response.aread()
                raise RetryableStatusError(response)
            return response

        try:
            return await self._executor.execute(send)
        except RetryError as error:
            if error.kind is FailureKind.EXHAUSTED and isinstance(error.cause, RetryableStatusError):
                logger.debug(
                    f"RetryTransport.handle_async_request: {request.method} {request.url} "
                    f"exhausted, returning HTTP {error.cause.status}"
                )
                return error.cause.response
            raise

    async def aclose(self) -> None:
        """Close the transport"""
        await self._inner.aclose()
