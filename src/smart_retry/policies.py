"""
Retryability classification for smart_retry
"""
import errno
import socket
from typing import Any, Optional

import httpx


# Transport error codes that indicate transient connectivity issues
RETRYABLE_NETWORK_CODES = frozenset({
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
    "EAI_AGAIN",
})

# getaddrinfo failures that map onto ENOTFOUND / EAI_AGAIN
_RETRYABLE_GAI_ERRORS = frozenset({
    socket.EAI_AGAIN,
    socket.EAI_NONAME,
})


def is_network_error(error: Any) -> bool:
    """
    Check if an error is a transient network fault.

    Matches:
    - a string `code` attribute in RETRYABLE_NETWORK_CODES
    - an OSError whose errno is ECONNRESET or ETIMEDOUT
    - a socket.gaierror for a temporary or unknown name
    - any httpx.TransportError (connect/read/write/pool failures)

    Args:
        error: The error to check

    Returns:
        Whether the error is a retryable network error
    """
    if error is None:
        return False

    if isinstance(error, httpx.TransportError):
        return True

    code = getattr(error, "code", None)
    if isinstance(code, str):
        return code in RETRYABLE_NETWORK_CODES

    if isinstance(error, socket.gaierror):
        return error.errno in _RETRYABLE_GAI_ERRORS

    err_no = getattr(error, "errno", None)
    if isinstance(err_no, int) and not isinstance(err_no, bool):
        return errno.errorcode.get(err_no) in RETRYABLE_NETWORK_CODES

    return False


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def extract_http_status(error: Any) -> Optional[int]:
    """
    Extract an HTTP status code from an error.

    Checked in order: error.status, error.status_code, error.response.status,
    error.response.status_code.

    Args:
        error: The error to inspect

    Returns:
        The HTTP status code, or None if none is found
    """
    if error is None:
        return None

    for attr in ("status", "status_code"):
        status = _as_status(getattr(error, attr, None))
        if status is not None:
            return status

    response = getattr(error, "response", None)
    if response is None:
        return None

    for attr in ("status", "status_code"):
        status = _as_status(getattr(response, attr, None))
        if status is not None:
            return status

    return None


def _is_retryable_status_code(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


def is_retryable_http_status(error: Any) -> bool:
    """
    Check if an error carries a retryable HTTP status.

    Retryable: 429 (Too Many Requests) and 500-599 (server errors).
    Everything else, including errors without a status, is not.

    Args:
        error: The error to inspect

    Returns:
        Whether the HTTP status is retryable

    Example:
        err = Exception("Server Error")
        err.status = 503
        is_retryable_http_status(err)  # True
    """
    status = extract_http_status(error)
    if status is None:
        return False
    return _is_retryable_status_code(status)


def default_retry_policy(error: BaseException, attempt_index: int = 0) -> bool:
    """
    Default retry policy used when no retry_on predicate is configured.

    Retries network faults, 429 and 5xx. Does not retry other 4xx statuses.
    Errors with no recognized network code or status are retried.

    Args:
        error: The error raised by the operation
        attempt_index: Index of the attempt that failed (unused)

    Returns:
        Whether the error should be retried
    """
    if is_network_error(error):
        return True

    status = extract_http_status(error)
    if status is not None:
        if _is_retryable_status_code(status):
            return True
        if 400 <= status <= 499:
            return False

    return True
