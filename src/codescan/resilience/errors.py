"""Error classification for transport-level retries.

Classifies exceptions raised by the scan service client so the retry
policy only repeats calls that can succeed on a second attempt:
- throttling and network errors are transient
- 5xx responses are server errors
- deadlines are timeouts
- 4xx responses are client errors and are never retried
"""

from __future__ import annotations

from enum import Enum

import httpx


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, connection resets
    SERVER = "server"  # 500, 502, 503, 504
    TIMEOUT = "timeout"  # 408, read/connect deadline exceeded
    CLIENT = "client"  # 400, 401, 403, 404
    UNKNOWN = "unknown"


def _status_code(error: BaseException) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    code = getattr(error, "status_code", None)
    return code if isinstance(code, int) else None


def _classify_status(status_code: int) -> ErrorClass | None:
    if status_code == 429:
        return ErrorClass.TRANSIENT
    if status_code == 408:
        return ErrorClass.TIMEOUT
    if 400 <= status_code < 500:
        return ErrorClass.CLIENT
    if 500 <= status_code < 600:
        return ErrorClass.SERVER
    return None


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Checks structured attributes first (HTTP status, httpx exception
    types), falls back to string matching for untyped exceptions.
    """
    status_code = _status_code(error)
    if status_code is not None:
        by_status = _classify_status(status_code)
        if by_status is not None:
            return by_status

    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return ErrorClass.TIMEOUT
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorClass.TRANSIENT

    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "throttl" in msg or "rate limit" in msg:
        return ErrorClass.TRANSIENT
    if "connection" in msg:
        return ErrorClass.TRANSIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.SERVER,
    ErrorClass.TIMEOUT,
})


def is_retryable(error: BaseException) -> bool:
    """Return True if the error category supports retry."""
    return classify_error(error) in _RETRYABLE
