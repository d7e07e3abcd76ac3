"""Classification of httpx errors and HTTP statuses into Failures.

Retryable: transport timeouts, connection failures, HTTP 429 and 5xx.
Terminal: TLS/certificate problems, every other 4xx, anything unexpected.
"""

import ssl

import httpx

from lmsclient.core.constants import (
    HTTP_FORBIDDEN,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
    RETRY_AFTER_HEADER,
)
from lmsclient.domain.failures import AuthFailure, Failure, GeneralFailure, NetworkFailure

_SSL_MARKERS = ("CERTIFICATE_VERIFY_FAILED", "[SSL")


def _is_ssl_error(exc: BaseException) -> bool:
    """Walk the cause chain looking for an ssl error (httpx wraps it in ConnectError)."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLError):
            return True
        if any(marker in str(current) for marker in _SSL_MARKERS):
            return True
        current = current.__cause__ or current.__context__
    return False


def failure_from_exception(exc: Exception) -> Failure:
    """Map a transport exception to a Failure."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkFailure.timeout()
    if _is_ssl_error(exc):
        return NetworkFailure.ssl_error()
    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
        return NetworkFailure.no_connection()
    return GeneralFailure.unknown(str(exc) or f"Unknown network error: {type(exc).__name__}")


def is_retryable_exception(exc: Exception) -> bool:
    """True for timeouts and connection-level failures (not TLS)."""
    if isinstance(exc, httpx.TimeoutException):
        return True
    if _is_ssl_error(exc):
        return False
    return isinstance(exc, (httpx.ConnectError, httpx.NetworkError))


def is_retryable_status(status_code: int) -> bool:
    """True for 429 and any 5xx."""
    return status_code == HTTP_TOO_MANY_REQUESTS or status_code >= 500


def failure_from_status(response: httpx.Response) -> Failure:
    """Map a non-2xx response to a Failure."""
    status = response.status_code
    if status == HTTP_UNAUTHORIZED:
        return AuthFailure.invalid_token()
    if status == HTTP_FORBIDDEN:
        return AuthFailure.insufficient_permissions()
    if status == HTTP_TOO_MANY_REQUESTS:
        return NetworkFailure.rate_limited(response.headers.get(RETRY_AFTER_HEADER))
    if 400 <= status < 500:
        return NetworkFailure.client_error(status)
    if status >= 500:
        return NetworkFailure.server_error(status)
    return GeneralFailure.unknown(f"Unexpected HTTP status {status}")
