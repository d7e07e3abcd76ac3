"""Failure taxonomy for the data-access layer.

A Failure is a value, never raised across the cache/network boundary.
Each family (network, cache, auth, general) is a frozen dataclass
subclass with classmethod constructors for its codes, so callers can
match on type or on FailureCode.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from lmsclient.shared.enums import FailureCode, FailureKind


@dataclass(frozen=True)
class Failure:
    """Base failure value.

    Attributes:
        message: Human-readable description.
        code: Machine-readable code (FailureCode value).
        details: Structured context (status_code, key, retry_after, ...).
    """

    kind: ClassVar[FailureKind] = FailureKind.GENERAL

    message: str
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def status_code(self) -> int | None:
        """HTTP status carried in details, if any."""
        return self.details.get("status_code")

    def __str__(self) -> str:
        suffix = f" (Code: {self.code})" if self.code else ""
        return f"{type(self).__name__}: {self.message}{suffix}"


@dataclass(frozen=True)
class NetworkFailure(Failure):
    """Transport and HTTP-status failures."""

    kind: ClassVar[FailureKind] = FailureKind.NETWORK

    @classmethod
    def no_connection(cls) -> "NetworkFailure":
        return cls("No internet connection available", FailureCode.NO_CONNECTION.value)

    @classmethod
    def timeout(cls) -> "NetworkFailure":
        return cls("Request timeout", FailureCode.TIMEOUT.value)

    @classmethod
    def server_error(cls, status_code: int, message: str | None = None) -> "NetworkFailure":
        return cls(
            message or "Server error occurred",
            FailureCode.SERVER_ERROR.value,
            {"status_code": status_code},
        )

    @classmethod
    def client_error(cls, status_code: int, message: str | None = None) -> "NetworkFailure":
        return cls(
            message or "Client error occurred",
            FailureCode.CLIENT_ERROR.value,
            {"status_code": status_code},
        )

    @classmethod
    def rate_limited(cls, retry_after: str | None = None) -> "NetworkFailure":
        """429 failure; retry_after is the raw Retry-After header value."""
        if retry_after is not None:
            message = f"Too many requests. Please try again in {retry_after} seconds."
            details: dict[str, Any] = {"status_code": 429, "retry_after": retry_after}
        else:
            message = "Too many requests. Please try again later."
            details = {"status_code": 429}
        return cls(message, FailureCode.RATE_LIMITED.value, details)

    @classmethod
    def ssl_error(cls, message: str | None = None) -> "NetworkFailure":
        return cls(message or "SSL certificate error", FailureCode.SSL_ERROR.value)


@dataclass(frozen=True)
class CacheFailure(Failure):
    """Cache store failures."""

    kind: ClassVar[FailureKind] = FailureKind.CACHE

    @classmethod
    def not_found(cls, key: str) -> "CacheFailure":
        return cls(
            f"Cache entry not found for key: {key}",
            FailureCode.CACHE_NOT_FOUND.value,
            {"key": key},
        )

    @classmethod
    def expired(cls, key: str) -> "CacheFailure":
        return cls(
            f"Cache entry expired for key: {key}",
            FailureCode.CACHE_EXPIRED.value,
            {"key": key},
        )

    @classmethod
    def corrupted_data(cls, reason: str | None = None) -> "CacheFailure":
        details = {"reason": reason} if reason else {}
        return cls("Cached data is corrupted", FailureCode.CORRUPTED_DATA.value, details)

    @classmethod
    def size_limit_exceeded(
        cls, size_bytes: int | None = None, limit_bytes: int | None = None
    ) -> "CacheFailure":
        details: dict[str, Any] = {}
        if size_bytes is not None:
            details["size_bytes"] = size_bytes
        if limit_bytes is not None:
            details["limit_bytes"] = limit_bytes
        return cls("Cache size limit exceeded", FailureCode.SIZE_LIMIT_EXCEEDED.value, details)


@dataclass(frozen=True)
class AuthFailure(Failure):
    """Authentication/authorization failures reported by the proxy."""

    kind: ClassVar[FailureKind] = FailureKind.AUTH

    @classmethod
    def invalid_token(cls) -> "AuthFailure":
        return cls(
            "Invalid or expired access token",
            FailureCode.INVALID_TOKEN.value,
            {"status_code": 401},
        )

    @classmethod
    def insufficient_permissions(cls, message: str | None = None) -> "AuthFailure":
        return cls(
            message or "Insufficient permissions",
            FailureCode.INSUFFICIENT_PERMISSIONS.value,
            {"status_code": 403},
        )


@dataclass(frozen=True)
class GeneralFailure(Failure):
    """Anything that does not fit the other families."""

    kind: ClassVar[FailureKind] = FailureKind.GENERAL

    @classmethod
    def unknown(cls, message: str | None = None) -> "GeneralFailure":
        return cls(message or "An unknown error occurred", FailureCode.UNKNOWN_ERROR.value)

    @classmethod
    def configuration_error(cls, message: str | None = None) -> "GeneralFailure":
        return cls(message or "Configuration error", FailureCode.CONFIGURATION_ERROR.value)

    @classmethod
    def not_implemented(cls, feature: str | None = None) -> "GeneralFailure":
        message = f"{feature} is not implemented yet" if feature else "Feature not implemented yet"
        return cls(message, FailureCode.NOT_IMPLEMENTED.value)


_RETRYABLE_NETWORK_CODES = frozenset(
    {
        FailureCode.TIMEOUT.value,
        FailureCode.NO_CONNECTION.value,
        FailureCode.SERVER_ERROR.value,
        FailureCode.RATE_LIMITED.value,
    }
)

_USER_ACTION_AUTH_CODES = frozenset(
    {
        FailureCode.INVALID_TOKEN.value,
        FailureCode.INSUFFICIENT_PERMISSIONS.value,
    }
)


def is_retryable(failure: Failure) -> bool:
    """Return True if retrying the same request may succeed later.

    Timeouts, lost connections, 5xx and rate limiting qualify. Auth and
    cache failures are terminal.
    """
    return isinstance(failure, NetworkFailure) and failure.code in _RETRYABLE_NETWORK_CODES


def requires_user_action(failure: Failure) -> bool:
    """Return True if the user must re-authenticate or change access."""
    return isinstance(failure, AuthFailure) and failure.code in _USER_ACTION_AUTH_CODES
