"""Shared enumerations for the LMS data-access layer.

Cross-cutting enums used by domain, application, and infrastructure
(failure taxonomy, cache strategies, data provenance).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class FailureKind(_ValuesMixin, str, Enum):
    """Top-level failure family (closed set)."""

    NETWORK = "network"
    CACHE = "cache"
    AUTH = "auth"
    GENERAL = "general"


class FailureCode(_ValuesMixin, str, Enum):
    """Machine-readable failure codes within each FailureKind."""

    # Network
    NO_CONNECTION = "NO_CONNECTION"
    TIMEOUT = "TIMEOUT"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    SSL_ERROR = "SSL_ERROR"
    # Cache
    CACHE_NOT_FOUND = "CACHE_NOT_FOUND"
    CACHE_EXPIRED = "CACHE_EXPIRED"
    CORRUPTED_DATA = "CORRUPTED_DATA"
    SIZE_LIMIT_EXCEEDED = "SIZE_LIMIT_EXCEEDED"
    # Auth
    INVALID_TOKEN = "INVALID_TOKEN"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    # General
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"


class CacheStrategy(_ValuesMixin, str, Enum):
    """Fetch dispatch behavior for a resource class."""

    CACHE_FIRST = "cache_first"
    NETWORK_FIRST = "network_first"
    CACHE_ONLY = "cache_only"
    NETWORK_ONLY = "network_only"


class DataSource(_ValuesMixin, str, Enum):
    """Where a fetched value came from."""

    CACHE = "cache"
    NETWORK = "network"
    STALE_CACHE = "stale_cache"
