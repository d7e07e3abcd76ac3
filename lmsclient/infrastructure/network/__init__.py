"""Network: resilient proxy API client, token providers, failure mapping."""

from lmsclient.infrastructure.network.failure_mapping import (
    failure_from_exception,
    failure_from_status,
    is_retryable_exception,
    is_retryable_status,
)
from lmsclient.infrastructure.network.resilient_client import ResilientClient
from lmsclient.infrastructure.network.token_provider import (
    CallableTokenProvider,
    StaticTokenProvider,
    TokenProvider,
)

__all__ = [
    "CallableTokenProvider",
    "ResilientClient",
    "StaticTokenProvider",
    "TokenProvider",
    "failure_from_exception",
    "failure_from_status",
    "is_retryable_exception",
    "is_retryable_status",
]
