"""Domain layer: Result, failures, cache policies, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from lmsclient.domain.exceptions import LmsClientException, ResultUnwrapError
from lmsclient.domain.failures import (
    AuthFailure,
    CacheFailure,
    Failure,
    GeneralFailure,
    NetworkFailure,
    is_retryable,
    requires_user_action,
)
from lmsclient.domain.policies import CachePolicies, CachePolicy
from lmsclient.domain.result import Error, Result, Success, combine, try_call_async

__all__ = [
    # Result
    "Error",
    "Result",
    "Success",
    "combine",
    "try_call_async",
    # Failures
    "AuthFailure",
    "CacheFailure",
    "Failure",
    "GeneralFailure",
    "NetworkFailure",
    "is_retryable",
    "requires_user_action",
    # Policies
    "CachePolicies",
    "CachePolicy",
    # Exceptions
    "LmsClientException",
    "ResultUnwrapError",
]
