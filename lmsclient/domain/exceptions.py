"""Domain exceptions for the LMS data-access layer.

Failures travel as values (see lmsclient.domain.result). Exceptions are
reserved for the outermost caller boundary, where a Result is explicitly
unwrapped, and for invalid construction arguments.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lmsclient.domain.failures import Failure


class LmsClientException(Exception):
    """Base exception for all lmsclient errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ResultUnwrapError(LmsClientException):
    """Raised by Result.unwrap() when the Result holds a Failure."""

    def __init__(self, failure: "Failure") -> None:
        """Initialize from the Failure that was unwrapped.

        Args:
            failure: The Failure carried by the Error variant.
        """
        self.failure = failure
        super().__init__(failure.message, failure.code, dict(failure.details))
