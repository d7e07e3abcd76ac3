"""Two-variant outcome type: Success(value) or Error(failure).

Every fallible operation in the data layer returns a Result. Both
variants are frozen dataclasses, so callers can use structural pattern
matching::

    match await store.get(key):
        case Success(value=None):
            ...  # miss
        case Success(value=payload):
            ...
        case Error(failure=failure):
            ...

The only way to turn a Result into an exception is an explicit unwrap()
at the outermost caller boundary.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeAlias, TypeVar, Union

from lmsclient.domain.exceptions import ResultUnwrapError
from lmsclient.domain.failures import Failure, GeneralFailure

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Success variant carrying a value (which may itself be None)."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_error(self) -> bool:
        return False

    @property
    def value_or_none(self) -> T | None:
        return self.value

    @property
    def failure_or_none(self) -> Failure | None:
        return None

    def map(self, transform: Callable[[T], R]) -> Result[R]:
        return Success(transform(self.value))

    def flat_map(self, transform: Callable[[T], Result[R]]) -> Result[R]:
        return transform(self.value)

    async def map_async(self, transform: Callable[[T], Awaitable[R]]) -> Result[R]:
        return Success(await transform(self.value))

    async def flat_map_async(
        self, transform: Callable[[T], Awaitable[Result[R]]]
    ) -> Result[R]:
        return await transform(self.value)

    def map_failure(self, transform: Callable[[Failure], Failure]) -> Result[T]:
        return self

    def on_success(self, action: Callable[[T], Any]) -> Result[T]:
        action(self.value)
        return self

    def on_failure(self, action: Callable[[Failure], Any]) -> Result[T]:
        return self

    def fold(
        self,
        on_error: Callable[[Failure], R],
        on_success: Callable[[T], R],
    ) -> R:
        return on_success(self.value)

    def get_or_else(self, default: T) -> T:
        return self.value

    def get_or_else_with(self, default: Callable[[Failure], T]) -> T:
        return self.value

    def unwrap(self) -> T:
        return self.value

    def __str__(self) -> str:
        return f"Success({self.value!r})"


@dataclass(frozen=True)
class Error(Generic[T]):
    """Error variant carrying a Failure."""

    failure: Failure

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_error(self) -> bool:
        return True

    @property
    def value_or_none(self) -> T | None:
        return None

    @property
    def failure_or_none(self) -> Failure | None:
        return self.failure

    def map(self, transform: Callable[[T], R]) -> Result[R]:
        return Error(self.failure)

    def flat_map(self, transform: Callable[[T], Result[R]]) -> Result[R]:
        return Error(self.failure)

    async def map_async(self, transform: Callable[[T], Awaitable[R]]) -> Result[R]:
        return Error(self.failure)

    async def flat_map_async(
        self, transform: Callable[[T], Awaitable[Result[R]]]
    ) -> Result[R]:
        return Error(self.failure)

    def map_failure(self, transform: Callable[[Failure], Failure]) -> Result[T]:
        return Error(transform(self.failure))

    def on_success(self, action: Callable[[T], Any]) -> Result[T]:
        return self

    def on_failure(self, action: Callable[[Failure], Any]) -> Result[T]:
        action(self.failure)
        return self

    def fold(
        self,
        on_error: Callable[[Failure], R],
        on_success: Callable[[T], R],
    ) -> R:
        return on_error(self.failure)

    def get_or_else(self, default: T) -> T:
        return default

    def get_or_else_with(self, default: Callable[[Failure], T]) -> T:
        return default(self.failure)

    def unwrap(self) -> NoReturn:
        raise ResultUnwrapError(self.failure)

    def __str__(self) -> str:
        return f"Error({self.failure})"


Result: TypeAlias = Union[Success[T], Error[T]]


def combine(results: Iterable[Result[T]]) -> Result[list[T]]:
    """Collect values of all Successes; the first Error short-circuits."""
    values: list[T] = []
    for result in results:
        match result:
            case Success(value=value):
                values.append(value)
            case Error(failure=failure):
                return Error(failure)
    return Success(values)


async def try_call_async(
    func: Callable[[], Awaitable[T]],
    classify: Callable[[Exception], Failure] | None = None,
) -> Result[T]:
    """Await func() and wrap its outcome; raised exceptions become Failures.

    Args:
        func: Zero-argument coroutine function.
        classify: Optional mapper from exception to Failure; defaults to
            GeneralFailure.unknown with the exception text.
    """
    try:
        return Success(await func())
    except Exception as exc:
        if classify is not None:
            return Error(classify(exc))
        return Error(GeneralFailure.unknown(str(exc) or type(exc).__name__))

