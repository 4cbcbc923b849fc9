"""Two-variant outcome type.

Operations whose failures are part of normal control flow return a
``Success`` or a ``Failure`` instead of raising. A failure always carries an
error value; ``None`` is never used to signal that something went wrong.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Successful outcome holding a value."""

    data: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure(Generic[E]):
    """Failed outcome holding an error."""

    error: E

    @property
    def success(self) -> bool:
        return False


Result = Union[Success[T], Failure[E]]


def is_success(result: Result[Any, Any]) -> bool:
    return isinstance(result, Success)


def is_failure(result: Result[Any, Any]) -> bool:
    return isinstance(result, Failure)


def map_result(result: Result[T, E], mapper: Callable[[T], U]) -> Result[U, E]:
    """Apply ``mapper`` to the value of a success; pass failures through."""
    if isinstance(result, Success):
        return Success(mapper(result.data))
    return result


def map_error(result: Result[T, E], mapper: Callable[[E], F]) -> Result[T, F]:
    """Apply ``mapper`` to the error of a failure; pass successes through."""
    if isinstance(result, Failure):
        return Failure(mapper(result.error))
    return result


def flat_map(result: Result[T, E], mapper: Callable[[T], Result[U, E]]) -> Result[U, E]:
    """Chain an operation that itself returns a Result."""
    if isinstance(result, Success):
        return mapper(result.data)
    return result


def unwrap(result: Result[T, E]) -> T:
    """Return the value of a success, or raise the failure's error.

    Errors that are not exceptions are wrapped in ``RuntimeError``.
    """
    if isinstance(result, Success):
        return result.data
    if isinstance(result.error, BaseException):
        raise result.error
    raise RuntimeError(str(result.error))


def unwrap_or(result: Result[T, E], default: T) -> T:
    if isinstance(result, Success):
        return result.data
    return default


def combine(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Collect all values, or return the first failure encountered."""
    values: list[T] = []
    for result in results:
        if isinstance(result, Failure):
            return result
        values.append(result.data)
    return Success(values)


def partition(results: Iterable[Result[T, E]]) -> tuple[list[T], list[E]]:
    """Split results into (values, errors), preserving order within each."""
    values: list[T] = []
    errors: list[E] = []
    for result in results:
        if isinstance(result, Success):
            values.append(result.data)
        else:
            errors.append(result.error)
    return values, errors


async def try_async(func: Callable[[], Awaitable[T]]) -> Result[T, Exception]:
    """Await ``func()`` and capture any exception as a failure."""
    try:
        return Success(await func())
    except Exception as exc:  # pylint: disable=broad-exception-caught
        return Failure(exc)
