"""Result type for monadic error handling.

Inspired by Rust's Result<T, E>. Use pattern matching to handle results:

    match upsert_stack(ctx, request):
        case Ok(outcome):
            # handle success
        case Err(error):
            # handle error
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success case containing a value."""

    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Error case containing an error."""

    error: E


# Type alias for Result
type Result[T, E] = Ok[T] | Err[E]


def is_ok(result: Result[T, E]) -> bool:
    """Check if result is Ok."""
    return isinstance(result, Ok)


def is_err(result: Result[T, E]) -> bool:
    """Check if result is Err."""
    return isinstance(result, Err)


def collect(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Join several results: all values if every one is Ok, else the first Err.

    Used to join fan-out work (e.g. emptying several buckets) before
    continuing with the parent operation.
    """
    values: list[T] = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err() as e:
                return e
    return Ok(values)


def unwrap(result: Result[T, E]) -> T:
    """Extract the value from Ok, or raise ValueError if Err.

    Use sparingly - prefer pattern matching.
    """
    match result:
        case Ok(value):
            return value
        case Err(error):
            raise ValueError(f"Called unwrap on Err: {error}")
