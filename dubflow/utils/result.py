"""Result type for explicit error handling.

Every remote call and workflow operation returns an ``Ok`` or an ``Err``
instead of raising, so a failed step always surfaces as a value the
presentation layer can show while the session keeps its current state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, NoReturn, Optional, TypeVar, Union

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Mapped type


class ResultError(Exception):
    """Raised when unwrapping a Result fails."""

    pass


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Represents a successful result."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the success value. Safe to call since this is Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        """Get the error value. Raises since this is Ok."""
        raise ResultError(f"Called unwrap_err on Ok value: {self.value}")

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        """Transform the success value."""
        return Ok(fn(self.value))

    def map_err(self, fn: Callable[[E], U]) -> "Ok[T]":
        return self

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        """Chain another Result-returning operation."""
        return fn(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Generic[E]):
    """Represents an error result."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """Get the success value. Raises since this is Err."""
        raise ResultError(f"Called unwrap on Err value: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        """Get the error value. Safe to call since this is Err."""
        return self.error

    def map(self, fn: Callable[[T], U]) -> "Err[E]":
        return self

    def map_err(self, fn: Callable[[E], U]) -> "Err[U]":
        """Transform the error value."""
        return Err(fn(self.error))

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Err[E]":
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Union[Ok[T], Err[E]]


# Error kinds surfaced to the session
@dataclass(frozen=True)
class ValidationError:
    """A required field is missing or syntactically malformed."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class RemoteError:
    """The remote service could not be reached or rejected the request."""

    operation: str
    message: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.operation}] {self.message} (HTTP {self.status_code})"
        return f"[{self.operation}] {self.message}"


@dataclass(frozen=True)
class InvalidCodeError:
    """The verification code was rejected."""

    message: str = "Invalid verification code"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class StateError:
    """An operation was requested in a state that does not allow it."""

    operation: str
    state: str
    message: str

    def __str__(self) -> str:
        return f"Cannot {self.operation} in state {self.state}: {self.message}"


@dataclass(frozen=True)
class AttemptsExhaustedError:
    """Too many rejected verification codes in this session."""

    attempts: int
    limit: int

    def __str__(self) -> str:
        return (
            f"Verification locked after {self.attempts} failed attempts "
            f"(limit {self.limit}). Start over to request a new code."
        )


@dataclass(frozen=True)
class ConfigError:
    """Error in configuration."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"Config error in '{self.field}': {self.message}"


# Exit codes
class ExitCode:
    """Exit codes for CLI."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFIG_ERROR = 2

    # Session stage failures (10-19)
    INTAKE_REJECTED = 10
    ACCOUNT_FAILED = 11
    VERIFICATION_FAILED = 12
    JOB_START_FAILED = 13
    JOB_FAILED = 14


def collect_results(results: list[Result[T, E]]) -> Result[list[T], list[E]]:
    """
    Collect a list of Results into a single Result.

    Returns Ok with all values if all are Ok, or Err with all errors if any are Err.
    """
    values = []
    errors = []

    for result in results:
        if result.is_ok():
            values.append(result.unwrap())
        else:
            errors.append(result.unwrap_err())

    if errors:
        return Err(errors)
    return Ok(values)
