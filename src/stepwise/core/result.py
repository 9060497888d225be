"""
Result envelope threaded between pipeline steps.

``Ok`` and ``Err`` are the only shapes a step returns and the only shapes the
engine threads from one step to the next.  Making success and failure two
explicit constructors replaces guessing at return shapes at runtime: the step
invoker normalizes outcomes with a single exhaustive ``match``.

Manifesto:
    - **Explicit over Implicit:** A step says Ok or Err, nothing else
    - **Bare markers:** ``Ok()`` means "succeeded, nothing to report",
      ``Err()`` means "failed, no reason given"
    - **Short-circuit:** Err flows through map/flat_map unchanged
    - **Batch-friendly:** A list of Ok/Err collapses into one outcome

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     Result[T]                                │
        ├─────────────────┬─────────────────┬─────────────────────────┤
        │     Ok[T]       │     Err[T]      │     Utilities           │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Any    │ • is_result()           │
        │ • map()         │ • map_err()     │ • partition_results()   │
        │ • flat_map()    │ • or_else()     │ • try_result()          │
        │ • unwrap()      │ • unwrap_or()   │ • collect_results()     │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    Steps return Ok or Err:

    >>> from stepwise.core.result import Ok, Err
    >>> def parse_amount(raw: str):
    ...     if not raw.isdigit():
    ...         return Err(f"not a number: {raw}")
    ...     return Ok(int(raw))
    >>> parse_amount("12")
    Ok(12)
    >>> match parse_amount("x"):
    ...     case Ok(value):
    ...         print(value)
    ...     case Err(error):
    ...         print(error)
    not a number: x

    Chaining:

    >>> Ok(10).map(lambda x: x * 2).map(lambda x: x + 1).unwrap()
    21
    >>> Err("oops").map(lambda x: x * 2).unwrap_or(0)
    0

Guardrails:
    ❌ DON'T: Return bare values (``return 42``) from a step
    ✅ DO: Return ``Ok(42)``; anything else is a contract violation

    ❌ DON'T: Mutate the value inside Ok (it's frozen)
    ✅ DO: Build a new value and wrap it in a new Ok

Tags:
    result-pattern, error-handling, functional-programming, stepwise

Doc-Types:
    - API Reference
    - Design Patterns Guide
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from stepwise.core.errors import PipelineError, describe_error


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Successful result containing a value.

    ``Ok()`` with no argument is the bare success marker; its value is None.

    Examples:
        >>> ok = Ok(42)
        >>> ok.is_ok()
        True
        >>> ok.unwrap()
        42
        >>> Ok().value is None
        True
    """

    value: T = None

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or default (always returns value for Ok)."""
        return self.value

    def unwrap_or_else(self, f: Callable[[Any], T]) -> T:
        """Get value or call f with error (always returns value for Ok)."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def and_then(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Alias for flat_map."""
        return f(self.value)

    def map_err(self, f: Callable[[Any], Any]) -> Result[T]:
        """Transform error if Err (no-op for Ok)."""
        return self

    def or_else(self, f: Callable[[Any], Result[T]]) -> Result[T]:
        """Return self if Ok, otherwise call f with error."""
        return self

    def inspect(self, f: Callable[[T], None]) -> Result[T]:
        """Call f with value for side effects, return self."""
        f(self.value)
        return self

    def inspect_err(self, f: Callable[[Any], None]) -> Result[T]:
        """Call f with error for side effects (no-op for Ok)."""
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error payload.

    Inside a pipeline the payload is a :class:`PipelineError` once the engine
    has classified it.  Steps may put any payload in an Err; ``Err()`` with
    no argument is the bare failure marker.

    Examples:
        >>> err = Err("something went wrong")
        >>> err.is_err()
        True
        >>> err.unwrap_or("default")
        'default'
        >>> Err().error is None
        True
    """

    error: Any = None

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        if isinstance(self.error, BaseException):
            raise self.error
        raise PipelineError(describe_error(self.error), cause=self.error)

    def unwrap_or(self, default: T) -> T:
        """Get default since this is Err."""
        return default

    def unwrap_or_else(self, f: Callable[[Any], T]) -> T:
        """Call f with error to get value."""
        return f(self.error)

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return self

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return self

    def and_then(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return self

    def map_err(self, f: Callable[[Any], Any]) -> Result[T]:
        """Transform the error."""
        return Err(f(self.error))

    def or_else(self, f: Callable[[Any], Result[T]]) -> Result[T]:
        """Call f with error to try recovery."""
        return f(self.error)

    def inspect(self, f: Callable[[T], None]) -> Result[T]:
        """No-op for Err."""
        return self

    def inspect_err(self, f: Callable[[Any], None]) -> Result[T]:
        """Call f with error for side effects, return self."""
        f(self.error)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        if isinstance(self.error, PipelineError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": describe_error(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Ok[T] | Err[T]


# =============================================================================
# RESULT CONSTRUCTORS AND UTILITIES
# =============================================================================


def is_result(value: Any) -> bool:
    """Check whether ``value`` is one of the two wrapped-result shapes."""
    return isinstance(value, (Ok, Err))


def try_result(f: Callable[[], T]) -> Result[T]:
    """
    Execute a zero-argument function and wrap its outcome.

    Bridges exception-raising helpers into a step that returns Ok/Err.
    Only ``Exception`` subclasses are caught.

    Examples:
        >>> import json
        >>> try_result(lambda: json.loads('{"a": 1}'))
        Ok({'a': 1})
        >>> try_result(lambda: json.loads('invalid')).is_err()
        True
    """
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


def collect_results(results: list[Result[T]]) -> Result[list[T]]:
    """
    Collect a list of Results into a Result of list (fail-fast).

    ::

        [Ok(1), Ok(2), Ok(3)] ──────> Ok([1, 2, 3])
        [Ok(1), Err(x), Err(y)] ────> Err(x)

    Unlike a step returning the same list, which reports every failure, the
    first Err wins here.
    """
    values = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err():
                return result
    return Ok(values)


def partition_results(results: list[Result[T]]) -> tuple[list[T], list[Any]]:
    """
    Partition results into successes and failures.

    Examples:
        >>> values, errors = partition_results([Ok(1), Err("a"), Ok(2)])
        >>> values
        [1, 2]
        >>> errors
        ['a']
    """
    values = []
    errors = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


__all__ = [
    "Result",
    "Ok",
    "Err",
    "is_result",
    "try_result",
    "collect_results",
    "partition_results",
]
