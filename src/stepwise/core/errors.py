"""
Failure model for stepwise pipelines.

Every way a step can fail is folded into one attributable error value so
callers can pattern-match on the kind of failure or simply ask for a
display string.

Manifesto:
    - **One error family:** All engine failures extend PipelineError
    - **Attributable:** ``source_step`` names the step that produced the
      failure, never a downstream step
    - **Kind over type-sniffing:** ``FailureKind`` tells explicit failures,
      aborted executions and contract violations apart
    - **Debuggable:** Raised exceptions keep their cause and traceback

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       PipelineError                          │
        │        (message, kind, source_step, context, cause)         │
        ├───────────────────┬──────────────────┬──────────────────────┤
        │ ExplicitFailure   │ AbortedExecution │ ContractViolation    │
        │ (EXPLICIT_FAILURE)│ (ABORTED_EXEC..) │ (CONTRACT_VIOLATION) │
        │ payload           │ cause, is_raised │ value                │
        │                   │ trace            │      │               │
        │                   │                  │ InitialFailure       │
        └───────────────────┴──────────────────┴──────────────────────┘

        Thrown / throw(value)  ──  the throw-like non-local transfer

Examples:
    Explicit failure display:

    >>> from stepwise.core.identity import StepIdentity
    >>> step = StepIdentity("app.steps", "charge_card")
    >>> str(ExplicitFailure(step, "card declined"))
    'Error in step `charge_card`: card declined'

    Aborted execution keeps the original exception:

    >>> error = AbortedExecution(step, cause=ValueError("bad amount"), is_raised=True)
    >>> str(error)
    'Error raised in step `charge_card`: ValueError: bad amount'
    >>> error.kind
    <FailureKind.ABORTED_EXECUTION: 'ABORTED_EXECUTION'>

Guardrails:
    ❌ DON'T: Catch BaseException around step code
    ✅ DO: Let SystemExit / KeyboardInterrupt propagate untouched

    ❌ DON'T: Re-wrap a PipelineError in another PipelineError
    ✅ DO: Pass it through so ``source_step`` stays the original step

Tags:
    error-handling, exception-hierarchy, failure-model, stepwise

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from stepwise.core.identity import StepIdentity


class FailureKind(str, Enum):
    """
    The three ways a step can fail.

    Attributes:
        EXPLICIT_FAILURE: The step returned ``Err(payload)``
        ABORTED_EXECUTION: The step raised an exception or threw a value
        CONTRACT_VIOLATION: A value broke the step/result shape contract
    """

    EXPLICIT_FAILURE = "EXPLICIT_FAILURE"
    ABORTED_EXECUTION = "ABORTED_EXECUTION"
    CONTRACT_VIOLATION = "CONTRACT_VIOLATION"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a PipelineError.

    Only non-None fields are serialized, so the dict stays small in logs.

    Examples:
        >>> ErrorContext(step="charge_card", module="app.steps").to_dict()
        {'step': 'charge_card', 'module': 'app.steps'}

    Attributes:
        step: Name of the step the error is attributed to
        module: Declaring module of that step
        event_id: Instrumentation id of the invocation, when known
        metadata: Additional key-value pairs
    """

    step: str | None = None
    module: str | None = None
    event_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_step(
        cls, source_step: StepIdentity | None, event_id: str | None = None
    ) -> ErrorContext:
        """Context naming ``source_step`` and, when known, its invocation id."""
        if source_step is None:
            return cls(event_id=event_id)
        return cls(step=source_step.name, module=source_step.module, event_id=event_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["step", "module", "event_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class PipelineError(Exception):
    """
    Base exception for all stepwise failures.

    PipelineError carries:
    - **kind:** FailureKind used for classification
    - **source_step:** StepIdentity of the step that produced the failure,
      or None when no step is responsible (e.g. a bad value handed to resolve)
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Instances are built once by the engine and are not mutated afterwards;
    the display string is computed at construction time.

    Examples:
        >>> error = PipelineError("Pipeline failed")
        >>> error.kind
        <FailureKind.EXPLICIT_FAILURE: 'EXPLICIT_FAILURE'>
        >>> error.to_dict()["message"]
        'Pipeline failed'
    """

    default_kind: FailureKind = FailureKind.EXPLICIT_FAILURE

    def __init__(
        self,
        message: str,
        *,
        source_step: StepIdentity | None = None,
        kind: FailureKind | None = None,
        context: ErrorContext | None = None,
        cause: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.source_step = source_step
        self.context = context or ErrorContext.for_step(source_step)
        self.cause = cause

        # Chain exception causes so tracebacks show the original failure
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    @property
    def step_name(self) -> str | None:
        return self.source_step.name if self.source_step else None

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "kind": self.kind.value,
        }
        if self.source_step is not None:
            result["source_step"] = str(self.source_step)
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, kind={self.kind.value})"


class ExplicitFailure(PipelineError):
    """
    A step reported failure by returning ``Err(payload)``.

    ``payload`` is whatever the step put in the Err: a plain value, an
    exception, ``None`` for a bare ``Err()``, or a list of payloads when a
    step returned several outcomes and at least one of them failed.
    """

    default_kind = FailureKind.EXPLICIT_FAILURE

    def __init__(
        self,
        source_step: StepIdentity,
        payload: Any = None,
        *,
        context: ErrorContext | None = None,
    ):
        self.payload = payload
        cause = payload if isinstance(payload, BaseException) else None
        super().__init__(
            _explicit_message(source_step, payload),
            source_step=source_step,
            context=context,
            cause=cause,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["payload"] = repr(self.payload)
        return result


class AbortedExecution(PipelineError):
    """
    A step's execution was interrupted.

    ``is_raised`` is True when the step raised an exception (``cause`` is
    the exception and ``trace`` its formatted traceback) and False when the
    step threw a value with :func:`throw` (``cause`` is the thrown value).
    """

    default_kind = FailureKind.ABORTED_EXECUTION

    def __init__(
        self,
        source_step: StepIdentity,
        *,
        cause: Any,
        is_raised: bool,
        trace: str | None = None,
        context: ErrorContext | None = None,
    ):
        self.is_raised = is_raised
        self.trace = trace
        if is_raised:
            message = f"Error raised in step `{source_step.name}`: {_describe(cause)}"
        else:
            message = f"Value thrown in step `{source_step.name}`: {cause!r}"
        super().__init__(message, source_step=source_step, context=context, cause=cause)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["is_raised"] = self.is_raised
        if self.trace:
            result["trace"] = self.trace
        return result


class ContractViolation(PipelineError):
    """
    A value broke the shape contract of the engine.

    Raised as a value (inside ``Err``), never as a fatal condition: a buggy
    step returns a pipeline failure instead of taking the process down.
    """

    default_kind = FailureKind.CONTRACT_VIOLATION

    def __init__(
        self,
        source_step: StepIdentity | None,
        message: str,
        *,
        value: Any = None,
        context: ErrorContext | None = None,
    ):
        self.value = value
        if source_step is not None:
            display = f"Contract violation in step `{source_step.name}`: {message}"
        else:
            display = f"Contract violation: {message}"
        super().__init__(display, source_step=source_step, context=context)
        self.detail = message

    @classmethod
    def unexpected_return(
        cls,
        source_step: StepIdentity,
        value: Any,
        *,
        context: ErrorContext | None = None,
    ) -> ContractViolation:
        """The standard diagnostic for a step returning an unknown shape."""
        return cls(
            source_step,
            f"unexpected return shape from `{source_step}`: expected Ok(...), "
            f"Err(...), a list of those, or to raise/throw. Instead it returned: {value!r}",
            value=value,
            context=context,
        )


class InitialFailure(ContractViolation):
    """A chain was started with an ``Err`` the pipeline never produced."""

    def __init__(self, source_step: StepIdentity, payload: Any):
        self.payload = payload
        super().__init__(
            source_step,
            f"chain started with a failure that no step produced: {_describe(payload)}",
            value=payload,
        )


class Thrown(Exception):
    """
    Non-local transfer of an arbitrary value out of a step.

    The step invoker turns it into ``AbortedExecution(is_raised=False)``.
    Use :func:`throw` rather than raising it directly.
    """

    def __init__(self, value: Any):
        super().__init__(value)
        self.value = value


def throw(value: Any) -> None:
    """Abort the current step, carrying ``value`` instead of an exception."""
    raise Thrown(value)


def describe_error(error: Any) -> str:
    """Display string for a PipelineError or a raw (unwrapped) payload."""
    if isinstance(error, PipelineError):
        return str(error)
    if isinstance(error, list):
        return "\n".join(f"- {_describe_item(item)}" for item in error)
    return _describe(error)


def _describe(value: Any) -> str:
    if isinstance(value, PipelineError):
        return value.message
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return str(value)


def _describe_item(value: Any) -> str:
    if value is None:
        return "Err() without a reason"
    return _describe(value)


def _explicit_message(source_step: StepIdentity, payload: Any) -> str:
    if isinstance(payload, list):
        lines = "\n- ".join(_describe_item(item) for item in payload)
        return f"Errors in step `{source_step.name}`:\n- {lines}"
    if payload is None:
        return f"Error in step `{source_step.name}`: step returned Err() without a reason"
    if isinstance(payload, BaseException):
        return f"Error in step `{source_step.name}`: returned {_describe(payload)}"
    return f"Error in step `{source_step.name}`: {payload}"


def failure_kind(error: Any) -> FailureKind | None:
    """Get the kind of a failure payload, None for raw payloads."""
    if isinstance(error, PipelineError):
        return error.kind
    return None


def error_payload_summary(error: Any) -> Mapping[str, Any]:
    """Structured summary of any failure payload for log records."""
    if isinstance(error, PipelineError):
        return error.to_dict()
    return {"error_type": type(error).__name__, "message": describe_error(error)}


__all__ = [
    "FailureKind",
    "ErrorContext",
    "PipelineError",
    "ExplicitFailure",
    "AbortedExecution",
    "ContractViolation",
    "InitialFailure",
    "Thrown",
    "throw",
    "describe_error",
    "failure_kind",
    "error_payload_summary",
]
