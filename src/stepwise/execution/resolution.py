"""Resolution — the terminal operations that close a pipeline.

``resolution`` and ``resolve`` turn a StepState or a wrapped Result into a
plain ``Ok(value)`` / ``Err(error)``; the error is the PipelineError
(display it with ``str()``), or the raw payload when wrapping was disabled.
``resolve`` also publishes the ``resolve`` event for state-accumulating
pipelines.  ``resolve_or_abort`` returns the value or raises.
"""

from __future__ import annotations

from typing import Any

from stepwise.core.errors import ContractViolation, PipelineError, describe_error
from stepwise.core.events import EventBus
from stepwise.core.result import Err, Ok, Result
from stepwise.execution.instrumentation import emit_resolve
from stepwise.execution.state import StepState


def resolution(target: Any) -> Result[Any]:
    """Plain result of ``target`` without publishing any event."""
    match target:
        case StepState(result=Ok(value)) | Ok(value):
            return Ok(value)
        case StepState(result=Err(error)) | Err(error):
            return Err(error)
        case _:
            return Err(
                ContractViolation(
                    None,
                    f"expected a StepState, Ok(...) or Err(...) to resolve, got: {target!r}",
                    value=target,
                )
            )


def resolve(target: Any, *, bus: EventBus | None = None) -> Result[Any]:
    """
    Resolve ``target`` into a plain result.

    Publishes ``resolve`` (with the full state and the resolution) when
    ``target`` is a StepState; value-chaining results resolve silently.
    """
    result = resolution(target)
    if isinstance(target, StepState):
        emit_resolve(target, result, bus)
    return result


def resolve_or_abort(target: Any, *, bus: EventBus | None = None) -> Any:
    """
    Resolve ``target`` and return its value, raising on failure.

    Raises:
        PipelineError: The pipeline's error; raw payloads are wrapped in a
            PipelineError carrying their display string
    """
    match resolve(target, bus=bus):
        case Ok(value):
            return value
        case Err(error) if isinstance(error, BaseException):
            raise error
        case Err(error):
            raise PipelineError(describe_error(error), cause=error)


__all__ = ["resolution", "resolve", "resolve_or_abort"]
