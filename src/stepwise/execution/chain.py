"""Value-chaining pipelines — thread a Result through a sequence of steps.

Each call to :func:`apply_step` takes the wrapped result of the previous
step and returns a new one.  Once a step fails, every later ``apply_step``
hands the same failure back without running its step.

Example::

    from stepwise import Ok, Err, apply_step, resolve

    def parse(raw):
        return Ok(int(raw)) if raw.isdigit() else Err(f"not a number: {raw}")

    def double(n):
        return Ok(n * 2)

    result = apply_step(apply_step(Ok("21"), parse), double)
    resolve(result)          # Ok(42)

    result = apply_step(apply_step(Ok("x"), parse), double)   # double never runs
    str(result.error)        # 'Error in step `parse`: not a number: x'

Steps may take a second ``context`` argument; pass ``context=`` and it is
handed to the step as-is and reported in the step's instrumentation events.
"""

from __future__ import annotations

from typing import Any, Callable

from stepwise.core.errors import ContractViolation, InitialFailure, PipelineError
from stepwise.core.events import EventBus
from stepwise.core.identity import StepIdentity
from stepwise.core.result import Err, Ok, Result
from stepwise.core.settings import EngineConfig, resolve_config
from stepwise.execution.instrumentation import StepSpan
from stepwise.execution.invoker import invoke_step


def check_chain_input(
    wrapped: Any,
    identity: StepIdentity,
    config: EngineConfig,
) -> Result[Any] | None:
    """Decide whether a chain input short-circuits.

    Returns the Result to hand back without running the step, or None when
    ``wrapped`` is an Ok and the step should run.
    """
    match wrapped:
        case Ok():
            return None
        case Err(PipelineError()):
            return wrapped
        case Err(payload):
            if not config.wrap_step_errors:
                return wrapped
            return Err(InitialFailure(identity, payload))
        case _:
            return Err(
                ContractViolation(
                    identity,
                    f"expected the input of `{identity}` to be Ok(...) or Err(...), "
                    f"got: {wrapped!r}",
                    value=wrapped,
                )
            )


def run_instrumented(
    identity: StepIdentity,
    fn: Callable[..., Any],
    value: Any,
    context: Any,
    *,
    config: EngineConfig,
    bus: EventBus | None,
) -> Result[Any]:
    """Invoke one step on ``value`` inside a start/stop event pair."""
    args = (value,) if context is None else (value, context)
    with StepSpan(identity, bus, input=value, context=context) as span:
        result = invoke_step(identity, fn, args, config=config, event_id=span.event_id)
        span.record(result)
    return result


def apply_step(
    wrapped: Result[Any],
    fn: Callable[..., Any],
    context: Any = None,
    *,
    name: str | None = None,
    config: EngineConfig | None = None,
    bus: EventBus | None = None,
) -> Result[Any]:
    """
    Run ``fn`` on the value inside ``wrapped``, or short-circuit.

    Args:
        wrapped: Result of the previous step (or the initial ``Ok(value)``)
        fn: Step function, ``fn(value)`` or ``fn(value, context)``
        context: Optional second argument for ``fn``
        name: Override the step name used in errors and events
        config: Engine configuration (``None`` for the default)
        bus: Event bus for instrumentation (``None`` for the global bus)

    Returns:
        ``wrapped`` itself when it already carries a PipelineError; a new
        Result otherwise
    """
    config = resolve_config(config)
    identity = StepIdentity.of(fn, name)

    short_circuit = check_chain_input(wrapped, identity, config)
    if short_circuit is not None:
        return short_circuit

    return run_instrumented(identity, fn, wrapped.value, context, config=config, bus=bus)


def chain(
    wrapped: Result[Any],
    *steps: Callable[..., Any],
    config: EngineConfig | None = None,
    bus: EventBus | None = None,
) -> Result[Any]:
    """Apply ``steps`` in order, stopping at the first failure."""
    for fn in steps:
        wrapped = apply_step(wrapped, fn, config=config, bus=bus)
    return wrapped


__all__ = ["apply_step", "chain", "check_chain_input", "run_instrumented"]
