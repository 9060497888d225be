"""
Step invoker — the single protective boundary around step functions.

``invoke_step`` is the only place in stepwise that catches what a step
raises or throws.  Everything a step can do (return an outcome, raise,
throw a value) comes out of it as one ``Result``.

Manifesto:
    - **One boundary:** Exceptions are intercepted here and nowhere else
    - **Exhaustive normalization:** Every return shape is matched explicitly;
      anything unrecognized is a ContractViolation, never a crash
    - **Attributable:** Every failure names the step that produced it and,
      when instrumented, the event_id of the invocation
    - **Host semantics intact:** SystemExit, KeyboardInterrupt and other
      non-``Exception`` aborts are never intercepted

Architecture:
    ::

        fn(*args)
           │
           ├── raises Thrown(value) ──► Err(AbortedExecution(is_raised=False))
           ├── raises Exception ──────► Err(AbortedExecution(is_raised=True))
           ├── raises BaseException ──► propagates
           │
           └── returns outcome ──► normalize_outcome()
                  Ok(v)                 ──► Ok(v)
                  Err(PipelineError)    ──► unchanged
                  Err(payload)          ──► Err(ExplicitFailure(payload))
                  [Ok | Err, ...]       ──► collapse_outcomes()
                  anything else         ──► Err(ContractViolation)

    ``iterate_elements`` extends the same boundary to the collection a
    fan-out step walks: an exception raised while iterating becomes
    ``Err(AbortedExecution)`` instead of escaping.

    With ``EngineConfig(wrap_step_errors=False)`` explicit failures keep
    their raw payload and exceptions / thrown values propagate unchanged.

Examples:
    >>> from stepwise.core.identity import StepIdentity
    >>> from stepwise.core.result import Ok, Err
    >>> step = StepIdentity("app", "double")
    >>> invoke_step(step, lambda x: Ok(x * 2), (21,))
    Ok(42)
    >>> result = invoke_step(step, lambda x: [Ok(1), Err("no"), Err("nope")], (0,))
    >>> str(result.error)
    'Errors in step `double`:\\n- no\\n- nope'

Tags:
    stepwise, invoker, error-handling, normalization, boundary

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import traceback
from typing import Any, Callable, Iterable, Iterator, Sequence

from stepwise.core.errors import (
    AbortedExecution,
    ContractViolation,
    ErrorContext,
    ExplicitFailure,
    PipelineError,
    Thrown,
)
from stepwise.core.identity import StepIdentity
from stepwise.core.result import Err, Ok, Result, partition_results
from stepwise.core.settings import EngineConfig, resolve_config


def invoke_step(
    identity: StepIdentity,
    fn: Callable[..., Any],
    args: Sequence[Any],
    *,
    config: EngineConfig | None = None,
    event_id: str | None = None,
) -> Result[Any]:
    """
    Call ``fn(*args)`` and turn whatever happens into a Result.

    Args:
        identity: Identity the outcome is attributed to
        fn: The step function
        args: Positional arguments for ``fn``
        config: Engine configuration (``None`` for the default)
        event_id: Instrumentation id of this invocation, recorded in the
            context of every error built here

    Returns:
        A freshly built Ok, or an Err carrying a PipelineError (or the raw
        payload when wrapping is disabled)

    Raises:
        BaseException: Anything that is not an ``Exception`` subclass, and,
            with wrapping disabled, whatever the step raised or threw
    """
    config = resolve_config(config)
    context = ErrorContext.for_step(identity, event_id)

    try:
        outcome = fn(*args)
    except Thrown as thrown:
        if not config.wrap_step_errors:
            raise
        return Err(
            AbortedExecution(identity, cause=thrown.value, is_raised=False, context=context)
        )
    except Exception as exc:
        if not config.wrap_step_errors:
            raise
        return Err(_raised(identity, exc, context))

    return normalize_outcome(identity, outcome, config=config, context=context)


def iterate_elements(
    identity: StepIdentity,
    collection: Iterable[Any],
    *,
    config: EngineConfig | None = None,
) -> Iterator[Result[Any]]:
    """
    Walk ``collection``, yielding ``Ok(element)`` for each element.

    If iterating raises, yields one ``Err(AbortedExecution)`` attributed to
    ``identity`` and stops.  With wrapping disabled the exception propagates.
    """
    config = resolve_config(config)

    try:
        iterator = iter(collection)
    except Exception as exc:
        if not config.wrap_step_errors:
            raise
        yield Err(_raised(identity, exc, ErrorContext.for_step(identity)))
        return

    while True:
        try:
            element = next(iterator)
        except StopIteration:
            return
        except Exception as exc:
            if not config.wrap_step_errors:
                raise
            yield Err(_raised(identity, exc, ErrorContext.for_step(identity)))
            return
        yield Ok(element)


def normalize_outcome(
    identity: StepIdentity,
    outcome: Any,
    *,
    config: EngineConfig | None = None,
    context: ErrorContext | None = None,
) -> Result[Any]:
    """Normalize a step's return value into a Result."""
    config = resolve_config(config)

    match outcome:
        case Ok(value):
            return Ok(value)
        case Err(PipelineError() as error):
            return Err(error)
        case Err(payload):
            if not config.wrap_step_errors:
                return Err(payload)
            return Err(ExplicitFailure(identity, payload, context=context))
        case list() | tuple():
            return collapse_outcomes(identity, outcome, config=config, context=context)
        case _:
            return Err(ContractViolation.unexpected_return(identity, outcome, context=context))


def collapse_outcomes(
    identity: StepIdentity,
    outcomes: Sequence[Any],
    *,
    config: EngineConfig | None = None,
    context: ErrorContext | None = None,
) -> Result[list[Any]]:
    """
    Collapse an ordered collection of outcomes into one Result.

    All Ok: ``Ok([values...])`` in input order. One or more Err: a single
    explicit failure whose payload is the list of failure payloads; the
    successful values of a partially failing batch are discarded.
    """
    config = resolve_config(config)

    for item in outcomes:
        if not isinstance(item, (Ok, Err)):
            return Err(ContractViolation.unexpected_return(identity, outcomes, context=context))

    values, errors = partition_results(list(outcomes))
    if not errors:
        return Ok(values)
    if not config.wrap_step_errors:
        return Err(errors)
    return Err(ExplicitFailure(identity, errors, context=context))


def _raised(identity: StepIdentity, exc: Exception, context: ErrorContext) -> AbortedExecution:
    return AbortedExecution(
        identity,
        cause=exc,
        is_raised=True,
        trace="".join(traceback.format_exception(exc)),
        context=context,
    )


__all__ = ["invoke_step", "iterate_elements", "normalize_outcome", "collapse_outcomes"]
