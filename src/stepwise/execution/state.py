"""
State-accumulating pipelines — steps that read earlier steps' values by name.

Every step receives the pipeline's ``initial_value`` and a read-only
``StepValues`` mapping of everything earlier steps produced, so the fifth
step can use what the first step computed without threading it through the
three in between.

Manifesto:
    - **Immutable state:** ``step()`` returns a new StepState; nothing is
      mutated in place
    - **Declared dependencies:** ``@requires("load_user")`` states which
      earlier values a step reads; a missing one fails the step before it
      runs, attributed to that step
    - **Short-circuit:** once ``result`` is an Err, further steps return the
      same state without running
    - **Resolve once:** ``resolve()`` closes the pipeline and publishes the
      ``resolve`` event with the final state

Architecture:
    ::

        StepState.start(order_id)
          │  initial_value=order_id, step_values={}, result=Ok(None)
          ▼
        .step(load_order)      fn(order_id, {})                      → values["load_order"]
          ▼
        .step(charge_card)     fn(order_id, {"load_order": ...})     → values["charge_card"]
          ▼
        .resolve()             Ok(<last value>) | Err(PipelineError) + "resolve" event

Examples:
    Fluent style:

    >>> from stepwise.core.result import Ok, Err
    >>> def load_order(order_id, values):
    ...     return Ok({"id": order_id, "total": 30})
    >>> @requires("load_order")
    ... def charge_card(order_id, values):
    ...     return Ok(values["load_order"]["total"] * 100)
    >>> state = StepState.start(7).step(load_order).step(charge_card)
    >>> state.step_values["charge_card"]
    3000
    >>> state.resolution()
    Ok(3000)

Guardrails:
    ❌ DON'T: Read ``values["x"]`` without declaring it
    ✅ DO: ``@requires("x")`` so a missing value is a ContractViolation
      naming your step, not a KeyError raised from inside it

Tags:
    stepwise, pipeline, state, step-values, short-circuit

Doc-Types:
    - API Reference
    - Pipeline Guide
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable

from stepwise.core.errors import ContractViolation
from stepwise.core.events import EventBus
from stepwise.core.identity import StepIdentity
from stepwise.core.result import Err, Ok, Result
from stepwise.core.settings import EngineConfig, resolve_config
from stepwise.execution.instrumentation import StepSpan
from stepwise.execution.invoker import invoke_step

REQUIRES_ATTR = "__stepwise_requires__"


class StepValues(Mapping[str, Any]):
    """Ordered, read-only mapping of step name to the value it produced.

    Example::

        >>> values = StepValues().with_value("load_user", {"id": 1})
        >>> values["load_user"]
        {'id': 1}
        >>> list(values.with_value("charge", 10))
        ['load_user', 'charge']
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None):
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def with_value(self, name: str, value: Any) -> StepValues:
        """Return a copy with ``name`` set to ``value``."""
        return StepValues({**self._values, name: value})

    def require(self, *names: str) -> None:
        """Raise ContractViolation if any of ``names`` has no value yet."""
        missing = [name for name in names if name not in self._values]
        if missing:
            raise ContractViolation(
                None,
                f"no value for step(s): {', '.join(missing)}",
                value=tuple(missing),
            )

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"StepValues({dict(self._values)!r})"


def requires(*names: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Declare the earlier steps whose values a step reads.

    Checked by :func:`step` before the step runs.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        setattr(fn, REQUIRES_ATTR, tuple(names))
        return fn

    return decorator


@dataclass(frozen=True)
class StepState:
    """Running state of a state-accumulating pipeline.

    Attributes:
        initial_value: The value the pipeline was started with
        step_values: Values produced so far, keyed by step name
        result: Outcome of the most recent step (``Ok(None)`` before any)
    """

    initial_value: Any
    step_values: StepValues = field(default_factory=StepValues)
    result: Result[Any] = Ok(None)

    @classmethod
    def start(cls, initial_value: Any) -> StepState:
        return cls(initial_value=initial_value)

    @property
    def failed(self) -> bool:
        return isinstance(self.result, Err)

    def step(
        self,
        fn: Callable[..., Any],
        *,
        name: str | None = None,
        config: EngineConfig | None = None,
        bus: EventBus | None = None,
    ) -> StepState:
        return step(self, fn, name=name, config=config, bus=bus)

    def resolve(self, *, bus: EventBus | None = None) -> Result[Any]:
        from stepwise.execution.resolution import resolve

        return resolve(self, bus=bus)

    def resolution(self) -> Result[Any]:
        from stepwise.execution.resolution import resolution

        return resolution(self)


def step(
    state_or_initial_value: Any,
    fn: Callable[..., Any],
    *,
    name: str | None = None,
    config: EngineConfig | None = None,
    bus: EventBus | None = None,
) -> StepState:
    """
    Run one step of a state-accumulating pipeline.

    Args:
        state_or_initial_value: A StepState, or any other value to start a
            new pipeline with
        fn: Step function, called as ``fn(initial_value, step_values)``
        name: Step name recorded in ``step_values`` (defaults to ``fn.__name__``)
        config: Engine configuration (``None`` for the default)
        bus: Event bus for instrumentation (``None`` for the global bus)

    Returns:
        The new StepState; the same state object when it had already failed
    """
    config = resolve_config(config)
    state = (
        state_or_initial_value
        if isinstance(state_or_initial_value, StepState)
        else StepState.start(state_or_initial_value)
    )
    if state.failed:
        return state

    identity = StepIdentity.of(fn, name)

    missing = [
        required
        for required in getattr(fn, REQUIRES_ATTR, ())
        if required not in state.step_values
    ]
    if missing:
        violation = ContractViolation(
            identity,
            f"`{identity}` requires values from steps that have not run: "
            f"{', '.join(missing)}",
            value=state.step_values.to_dict(),
        )
        return replace(state, result=Err(violation))

    with StepSpan(
        identity, bus, input=state.initial_value, context=state.step_values
    ) as span:
        result = invoke_step(
            identity,
            fn,
            (state.initial_value, state.step_values),
            config=config,
            event_id=span.event_id,
        )
        new_state = _apply_result(state, identity, result)
        span.record(result, state=new_state)
    return new_state


def _apply_result(state: StepState, identity: StepIdentity, result: Result[Any]) -> StepState:
    match result:
        case Ok(value):
            return replace(
                state,
                step_values=state.step_values.with_value(identity.name, value),
                result=result,
            )
        case _:
            return replace(state, result=result)


def run_steps(
    initial_value: Any,
    steps: Iterable[Callable[..., Any]],
    *,
    config: EngineConfig | None = None,
    bus: EventBus | None = None,
) -> StepState:
    """Fold :func:`step` over ``steps``, starting from ``initial_value``."""
    state = StepState.start(initial_value)
    for fn in steps:
        state = step(state, fn, config=config, bus=bus)
    return state


__all__ = ["StepValues", "StepState", "requires", "step", "run_steps"]
