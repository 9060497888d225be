"""Collection fan-out — one step applied to every element of a collection.

``map_step`` is ``apply_step`` for a wrapped collection.  Every element must
succeed: the first failing element stops the fan-out, and its failure is the
result.  On success the values come back in input order.

Example::

    from stepwise import Ok, map_step

    map_step(Ok([1, 2, 3]), lambda i: Ok(i * 2))          # Ok([2, 4, 6])

    def check(i):
        return Err("bad") if i == 2 else Ok(i)

    map_step(Ok([1, 2, 3]), check)                      # Err(ExplicitFailure)
    # element 3 is never visited

A collection that raises while being iterated (a failing generator, say)
fails the step with ``AbortedExecution`` like a raising step would.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Callable

from stepwise.core.errors import ContractViolation
from stepwise.core.events import EventBus
from stepwise.core.identity import StepIdentity
from stepwise.core.result import Err, Ok, Result
from stepwise.core.settings import EngineConfig, resolve_config
from stepwise.execution.chain import check_chain_input, run_instrumented
from stepwise.execution.invoker import iterate_elements


def map_step(
    wrapped: Result[Any],
    fn: Callable[..., Any],
    context: Any = None,
    *,
    name: str | None = None,
    config: EngineConfig | None = None,
    bus: EventBus | None = None,
) -> Result[list[Any]]:
    """
    Apply ``fn`` to each element of the collection inside ``wrapped``.

    Args:
        wrapped: ``Ok(collection)``, or a failure to propagate
        fn: Step function applied per element, ``fn(item)`` or ``fn(item, context)``
        context: Optional second argument for ``fn``
        name: Override the step name used in errors and events
        config: Engine configuration (``None`` for the default)
        bus: Event bus for instrumentation (``None`` for the global bus)

    Returns:
        ``Ok([values...])`` in input order, or the first element's failure
    """
    config = resolve_config(config)
    identity = StepIdentity.of(fn, name)

    short_circuit = check_chain_input(wrapped, identity, config)
    if short_circuit is not None:
        return short_circuit

    collection = wrapped.value
    if not _is_collection(collection):
        return Err(
            ContractViolation(
                identity,
                f"`{identity}` is mapped over a collection, expected Ok(<iterable>), "
                f"got: {wrapped!r}",
                value=collection,
            )
        )

    values = []
    for element in iterate_elements(identity, collection, config=config):
        if isinstance(element, Err):
            return element
        item = element.value
        result = run_instrumented(identity, fn, item, context, config=config, bus=bus)
        match result:
            case Ok(value):
                values.append(value)
            case Err():
                return result
    return Ok(values)


def _is_collection(value: Any) -> bool:
    # text and mappings are iterable but not element collections
    if isinstance(value, (str, bytes, bytearray, Mapping)):
        return False
    return isinstance(value, Iterable)


__all__ = ["map_step"]
