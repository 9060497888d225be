"""Instrumentation boundary — paired start/stop events around each step.

Manifesto:
    Observability is attached from the outside.  The engine only promises
    that every step invocation publishes exactly one ``step.start`` and
    exactly one ``step.stop`` with the same ``event_id``, and that resolving
    a state-accumulating pipeline publishes one ``resolve``.

ARCHITECTURE
────────────
::

    with StepSpan(identity, bus, input=..., context=...) as span:   → step.start
        result = invoke_step(..., event_id=span.event_id)
        span.record(result, state=...)
                                                                     → step.stop
    emit_resolve(state, resolution, bus)                             → resolve

``step.stop`` is published from ``__exit__`` so it goes out even when an
exception escapes the step (wrapping disabled, or a process-level abort);
the exception is re-raised untouched afterwards.

Payloads
────────
step.start   step, module, step_name, input, context
step.stop    the start fields + output, success, duration (+ extras)
resolve      state, resolution

Tags:
    stepwise, instrumentation, events, telemetry, span

Doc-Types:
    api-reference
"""

from __future__ import annotations

import sys
import time
from typing import Any

from stepwise.core.events import (
    RESOLVE,
    STEP_START,
    STEP_STOP,
    Event,
    EventBus,
    get_event_bus,
    new_event_id,
)
from stepwise.core.errors import error_payload_summary, failure_kind
from stepwise.core.identity import StepIdentity
from stepwise.core.logging import LogContext, get_logger
from stepwise.core.result import Err, Ok, Result

logger = get_logger(__name__)


class StepSpan:
    """Publishes ``step.start`` on enter and ``step.stop`` on exit.

    Also binds ``step`` and ``event_id`` into the structlog context for the
    duration of the invocation, so anything the step logs is attributable.
    """

    def __init__(
        self,
        identity: StepIdentity,
        bus: EventBus | None = None,
        *,
        input: Any = None,
        context: Any = None,
    ):
        self.identity = identity
        self.bus = bus if bus is not None else get_event_bus()
        self.event_id = new_event_id()
        self._base_payload = {
            "step": identity,
            "module": identity.module,
            "step_name": identity.name,
            "input": input,
            "context": context,
        }
        self._output: Result[Any] | None = None
        self._extra: dict[str, Any] = {}
        self._started_at = 0.0
        self._log_context = LogContext(step=identity.name, event_id=self.event_id)

    def __enter__(self) -> StepSpan:
        self._log_context.__enter__()
        try:
            logger.debug("step.started", module=self.identity.module)
            self._started_at = time.monotonic()
            self.bus.publish(
                Event(
                    event_type=STEP_START,
                    event_id=self.event_id,
                    payload=self._base_payload,
                )
            )
        except BaseException:
            # __exit__ never runs when __enter__ fails
            self._log_context.__exit__(*sys.exc_info())
            raise
        return self

    def record(self, output: Result[Any], **extra: Any) -> None:
        """Remember the step's wrapped result (and extras) for ``step.stop``."""
        self._output = output
        self._extra = extra

    def __exit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> None:
        duration = time.monotonic() - self._started_at
        try:
            payload = {
                **self._base_payload,
                "output": self._output,
                "success": isinstance(self._output, Ok) and exc is None,
                "duration": duration,
                **self._extra,
            }
            if exc is not None:
                payload["error"] = exc
            self.bus.publish(
                Event(event_type=STEP_STOP, event_id=self.event_id, payload=payload)
            )
            _log_completion(self.identity, self._output, exc, duration)
        finally:
            self._log_context.__exit__(exc_type, exc, tb)


def _log_completion(
    identity: StepIdentity,
    output: Result[Any] | None,
    exc: BaseException | None,
    duration: float,
) -> None:
    if exc is not None:
        logger.warning(
            "step.failed",
            module=identity.module,
            error_type=type(exc).__name__,
            error=str(exc),
            unwrapped=True,
            duration=duration,
        )
        return

    match output:
        case Ok():
            logger.debug("step.completed", module=identity.module, duration=duration)
        case Err(error):
            kind = failure_kind(error)
            logger.warning(
                "step.failed",
                module=identity.module,
                kind=kind.value if kind else None,
                error=dict(error_payload_summary(error)),
                duration=duration,
            )


def emit_resolve(state: Any, resolution: Result[Any], bus: EventBus | None = None) -> None:
    """Publish the ``resolve`` event for a resolved pipeline state."""
    bus = bus if bus is not None else get_event_bus()
    bus.publish(
        Event(
            event_type=RESOLVE,
            payload={"state": state, "resolution": resolution},
        )
    )
    logger.debug("pipeline.resolved", success=isinstance(resolution, Ok))


__all__ = ["StepSpan", "emit_resolve"]
