"""Event bus for step instrumentation.

Why This Package Exists
-----------------------
Logging, metrics and tracing all want to know when a step starts, when it
stops and how a pipeline resolved.  Weaving each of them into the engine
would tie pipeline control flow to observability concerns.  Instead the
engine publishes ``Event`` records to an ``EventBus`` keyed by
hierarchical, dot-separated names, and observers subscribe to the names
they care about.

Delivery is synchronous and inline: a slow subscriber stalls the pipeline
that published the event.

Usage::

    from stepwise.core.events import Event, get_event_bus

    bus = get_event_bus()

    def on_stop(event: Event) -> None:
        print(event.payload["step_name"], event.payload["duration"])

    sub_id = bus.subscribe("step.stop", on_stop)     # exact name
    bus.subscribe("step.*", lambda event: ...)       # wildcard
    bus.unsubscribe(sub_id)

Event names
-----------
step.start   immediately before a step function is invoked
step.stop    immediately after it completes, success or failure
resolve      when a state-accumulating pipeline is resolved

Modules
-------
memory      InMemoryEventBus -- synchronous, thread-safe, single process
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "EVENT_SOURCE",
    "STEP_START",
    "STEP_STOP",
    "RESOLVE",
    "new_event_id",
    "get_event_bus",
    "set_event_bus",
    "reset_event_bus",
]


EVENT_SOURCE = "stepwise"

STEP_START = "step.start"
STEP_STOP = "step.stop"
RESOLVE = "resolve"


def new_event_id() -> str:
    """Collision-free id for correlating a ``step.start`` with its ``step.stop``.

    uuid4 draws from the OS random source, so ids stay unique across threads
    and processes running pipelines at the same time.
    """
    return uuid.uuid4().hex


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Event:
    """Immutable instrumentation record.

    Once published the record belongs to the subscribers; the engine keeps
    no reference to it.

    Attributes:
        event_type: Dot-separated name (``step.start``, ``step.stop``, ``resolve``)
        source: Origin component
        payload: Event-specific data (read-only mapping)
        timestamp: When the event occurred (UTC)
        event_id: Identifier; shared by a ``step.start`` and its ``step.stop``
    """

    event_type: str
    source: str = EVENT_SOURCE
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    event_id: str = field(default_factory=new_event_id)

    def __post_init__(self) -> None:
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``step.*`` matches ``step.start``, ``step.stop``
            - ``*`` matches everything
            - ``resolve`` matches exactly ``resolve``
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


# ── Type Aliases ─────────────────────────────────────────────────────────

EventHandler = Callable[[Event], None]


# ── EventBus Protocol ────────────────────────────────────────────────────


@runtime_checkable
class EventBus(Protocol):
    """Protocol for event bus implementations.

    Supports publish/subscribe with wildcard patterns. ``publish`` is called
    inline from the engine and must deliver before returning.
    """

    def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        ...

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Subscribe to events matching a pattern.

        Returns:
            Subscription ID for later unsubscription
        """
        ...

    def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        ...

    def close(self) -> None:
        """Stop delivering and drop all subscriptions."""
        ...


# ── Default Event Bus Singleton ──────────────────────────────────────────

_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus instance.

    Returns the configured event bus, creating an in-memory one if
    none has been set.
    """
    global _event_bus
    if _event_bus is None:
        from stepwise.core.events.memory import InMemoryEventBus
        _event_bus = InMemoryEventBus()
    return _event_bus


def set_event_bus(bus: EventBus) -> None:
    """Set the global event bus instance."""
    global _event_bus
    _event_bus = bus


def reset_event_bus() -> None:
    """Forget the global bus; the next ``get_event_bus()`` creates a fresh one."""
    global _event_bus
    _event_bus = None
