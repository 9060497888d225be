"""
Shared pytest fixtures and configuration for stepwise tests.

This module provides:
- Event bus isolation (every test gets a fresh global InMemoryEventBus)
- ``recorded_events`` for asserting on instrumentation
- Settings cache and structlog cleanup between tests

Usage:
    Fixtures are auto-discovered by pytest::

        def test_emits_start(recorded_events):
            apply_step(Ok(1), double)
            assert recorded_events[0].event_type == "step.start"
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure stepwise package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stepwise.core.events import Event, reset_event_bus, set_event_bus
from stepwise.core.events.memory import InMemoryEventBus
from stepwise.core.settings import clear_settings_cache


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_event_bus() -> Generator[InMemoryEventBus, None, None]:
    """
    Install a fresh global event bus for each test.

    No test can see events or subscriptions left behind by another.
    """
    bus = InMemoryEventBus()
    set_event_bus(bus)
    yield bus
    bus.close()
    reset_event_bus()


@pytest.fixture(autouse=True)
def clean_settings_cache() -> Generator[None, None, None]:
    """Clear cached StepwiseSettings before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any structlog configuration and bound context a test leaves behind."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def recorded_events(isolated_event_bus: InMemoryEventBus) -> list[Event]:
    """Every event published on the global bus during the test, in order."""
    events: list[Event] = []
    isolated_event_bus.subscribe("*", events.append)
    return events


@pytest.fixture
def event_types(recorded_events: list[Event]):
    """Callable returning the event types recorded so far."""

    def _types() -> list[str]:
        return [event.event_type for event in recorded_events]

    return _types
