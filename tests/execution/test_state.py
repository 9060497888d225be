"""Tests for stepwise.execution.state — state-accumulating pipelines."""

import pytest

from stepwise.core.errors import AbortedExecution, ContractViolation, ExplicitFailure
from stepwise.core.result import Err, Ok
from stepwise.core.settings import EngineConfig
from stepwise.execution.state import StepState, StepValues, requires, run_steps, step


# ── Steps ────────────────────────────────────────────────────────────────


def load_number(initial_value, values):
    return Ok(initial_value * 10)


def add_one(initial_value, values):
    return Ok(values["load_number"] + 1)


def just_ok(initial_value, values):
    return Ok()


def error_with_value(initial_value, values):
    return Err("What is a 3, even?")


def mixed_success_list(initial_value, values):
    return [Ok(1), Err("Four what??"), Ok(5), Err("Six what??")]


def success_list(initial_value, values):
    return [Ok(1), Ok(2)]


def explode(initial_value, values):
    raise RuntimeError("kaboom")


@requires("load_number")
def needs_number(initial_value, values):
    return Ok(values["load_number"] * 2)


@requires("load_number", "lookup")
def needs_two(initial_value, values):
    return Ok(None)


class Counting:
    def __init__(self, name):
        self.__name__ = name
        self.calls = 0

    def __call__(self, initial_value, values):
        self.calls += 1
        return Ok(self.calls)


# ── StepValues ───────────────────────────────────────────────────────────


class TestStepValues:
    def test_empty(self):
        values = StepValues()
        assert len(values) == 0
        assert dict(values) == {}

    def test_with_value_returns_new_instance(self):
        empty = StepValues()
        values = empty.with_value("a", 1)
        assert values["a"] == 1
        assert "a" not in empty

    def test_preserves_insertion_order(self):
        values = StepValues().with_value("b", 2).with_value("a", 1)
        assert list(values) == ["b", "a"]

    def test_read_only(self):
        values = StepValues({"a": 1})
        with pytest.raises(TypeError):
            values["a"] = 2

    def test_copies_source_mapping(self):
        source = {"a": 1}
        values = StepValues(source)
        source["a"] = 2
        assert values["a"] == 1

    def test_require_present(self):
        StepValues({"a": 1, "b": 2}).require("a", "b")

    def test_require_missing_lists_names(self):
        with pytest.raises(ContractViolation, match="b, c"):
            StepValues({"a": 1}).require("a", "b", "c")

    def test_equality_with_dict(self):
        assert StepValues({"a": 1}) == {"a": 1}

    def test_to_dict(self):
        assert StepValues({"a": 1}).to_dict() == {"a": 1}


# ── StepState ────────────────────────────────────────────────────────────


class TestStepState:
    def test_start(self):
        state = StepState.start(5)
        assert state.initial_value == 5
        assert dict(state.step_values) == {}
        assert state.result == Ok(None)
        assert state.failed is False

    def test_frozen(self):
        state = StepState.start(5)
        with pytest.raises(AttributeError):
            state.initial_value = 6

    def test_fluent_chain(self):
        state = StepState.start(2).step(load_number).step(add_one)
        assert dict(state.step_values) == {"load_number": 20, "add_one": 21}
        assert state.resolution() == Ok(21)


# ── step() ───────────────────────────────────────────────────────────────


class TestStep:
    def test_starts_from_plain_value(self):
        state = step(3, load_number)
        assert isinstance(state, StepState)
        assert state.initial_value == 3
        assert state.step_values["load_number"] == 30
        assert state.result == Ok(30)

    def test_returns_new_state(self):
        start = StepState.start(1)
        after = step(start, load_number)
        assert after is not start
        assert dict(start.step_values) == {}

    def test_steps_read_any_earlier_value(self):
        def report(initial_value, values):
            return Ok((initial_value, values["load_number"], values["add_one"]))

        state = run_steps(1, [load_number, add_one, just_ok, report])
        assert state.step_values["report"] == (1, 10, 11)

    def test_bare_ok_records_none(self):
        state = step(1, just_ok)
        assert "just_ok" in state.step_values
        assert state.step_values["just_ok"] is None
        assert state.result == Ok(None)

    def test_success_list_collapses(self):
        assert step(1, success_list).step_values["success_list"] == [1, 2]

    def test_name_override(self):
        state = step(1, load_number, name="number")
        assert dict(state.step_values) == {"number": 10}

    def test_explicit_failure(self):
        state = step(1, error_with_value)
        assert state.failed
        assert isinstance(state.result.error, ExplicitFailure)
        assert str(state.result.error) == "Error in step `error_with_value`: What is a 3, even?"
        assert "error_with_value" not in state.step_values

    def test_mixed_success_list(self):
        state = step(1, mixed_success_list)
        assert str(state.result.error) == (
            "Errors in step `mixed_success_list`:\n- Four what??\n- Six what??"
        )

    def test_raised_exception(self):
        state = step(1, explode)
        assert isinstance(state.result.error, AbortedExecution)
        assert str(state.result.error.cause) == "kaboom"

    def test_short_circuit_returns_same_state(self):
        failed = step(1, error_with_value)
        later = Counting("later")
        assert step(failed, later) is failed
        assert later.calls == 0

    def test_failure_keeps_earlier_values(self):
        state = run_steps(1, [load_number, error_with_value, add_one])
        assert dict(state.step_values) == {"load_number": 10}
        assert state.result.error.step_name == "error_with_value"

    def test_unrecognized_return_is_contract_violation(self):
        state = step(1, lambda initial_value, values: initial_value)
        assert isinstance(state.result.error, ContractViolation)
        assert state.result.error.step_name == "<lambda>"

    def test_exception_propagates_when_wrapping_disabled(self):
        with pytest.raises(RuntimeError, match="kaboom"):
            step(1, explode, config=EngineConfig(wrap_step_errors=False))

    def test_raw_payload_when_wrapping_disabled(self):
        state = step(1, error_with_value, config=EngineConfig(wrap_step_errors=False))
        assert state.result == Err("What is a 3, even?")


class TestRequires:
    def test_requirement_met(self):
        state = run_steps(2, [load_number, needs_number])
        assert state.step_values["needs_number"] == 40

    def test_missing_requirement_fails_before_running(self, recorded_events):
        calls = []

        @requires("load_number")
        def guarded(initial_value, values):
            calls.append(initial_value)
            return Ok()

        state = step(1, guarded)
        assert calls == []
        assert isinstance(state.result.error, ContractViolation)
        assert state.result.error.step_name == "guarded"
        assert "load_number" in str(state.result.error)
        assert recorded_events == []

    def test_lists_only_missing_names(self):
        state = run_steps(1, [load_number, needs_two])
        message = state.result.error.detail
        assert message.endswith(": lookup")

    def test_requires_returns_same_function(self):
        def original(initial_value, values):
            return Ok()

        assert requires("x")(original) is original


class TestRunSteps:
    def test_empty_steps(self):
        state = run_steps(5, [])
        assert state.result == Ok(None)
        assert state.initial_value == 5

    def test_stops_invoking_after_failure(self):
        later = [Counting(f"later_{i}") for i in range(3)]
        run_steps(1, [error_with_value, *later])
        assert [c.calls for c in later] == [0, 0, 0]


class TestStateEvents:
    def test_stop_event_carries_state(self, recorded_events):
        state = step(4, load_number)
        start, stop = recorded_events
        assert start.payload["input"] == 4
        assert start.payload["step_name"] == "load_number"
        assert stop.payload["state"] is state
        assert stop.payload["success"] is True
        assert stop.payload["output"] == Ok(40)

    def test_context_is_step_values(self, recorded_events):
        run_steps(1, [load_number, add_one])
        second_start = recorded_events[2]
        assert dict(second_start.payload["context"]) == {"load_number": 10}
