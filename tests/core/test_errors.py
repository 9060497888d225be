"""Tests for stepwise.core.errors and stepwise.core.identity."""

import pytest

from stepwise.core.errors import (
    AbortedExecution,
    ContractViolation,
    ErrorContext,
    ExplicitFailure,
    FailureKind,
    InitialFailure,
    PipelineError,
    Thrown,
    describe_error,
    error_payload_summary,
    failure_kind,
    throw,
)
from stepwise.core.identity import StepIdentity


STEP = StepIdentity("billing.steps", "charge_card")


def charge_card(value):
    return value


class TestStepIdentity:
    """Test StepIdentity derivation and display."""

    def test_of_function(self):
        identity = StepIdentity.of(charge_card)
        assert identity.name == "charge_card"
        assert identity.module == __name__

    def test_of_with_name_override(self):
        assert StepIdentity.of(charge_card, "charge").name == "charge"

    def test_of_lambda(self):
        assert StepIdentity.of(lambda x: x).name == "<lambda>"

    def test_of_callable_instance_uses_class_name(self):
        class Doubler:
            def __call__(self, value):
                return value * 2

        assert StepIdentity.of(Doubler()).name == "Doubler"

    def test_str(self):
        assert str(STEP) == "billing.steps.charge_card"

    def test_to_dict(self):
        assert STEP.to_dict() == {"module": "billing.steps", "name": "charge_card"}

    def test_hashable_and_equal(self):
        assert StepIdentity("a", "b") == StepIdentity("a", "b")
        assert len({StepIdentity("a", "b"), StepIdentity("a", "b")}) == 1


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_to_dict_excludes_none(self):
        d = ErrorContext(step="charge_card").to_dict()
        assert d == {"step": "charge_card"}

    def test_metadata_is_merged(self):
        d = ErrorContext(step="s", metadata={"attempt": 2}).to_dict()
        assert d == {"step": "s", "attempt": 2}

    def test_for_step(self):
        context = ErrorContext.for_step(STEP, "e1")
        assert context.to_dict() == {"step": "charge_card", "module": STEP.module, "event_id": "e1"}

    def test_for_no_step(self):
        assert ErrorContext.for_step(None).to_dict() == {}

    def test_explicit_context_used_by_failures(self):
        context = ErrorContext.for_step(STEP, "e1")
        assert ExplicitFailure(STEP, "x", context=context).context is context
        assert ContractViolation(STEP, "x", context=context).context is context


class TestPipelineError:
    """Test the PipelineError base class."""

    def test_defaults(self):
        error = PipelineError("Pipeline failed")
        assert str(error) == "Pipeline failed"
        assert error.kind == FailureKind.EXPLICIT_FAILURE
        assert error.source_step is None
        assert error.step_name is None

    def test_is_exception(self):
        with pytest.raises(PipelineError):
            raise PipelineError("boom")

    def test_exception_cause_is_chained(self):
        cause = ValueError("root")
        error = PipelineError("wrapped", cause=cause)
        assert error.__cause__ is cause

    def test_non_exception_cause_is_not_chained(self):
        error = PipelineError("wrapped", cause="just a value")
        assert error.__cause__ is None
        assert error.cause == "just a value"

    def test_to_dict(self):
        error = PipelineError("oops", source_step=STEP)
        d = error.to_dict()
        assert d["error_type"] == "PipelineError"
        assert d["message"] == "oops"
        assert d["kind"] == "EXPLICIT_FAILURE"
        assert d["source_step"] == "billing.steps.charge_card"
        assert d["context"] == {"step": "charge_card", "module": "billing.steps"}


class TestExplicitFailure:
    """Test display rules for explicit failures."""

    def test_plain_payload(self):
        error = ExplicitFailure(STEP, "card declined")
        assert str(error) == "Error in step `charge_card`: card declined"
        assert error.kind == FailureKind.EXPLICIT_FAILURE
        assert error.source_step == STEP
        assert error.payload == "card declined"

    def test_non_string_payload(self):
        error = ExplicitFailure(StepIdentity("m", "error_with_value"), "What is a 3, even?")
        assert str(error) == "Error in step `error_with_value`: What is a 3, even?"

    def test_bare_failure(self):
        error = ExplicitFailure(STEP)
        assert error.payload is None
        assert str(error) == "Error in step `charge_card`: step returned Err() without a reason"

    def test_exception_payload(self):
        cause = KeyError("card")
        error = ExplicitFailure(STEP, cause)
        assert str(error) == "Error in step `charge_card`: returned KeyError: 'card'"
        assert error.__cause__ is cause

    def test_nested_pipeline_error_payload(self):
        inner = ExplicitFailure(StepIdentity("m", "inner"), "deep")
        error = ExplicitFailure(STEP, inner)
        assert str(error) == "Error in step `charge_card`: returned Error in step `inner`: deep"

    def test_list_payload(self):
        error = ExplicitFailure(StepIdentity("m", "mixed_success_list"), ["Four what??", "Six what??"])
        assert str(error) == "Errors in step `mixed_success_list`:\n- Four what??\n- Six what??"

    def test_list_payload_with_bare_failure(self):
        error = ExplicitFailure(STEP, [None, "x"])
        assert str(error) == "Errors in step `charge_card`:\n- Err() without a reason\n- x"

    def test_to_dict_includes_payload(self):
        assert ExplicitFailure(STEP, "x").to_dict()["payload"] == "'x'"


class TestAbortedExecution:
    """Test raised vs. thrown aborts."""

    def test_raised(self):
        cause = ValueError("bad amount")
        error = AbortedExecution(STEP, cause=cause, is_raised=True, trace="Traceback ...")
        assert str(error) == "Error raised in step `charge_card`: ValueError: bad amount"
        assert error.kind == FailureKind.ABORTED_EXECUTION
        assert error.is_raised is True
        assert error.cause is cause
        assert error.__cause__ is cause
        assert error.trace == "Traceback ..."

    def test_thrown(self):
        error = AbortedExecution(STEP, cause={"code": 7}, is_raised=False)
        assert str(error) == "Value thrown in step `charge_card`: {'code': 7}"
        assert error.is_raised is False
        assert error.trace is None

    def test_to_dict(self):
        d = AbortedExecution(STEP, cause="x", is_raised=False).to_dict()
        assert d["kind"] == "ABORTED_EXECUTION"
        assert d["is_raised"] is False
        assert "trace" not in d


class TestContractViolation:
    """Test contract violations."""

    def test_with_step(self):
        error = ContractViolation(STEP, "bad shape", value=3)
        assert str(error) == "Contract violation in step `charge_card`: bad shape"
        assert error.detail == "bad shape"
        assert error.value == 3
        assert error.kind == FailureKind.CONTRACT_VIOLATION

    def test_without_step(self):
        error = ContractViolation(None, "bad input")
        assert str(error) == "Contract violation: bad input"
        assert error.source_step is None

    def test_unexpected_return_mentions_step_and_value(self):
        error = ContractViolation.unexpected_return(STEP, 42)
        assert "billing.steps.charge_card" in str(error)
        assert "42" in str(error)
        assert error.value == 42

    def test_initial_failure(self):
        error = InitialFailure(STEP, "never produced")
        assert isinstance(error, ContractViolation)
        assert error.payload == "never produced"
        assert error.source_step == STEP
        assert "never produced" in str(error)


class TestThrow:
    """Test the throw-like transfer."""

    def test_throw_raises_thrown(self):
        with pytest.raises(Thrown) as exc_info:
            throw({"halt": True})
        assert exc_info.value.value == {"halt": True}


class TestHelpers:
    """Test describe_error, failure_kind and error_payload_summary."""

    def test_describe_pipeline_error(self):
        assert describe_error(ExplicitFailure(STEP, "x")) == "Error in step `charge_card`: x"

    def test_describe_raw_payloads(self):
        assert describe_error("plain") == "plain"
        assert describe_error(ValueError("v")) == "ValueError: v"
        assert describe_error(["a", "b"]) == "- a\n- b"
        assert describe_error([None, "b"]) == "- Err() without a reason\n- b"

    def test_failure_kind(self):
        assert failure_kind(ContractViolation(None, "x")) == FailureKind.CONTRACT_VIOLATION
        assert failure_kind("raw") is None

    def test_error_payload_summary(self):
        assert error_payload_summary(ExplicitFailure(STEP, "x"))["kind"] == "EXPLICIT_FAILURE"
        assert error_payload_summary("raw") == {"error_type": "str", "message": "raw"}
