"""Stepwise Core -- result envelope, failure model, events and ambient stack.

Architecture::

    result.py          Result envelope (Ok / Err / try_result / collect_results)
    errors.py          PipelineError family (ExplicitFailure, AbortedExecution,
                       ContractViolation, InitialFailure) + throw()
    identity.py        StepIdentity (declaring module + step name)
    events/            Event model, EventBus protocol, InMemoryEventBus
    settings.py        EngineConfig + STEPWISE_* settings (pydantic-settings)
    logging.py         structlog configuration and scoped log context

Nothing in ``stepwise.core`` runs step functions; that is ``stepwise.execution``.
"""

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
    throw,
)
from stepwise.core.identity import StepIdentity
from stepwise.core.result import (
    Err,
    Ok,
    Result,
    collect_results,
    is_result,
    partition_results,
    try_result,
)
from stepwise.core.settings import (
    DEFAULT_ENGINE_CONFIG,
    EngineConfig,
    StepwiseSettings,
    get_settings,
)

__all__ = [
    # result
    "Result",
    "Ok",
    "Err",
    "is_result",
    "partition_results",
    "try_result",
    "collect_results",
    # errors
    "FailureKind",
    "ErrorContext",
    "PipelineError",
    "ExplicitFailure",
    "AbortedExecution",
    "ContractViolation",
    "InitialFailure",
    "Thrown",
    "throw",
    "describe_error",
    # identity
    "StepIdentity",
    # settings
    "EngineConfig",
    "DEFAULT_ENGINE_CONFIG",
    "StepwiseSettings",
    "get_settings",
]
