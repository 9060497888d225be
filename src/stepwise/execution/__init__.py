"""Step execution -- the invoker and the pipeline styles built on it.

Modules
-------
invoker          invoke_step: the one boundary that catches step failures
instrumentation  StepSpan (step.start / step.stop) and emit_resolve
chain            apply_step / chain: value-chaining pipelines
state            StepState / step / run_steps: state-accumulating pipelines
fanout           map_step: one step over every element of a collection
resolution       resolution / resolve / resolve_or_abort
"""

from stepwise.execution.chain import apply_step, chain
from stepwise.execution.fanout import map_step
from stepwise.execution.invoker import invoke_step
from stepwise.execution.resolution import resolution, resolve, resolve_or_abort
from stepwise.execution.state import StepState, StepValues, requires, run_steps, step

__all__ = [
    "invoke_step",
    "apply_step",
    "chain",
    "map_step",
    "StepState",
    "StepValues",
    "requires",
    "step",
    "run_steps",
    "resolution",
    "resolve",
    "resolve_or_abort",
]
