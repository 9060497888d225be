"""
Stepwise - synchronous step pipelines with attributable failures.

Run an ordered sequence of fallible steps, stop at the first failure, and
get one uniformly shaped error naming the step that caused it.  Every step
invocation publishes ``step.start`` / ``step.stop`` events for whatever
observers you attach.

Usage::

    from stepwise import Ok, Err, apply_step, resolve

    result = apply_step(Ok(order), validate)
    result = apply_step(result, charge_card)
    match resolve(result):
        case Ok(receipt):
            ...
        case Err(error):
            log.warning("checkout_failed", error=str(error))
"""

__version__ = "0.1.0"

from stepwise.core import *  # noqa: F401,F403
from stepwise.core import __all__ as _core_all
from stepwise.execution import *  # noqa: F401,F403
from stepwise.execution import __all__ as _execution_all

__all__ = ["__version__", *_core_all, *_execution_all]
