"""Step identity — the stable handle naming a step in errors and events.

Manifesto:
    A failure is only useful if you can tell where it came from.  Every
    step function gets a ``StepIdentity`` (declaring module + symbolic
    name) that survives wrapping, so errors stay attributable no matter
    how far they travel down a chain.

    Identities are for diagnostics and instrumentation only.  The engine
    never branches on them.

Tags:
    stepwise, identity, diagnostics, instrumentation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True, slots=True)
class StepIdentity:
    """Declaring scope and symbolic name of a step function.

    Example::

        >>> def load_user(value):
        ...     ...
        >>> StepIdentity.of(load_user).name
        'load_user'
        >>> str(StepIdentity("billing.steps", "charge"))
        'billing.steps.charge'
    """

    module: str
    name: str

    @classmethod
    def of(cls, fn: Callable[..., Any], name: str | None = None) -> StepIdentity:
        """Derive the identity of ``fn``, optionally overriding its name."""
        module = getattr(fn, "__module__", None) or "<unknown>"
        if name is None:
            name = getattr(fn, "__name__", None) or type(fn).__name__
        return cls(module=module, name=name)

    def to_dict(self) -> dict[str, str]:
        return {"module": self.module, "name": self.name}

    def __str__(self) -> str:
        return f"{self.module}.{self.name}"


__all__ = ["StepIdentity"]
