from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from class_composition import ClassRegistry, MinionError, minionize


@dataclass
class MinionStepState:
    """One scenario's specification, compiled class and the instance under test."""

    spec: dict[str, Any] = field(default_factory=dict)
    registry: ClassRegistry = field(default_factory=ClassRegistry)
    minion_class: type | None = None
    instance: Any = None
    results: list[Any] = field(default_factory=list)
    error: MinionError | None = None

    def compile(self) -> type:
        # scenarios never share registered names
        self.minion_class = minionize(self.spec, registry=self.registry)
        return self.minion_class

    def attempt(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run `action`, keeping a MinionError for a later Then step instead of raising."""
        self.error = None
        try:
            return action(*args, **kwargs)
        except MinionError as exc:
            self.error = exc
            return None

    def expect_error(self) -> MinionError:
        if self.error is None:
            raise AssertionError("expected a minion error, but the step succeeded")
        return self.error


def get_minion_step_state(context: Any) -> MinionStepState:
    state = getattr(context, "_minion_step_state", None)
    if not isinstance(state, MinionStepState):
        state = MinionStepState()
        setattr(context, "_minion_step_state", state)
    return state
