"""Enum-based workflow state machine pattern.

Defines workflow states as Python enums with an explicit transition table.
The table describes the path the product offers; whether a store rejects
other writes is the store's business, so machines can run in advisory
mode where an off-path transition is recorded instead of refused.

Example domain: task progress (pending -> inProgress -> completed).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Mapping, TypeVar

from core.models.base import now_ns

StateT = TypeVar("StateT", bound=Enum)


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

class StateMachine(Generic[StateT]):
    """Transition rules for one enum of states.

    Usage::

        machine = StateMachine({
            TaskStatus.PENDING: [TaskStatus.IN_PROGRESS],
            TaskStatus.IN_PROGRESS: [TaskStatus.COMPLETED],
            TaskStatus.COMPLETED: [],
        })
        machine.can_transition(TaskStatus.PENDING, TaskStatus.COMPLETED)  # False
    """

    def __init__(self, transitions: Mapping[StateT, list[StateT]], strict: bool = True):
        self._transitions = {state: list(targets) for state, targets in transitions.items()}
        self.strict = strict

    @property
    def states(self) -> list[StateT]:
        return list(self._transitions)

    def allowed_from(self, state: StateT) -> list[StateT]:
        return list(self._transitions.get(state, []))

    def can_transition(self, from_state: StateT, to_state: StateT) -> bool:
        """Check if a transition is on the defined path."""
        return to_state in self._transitions.get(from_state, [])

    def next_state(self, state: StateT) -> StateT | None:
        """The single forward step from `state`, if the path has exactly one."""
        allowed = self._transitions.get(state, [])
        return allowed[0] if len(allowed) == 1 else None

    def is_terminal(self, state: StateT) -> bool:
        return len(self._transitions.get(state, [])) == 0


# ---------------------------------------------------------------------------
# Workflow instance
# ---------------------------------------------------------------------------

@dataclass
class WorkflowTransition:
    """Record of a single state transition."""

    from_state: str
    to_state: str
    timestamp: int
    actor: str = "system"
    on_path: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkflowInstance(Generic[StateT]):
    """A tracked entity moving through a state machine.

    Strict machines raise ValueError on off-path transitions. Advisory
    machines apply them and flag the record with ``on_path=False``.
    """

    workflow_id: str
    machine: StateMachine[StateT]
    current_state: StateT
    history: list[WorkflowTransition] = field(default_factory=list)

    def can_transition(self, to_state: StateT) -> bool:
        return self.machine.can_transition(self.current_state, to_state)

    def transition(
        self,
        to_state: StateT,
        actor: str = "system",
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowTransition:
        on_path = self.can_transition(to_state)
        if not on_path and self.machine.strict:
            allowed_names = [s.value for s in self.machine.allowed_from(self.current_state)]
            raise ValueError(
                f"Cannot transition from {self.current_state.value} to {to_state.value}. "
                f"Allowed: {allowed_names}"
            )

        record = WorkflowTransition(
            from_state=self.current_state.value,
            to_state=to_state.value,
            timestamp=now_ns(),
            actor=actor,
            on_path=on_path,
            metadata=metadata or {},
        )
        self.history.append(record)
        self.current_state = to_state
        return record

    @property
    def is_terminal(self) -> bool:
        return self.machine.is_terminal(self.current_state)

    @property
    def transition_count(self) -> int:
        return len(self.history)
