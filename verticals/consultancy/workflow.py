"""Task and proposal status machines.

Task progress follows pending -> inProgress -> completed; that is the path
the dashboard offers. The store does not structurally forbid other writes,
so the task machine is advisory: off-path moves are flagged, not refused.
Proposal status is caller-driven; any status may follow any other.
"""

from patterns.workflow_states import StateMachine, WorkflowInstance
from verticals.consultancy.models.schemas import ProposalStatus, Task, TaskStatus

TASK_STATE_MACHINE: StateMachine[TaskStatus] = StateMachine(
    {
        TaskStatus.PENDING: [TaskStatus.IN_PROGRESS],
        TaskStatus.IN_PROGRESS: [TaskStatus.COMPLETED],
        TaskStatus.COMPLETED: [],
    },
    strict=False,
)

PROPOSAL_STATE_MACHINE: StateMachine[ProposalStatus] = StateMachine(
    {
        status: [other for other in ProposalStatus if other is not status]
        for status in ProposalStatus
    },
    strict=False,
)


def next_task_status(status: TaskStatus) -> TaskStatus | None:
    """The status the dashboard offers as the next step, or None when done."""
    return TASK_STATE_MACHINE.next_state(status)


def is_forward_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    return TASK_STATE_MACHINE.can_transition(from_status, to_status)


def track_task(task: Task) -> WorkflowInstance[TaskStatus]:
    """Start a workflow record for a task at its current status."""
    return WorkflowInstance(
        workflow_id=f"task-{task.id}",
        machine=TASK_STATE_MACHINE,
        current_state=task.status,
    )
