"""Derived analytics — pure functions over cached collections.

Nothing here is stored. Every figure is recomputed from whatever task,
client and proposal lists the caller passes in, so it can never drift from
the cache it was computed from. Timestamps are integer nanoseconds.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from verticals.consultancy.models.schemas import (
    Client,
    Proposal,
    ProposalStatus,
    Task,
    TaskStatus,
)


def is_overdue(task: Task, now: int) -> bool:
    """Due before `now` and not completed."""
    return task.due_date < now and task.status != TaskStatus.COMPLETED


def overdue_count(tasks: Iterable[Task], now: int) -> int:
    return sum(1 for task in tasks if is_overdue(task, now))


def status_breakdown(tasks: Iterable[Task]) -> dict[TaskStatus, int]:
    """Count per TaskStatus, folded from a task list. Every status is present."""
    counts = Counter(task.status for task in tasks)
    return {status: counts.get(status, 0) for status in TaskStatus}


def breakdown_from_counts(pairs: Iterable[tuple[TaskStatus, int]]) -> dict[TaskStatus, int]:
    """Same shape as status_breakdown, taken from the aggregate count query."""
    breakdown = {status: 0 for status in TaskStatus}
    for status, count in pairs:
        breakdown[TaskStatus(status)] += int(count)
    return breakdown


def completion_rate(breakdown: Mapping[TaskStatus, int]) -> float:
    """completed / total, 0.0 when there are no tasks."""
    total = sum(breakdown.values())
    if total == 0:
        return 0.0
    return breakdown.get(TaskStatus.COMPLETED, 0) / total


@dataclass
class PipelineStage:
    count: int = 0
    total_value: int = 0


def proposal_pipeline(proposals: Iterable[Proposal]) -> dict[ProposalStatus, PipelineStage]:
    """Count and summed value (smallest currency unit) per proposal status."""
    pipeline = {status: PipelineStage() for status in ProposalStatus}
    for proposal in proposals:
        stage = pipeline[proposal.status]
        stage.count += 1
        stage.total_value += proposal.value
    return pipeline


@dataclass
class DashboardSummary:
    """Headline figures of the analytics overview."""

    total_clients: int
    total_tasks: int
    overdue: int
    completion_rate: float
    breakdown: dict[TaskStatus, int] = field(default_factory=dict)

    @property
    def completed(self) -> int:
        return self.breakdown.get(TaskStatus.COMPLETED, 0)

    @property
    def in_progress(self) -> int:
        return self.breakdown.get(TaskStatus.IN_PROGRESS, 0)

    @property
    def pending(self) -> int:
        return self.breakdown.get(TaskStatus.PENDING, 0)

    def to_dict(self) -> dict:
        return {
            "total_clients": self.total_clients,
            "total_tasks": self.total_tasks,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "pending": self.pending,
            "overdue": self.overdue,
            "completion_rate": round(self.completion_rate, 4),
        }


def summarize(clients: Iterable[Client], tasks: Iterable[Task], now: int) -> DashboardSummary:
    clients = list(clients)
    tasks = list(tasks)
    breakdown = status_breakdown(tasks)
    return DashboardSummary(
        total_clients=len(clients),
        total_tasks=len(tasks),
        overdue=overdue_count(tasks, now),
        completion_rate=completion_rate(breakdown),
        breakdown=breakdown,
    )
