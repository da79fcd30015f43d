"""Test derived analytics."""
import random

import pytest

from verticals.consultancy.analytics import (
    breakdown_from_counts,
    completion_rate,
    is_overdue,
    overdue_count,
    proposal_pipeline,
    status_breakdown,
    summarize,
)
from verticals.consultancy.models.schemas import Client, Proposal, ProposalStatus, Task, TaskStatus

T = 1_000_000


def _task(task_id, status, due_date):
    return Task(
        id=task_id, title=f"t{task_id}", assignee="alice",
        status=status, created_at=0, due_date=due_date,
    )


def _proposal(proposal_id, status, value):
    return Proposal(
        id=proposal_id, title="p", client_id=1,
        value=value, status=status, created_at=0,
    )


@pytest.mark.parametrize(
    "status, due_date, expected",
    [
        (TaskStatus.PENDING, T - 1, True),
        (TaskStatus.IN_PROGRESS, T - 1, True),
        (TaskStatus.COMPLETED, T - 1, False),
        (TaskStatus.PENDING, T, False),
        (TaskStatus.PENDING, T + 1, False),
    ],
)
def test_is_overdue(status, due_date, expected):
    assert is_overdue(_task(1, status, due_date), T) is expected


def test_overdue_example():
    tasks = [
        _task(1, TaskStatus.PENDING, T - 1),
        _task(2, TaskStatus.COMPLETED, T - 1),
        _task(3, TaskStatus.PENDING, T + 1),
    ]
    assert overdue_count(tasks, T) == 1


def test_breakdown_is_order_independent():
    tasks = [
        _task(i, status, T)
        for i, status in enumerate(
            [TaskStatus.PENDING] * 3 + [TaskStatus.IN_PROGRESS] * 2 + [TaskStatus.COMPLETED] * 5
        )
    ]
    expected = status_breakdown(tasks)
    shuffled = list(tasks)
    random.Random(7).shuffle(shuffled)
    assert status_breakdown(shuffled) == expected
    assert expected == {
        TaskStatus.PENDING: 3,
        TaskStatus.IN_PROGRESS: 2,
        TaskStatus.COMPLETED: 5,
    }
    assert completion_rate(expected) == 0.5


def test_empty_inputs():
    breakdown = status_breakdown([])
    assert set(breakdown) == set(TaskStatus)
    assert all(count == 0 for count in breakdown.values())
    assert completion_rate(breakdown) == 0.0
    assert overdue_count([], T) == 0


def test_breakdown_from_counts_fills_missing_statuses():
    breakdown = breakdown_from_counts([("completed", 4), (TaskStatus.PENDING, 1)])
    assert breakdown == {
        TaskStatus.PENDING: 1,
        TaskStatus.IN_PROGRESS: 0,
        TaskStatus.COMPLETED: 4,
    }


def test_proposal_pipeline():
    pipeline = proposal_pipeline([
        _proposal(1, ProposalStatus.PENDING, 100),
        _proposal(2, ProposalStatus.ACCEPTED, 250),
        _proposal(3, ProposalStatus.ACCEPTED, 50),
    ])
    assert pipeline[ProposalStatus.ACCEPTED].count == 2
    assert pipeline[ProposalStatus.ACCEPTED].total_value == 300
    assert pipeline[ProposalStatus.REJECTED].count == 0


def test_summary():
    clients = [Client(id=1, name="Ada", company="Acme", email="ada@acme.test", created_at=0)]
    tasks = [
        _task(1, TaskStatus.PENDING, T - 1),
        _task(2, TaskStatus.COMPLETED, T - 1),
    ]
    summary = summarize(clients, tasks, T)
    assert summary.to_dict() == {
        "total_clients": 1,
        "total_tasks": 2,
        "completed": 1,
        "in_progress": 0,
        "pending": 1,
        "overdue": 1,
        "completion_rate": 0.5,
    }
