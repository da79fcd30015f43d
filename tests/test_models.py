"""Test entity models and boundary validation."""
import pytest

from core.errors import InvalidArgument, InvalidStatus
from verticals.consultancy.models.schemas import (
    ClientSortKey,
    DateRange,
    ProposalCreate,
    Role,
    Task,
    TaskCreate,
    TaskStatus,
    parse_client_sort_key,
    parse_proposal_status,
    parse_role,
    parse_task_status,
    validate_id,
    validate_input,
    validate_year,
    year_of,
)


def test_parse_task_status_accepts_wire_values():
    assert parse_task_status("inProgress") is TaskStatus.IN_PROGRESS
    assert parse_task_status(TaskStatus.COMPLETED) is TaskStatus.COMPLETED


def test_parse_task_status_rejects_unknown():
    with pytest.raises(InvalidStatus, match="in_progress"):
        parse_task_status("in_progress")


def test_invalid_status_is_an_invalid_argument():
    with pytest.raises(InvalidArgument):
        parse_proposal_status("maybe")


def test_parse_role():
    assert parse_role("admin") is Role.ADMIN
    with pytest.raises(InvalidArgument) as exc:
        parse_role("owner")
    assert not isinstance(exc.value, InvalidStatus)


def test_sort_key_none_means_no_sort():
    assert parse_client_sort_key(None) is None
    assert parse_client_sort_key("createdAt") is ClientSortKey.CREATED_AT


def test_sort_key_unknown_is_error_not_fallback():
    with pytest.raises(InvalidArgument, match="sort key"):
        parse_client_sort_key("revenue")


def test_negative_proposal_value_rejected():
    with pytest.raises(InvalidArgument) as exc:
        validate_input(
            ProposalCreate, "createProposal",
            client_id=1, title="Audit", description="", value=-5,
        )
    assert exc.value.operation == "createProposal"
    assert "value" in exc.value.message


def test_blank_title_rejected():
    with pytest.raises(InvalidArgument):
        validate_input(TaskCreate, assignee="alice", title="   ", due_date=1)


def test_date_range_must_be_ordered():
    assert validate_input(DateRange, start=1, end=1).end == 1
    with pytest.raises(InvalidArgument):
        validate_input(DateRange, start=10, end=5)


def test_validate_id_and_year():
    assert validate_id(0) == 0
    with pytest.raises(InvalidArgument):
        validate_id(-1)
    with pytest.raises(InvalidArgument):
        validate_id(True)
    assert validate_year(2024) == 2024
    with pytest.raises(InvalidArgument):
        validate_year(1969)


def test_task_reads_camel_case_wire_format():
    task = Task.model_validate({
        "id": 7,
        "title": "Kickoff",
        "description": "",
        "assignee": "alice",
        "status": "inProgress",
        "createdAt": 10,
        "dueDate": 20,
    })
    assert task.status is TaskStatus.IN_PROGRESS
    assert task.due_date == 20
    assert task.project_id is None

    wire = task.to_dict()
    assert wire["dueDate"] == 20
    assert wire["status"] == "inProgress"


def test_entities_are_immutable():
    task = Task(id=1, title="t", assignee="a", status=TaskStatus.PENDING, created_at=0, due_date=0)
    with pytest.raises(Exception):
        task.status = TaskStatus.COMPLETED


def test_year_of_uses_utc():
    assert year_of(0) == 1970
    assert year_of(1_700_000_000_000_000_000) == 2023
