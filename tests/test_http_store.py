"""Test the HTTP store adapter against a mocked transport."""
import json

import httpx
import pytest

from core.errors import (
    InvalidArgument,
    InvalidStatus,
    NotFound,
    RemoteUnavailable,
    Unauthenticated,
    Unauthorized,
)
from patterns.domain_config import RemoteConfig
from verticals.consultancy.http_store import HttpStore
from verticals.consultancy.models.schemas import (
    ProposalCreate,
    Role,
    TaskCreate,
    TaskStatus,
    UserProfile,
)

TASK = {
    "id": 1,
    "title": "Draft report",
    "description": "",
    "assignee": "alice",
    "status": "pending",
    "createdAt": 10,
    "dueDate": 20,
}


class Recorder:
    """Mock RPC endpoint answering from a fixed table and recording requests."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        operation = request.url.path.rsplit("/", 1)[-1]
        status, body = self.responses[operation]
        return httpx.Response(status, json=body)

    @property
    def last_args(self):
        return json.loads(self.requests[-1].content)["args"]


def _store(responses):
    recorder = Recorder(responses)
    store = HttpStore(
        RemoteConfig(base_url="http://store.test"),
        transport=httpx.MockTransport(recorder),
    )
    store.register_identity("alice", "alice-token")
    return store, recorder


@pytest.mark.asyncio
async def test_query_decodes_entities():
    store, recorder = _store({"getAllTasks": (200, {"ok": [TASK]})})

    tasks = await store.get_all_tasks("alice")

    assert tasks[0].due_date == 20
    assert tasks[0].status is TaskStatus.PENDING
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "http://store.test/rpc/getAllTasks"
    assert request.headers["Authorization"] == "Bearer alice-token"
    assert recorder.last_args == []


@pytest.mark.asyncio
async def test_command_sends_positional_args():
    store, recorder = _store({"createTask": (200, {"ok": TASK})})

    task = await store.create_task(
        "alice", TaskCreate(assignee="alice", title="Draft report", due_date=20)
    )

    assert task.id == 1
    assert recorder.last_args == ["alice", "Draft report", "", 20, None]


@pytest.mark.asyncio
async def test_enums_and_models_are_encoded():
    store, recorder = _store({
        "updateTaskStatus": (200, {"ok": None}),
        "saveCallerUserProfile": (200, {"ok": None}),
        "assignCallerUserRole": (200, {"ok": None}),
    })

    await store.update_task_status("alice", 1, TaskStatus.IN_PROGRESS)
    assert recorder.last_args == [1, "inProgress"]

    await store.save_caller_user_profile("alice", UserProfile(name="Alice"))
    assert recorder.last_args == [{"name": "Alice"}]

    await store.assign_caller_user_role("alice", "bob", Role.ADMIN)
    assert recorder.last_args == ["bob", "admin"]


@pytest.mark.asyncio
async def test_optional_profile_and_status_counts():
    store, _ = _store({
        "getCallerUserProfile": (200, {"ok": None}),
        "getTaskStatusCount": (200, {"ok": [["pending", 2], ["completed", 1]]}),
        "getCallerUserRole": (200, {"ok": "user"}),
    })

    assert await store.get_caller_user_profile("alice") is None
    assert await store.get_task_status_count("alice") == [
        (TaskStatus.PENDING, 2),
        (TaskStatus.COMPLETED, 1),
    ]
    assert await store.get_caller_user_role("alice") is Role.USER


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, expected",
    [
        (400, InvalidArgument),
        (401, Unauthenticated),
        (403, Unauthorized),
        (404, NotFound),
        (422, InvalidArgument),
        (500, RemoteUnavailable),
        (502, RemoteUnavailable),
    ],
)
async def test_status_codes_map_to_errors(status, expected):
    store, _ = _store({"getTask": (status, {})})
    with pytest.raises(expected) as exc:
        await store.get_task("alice", 1)
    assert exc.value.operation == "getTask"


@pytest.mark.asyncio
async def test_error_body_kind_wins_over_status():
    store, _ = _store({
        "setProposalStatus": (400, {"error": {"kind": "invalid_status", "message": "bad"}}),
        "getProposal": (500, {"error": {"kind": "not_found", "message": "no proposal 9"}}),
        "getClient": (400, {"error": {"kind": "mystery", "message": "?"}}),
    })

    with pytest.raises(InvalidStatus, match="bad"):
        await store.set_proposal_status("alice", 1, "accepted")
    with pytest.raises(NotFound, match="no proposal 9"):
        await store.get_proposal("alice", 9)
    with pytest.raises(RemoteUnavailable):
        await store.get_client("alice", 1)


@pytest.mark.asyncio
async def test_malformed_responses_are_remote_unavailable():
    store, _ = _store({
        "getAllTasks": (200, {"ok": [{"id": "not-a-task"}]}),
        "getAllClients": (200, {"unexpected": True}),
    })

    with pytest.raises(RemoteUnavailable, match="malformed response"):
        await store.get_all_tasks("alice")
    with pytest.raises(RemoteUnavailable, match="envelope"):
        await store.get_all_clients("alice")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [200, 500])
async def test_invalid_json_body_is_remote_unavailable(status):
    def handler(request):
        return httpx.Response(
            status, content=b"{not json", headers={"content-type": "application/json"}
        )

    store = HttpStore(RemoteConfig(base_url="http://store.test"), transport=httpx.MockTransport(handler))
    with pytest.raises(RemoteUnavailable) as exc:
        await store.get_all_tasks("alice")
    assert exc.value.operation == "getAllTasks"


@pytest.mark.asyncio
async def test_transport_failure_is_remote_unavailable_and_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    store = HttpStore(RemoteConfig(base_url="http://store.test"), transport=httpx.MockTransport(handler))
    with pytest.raises(RemoteUnavailable) as exc:
        await store.create_proposal("alice", ProposalCreate(client_id=1, title="Audit", value=10))

    assert exc.value.retryable
    assert len(calls) == 1
    health = store.get_health()
    assert health.failed_requests == 1
    assert health.error_rate == 1.0


@pytest.mark.asyncio
async def test_anonymous_calls_carry_no_credentials():
    store, recorder = _store({"getAllClients": (401, {"error": {"kind": "unauthenticated"}})})
    with pytest.raises(Unauthenticated):
        await store.get_all_clients(None)
    assert "Authorization" not in recorder.requests[0].headers
    assert store.get_health().auth_failures == 1
