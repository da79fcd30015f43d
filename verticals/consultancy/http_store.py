"""HTTP adapter for the authoritative store.

Each operation is a named remote procedure:

    POST {base_url}/rpc/{operationName}
    {"args": [...]}            ->  200 {"ok": <value>}
                               ->  4xx/5xx {"error": {"kind": ..., "message": ...}}

The caller identity is attached as credentials registered per identity.
Failures map onto the dashboard error taxonomy; nothing is retried here.
"""

import logging
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from core.errors import (
    DashboardError,
    InvalidArgument,
    NotFound,
    RemoteUnavailable,
    Unauthenticated,
    Unauthorized,
    error_from_kind,
)
from core.integrations.adapter_base import (
    AdapterBase,
    AdapterRequest,
    AdapterResponse,
    AuthCredentials,
    AuthType,
)
from patterns.domain_config import RemoteConfig
from verticals.consultancy.contract import Operation, RemoteStore
from verticals.consultancy.models.schemas import (
    Client,
    ClientCreate,
    Identity,
    Proposal,
    ProposalCreate,
    Role,
    Task,
    TaskCreate,
    TaskStatus,
    UserProfile,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[DashboardError]] = {
    400: InvalidArgument,
    401: Unauthenticated,
    403: Unauthorized,
    404: NotFound,
    422: InvalidArgument,
}


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


def _decode(operation: Operation, parse: Callable[[Any], Any], data: Any) -> Any:
    try:
        return parse(data)
    except (ValidationError, ValueError, TypeError, KeyError) as exc:
        raise RemoteUnavailable(
            f"malformed response: {exc}", operation=operation.value
        ) from exc


def _many(model: type[BaseModel]) -> Callable[[Any], list]:
    return lambda data: [model.model_validate(item) for item in data]


def _optional_profile(data: Any) -> Optional[UserProfile]:
    return None if data is None else UserProfile.model_validate(data)


def _status_counts(data: Any) -> list[tuple[TaskStatus, int]]:
    return [(TaskStatus(status), int(count)) for status, count in data]


class HttpStore(AdapterBase, RemoteStore):
    """RemoteStore over HTTP JSON-RPC."""

    name = "consultancy_store"

    def __init__(
        self,
        config: Optional[RemoteConfig] = None,
        transport=None,
    ):
        config = config or RemoteConfig()
        super().__init__(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def register_identity(self, identity: Identity, token: str) -> None:
        """Present `token` as a bearer credential whenever `identity` calls."""
        self.set_credentials(
            AuthCredentials(
                identity=identity,
                adapter_name=self.name,
                auth_type=AuthType.BEARER,
                bearer_token=token,
            )
        )

    # --- Transport ---

    async def _call(self, caller: Optional[Identity], operation: Operation, *args: Any) -> Any:
        req = AdapterRequest(
            method="POST",
            path=f"/rpc/{operation.value}",
            body={"args": [_encode(a) for a in args]},
            timeout=self.timeout,
        )
        resp = await self.request(req, caller)

        if resp.transport_error:
            logger.debug("Transport failure on %s: %s", operation.value, resp.error)
            raise RemoteUnavailable(resp.error or "store unreachable", operation=operation.value)
        if not resp.ok:
            raise self._error_for(resp, operation)
        if not isinstance(resp.data, dict) or "ok" not in resp.data:
            raise RemoteUnavailable(
                resp.error or "malformed response envelope", operation=operation.value
            )
        return resp.data["ok"]

    @staticmethod
    def _error_for(resp: AdapterResponse, operation: Operation) -> DashboardError:
        body = resp.data if isinstance(resp.data, dict) else {}
        error = body.get("error")
        if isinstance(error, dict) and error.get("kind"):
            return error_from_kind(error["kind"], error.get("message", ""), operation.value)

        cls = _STATUS_ERRORS.get(resp.status_code, RemoteUnavailable)
        return cls(f"HTTP {resp.status_code}", operation=operation.value)

    async def _query(self, caller, operation: Operation, parse, *args):
        data = await self._call(caller, operation, *args)
        return _decode(operation, parse, data)

    # --- Clients ---

    async def get_all_clients(self, caller):
        return await self._query(caller, Operation.GET_ALL_CLIENTS, _many(Client))

    async def get_all_clients_sorted(self, caller, sort_by):
        return await self._query(caller, Operation.GET_ALL_CLIENTS_SORTED, _many(Client), sort_by)

    async def get_clients_by_company(self, caller, company, sort_by):
        return await self._query(
            caller, Operation.GET_CLIENTS_BY_COMPANY, _many(Client), company, sort_by
        )

    async def get_client(self, caller, client_id):
        return await self._query(caller, Operation.GET_CLIENT, Client.model_validate, client_id)

    async def create_client(self, caller, data: ClientCreate):
        return await self._query(
            caller,
            Operation.CREATE_CLIENT,
            Client.model_validate,
            data.name,
            data.company,
            data.email,
            data.phone_number,
            data.address,
        )

    # --- Tasks ---

    async def get_all_tasks(self, caller):
        return await self._query(caller, Operation.GET_ALL_TASKS, _many(Task))

    async def get_task(self, caller, task_id):
        return await self._query(caller, Operation.GET_TASK, Task.model_validate, task_id)

    async def get_tasks_by_status(self, caller, status):
        return await self._query(caller, Operation.GET_TASKS_BY_STATUS, _many(Task), status)

    async def get_tasks_by_assignee(self, caller, assignee):
        return await self._query(caller, Operation.GET_TASKS_BY_ASSIGNEE, _many(Task), assignee)

    async def get_tasks_by_assignee_and_status(self, caller, assignee, status):
        return await self._query(
            caller, Operation.GET_TASKS_BY_ASSIGNEE_AND_STATUS, _many(Task), assignee, status
        )

    async def get_tasks_by_due_date_range(self, caller, start, end):
        return await self._query(
            caller, Operation.GET_TASKS_BY_DUE_DATE_RANGE, _many(Task), start, end
        )

    async def get_tasks_by_year(self, caller, year):
        return await self._query(caller, Operation.GET_TASKS_BY_YEAR, _many(Task), year)

    async def get_overdue_tasks(self, caller):
        return await self._query(caller, Operation.GET_OVERDUE_TASKS, _many(Task))

    async def get_task_status_count(self, caller):
        return await self._query(caller, Operation.GET_TASK_STATUS_COUNT, _status_counts)

    async def create_task(self, caller, data: TaskCreate):
        return await self._query(
            caller,
            Operation.CREATE_TASK,
            Task.model_validate,
            data.assignee,
            data.title,
            data.description,
            data.due_date,
            data.project_id,
        )

    async def update_task_status(self, caller, task_id, status):
        await self._call(caller, Operation.UPDATE_TASK_STATUS, task_id, status)

    # --- Proposals ---

    async def get_proposal(self, caller, proposal_id):
        return await self._query(
            caller, Operation.GET_PROPOSAL, Proposal.model_validate, proposal_id
        )

    async def get_proposals_by_client(self, caller, client_id):
        return await self._query(
            caller, Operation.GET_PROPOSALS_BY_CLIENT, _many(Proposal), client_id
        )

    async def get_proposals_by_status(self, caller, status):
        return await self._query(
            caller, Operation.GET_PROPOSALS_BY_STATUS, _many(Proposal), status
        )

    async def get_proposals_by_client_and_status(self, caller, client_id, status):
        return await self._query(
            caller,
            Operation.GET_PROPOSALS_BY_CLIENT_AND_STATUS,
            _many(Proposal),
            client_id,
            status,
        )

    async def create_proposal(self, caller, data: ProposalCreate):
        return await self._query(
            caller,
            Operation.CREATE_PROPOSAL,
            Proposal.model_validate,
            data.client_id,
            data.title,
            data.description,
            data.value,
        )

    async def set_proposal_status(self, caller, proposal_id, status):
        await self._call(caller, Operation.SET_PROPOSAL_STATUS, proposal_id, status)

    # --- Identity ---

    async def get_caller_user_profile(self, caller):
        return await self._query(caller, Operation.GET_CALLER_USER_PROFILE, _optional_profile)

    async def get_user_profile(self, caller, user):
        return await self._query(caller, Operation.GET_USER_PROFILE, _optional_profile, user)

    async def save_caller_user_profile(self, caller, profile: UserProfile):
        await self._call(caller, Operation.SAVE_CALLER_USER_PROFILE, profile)

    async def get_caller_user_role(self, caller):
        return await self._query(caller, Operation.GET_CALLER_USER_ROLE, Role)

    async def is_caller_admin(self, caller):
        return await self._query(caller, Operation.IS_CALLER_ADMIN, bool)

    async def assign_caller_user_role(self, caller, user, role):
        await self._call(caller, Operation.ASSIGN_CALLER_USER_ROLE, user, role)
