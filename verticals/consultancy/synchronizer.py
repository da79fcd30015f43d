"""Dashboard client — the query/cache synchronizer for the consultancy domain.

Views call into DashboardClient instead of the store. Reads go through a
shared QueryCache keyed by (operation, params, identity-if-scoped); writes
go straight to the store and, only once the store confirms them, mark the
dependent reads stale by tag:

| Mutation             | Tags invalidated      |
|----------------------|-----------------------|
| create/update task   | tasks                 |
| create/set proposal  | proposals             |
| create client        | clients               |
| save profile         | profile:<caller>      |
| assign role          | role:<target>         |

Lists and aggregates are never patched from a command's return value; an
entity the store returns is only written to its own single-entity key.
Local validation runs before any remote call, and nothing is retried.
Anonymous reads fail with Unauthenticated before the cache is consulted.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from core.errors import DashboardError, InvalidArgument, Unauthenticated
from core.models.base import now_ns
from core.sync import QueryCache, QueryKey, QueryObserver, make_query_key
from patterns.rules_engine import RuleResult
from verticals.consultancy import analytics
from verticals.consultancy.contract import Operation, RemoteStore
from verticals.consultancy.models.schemas import (
    Client,
    ClientCreate,
    ClientSortKey,
    DateRange,
    Identity,
    Proposal,
    ProposalCreate,
    ProposalStatus,
    Role,
    Task,
    TaskCreate,
    TaskStatus,
    UserProfile,
    parse_client_sort_key,
    parse_proposal_status,
    parse_role,
    parse_task_status,
    validate_id,
    validate_identity,
    validate_input,
    validate_year,
)
from verticals.consultancy.policy import OwnershipContext, check_permission, is_permitted

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

CLIENTS = "clients"
TASKS = "tasks"
PROPOSALS = "proposals"


def profile_tag(identity: Optional[Identity]) -> str:
    return f"profile:{identity}"


def role_tag(identity: Optional[Identity]) -> str:
    return f"role:{identity}"


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class DashboardClient:
    """Cached, identity-aware access to the consultancy store.

    Usage::

        cache = QueryCache()
        alice = DashboardClient(store, "alice", cache)
        tasks = await alice.tasks_by_status("pending")
        await alice.update_task_status(tasks[0].id, "inProgress")
        bob = alice.with_identity("bob")   # same cache, separate caller keys
    """

    def __init__(
        self,
        store: RemoteStore,
        identity: Optional[Identity] = None,
        cache: Optional[QueryCache] = None,
        clock: Callable[[], int] = now_ns,
    ):
        self.store = store
        self.identity = identity
        self.cache = cache if cache is not None else QueryCache()
        self._clock = clock

    def with_identity(self, identity: Optional[Identity]) -> "DashboardClient":
        """A client for another caller sharing this store and cache."""
        return DashboardClient(self.store, identity, self.cache, self._clock)

    def observer(self) -> QueryObserver:
        """A per-view observer that drops responses the view has moved past."""
        return QueryObserver(self.cache)

    # --- Keys ---

    def key(self, operation: Operation, *params: Any, scoped: bool = False) -> QueryKey:
        return make_query_key(operation, *params, identity=self.identity if scoped else None)

    async def _read(
        self,
        key: QueryKey,
        tags: Iterable[str],
        call: Callable[[], Awaitable[Any]],
    ) -> Any:
        # Shared keys may already hold another caller's data
        if self.identity is None:
            raise Unauthenticated("no caller identity", operation=key.operation)
        return await self.cache.fetch(key, call, tags)

    async def _write(
        self,
        operation: Operation,
        call: Callable[[], Awaitable[Any]],
        invalidates: Iterable[str],
    ) -> Any:
        try:
            result = await call()
        except DashboardError as exc:
            logger.warning(
                "%s failed for %s: %s (%s)", operation.value, self.identity, exc.message, exc.kind
            )
            raise
        touched = self.cache.invalidate_tags(*invalidates)
        logger.debug("%s succeeded, %d cached queries now stale", operation.value, len(touched))
        return result

    # --- Client queries ---

    async def clients(self) -> list[Client]:
        key = self.key(Operation.GET_ALL_CLIENTS)
        return await self._read(key, [CLIENTS], lambda: self.store.get_all_clients(self.identity))

    async def clients_sorted(self, sort_by: Union[ClientSortKey, str, None] = None) -> list[Client]:
        sort_key = parse_client_sort_key(sort_by)
        key = self.key(Operation.GET_ALL_CLIENTS_SORTED, sort_key)
        return await self._read(
            key, [CLIENTS], lambda: self.store.get_all_clients_sorted(self.identity, sort_key)
        )

    async def clients_by_company(
        self, company: str, sort_by: Union[ClientSortKey, str, None] = None
    ) -> list[Client]:
        op = Operation.GET_CLIENTS_BY_COMPANY
        if not isinstance(company, str) or not company.strip():
            raise InvalidArgument("company must be a non-empty string", operation=op.value)
        sort_key = parse_client_sort_key(sort_by)
        company = company.strip()
        key = self.key(op, company.lower(), sort_key)
        return await self._read(
            key, [CLIENTS],
            lambda: self.store.get_clients_by_company(self.identity, company, sort_key),
        )

    async def client(self, client_id: int) -> Client:
        op = Operation.GET_CLIENT
        validate_id(client_id, "client_id", op.value)
        return await self._read(
            self.key(op, client_id), [CLIENTS],
            lambda: self.store.get_client(self.identity, client_id),
        )

    # --- Task queries ---

    async def tasks(self) -> list[Task]:
        key = self.key(Operation.GET_ALL_TASKS)
        return await self._read(key, [TASKS], lambda: self.store.get_all_tasks(self.identity))

    async def task(self, task_id: int) -> Task:
        op = Operation.GET_TASK
        validate_id(task_id, "task_id", op.value)
        return await self._read(
            self.key(op, task_id), [TASKS], lambda: self.store.get_task(self.identity, task_id)
        )

    async def tasks_by_status(self, status: Union[TaskStatus, str]) -> list[Task]:
        status = parse_task_status(status)
        return await self._read(
            self.key(Operation.GET_TASKS_BY_STATUS, status), [TASKS],
            lambda: self.store.get_tasks_by_status(self.identity, status),
        )

    async def tasks_by_assignee(self, assignee: Identity) -> list[Task]:
        op = Operation.GET_TASKS_BY_ASSIGNEE
        validate_identity(assignee, op.value)
        return await self._read(
            self.key(op, assignee), [TASKS],
            lambda: self.store.get_tasks_by_assignee(self.identity, assignee),
        )

    async def my_tasks(self) -> list[Task]:
        """Tasks assigned to the current caller."""
        op = Operation.GET_TASKS_BY_ASSIGNEE
        identity = validate_identity(self.identity, op.value)
        return await self._read(
            self.key(op, identity, scoped=True), [TASKS],
            lambda: self.store.get_tasks_by_assignee(identity, identity),
        )

    async def tasks_by_assignee_and_status(
        self, assignee: Identity, status: Union[TaskStatus, str]
    ) -> list[Task]:
        op = Operation.GET_TASKS_BY_ASSIGNEE_AND_STATUS
        validate_identity(assignee, op.value)
        status = parse_task_status(status)
        return await self._read(
            self.key(op, assignee, status), [TASKS],
            lambda: self.store.get_tasks_by_assignee_and_status(self.identity, assignee, status),
        )

    async def tasks_by_due_date_range(self, start: int, end: int) -> list[Task]:
        op = Operation.GET_TASKS_BY_DUE_DATE_RANGE
        window = validate_input(DateRange, op.value, start=start, end=end)
        return await self._read(
            self.key(op, window.start, window.end), [TASKS],
            lambda: self.store.get_tasks_by_due_date_range(self.identity, window.start, window.end),
        )

    async def tasks_by_year(self, year: int) -> list[Task]:
        op = Operation.GET_TASKS_BY_YEAR
        validate_year(year, op.value)
        return await self._read(
            self.key(op, year), [TASKS],
            lambda: self.store.get_tasks_by_year(self.identity, year),
        )

    async def overdue_tasks(self) -> list[Task]:
        """Store-side overdue list. Goes stale on task mutations only, not with time."""
        return await self._read(
            self.key(Operation.GET_OVERDUE_TASKS), [TASKS],
            lambda: self.store.get_overdue_tasks(self.identity),
        )

    async def task_status_count(self) -> list[tuple[TaskStatus, int]]:
        return await self._read(
            self.key(Operation.GET_TASK_STATUS_COUNT), [TASKS],
            lambda: self.store.get_task_status_count(self.identity),
        )

    # --- Proposal queries ---

    async def proposal(self, proposal_id: int) -> Proposal:
        op = Operation.GET_PROPOSAL
        validate_id(proposal_id, "proposal_id", op.value)
        return await self._read(
            self.key(op, proposal_id), [PROPOSALS],
            lambda: self.store.get_proposal(self.identity, proposal_id),
        )

    async def proposals_by_client(self, client_id: int) -> list[Proposal]:
        op = Operation.GET_PROPOSALS_BY_CLIENT
        validate_id(client_id, "client_id", op.value)
        return await self._read(
            self.key(op, client_id), [PROPOSALS],
            lambda: self.store.get_proposals_by_client(self.identity, client_id),
        )

    async def proposals_by_status(self, status: Union[ProposalStatus, str]) -> list[Proposal]:
        status = parse_proposal_status(status)
        return await self._read(
            self.key(Operation.GET_PROPOSALS_BY_STATUS, status), [PROPOSALS],
            lambda: self.store.get_proposals_by_status(self.identity, status),
        )

    async def proposals_by_client_and_status(
        self, client_id: int, status: Union[ProposalStatus, str]
    ) -> list[Proposal]:
        op = Operation.GET_PROPOSALS_BY_CLIENT_AND_STATUS
        validate_id(client_id, "client_id", op.value)
        status = parse_proposal_status(status)
        return await self._read(
            self.key(op, client_id, status), [PROPOSALS],
            lambda: self.store.get_proposals_by_client_and_status(self.identity, client_id, status),
        )

    # --- Identity queries ---

    async def caller_profile(self) -> Optional[UserProfile]:
        return await self._read(
            self.key(Operation.GET_CALLER_USER_PROFILE, scoped=True),
            [profile_tag(self.identity)],
            lambda: self.store.get_caller_user_profile(self.identity),
        )

    async def user_profile(self, user: Identity) -> Optional[UserProfile]:
        op = Operation.GET_USER_PROFILE
        validate_identity(user, op.value)
        return await self._read(
            self.key(op, user), [profile_tag(user)],
            lambda: self.store.get_user_profile(self.identity, user),
        )

    async def caller_role(self) -> Role:
        return await self._read(
            self.key(Operation.GET_CALLER_USER_ROLE, scoped=True),
            [role_tag(self.identity)],
            lambda: self.store.get_caller_user_role(self.identity),
        )

    async def is_admin(self) -> bool:
        return await self._read(
            self.key(Operation.IS_CALLER_ADMIN, scoped=True),
            [role_tag(self.identity)],
            lambda: self.store.is_caller_admin(self.identity),
        )

    # --- Commands ---

    async def create_client(
        self,
        name: str,
        company: str,
        email: str,
        phone_number: str = "",
        address: str = "",
    ) -> Client:
        op = Operation.CREATE_CLIENT
        data = validate_input(
            ClientCreate, op.value,
            name=name, company=company, email=email, phone_number=phone_number, address=address,
        )
        client = await self._write(op, lambda: self.store.create_client(self.identity, data), [CLIENTS])
        self.cache.set_data(self.key(Operation.GET_CLIENT, client.id), client, [CLIENTS])
        return client

    async def create_task(
        self,
        assignee: Identity,
        title: str,
        description: str,
        due_date: int,
        project_id: Optional[int] = None,
    ) -> Task:
        op = Operation.CREATE_TASK
        data = validate_input(
            TaskCreate, op.value,
            assignee=assignee, title=title, description=description,
            due_date=due_date, project_id=project_id,
        )
        task = await self._write(op, lambda: self.store.create_task(self.identity, data), [TASKS])
        self.cache.set_data(self.key(Operation.GET_TASK, task.id), task, [TASKS])
        return task

    async def update_task_status(self, task_id: int, status: Union[TaskStatus, str]) -> None:
        op = Operation.UPDATE_TASK_STATUS
        validate_id(task_id, "task_id", op.value)
        status = parse_task_status(status)
        await self._write(
            op, lambda: self.store.update_task_status(self.identity, task_id, status), [TASKS]
        )

    async def create_proposal(
        self,
        client_id: int,
        title: str,
        description: str,
        value: int,
    ) -> Proposal:
        op = Operation.CREATE_PROPOSAL
        data = validate_input(
            ProposalCreate, op.value,
            client_id=client_id, title=title, description=description, value=value,
        )
        proposal = await self._write(
            op, lambda: self.store.create_proposal(self.identity, data), [PROPOSALS]
        )
        self.cache.set_data(self.key(Operation.GET_PROPOSAL, proposal.id), proposal, [PROPOSALS])
        return proposal

    async def set_proposal_status(
        self, proposal_id: int, status: Union[ProposalStatus, str]
    ) -> None:
        op = Operation.SET_PROPOSAL_STATUS
        validate_id(proposal_id, "proposal_id", op.value)
        status = parse_proposal_status(status)
        await self._write(
            op, lambda: self.store.set_proposal_status(self.identity, proposal_id, status),
            [PROPOSALS],
        )

    async def save_profile(self, name: str) -> None:
        op = Operation.SAVE_CALLER_USER_PROFILE
        profile = validate_input(UserProfile, op.value, name=name)
        await self._write(
            op, lambda: self.store.save_caller_user_profile(self.identity, profile),
            [profile_tag(self.identity)],
        )

    async def assign_role(self, user: Identity, role: Union[Role, str]) -> None:
        op = Operation.ASSIGN_CALLER_USER_ROLE
        validate_identity(user, op.value)
        role = parse_role(role)
        await self._write(
            op, lambda: self.store.assign_caller_user_role(self.identity, user, role),
            [role_tag(user)],
        )

    # --- Advisory authorization ---

    async def current_role(self) -> Optional[Role]:
        """The caller's role as the store reports it; None when anonymous."""
        if self.identity is None:
            return None
        return await self.caller_role()

    async def check(self, operation: Operation, task: Optional[Task] = None) -> RuleResult:
        """Would the store accept `operation` from this caller? Advisory only."""
        role = await self.current_role()
        if task is not None:
            ownership = OwnershipContext.for_task(self.identity, task)
        else:
            ownership = OwnershipContext(caller=self.identity)
        return check_permission(role, operation, ownership)

    async def can(self, operation: Operation, task: Optional[Task] = None) -> bool:
        return (await self.check(operation, task)).passed

    async def can_update_task_status(self, task: Task) -> bool:
        role = await self.current_role()
        return is_permitted(
            role, Operation.UPDATE_TASK_STATUS, OwnershipContext.for_task(self.identity, task)
        )

    # --- Analytics (recomputed on every call) ---

    async def status_breakdown(self, from_aggregate: bool = True) -> dict[TaskStatus, int]:
        if from_aggregate:
            return analytics.breakdown_from_counts(await self.task_status_count())
        return analytics.status_breakdown(await self.tasks())

    async def overdue_count(self, now: Optional[int] = None) -> int:
        return analytics.overdue_count(await self.tasks(), self._clock() if now is None else now)

    async def completion_rate(self) -> float:
        return analytics.completion_rate(await self.status_breakdown())

    async def proposal_pipeline(self) -> dict[ProposalStatus, analytics.PipelineStage]:
        groups = await asyncio.gather(*(self.proposals_by_status(s) for s in ProposalStatus))
        return analytics.proposal_pipeline(p for group in groups for p in group)

    async def summary(self, now: Optional[int] = None) -> analytics.DashboardSummary:
        clients, tasks = await asyncio.gather(self.clients(), self.tasks())
        return analytics.summarize(clients, tasks, self._clock() if now is None else now)
