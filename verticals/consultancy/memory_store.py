"""In-memory authoritative store.

Implements the full remote contract in process, with the same failure
semantics a real store has: authentication, role and ownership checks,
referential integrity and input validation. Nothing is persisted. Useful
for local development, demos and tests; use HttpStore against a real store.
"""

import asyncio
from collections import Counter
from typing import Callable, Optional

from core.errors import InvalidArgument, NotFound, RemoteUnavailable, Unauthenticated, Unauthorized
from core.models.base import now_ns
from patterns.workflow_states import WorkflowInstance, WorkflowTransition
from verticals.consultancy.contract import Operation, RemoteStore
from verticals.consultancy.models.schemas import (
    Client,
    ClientCreate,
    ClientSortKey,
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
    year_of,
)
from verticals.consultancy.policy import OwnershipContext, check_permission, permitted_operations
from verticals.consultancy.workflow import track_task

_SORTS: dict[ClientSortKey, Callable[[Client], tuple]] = {
    ClientSortKey.NAME: lambda c: (c.name.lower(), c.id),
    ClientSortKey.COMPANY: lambda c: (c.company.lower(), c.name.lower(), c.id),
    ClientSortKey.CREATED_AT: lambda c: (c.created_at, c.id),
}


class InMemoryStore(RemoteStore):
    """In-memory store. Replace with HttpStore for production.

    Usage::

        store = InMemoryStore(admin="alice")
        client = await store.create_client("alice", ClientCreate(...))
    """

    def __init__(
        self,
        admin: Optional[Identity] = None,
        default_role: Role = Role.GUEST,
        clock: Callable[[], int] = now_ns,
        latency_seconds: float = 0.0,
    ):
        self.default_role = default_role
        self.latency_seconds = latency_seconds
        self.available = True
        self.call_counts: Counter = Counter()
        self._clock = clock
        self._last_timestamp = 0
        self._next_ids = {"client": 1, "task": 1, "proposal": 1}
        self._clients: dict[int, Client] = {}
        self._tasks: dict[int, Task] = {}
        self._proposals: dict[int, Proposal] = {}
        self._profiles: dict[Identity, UserProfile] = {}
        self._roles: dict[Identity, Role] = {}
        self._workflows: dict[int, WorkflowInstance] = {}
        if admin is not None:
            self._roles[admin] = Role.ADMIN

    # --- Plumbing ---

    def _timestamp(self) -> int:
        # Non-decreasing even if the wall clock steps backwards
        self._last_timestamp = max(self._clock(), self._last_timestamp)
        return self._last_timestamp

    def _next_id(self, kind: str) -> int:
        value = self._next_ids[kind]
        self._next_ids[kind] += 1
        return value

    def role_of(self, identity: Identity) -> Role:
        return self._roles.get(identity, self.default_role)

    async def _begin(self, caller: Optional[Identity], operation: Operation) -> Role:
        """Count the call, simulate latency, authenticate and check the role table."""
        self.call_counts[operation.value] += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        else:
            await asyncio.sleep(0)

        if not self.available:
            raise RemoteUnavailable("store unavailable", operation=operation.value)
        if caller is None:
            raise Unauthenticated("no caller identity", operation=operation.value)

        role = self.role_of(caller)
        if operation not in permitted_operations(role):
            raise Unauthorized(
                f"role {role.value} may not perform {operation.value}",
                operation=operation.value,
            )
        return role

    def _task(self, task_id: int, operation: Operation) -> Task:
        validate_id(task_id, "task_id", operation.value)
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFound(f"task {task_id} not found", operation=operation.value)
        return task

    def _proposal(self, proposal_id: int, operation: Operation) -> Proposal:
        validate_id(proposal_id, "proposal_id", operation.value)
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise NotFound(f"proposal {proposal_id} not found", operation=operation.value)
        return proposal

    def _client(self, client_id: int, operation: Operation) -> Client:
        validate_id(client_id, "client_id", operation.value)
        client = self._clients.get(client_id)
        if client is None:
            raise NotFound(f"client {client_id} not found", operation=operation.value)
        return client

    @staticmethod
    def _revalidate(model, data, operation: Operation):
        return validate_input(model, operation.value, **data.model_dump())

    # --- Seeding (bypasses authorization, for fixtures and demos) ---

    def seed_client(self, name: str, company: str, email: str, **extra) -> Client:
        client = Client(
            id=self._next_id("client"),
            name=name,
            company=company,
            email=email,
            created_at=self._timestamp(),
            **extra,
        )
        self._clients[client.id] = client
        return client

    def seed_task(
        self,
        assignee: Identity,
        title: str,
        due_date: int,
        status: TaskStatus = TaskStatus.PENDING,
        **extra,
    ) -> Task:
        task = Task(
            id=self._next_id("task"),
            title=title,
            assignee=assignee,
            status=status,
            created_at=self._timestamp(),
            due_date=due_date,
            **extra,
        )
        self._tasks[task.id] = task
        self._workflows[task.id] = track_task(task)
        return task

    def seed_proposal(
        self,
        client_id: int,
        title: str,
        value: int,
        status: ProposalStatus = ProposalStatus.PENDING,
        **extra,
    ) -> Proposal:
        if client_id not in self._clients:
            raise NotFound(f"client {client_id} not found")
        proposal = Proposal(
            id=self._next_id("proposal"),
            title=title,
            client_id=client_id,
            value=value,
            status=status,
            created_at=self._timestamp(),
            **extra,
        )
        self._proposals[proposal.id] = proposal
        return proposal

    def set_role(self, identity: Identity, role: Role) -> None:
        self._roles[identity] = role

    def task_history(self, task_id: int) -> list[WorkflowTransition]:
        workflow = self._workflows.get(task_id)
        return list(workflow.history) if workflow else []

    # --- Clients ---

    async def get_all_clients(self, caller):
        await self._begin(caller, Operation.GET_ALL_CLIENTS)
        return sorted(self._clients.values(), key=lambda c: c.id)

    async def get_all_clients_sorted(self, caller, sort_by):
        op = Operation.GET_ALL_CLIENTS_SORTED
        await self._begin(caller, op)
        sort_key = parse_client_sort_key(sort_by)
        return self._sorted_clients(list(self._clients.values()), sort_key)

    async def get_clients_by_company(self, caller, company, sort_by):
        op = Operation.GET_CLIENTS_BY_COMPANY
        await self._begin(caller, op)
        if not isinstance(company, str) or not company.strip():
            raise InvalidArgument("company must be a non-empty string", operation=op.value)
        sort_key = parse_client_sort_key(sort_by)
        wanted = company.strip().lower()
        matches = [c for c in self._clients.values() if c.company.lower() == wanted]
        return self._sorted_clients(matches, sort_key)

    @staticmethod
    def _sorted_clients(clients: list[Client], sort_key: Optional[ClientSortKey]) -> list[Client]:
        if sort_key is None:
            return sorted(clients, key=lambda c: c.id)
        return sorted(clients, key=_SORTS[sort_key])

    async def get_client(self, caller, client_id):
        op = Operation.GET_CLIENT
        await self._begin(caller, op)
        return self._client(client_id, op)

    async def create_client(self, caller, data: ClientCreate):
        op = Operation.CREATE_CLIENT
        await self._begin(caller, op)
        data = self._revalidate(ClientCreate, data, op)
        return self.seed_client(
            name=data.name,
            company=data.company,
            email=data.email,
            phone_number=data.phone_number,
            address=data.address,
        )

    # --- Tasks ---

    async def get_all_tasks(self, caller):
        await self._begin(caller, Operation.GET_ALL_TASKS)
        return sorted(self._tasks.values(), key=lambda t: t.id)

    async def get_task(self, caller, task_id):
        op = Operation.GET_TASK
        await self._begin(caller, op)
        return self._task(task_id, op)

    async def get_tasks_by_status(self, caller, status):
        await self._begin(caller, Operation.GET_TASKS_BY_STATUS)
        status = parse_task_status(status)
        return [t for t in self._all_tasks() if t.status == status]

    async def get_tasks_by_assignee(self, caller, assignee):
        op = Operation.GET_TASKS_BY_ASSIGNEE
        await self._begin(caller, op)
        validate_identity(assignee, op.value)
        return [t for t in self._all_tasks() if t.assignee == assignee]

    async def get_tasks_by_assignee_and_status(self, caller, assignee, status):
        op = Operation.GET_TASKS_BY_ASSIGNEE_AND_STATUS
        await self._begin(caller, op)
        validate_identity(assignee, op.value)
        status = parse_task_status(status)
        return [t for t in self._all_tasks() if t.assignee == assignee and t.status == status]

    async def get_tasks_by_due_date_range(self, caller, start, end):
        op = Operation.GET_TASKS_BY_DUE_DATE_RANGE
        await self._begin(caller, op)
        if start > end:
            raise InvalidArgument("start must not be after end", operation=op.value)
        return [t for t in self._all_tasks() if start <= t.due_date <= end]

    async def get_tasks_by_year(self, caller, year):
        op = Operation.GET_TASKS_BY_YEAR
        await self._begin(caller, op)
        validate_year(year, op.value)
        return [t for t in self._all_tasks() if year_of(t.due_date) == year]

    async def get_overdue_tasks(self, caller):
        await self._begin(caller, Operation.GET_OVERDUE_TASKS)
        now = self._clock()
        return [
            t for t in self._all_tasks()
            if t.due_date < now and t.status != TaskStatus.COMPLETED
        ]

    async def get_task_status_count(self, caller):
        await self._begin(caller, Operation.GET_TASK_STATUS_COUNT)
        counts = Counter(t.status for t in self._tasks.values())
        return [(status, counts.get(status, 0)) for status in TaskStatus]

    async def create_task(self, caller, data: TaskCreate):
        op = Operation.CREATE_TASK
        await self._begin(caller, op)
        data = self._revalidate(TaskCreate, data, op)
        return self.seed_task(
            assignee=data.assignee,
            title=data.title,
            description=data.description,
            due_date=data.due_date,
            project_id=data.project_id,
        )

    async def update_task_status(self, caller, task_id, status):
        op = Operation.UPDATE_TASK_STATUS
        role = await self._begin(caller, op)
        status = parse_task_status(status)
        task = self._task(task_id, op)

        decision = check_permission(role, op, OwnershipContext.for_task(caller, task))
        if not decision.passed:
            raise Unauthorized(decision.message, operation=op.value)

        # Off-path transitions are recorded, not refused
        self._workflows.setdefault(task.id, track_task(task)).transition(status, actor=caller)
        self._tasks[task.id] = task.model_copy(update={"status": status})

    def _all_tasks(self) -> list[Task]:
        return sorted(self._tasks.values(), key=lambda t: t.id)

    # --- Proposals ---

    async def get_proposal(self, caller, proposal_id):
        op = Operation.GET_PROPOSAL
        await self._begin(caller, op)
        return self._proposal(proposal_id, op)

    async def get_proposals_by_client(self, caller, client_id):
        op = Operation.GET_PROPOSALS_BY_CLIENT
        await self._begin(caller, op)
        self._client(client_id, op)
        return [p for p in self._all_proposals() if p.client_id == client_id]

    async def get_proposals_by_status(self, caller, status):
        await self._begin(caller, Operation.GET_PROPOSALS_BY_STATUS)
        status = parse_proposal_status(status)
        return [p for p in self._all_proposals() if p.status == status]

    async def get_proposals_by_client_and_status(self, caller, client_id, status):
        op = Operation.GET_PROPOSALS_BY_CLIENT_AND_STATUS
        await self._begin(caller, op)
        status = parse_proposal_status(status)
        self._client(client_id, op)
        return [
            p for p in self._all_proposals()
            if p.client_id == client_id and p.status == status
        ]

    async def create_proposal(self, caller, data: ProposalCreate):
        op = Operation.CREATE_PROPOSAL
        await self._begin(caller, op)
        data = self._revalidate(ProposalCreate, data, op)
        self._client(data.client_id, op)
        return self.seed_proposal(
            client_id=data.client_id,
            title=data.title,
            description=data.description,
            value=data.value,
        )

    async def set_proposal_status(self, caller, proposal_id, status):
        op = Operation.SET_PROPOSAL_STATUS
        await self._begin(caller, op)
        status = parse_proposal_status(status)
        proposal = self._proposal(proposal_id, op)
        self._proposals[proposal.id] = proposal.model_copy(update={"status": status})

    def _all_proposals(self) -> list[Proposal]:
        return sorted(self._proposals.values(), key=lambda p: p.id)

    # --- Identity ---

    async def get_caller_user_profile(self, caller):
        await self._begin(caller, Operation.GET_CALLER_USER_PROFILE)
        return self._profiles.get(caller)

    async def get_user_profile(self, caller, user):
        op = Operation.GET_USER_PROFILE
        await self._begin(caller, op)
        validate_identity(user, op.value)
        return self._profiles.get(user)

    async def save_caller_user_profile(self, caller, profile: UserProfile):
        op = Operation.SAVE_CALLER_USER_PROFILE
        await self._begin(caller, op)
        profile = validate_input(UserProfile, op.value, **profile.model_dump())
        self._profiles[caller] = profile

    async def get_caller_user_role(self, caller):
        await self._begin(caller, Operation.GET_CALLER_USER_ROLE)
        return self.role_of(caller)

    async def is_caller_admin(self, caller):
        await self._begin(caller, Operation.IS_CALLER_ADMIN)
        return self.role_of(caller) == Role.ADMIN

    async def assign_caller_user_role(self, caller, user, role):
        op = Operation.ASSIGN_CALLER_USER_ROLE
        await self._begin(caller, op)
        validate_identity(user, op.value)
        self._roles[user] = parse_role(role)
