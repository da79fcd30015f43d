"""Remote access contract of the authoritative store.

Every operation is a named remote procedure taking a fixed argument tuple.
Queries are side-effect free and safe to cache; commands mutate and are
never cached. The caller identity travels with every call (None when no
identity has been established), and each operation may fail with:

- Unauthenticated: no caller identity
- Unauthorized: the caller's role or ownership denies it
- NotFound: a referenced id does not exist
- InvalidArgument: malformed input
- RemoteUnavailable: the store could not be reached
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

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
)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

class OperationKind(str, Enum):
    QUERY = "query"
    COMMAND = "command"


class Operation(str, Enum):
    """Named remote procedures. Values are the wire names."""

    # Clients
    GET_ALL_CLIENTS = "getAllClients"
    GET_ALL_CLIENTS_SORTED = "getAllClientsSorted"
    GET_CLIENTS_BY_COMPANY = "getClientsByCompany"
    GET_CLIENT = "getClient"
    CREATE_CLIENT = "createClient"

    # Tasks
    GET_ALL_TASKS = "getAllTasks"
    GET_TASK = "getTask"
    GET_TASKS_BY_STATUS = "getTasksByStatus"
    GET_TASKS_BY_ASSIGNEE = "getTasksByAssignee"
    GET_TASKS_BY_ASSIGNEE_AND_STATUS = "getTasksByAssigneeAndStatus"
    GET_TASKS_BY_DUE_DATE_RANGE = "getTasksByDueDateRange"
    GET_TASKS_BY_YEAR = "getTasksByYear"
    GET_OVERDUE_TASKS = "getOverdueTasks"
    GET_TASK_STATUS_COUNT = "getTaskStatusCount"
    CREATE_TASK = "createTask"
    UPDATE_TASK_STATUS = "updateTaskStatus"

    # Proposals
    GET_PROPOSAL = "getProposal"
    GET_PROPOSALS_BY_CLIENT = "getProposalsByClient"
    GET_PROPOSALS_BY_STATUS = "getProposalsByStatus"
    GET_PROPOSALS_BY_CLIENT_AND_STATUS = "getProposalsByClientAndStatus"
    CREATE_PROPOSAL = "createProposal"
    SET_PROPOSAL_STATUS = "setProposalStatus"

    # Identity
    GET_CALLER_USER_PROFILE = "getCallerUserProfile"
    GET_USER_PROFILE = "getUserProfile"
    SAVE_CALLER_USER_PROFILE = "saveCallerUserProfile"
    GET_CALLER_USER_ROLE = "getCallerUserRole"
    IS_CALLER_ADMIN = "isCallerAdmin"
    ASSIGN_CALLER_USER_ROLE = "assignCallerUserRole"

    @property
    def kind(self) -> OperationKind:
        return OperationKind.COMMAND if self in COMMANDS else OperationKind.QUERY

    @property
    def is_query(self) -> bool:
        return self.kind == OperationKind.QUERY


COMMANDS: frozenset = frozenset({
    Operation.CREATE_CLIENT,
    Operation.CREATE_TASK,
    Operation.UPDATE_TASK_STATUS,
    Operation.CREATE_PROPOSAL,
    Operation.SET_PROPOSAL_STATUS,
    Operation.SAVE_CALLER_USER_PROFILE,
    Operation.ASSIGN_CALLER_USER_ROLE,
})

QUERIES: frozenset = frozenset(op for op in Operation if op not in COMMANDS)


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------

class RemoteStore(ABC):
    """The authoritative store as seen from the dashboard core.

    Arguments arrive already validated by the caller; implementations
    still validate independently, since they are the authority.
    """

    # -- Clients --

    @abstractmethod
    async def get_all_clients(self, caller: Optional[Identity]) -> list[Client]: ...

    @abstractmethod
    async def get_all_clients_sorted(
        self, caller: Optional[Identity], sort_by: Optional[ClientSortKey]
    ) -> list[Client]: ...

    @abstractmethod
    async def get_clients_by_company(
        self, caller: Optional[Identity], company: str, sort_by: Optional[ClientSortKey]
    ) -> list[Client]: ...

    @abstractmethod
    async def get_client(self, caller: Optional[Identity], client_id: int) -> Client: ...

    @abstractmethod
    async def create_client(self, caller: Optional[Identity], data: ClientCreate) -> Client: ...

    # -- Tasks --

    @abstractmethod
    async def get_all_tasks(self, caller: Optional[Identity]) -> list[Task]: ...

    @abstractmethod
    async def get_task(self, caller: Optional[Identity], task_id: int) -> Task: ...

    @abstractmethod
    async def get_tasks_by_status(
        self, caller: Optional[Identity], status: TaskStatus
    ) -> list[Task]: ...

    @abstractmethod
    async def get_tasks_by_assignee(
        self, caller: Optional[Identity], assignee: Identity
    ) -> list[Task]: ...

    @abstractmethod
    async def get_tasks_by_assignee_and_status(
        self, caller: Optional[Identity], assignee: Identity, status: TaskStatus
    ) -> list[Task]: ...

    @abstractmethod
    async def get_tasks_by_due_date_range(
        self, caller: Optional[Identity], start: int, end: int
    ) -> list[Task]: ...

    @abstractmethod
    async def get_tasks_by_year(self, caller: Optional[Identity], year: int) -> list[Task]: ...

    @abstractmethod
    async def get_overdue_tasks(self, caller: Optional[Identity]) -> list[Task]: ...

    @abstractmethod
    async def get_task_status_count(
        self, caller: Optional[Identity]
    ) -> list[tuple[TaskStatus, int]]: ...

    @abstractmethod
    async def create_task(self, caller: Optional[Identity], data: TaskCreate) -> Task: ...

    @abstractmethod
    async def update_task_status(
        self, caller: Optional[Identity], task_id: int, status: TaskStatus
    ) -> None: ...

    # -- Proposals --

    @abstractmethod
    async def get_proposal(self, caller: Optional[Identity], proposal_id: int) -> Proposal: ...

    @abstractmethod
    async def get_proposals_by_client(
        self, caller: Optional[Identity], client_id: int
    ) -> list[Proposal]: ...

    @abstractmethod
    async def get_proposals_by_status(
        self, caller: Optional[Identity], status: ProposalStatus
    ) -> list[Proposal]: ...

    @abstractmethod
    async def get_proposals_by_client_and_status(
        self, caller: Optional[Identity], client_id: int, status: ProposalStatus
    ) -> list[Proposal]: ...

    @abstractmethod
    async def create_proposal(
        self, caller: Optional[Identity], data: ProposalCreate
    ) -> Proposal: ...

    @abstractmethod
    async def set_proposal_status(
        self, caller: Optional[Identity], proposal_id: int, status: ProposalStatus
    ) -> None: ...

    # -- Identity --

    @abstractmethod
    async def get_caller_user_profile(
        self, caller: Optional[Identity]
    ) -> Optional[UserProfile]: ...

    @abstractmethod
    async def get_user_profile(
        self, caller: Optional[Identity], user: Identity
    ) -> Optional[UserProfile]: ...

    @abstractmethod
    async def save_caller_user_profile(
        self, caller: Optional[Identity], profile: UserProfile
    ) -> None: ...

    @abstractmethod
    async def get_caller_user_role(self, caller: Optional[Identity]) -> Role: ...

    @abstractmethod
    async def is_caller_admin(self, caller: Optional[Identity]) -> bool: ...

    @abstractmethod
    async def assign_caller_user_role(
        self, caller: Optional[Identity], user: Identity, role: Role
    ) -> None: ...
