"""Pydantic models for the consultancy domain.

Entities mirror what the authoritative store returns (camelCase on the
wire, snake_case in Python). Input models validate command arguments
before anything is sent, so malformed input never reaches the store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.errors import InvalidArgument, InvalidStatus
from core.models.base import DomainModel

Identity = str

InputT = TypeVar("InputT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    REJECTED = "rejected"
    ACCEPTED = "accepted"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class ClientSortKey(str, Enum):
    NAME = "name"
    COMPANY = "company"
    CREATED_AT = "createdAt"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class Client(DomainModel):
    id: int = Field(..., ge=0)
    name: str
    company: str
    email: str
    phone_number: str = Field("", alias="phoneNumber")
    address: str = ""
    created_at: int = Field(..., alias="createdAt")


class Task(DomainModel):
    id: int = Field(..., ge=0)
    title: str
    description: str = ""
    assignee: Identity
    status: TaskStatus
    created_at: int = Field(..., alias="createdAt")
    due_date: int = Field(..., alias="dueDate")
    project_id: Optional[int] = Field(None, alias="projectId")


class Proposal(DomainModel):
    id: int = Field(..., ge=0)
    title: str
    description: str = ""
    client_id: int = Field(..., alias="clientId")
    value: int = Field(..., ge=0)
    status: ProposalStatus
    created_at: int = Field(..., alias="createdAt")


class UserProfile(DomainModel):
    name: str = Field(..., min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Command inputs
# ---------------------------------------------------------------------------

class _Input(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class TaskCreate(_Input):
    assignee: Identity = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    due_date: int = Field(..., ge=0)
    project_id: Optional[int] = Field(None, ge=0)


class ProposalCreate(_Input):
    client_id: int = Field(..., ge=0)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    value: int = Field(..., ge=0)


class ClientCreate(_Input):
    name: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    phone_number: str = ""
    address: str = ""


class DateRange(_Input):
    """Inclusive nanosecond range."""

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def validate_input(model: Type[InputT], operation: Optional[str] = None, **data: Any) -> InputT:
    """Build an input model, turning pydantic failures into InvalidArgument."""
    try:
        return model(**data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidArgument(problems, operation=operation) from exc


def validate_identity(identity: Any, operation: Optional[str] = None) -> Identity:
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidArgument("identity must be a non-empty string", operation=operation)
    return identity


def validate_id(value: Any, name: str = "id", operation: Optional[str] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative integer", operation=operation)
    return value


def validate_year(year: Any, operation: Optional[str] = None) -> int:
    if isinstance(year, bool) or not isinstance(year, int) or not 1970 <= year <= 9999:
        raise InvalidArgument(f"year out of range: {year!r}", operation=operation)
    return year


def _parse_enum(enum_cls: Type[Enum], value: Any, label: str, error: Type[InvalidArgument]):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise error(f"Unrecognized {label} {value!r}. Allowed: {allowed}") from None


def parse_task_status(value: Union[TaskStatus, str]) -> TaskStatus:
    return _parse_enum(TaskStatus, value, "task status", InvalidStatus)


def parse_proposal_status(value: Union[ProposalStatus, str]) -> ProposalStatus:
    return _parse_enum(ProposalStatus, value, "proposal status", InvalidStatus)


def parse_role(value: Union[Role, str]) -> Role:
    return _parse_enum(Role, value, "role", InvalidArgument)


def parse_client_sort_key(value: Union[ClientSortKey, str, None]) -> Optional[ClientSortKey]:
    """None means "no sort"; anything unrecognized is an error, never a fallback."""
    if value is None:
        return None
    return _parse_enum(ClientSortKey, value, "sort key", InvalidArgument)


def year_of(timestamp_ns: int) -> int:
    """UTC calendar year of a nanosecond timestamp."""
    return datetime.fromtimestamp(timestamp_ns // 1_000_000_000, tz=timezone.utc).year
