"""Consultancy domain models."""

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
    year_of,
)

__all__ = [
    "Client",
    "ClientCreate",
    "ClientSortKey",
    "DateRange",
    "Identity",
    "Proposal",
    "ProposalCreate",
    "ProposalStatus",
    "Role",
    "Task",
    "TaskCreate",
    "TaskStatus",
    "UserProfile",
    "parse_client_sort_key",
    "parse_proposal_status",
    "parse_role",
    "parse_task_status",
    "validate_id",
    "validate_identity",
    "validate_input",
    "validate_year",
    "year_of",
]
