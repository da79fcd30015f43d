"""Role-based authorization policy — pure functions.

(role, operation, ownership) -> RuleResult, answered from a static table
with no store round-trip. Views use it to hide or disable actions. It is
advisory: the store enforces the same rules and its Unauthorized answer
wins even when this policy predicted success.

| Role  | Permitted                                                        |
|-------|------------------------------------------------------------------|
| admin | everything, including role assignment and client creation        |
| user  | all queries; create tasks/proposals; update status of own tasks; |
|       | set proposal status; save own profile                            |
| guest | queries only                                                     |
"""

from dataclasses import dataclass
from typing import Optional

from patterns.rules_engine import RuleResult, RuleSetResult, evaluate_rules
from verticals.consultancy.contract import QUERIES, Operation
from verticals.consultancy.models.schemas import Identity, Role, Task


# ---------------------------------------------------------------------------
# Ownership context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OwnershipContext:
    """Who is asking, and who owns the entity being acted on."""

    caller: Optional[Identity]
    assignee: Optional[Identity] = None

    @property
    def is_owner(self) -> bool:
        return self.caller is not None and self.caller == self.assignee

    @classmethod
    def for_task(cls, caller: Optional[Identity], task: Task) -> "OwnershipContext":
        return cls(caller=caller, assignee=task.assignee)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

_PERMISSIONS: dict[Role, frozenset[Operation]] = {
    Role.ADMIN: frozenset(Operation),
    Role.USER: QUERIES | {
        Operation.CREATE_TASK,
        Operation.CREATE_PROPOSAL,
        Operation.UPDATE_TASK_STATUS,
        Operation.SET_PROPOSAL_STATUS,
        Operation.SAVE_CALLER_USER_PROFILE,
    },
    Role.GUEST: QUERIES,
}

# Operations a role may only perform on entities assigned to the caller
_OWNERSHIP_REQUIRED: dict[Role, frozenset[Operation]] = {
    Role.USER: frozenset({Operation.UPDATE_TASK_STATUS}),
}


def permitted_operations(role: Role) -> frozenset[Operation]:
    """Everything `role` may attempt, ownership permitting."""
    return _PERMISSIONS.get(role, frozenset())


def requires_ownership(role: Role, operation: Operation) -> bool:
    return operation in _OWNERSHIP_REQUIRED.get(role, frozenset())


def check_permission(
    role: Optional[Role],
    operation: Operation,
    ownership: Optional[OwnershipContext] = None,
) -> RuleResult:
    """Decide whether `role` may perform `operation`.

    A role that needs ownership is denied when no ownership context is
    given, since the policy cannot vouch for it.
    """
    details = {
        "role": role.value if role else None,
        "operation": operation.value,
    }

    if role is None:
        return RuleResult(
            passed=False,
            rule_name="permission",
            message="No role: caller is not authenticated",
            details=details,
        )

    if operation not in permitted_operations(role):
        return RuleResult(
            passed=False,
            rule_name="permission",
            message=f"Role {role.value} may not perform {operation.value}",
            details=details,
        )

    if requires_ownership(role, operation):
        is_owner = ownership is not None and ownership.is_owner
        details["is_owner"] = is_owner
        if not is_owner:
            return RuleResult(
                passed=False,
                rule_name="permission",
                message=f"Role {role.value} may only {operation.value} on its own tasks",
                details=details,
            )

    return RuleResult(
        passed=True,
        rule_name="permission",
        message=f"Role {role.value} may perform {operation.value}",
        details=details,
    )


def is_permitted(
    role: Optional[Role],
    operation: Operation,
    ownership: Optional[OwnershipContext] = None,
) -> bool:
    return check_permission(role, operation, ownership).passed


def check_all(
    role: Optional[Role],
    *operations: Operation,
    ownership: Optional[OwnershipContext] = None,
) -> RuleSetResult:
    """Evaluate several operations at once, e.g. for a view's action bar."""
    return evaluate_rules(*(check_permission(role, op, ownership) for op in operations))
