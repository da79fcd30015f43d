"""Pure-function rules engine pattern.

Rules are stateless functions: (subject, context) -> RuleResult.
No store access, no side effects. That keeps them trivially testable
and lets a view ask "would this be allowed?" without a round-trip.

Example domain: role-based permissions for dashboard operations.
"""

from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class RuleResult:
    """Outcome of a single rule evaluation."""

    passed: bool
    rule_name: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleSetResult:
    """Aggregate outcome of multiple rules."""

    all_passed: bool
    results: list[RuleResult]
    failed: list[RuleResult] = field(default_factory=list)

    def __post_init__(self):
        self.failed = [r for r in self.results if not r.passed]
        self.all_passed = len(self.failed) == 0

    @property
    def messages(self) -> list[str]:
        return [r.message for r in self.failed]


# ---------------------------------------------------------------------------
# Rule composition
# ---------------------------------------------------------------------------

def evaluate_rules(*rules: RuleResult) -> RuleSetResult:
    """Compose multiple rule results into a single aggregate.

    Example::

        result = evaluate_rules(
            check_permission(role, Operation.UPDATE_TASK_STATUS, ownership),
            check_permission(role, Operation.GET_ALL_TASKS),
        )
        if result.all_passed:
            enable_status_buttons()
    """
    return RuleSetResult(
        all_passed=all(r.passed for r in rules),
        results=list(rules),
    )
