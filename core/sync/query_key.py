"""
Query keys — deterministic identity for cacheable reads.

A key is the (operation, params, identity) tuple of a read. Identity is
only set for caller-scoped reads, so two callers never share a cached
"my profile" result while shared reads stay shared.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any
import hashlib
import json


def _normalize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return tuple(_normalize(v) for v in value)
    return value


@dataclass(frozen=True)
class QueryKey:
    """Hashable identity of a cached query."""
    operation: str
    params: tuple = ()
    identity: str | None = None

    @property
    def is_caller_scoped(self) -> bool:
        return self.identity is not None

    def fingerprint(self) -> str:
        """Short stable digest, handy for logs."""
        data = json.dumps(
            {"op": self.operation, "params": self.params, "identity": self.identity},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(data.encode()).hexdigest()[:12]

    def __str__(self) -> str:
        args = ", ".join(repr(p) for p in self.params)
        scope = f" @{self.identity}" if self.identity else ""
        return f"{self.operation}({args}){scope}"


def make_query_key(operation: Any, *params: Any, identity: str | None = None) -> QueryKey:
    """
    Build a query key. Enum operations and params are reduced to their
    wire values so equal reads always produce equal keys.
    """
    return QueryKey(
        operation=_normalize(operation),
        params=tuple(_normalize(p) for p in params),
        identity=identity,
    )
