"""Shared fixtures: a seeded in-memory store and dashboard clients."""
import pytest

from core.sync import QueryCache
from verticals.consultancy.memory_store import InMemoryStore
from verticals.consultancy.models.schemas import Role, TaskStatus
from verticals.consultancy.synchronizer import DashboardClient

NOW = 1_700_000_000_000_000_000  # 2023-11-14T22:13:20Z in ns
HOUR = 3_600_000_000_000


@pytest.fixture
def store():
    store = InMemoryStore(admin="admin", default_role=Role.GUEST, clock=lambda: NOW)
    store.set_role("alice", Role.USER)
    store.set_role("bob", Role.USER)

    acme = store.seed_client("Ada", "Acme", "ada@acme.test")
    globex = store.seed_client("Hank", "Globex", "hank@globex.test")

    store.seed_task("alice", "Draft report", due_date=NOW - HOUR)
    store.seed_task("alice", "Review budget", due_date=NOW + HOUR, status=TaskStatus.IN_PROGRESS)
    store.seed_task("bob", "Client call", due_date=NOW - HOUR, status=TaskStatus.COMPLETED)

    store.seed_proposal(acme.id, "Audit", 50_000)
    store.seed_proposal(globex.id, "Migration", 120_000)
    return store


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def alice(store, cache):
    return DashboardClient(store, "alice", cache, clock=lambda: NOW)


@pytest.fixture
def admin(store, cache):
    return DashboardClient(store, "admin", cache, clock=lambda: NOW)
