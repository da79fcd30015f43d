"""Test the query cache: dedup, invalidation and superseded responses."""
import asyncio

import pytest

from core.errors import RemoteUnavailable
from core.sync import EntryState, QueryCache, make_query_key


class Gate:
    """A fetcher that blocks until released and counts its calls."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0
        self.release = asyncio.Event()

    async def __call__(self):
        self.calls += 1
        value = self.values[min(self.calls, len(self.values)) - 1]
        await self.release.wait()
        if isinstance(value, Exception):
            raise value
        return value


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


def test_keys_are_value_equal():
    a = make_query_key("getTasksByYear", 2024)
    b = make_query_key("getTasksByYear", 2024)
    assert a == b
    assert hash(a) == hash(b)
    assert a.fingerprint() == b.fingerprint()
    assert make_query_key("getTasksByYear", 2025) != a
    assert make_query_key("getCallerUserProfile", identity="alice") != make_query_key(
        "getCallerUserProfile", identity="bob"
    )
    assert str(make_query_key("getTask", 3, identity="alice")) == "getTask(3) @alice"


@pytest.mark.asyncio
async def test_concurrent_reads_share_one_request():
    cache = QueryCache()
    key = make_query_key("getAllTasks")
    gate = Gate(["t1"])

    waiters = [asyncio.ensure_future(cache.fetch(key, gate, ["tasks"])) for _ in range(3)]
    await _settle()
    assert cache.state(key) == EntryState.LOADING
    assert cache.is_in_flight(key)

    gate.release.set()
    results = await asyncio.gather(*waiters)

    assert results == [["t1"]] * 3
    assert gate.calls == 1
    assert cache.state(key) == EntryState.FRESH


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_fetching():
    cache = QueryCache()
    key = make_query_key("getAllClients")
    gate = Gate(["c1"])
    gate.release.set()

    await cache.fetch(key, gate)
    assert await cache.fetch(key, gate) == ["c1"]
    assert gate.calls == 1


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_is_not_cached():
    cache = QueryCache()
    key = make_query_key("getAllTasks")
    gate = Gate(RemoteUnavailable("down"), ["t1"])

    waiters = [asyncio.ensure_future(cache.fetch(key, gate)) for _ in range(2)]
    await _settle()
    gate.release.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(r, RemoteUnavailable) for r in results)
    assert cache.state(key) == EntryState.ERROR
    assert isinstance(cache.entry(key).error, RemoteUnavailable)

    # The next access retries.
    assert await cache.fetch(key, gate) == ["t1"]
    assert gate.calls == 2
    assert cache.entry(key).error is None


@pytest.mark.asyncio
async def test_invalidate_tags_marks_dependents_stale():
    cache = QueryCache()
    tasks_key = make_query_key("getAllTasks")
    clients_key = make_query_key("getAllClients")
    cache.set_data(tasks_key, ["t"], ["tasks"])
    cache.set_data(clients_key, ["c"], ["clients"])

    touched = cache.invalidate_tags("tasks")

    assert touched == [tasks_key]
    assert cache.state(tasks_key) == EntryState.STALE
    assert cache.state(clients_key) == EntryState.FRESH
    assert cache.peek(tasks_key) == ["t"]
    assert cache.keys_for_tag("tasks") == {tasks_key}


@pytest.mark.asyncio
async def test_stale_entry_refetches_on_access():
    cache = QueryCache()
    key = make_query_key("getAllTasks")
    gate = Gate(["old"], ["new"])
    gate.release.set()

    await cache.fetch(key, gate, ["tasks"])
    cache.invalidate_tags("tasks")
    assert await cache.fetch(key, gate, ["tasks"]) == ["new"]
    assert gate.calls == 2
    assert cache.entry(key).fetch_count == 2


@pytest.mark.asyncio
async def test_invalidation_during_load_stores_result_as_stale():
    cache = QueryCache()
    key = make_query_key("getAllTasks")
    gate = Gate(["before-mutation"])

    waiter = asyncio.ensure_future(cache.fetch(key, gate, ["tasks"]))
    await _settle()
    assert cache.invalidate_tags("tasks") == [key]

    gate.release.set()
    assert await waiter == ["before-mutation"]
    assert cache.state(key) == EntryState.STALE


@pytest.mark.asyncio
async def test_set_data_supersedes_running_request():
    cache = QueryCache()
    key = make_query_key("getTask", 1)
    gate = Gate("from-old-request")

    waiter = asyncio.ensure_future(cache.fetch(key, gate))
    await _settle()
    cache.set_data(key, "confirmed")
    assert not cache.is_in_flight(key)

    gate.release.set()
    assert await waiter == "from-old-request"
    assert cache.peek(key) == "confirmed"
    assert cache.state(key) == EntryState.FRESH


@pytest.mark.asyncio
async def test_cancel_ignores_eventual_result():
    cache = QueryCache()
    key = make_query_key("getAllTasks")
    gate = Gate(["late"])

    waiter = asyncio.ensure_future(cache.fetch(key, gate))
    await _settle()
    assert cache.cancel(key)
    assert cache.state(key) == EntryState.IDLE

    gate.release.set()
    await waiter
    assert cache.peek(key) is None
    assert cache.state(key) == EntryState.IDLE
    assert not cache.cancel(key)


@pytest.mark.asyncio
async def test_superseded_failure_does_not_overwrite_entry():
    cache = QueryCache()
    key = make_query_key("getAllTasks")
    gate = Gate(RemoteUnavailable("late failure"))

    waiter = asyncio.ensure_future(cache.fetch(key, gate))
    await _settle()
    cache.set_data(key, ["confirmed"])

    gate.release.set()
    with pytest.raises(RemoteUnavailable):
        await waiter
    assert cache.state(key) == EntryState.FRESH
    assert cache.peek(key) == ["confirmed"]


@pytest.mark.asyncio
async def test_max_age_expires_fresh_entries():
    now = [100.0]
    cache = QueryCache(max_age_seconds=30, clock=lambda: now[0])
    key = make_query_key("getAllClients")
    cache.set_data(key, ["c"])

    now[0] += 29
    assert cache.state(key) == EntryState.FRESH
    now[0] += 2
    assert cache.state(key) == EntryState.STALE


@pytest.mark.asyncio
async def test_gc_and_stats():
    cache = QueryCache()
    loaded = make_query_key("getAllClients")
    failed = make_query_key("getAllTasks")
    cache.set_data(loaded, ["c"], ["clients"])

    async def boom():
        raise RemoteUnavailable("down")

    with pytest.raises(RemoteUnavailable):
        await cache.fetch(failed, boom, ["tasks"])

    stats = cache.get_stats()
    assert stats.total == 2
    assert stats.fresh == 1
    assert stats.error == 1
    assert stats.to_dict()["tags"] == {"clients": 1, "tasks": 1}

    assert cache.gc() == 1
    assert cache.keys() == [loaded]
    assert cache.keys_for_tag("tasks") == frozenset()


def test_remove_and_clear():
    cache = QueryCache()
    key = make_query_key("getAllClients")
    cache.set_data(key, [], ["clients"])
    assert cache.remove(key)
    assert not cache.remove(key)
    cache.set_data(key, [], ["clients"])
    cache.clear()
    assert cache.keys() == []
    assert cache.state(key) == EntryState.IDLE
