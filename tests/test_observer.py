"""Test that a view only applies results of its latest request."""
import asyncio

import pytest

from core.errors import NotFound, RemoteUnavailable
from core.sync import ObserverClosed, QueryCache, QueryObserver, make_query_key


def _slow(value, release: asyncio.Event):
    async def fetch():
        await release.wait()
        if isinstance(value, Exception):
            raise value
        return value
    return fetch


@pytest.mark.asyncio
async def test_late_response_for_old_params_is_discarded():
    cache = QueryCache()
    observer = QueryObserver(cache)
    slow_release = asyncio.Event()
    fast_release = asyncio.Event()
    fast_release.set()

    pending_key = make_query_key("getTasksByStatus", "pending")
    completed_key = make_query_key("getTasksByStatus", "completed")

    first = asyncio.ensure_future(
        observer.observe(pending_key, _slow(["pending-task"], slow_release))
    )
    await asyncio.sleep(0)
    assert await observer.observe(completed_key, _slow(["done-task"], fast_release))

    slow_release.set()
    assert await first is False
    assert observer.data == ["done-task"]
    assert observer.key == completed_key
    assert observer.discarded == 1
    # The cache still keeps the late result for whoever asks for that key.
    assert cache.peek(pending_key) == ["pending-task"]


@pytest.mark.asyncio
async def test_superseded_failure_is_silent():
    cache = QueryCache()
    observer = QueryObserver(cache)
    release = asyncio.Event()
    ready = asyncio.Event()
    ready.set()

    first = asyncio.ensure_future(
        observer.observe(make_query_key("getProposalsByClient", 1), _slow(NotFound("gone"), release))
    )
    await asyncio.sleep(0)
    await observer.observe(make_query_key("getProposalsByClient", 2), _slow(["p2"], ready))

    release.set()
    assert await first is False
    assert observer.error is None
    assert observer.data == ["p2"]


@pytest.mark.asyncio
async def test_current_failure_is_recorded_and_raised():
    observer = QueryObserver(QueryCache())
    ready = asyncio.Event()
    ready.set()

    with pytest.raises(RemoteUnavailable):
        await observer.observe(make_query_key("getAllTasks"), _slow(RemoteUnavailable("down"), ready))
    assert isinstance(observer.error, RemoteUnavailable)


@pytest.mark.asyncio
async def test_close_drops_in_flight_result():
    observer = QueryObserver(QueryCache())
    release = asyncio.Event()

    pending = asyncio.ensure_future(
        observer.observe(make_query_key("getAllClients"), _slow(["c"], release))
    )
    await asyncio.sleep(0)
    observer.close()
    release.set()

    assert await pending is False
    assert observer.data is None
    assert observer.closed
    with pytest.raises(ObserverClosed):
        await observer.observe(make_query_key("getAllClients"), _slow([], release))
