from __future__ import annotations

import asyncio

import pytest

from fleetview.exceptions import FleetConnectionError
from fleetview.state.stream import SnapshotStream


@pytest.mark.asyncio
async def test_newer_snapshot_replaces_undelivered_one() -> None:
    stream = SnapshotStream("owner")

    stream.publish([{"id": "a"}])
    stream.publish([{"id": "b"}])

    assert await stream.__anext__() == [{"id": "b"}]
    assert stream.superseded == 1
    assert stream.delivered == 1


@pytest.mark.asyncio
async def test_consumer_waits_for_next_snapshot() -> None:
    stream = SnapshotStream("owner")

    waiter = asyncio.create_task(stream.__anext__())
    await asyncio.sleep(0)
    assert not waiter.done()

    stream.publish([])
    assert await asyncio.wait_for(waiter, timeout=1.0) == []


@pytest.mark.asyncio
async def test_close_drops_pending_and_ends_iteration() -> None:
    released: list[SnapshotStream] = []
    stream = SnapshotStream("owner", on_close=released.append)

    stream.publish([{"id": "a"}])
    stream.close()
    stream.close()

    assert stream.publish([{"id": "b"}]) is False
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert released == [stream]


@pytest.mark.asyncio
async def test_close_wakes_blocked_consumer() -> None:
    stream = SnapshotStream("owner")
    received: list[object] = []

    async def consume() -> None:
        async for snapshot in stream:
            received.append(snapshot)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    stream.close()

    await asyncio.wait_for(task, timeout=1.0)
    assert received == []


@pytest.mark.asyncio
async def test_fail_raises_connection_error_after_pending_snapshot() -> None:
    stream = SnapshotStream("owner")
    stream.publish([{"id": "a"}])
    stream.fail(OSError("socket closed"))

    assert await stream.__anext__() == [{"id": "a"}]
    with pytest.raises(FleetConnectionError) as excinfo:
        await stream.__anext__()
    assert isinstance(excinfo.value.__cause__, OSError)
    assert stream.closed
