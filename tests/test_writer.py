"""
Tests for the single-writer snapshot queue
"""

import asyncio
import pytest
from unittest.mock import Mock

from gomarket.cart import SnapshotWriter
from gomarket.db import MemoryStorage
from gomarket.errors import CartStoreError, StorageError


class SlowStorage(MemoryStorage):
    """Memory storage whose earlier writes take longer to land."""

    def __init__(self):
        super().__init__()
        self.writes = []
        self.delays = [0.05, 0.01, 0.0]

    async def set(self, key, value):
        delay = self.delays.pop(0) if self.delays else 0
        await asyncio.sleep(delay)
        self.writes.append(value)
        await super().set(key, value)


@pytest.mark.asyncio
async def test_writes_land_in_submission_order():
    storage = SlowStorage()
    writer = SnapshotWriter(storage, "k", backoff_max=0)

    for snapshot in ("one", "two", "three"):
        writer.submit(snapshot)
        # Let the worker pick each snapshot up before the next arrives
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    await writer.flush()

    assert await storage.get("k") == "three"
    assert storage.writes[-1] == "three"
    assert storage.writes == sorted(storage.writes, key=["one", "two", "three"].index)
    await writer.close()


@pytest.mark.asyncio
async def test_pending_snapshots_are_coalesced():
    storage = MemoryStorage()
    results = []
    writer = SnapshotWriter(storage, "k", on_result=results.append)

    writer.submit("a")
    writer.submit("b")
    writer.submit("c")
    await writer.flush()

    assert await storage.get("k") == "c"
    assert len(results) == 1
    assert results[0].skipped == 2
    assert writer.pending == 0
    await writer.close()


@pytest.mark.asyncio
async def test_unexpected_error_not_retried(mock_storage):
    mock_storage.set.side_effect = RuntimeError("boom")
    writer = SnapshotWriter(mock_storage, "k", attempts=5, backoff_max=0)

    writer.submit("a")
    await writer.flush()

    assert mock_storage.set.await_count == 1
    assert writer.last_result.ok is False
    assert isinstance(writer.last_result.error, RuntimeError)
    await writer.close()


@pytest.mark.asyncio
async def test_worker_survives_failures(mock_storage):
    mock_storage.set.side_effect = [StorageError("down"), None]
    writer = SnapshotWriter(mock_storage, "k", attempts=1, backoff_max=0)

    writer.submit("a")
    await writer.flush()
    assert writer.last_result.ok is False

    writer.submit("b")
    await writer.flush()
    assert writer.last_result.ok is True
    await writer.close()


@pytest.mark.asyncio
async def test_failing_result_handler_is_contained():
    writer = SnapshotWriter(MemoryStorage(), "k", on_result=Mock(side_effect=ValueError("bad hook")))

    writer.submit("a")
    await writer.flush()

    assert writer.last_result.ok
    await writer.close()


@pytest.mark.asyncio
async def test_submit_after_close_rejected():
    writer = SnapshotWriter(MemoryStorage(), "k")
    await writer.close()

    assert writer.closed
    with pytest.raises(CartStoreError):
        writer.submit("a")


@pytest.mark.asyncio
async def test_flush_without_writes_returns():
    writer = SnapshotWriter(MemoryStorage(), "k")

    await writer.flush()

    assert writer.last_result is None
