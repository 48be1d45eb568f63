"""
Snapshot Writer - Single-Writer Persistence Queue

Serializes cart snapshot writes for one store:
- One worker task drains a FIFO queue, so the last snapshot enqueued is
  the last one to land in storage
- Snapshots superseded while waiting in the queue are skipped
- Storage failures are retried with exponential backoff (tenacity)
- Every write produces a PersistResult handed to the on_result callback
"""

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gomarket import config
from gomarket.db import KeyValueStorage
from gomarket.errors import ERROR_CLOSED, CartStoreError, StorageError
from gomarket.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PersistResult:
    """Outcome of one snapshot write."""
    ok: bool
    attempts: int
    error: Optional[BaseException] = None
    snapshot_size: int = 0
    skipped: int = 0


class SnapshotWriter:
    """Writes snapshots to a single storage key, one at a time, in order."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        *,
        attempts: Optional[int] = None,
        backoff_max: Optional[float] = None,
        on_result: Optional[Callable[[PersistResult], None]] = None,
    ) -> None:
        self.storage = storage
        self.key = key
        self.attempts = max(1, attempts if attempts is not None else config.CART_PERSIST_ATTEMPTS)
        self.backoff_max = backoff_max if backoff_max is not None else config.CART_PERSIST_BACKOFF_MAX
        self.on_result = on_result
        self.last_result: Optional[PersistResult] = None

        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of snapshots enqueued but not yet processed."""
        return self._queue.qsize()

    def submit(self, snapshot: str) -> None:
        """Enqueue a snapshot. Returns immediately; must run inside an event loop."""
        if self._closed:
            raise CartStoreError(ERROR_CLOSED)
        self._ensure_worker()
        self._queue.put_nowait(snapshot)

    async def flush(self) -> None:
        """Wait until every enqueued snapshot has been processed."""
        if self._task is None:
            return
        await self._queue.join()

    async def close(self) -> None:
        """Flush pending writes and stop the worker."""
        if self._closed:
            return
        await self.flush()
        self._closed = True
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    def _ensure_worker(self) -> None:
        if self._task is None or self._task.done():
            loop = asyncio.get_running_loop()
            self._task = loop.create_task(self._run(), name=f"cart-writer:{self.key}")

    async def _run(self) -> None:
        while True:
            snapshot = await self._queue.get()
            skipped = 0
            # Only the newest pending snapshot matters
            while not self._queue.empty():
                snapshot = self._queue.get_nowait()
                skipped += 1

            try:
                result = await self._write(snapshot, skipped)
                self.last_result = result
                if self.on_result is not None:
                    try:
                        self.on_result(result)
                    except Exception as e:
                        logger.error(f"Persist result handler failed: {e}", exc_info=True)
            finally:
                for _ in range(skipped + 1):
                    self._queue.task_done()

    async def _write(self, snapshot: str, skipped: int) -> PersistResult:
        attempt_number = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_exponential(multiplier=0.1, max=self.backoff_max),
                retry=retry_if_exception_type(StorageError),
                reraise=True,
            ):
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    if attempt_number > 1:
                        logger.debug(f"Retrying snapshot write for {self.key} (attempt {attempt_number})")
                    await self.storage.set(self.key, snapshot)
        except Exception as e:
            logger.error(f"Failed to persist cart snapshot after {attempt_number} attempt(s): {e}")
            return PersistResult(
                ok=False,
                attempts=attempt_number,
                error=e,
                snapshot_size=len(snapshot),
                skipped=skipped,
            )

        logger.debug(f"Persisted cart snapshot ({len(snapshot)} bytes, skipped {skipped})")
        return PersistResult(ok=True, attempts=attempt_number, snapshot_size=len(snapshot), skipped=skipped)
