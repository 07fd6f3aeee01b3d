"""
Fire-and-forget partition writes.

The session mutates its lists synchronously and hands a snapshot to the
BackgroundWriter, which saves it on a worker thread. A failed save is logged
and counted; it is never retried and never reverts the session.
"""

import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .interfaces import PartitionStore
from .logging_config import get_logger
from .models import Item, PartitionKey


class BackgroundWriter:
    """
    Submits whole-partition snapshots to a store without blocking the caller.

    Thread Safety: submit() is meant to be called from the single thread that
    drives the session. Completion callbacks run on worker threads and only
    touch the counters, under a lock.
    """

    def __init__(self, store: PartitionStore, max_workers: int = 1):
        """
        Initialize background writer.

        Args:
            store: Store that receives the snapshots
            max_workers: Worker threads for saves; 0 saves inline on the caller's thread
        """
        if max_workers < 0:
            raise ValueError(f"max_workers must be non-negative, got {max_workers}")

        self.store: PartitionStore = store
        self.max_workers: int = max_workers
        self._executor: ThreadPoolExecutor | None = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="partition-writer")
            if max_workers > 0
            else None
        )
        self._pending = set[Future[bool]]()
        self._lock: threading.Lock = threading.Lock()

        self.issued_writes: int = 0
        self.completed_writes: int = 0
        self.failed_writes: int = 0

        self.logger: Logger = get_logger("background_writer")

    def submit(
        self, key: PartitionKey, ranked: Sequence[Item], unranked: Sequence[Item]
    ) -> Future[bool]:
        """
        Queue a save of both lists for a partition.

        The lists are copied item by item before returning, so later
        mutations of the live session never leak into this snapshot.
        """
        ranked_snapshot = [replace(item) for item in ranked]
        unranked_snapshot = [replace(item) for item in unranked]
        self.issued_writes += 1
        self.logger.debug(
            f"Submitting write #{self.issued_writes} for {key}: {len(ranked_snapshot)} ranked, {len(unranked_snapshot)} unranked"
        )

        if self._executor is None:
            future = Future[bool]()
            try:
                future.set_result(self.store.save_partition(key, ranked_snapshot, unranked_snapshot))
            except Exception as e:
                future.set_exception(e)
            self._on_done(key, future)
            return future

        future = self._executor.submit(self.store.save_partition, key, ranked_snapshot, unranked_snapshot)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(lambda f: self._on_done(key, f))
        return future

    def _on_done(self, key: PartitionKey, future: Future[bool]) -> None:
        """Record the outcome of one save."""
        with self._lock:
            self._pending.discard(future)
            error = future.exception()
            if error is None and future.result():
                self.completed_writes += 1
                succeeded = True
            else:
                self.failed_writes += 1
                succeeded = False

        if succeeded:
            self.logger.debug(f"Write for {key} completed")
        elif error is not None:
            self.logger.error(f"Write for {key} failed, in-memory state kept: {type(error).__name__}: {error}")
        else:
            self.logger.error(f"Write for {key} was rejected by the store, in-memory state kept")

    @property
    def pending_writes(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait for every write submitted so far.

        Returns:
            True if nothing is left pending
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            self.logger.warning(f"{len(not_done)} writes still pending after flush timeout")
        return not not_done

    def close(self) -> None:
        """Drain outstanding writes and stop the worker threads."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        self.logger.info(
            f"Writer closed: {self.issued_writes} issued, {self.completed_writes} completed, {self.failed_writes} failed"
        )
