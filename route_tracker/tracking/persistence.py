"""Pending-point queue and the background worker that uploads it.

Sampled points are queued and flushed to storage off the fix-processing
thread. A failed batch goes back to the *front* of the queue so it is retried
before anything queued after it, keeping upload order equal to fix order.
"""

from __future__ import annotations

from collections import deque
import logging
import threading
from typing import Deque, List, Optional

from ..config import (
    FLUSH_BATCH_MAX_POINTS,
    FLUSH_RETRY_INTERVAL_S,
    FLUSH_STOP_TIMEOUT_S,
    PENDING_QUEUE_MAX_POINTS,
)
from ..errors import PersistenceFailure, StorageError
from ..models import TrackedPoint
from ..storage.base import RunStorage

LOGGER = logging.getLogger(__name__)


class PendingQueue:
    """Bounded FIFO of points awaiting upload.

    When full, the oldest points are dropped and counted in ``dropped``.
    """

    def __init__(self, max_points: int = PENDING_QUEUE_MAX_POINTS) -> None:
        if max_points < 1:
            raise ValueError("max_points must be >= 1")
        self._lock = threading.Lock()
        self._items: Deque[TrackedPoint] = deque()
        self._max_points = max_points
        self.dropped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def push(self, point: TrackedPoint) -> None:
        with self._lock:
            self._items.append(point)
            self._trim_locked()

    def take_batch(self, max_points: int = 0) -> List[TrackedPoint]:
        """Remove and return up to ``max_points`` from the front (0 = all)."""

        with self._lock:
            if max_points <= 0 or max_points >= len(self._items):
                batch = list(self._items)
                self._items.clear()
                return batch
            return [self._items.popleft() for _ in range(max_points)]

    def requeue_front(self, batch: List[TrackedPoint]) -> None:
        """Put a failed batch back ahead of newer points, preserving its order."""

        with self._lock:
            self._items.extendleft(reversed(batch))
            self._trim_locked()

    def pending(self) -> List[TrackedPoint]:
        with self._lock:
            return list(self._items)

    def _trim_locked(self) -> None:
        overflow = len(self._items) - self._max_points
        if overflow <= 0:
            return
        for _ in range(overflow):
            self._items.popleft()
        self.dropped += overflow
        LOGGER.warning(
            "Pending point queue full (%d); dropped %d oldest points",
            self._max_points,
            overflow,
        )


class PointFlusher:
    """Upload queued points for one run, retrying failed batches in order."""

    def __init__(
        self,
        storage: RunStorage,
        run_id: str,
        queue: Optional[PendingQueue] = None,
        *,
        batch_max_points: int = FLUSH_BATCH_MAX_POINTS,
        retry_interval_s: float = FLUSH_RETRY_INTERVAL_S,
        background: bool = True,
    ) -> None:
        self.storage = storage
        self.run_id = run_id
        self.queue = queue if queue is not None else PendingQueue()
        self.batch_max_points = batch_max_points
        self.retry_interval_s = retry_interval_s
        self.background = background
        self.flushed_count = 0
        self.failure_count = 0
        self.last_failure: Optional[str] = None
        self._flush_lock = threading.Lock()
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------
    def submit(self, point: TrackedPoint) -> None:
        """Queue ``point`` and schedule a flush without waiting for it."""

        self.queue.push(point)
        if self._stop.is_set():
            LOGGER.debug("Flusher stopped; keeping point %s queued", point.timestamp)
            return
        if self.background:
            self.start()
            self._wake.set()
        else:
            self.drain()

    def pending(self) -> List[TrackedPoint]:
        return self.queue.pending()

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------
    def flush(self) -> bool:
        """Send one batch. Returns False when the batch failed and was re-queued."""

        with self._flush_lock:
            batch = self.queue.take_batch(self.batch_max_points)
            if not batch:
                return True
            try:
                self.storage.append_tracked_points(self.run_id, batch)
            except StorageError as exc:
                self._record_failure(batch, exc)
                return False
            except Exception as exc:  # pragma: no cover - defensive logging
                LOGGER.error(
                    "Unexpected error appending points for run=%s: %s",
                    self.run_id,
                    exc,
                    exc_info=True,
                )
                self._record_failure(batch, PersistenceFailure(str(exc)))
                return False
            self.flushed_count += len(batch)
            self.last_failure = None
            LOGGER.debug(
                "Flushed %d points for run=%s (%d total)",
                len(batch),
                self.run_id,
                self.flushed_count,
            )
            return True

    def drain(self) -> bool:
        """Flush batches until the queue is empty, a batch fails or we stop."""

        while len(self.queue) and not self._stop.is_set():
            if not self.flush():
                return False
        return True

    def _record_failure(self, batch: List[TrackedPoint], exc: Exception) -> None:
        self.queue.requeue_front(batch)
        self.failure_count += 1
        self.last_failure = f"Failed to sync {len(batch)} points: {exc}"
        LOGGER.warning(
            "Failed to sync %d points for run=%s; re-queued (%d pending): %s",
            len(batch),
            self.run_id,
            len(self.queue),
            exc,
        )

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------
    def is_alive(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        if self._thread is not None or self._stop.is_set():
            return
        self._thread = threading.Thread(
            target=self._run,
            name=f"point-flusher-{self.run_id}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = FLUSH_STOP_TIMEOUT_S) -> None:
        """Stop scheduling flushes; an in-flight flush is allowed to finish."""

        self._stop.set()
        self._wake.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                LOGGER.warning(
                    "Flush worker for run=%s still busy after %.1fs",
                    self.run_id,
                    timeout,
                )
        remaining = len(self.queue)
        if remaining:
            LOGGER.warning(
                "Run %s stopped with %d points not yet synced", self.run_id, remaining
            )

    def _run(self) -> None:
        retry_pending = False
        while True:
            self._wake.wait(self.retry_interval_s if retry_pending else None)
            self._wake.clear()
            if self._stop.is_set():
                break
            retry_pending = not self.drain()


__all__ = ["PendingQueue", "PointFlusher"]
