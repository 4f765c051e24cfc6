"""
Controller loop: feeds provisioning objects to the reconciler.

Keys (ObjectRef) go through a de-duplicating work queue:
- a key already waiting in the queue is not queued twice
- a key enqueued while a worker is processing it is marked dirty and queued
  again once that pass finishes, so one key never runs on two workers at once
- delayed enqueues keep only the earliest pending deadline per key

Each pass runs in a worker thread (the reconciler and the store are blocking).
A pass that asks for a requeue is scheduled after that delay; a failed pass is
retried with per-key exponential backoff. A resync loop re-lists every watched
kind on an interval, which also picks up new or changed IP pools.
"""

from __future__ import annotations

import asyncio

from netclaim.config import config
from netclaim.exceptions import NetClaimError
from netclaim.models.enums import ReconcileStatus
from netclaim.models.resources import ObjectRef
from netclaim.reconciler import AddressReconciler, ReconcileResult
from netclaim.store.base import ObjectStore
from netclaim.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


class ReconcileController:
    """Work queue plus worker pool around an AddressReconciler."""

    def __init__(
        self,
        reconciler: AddressReconciler,
        store: ObjectStore | None = None,
        namespace: str | None = None,
        kinds: list[str] | None = None,
        worker_count: int | None = None,
        resync_interval: float | None = None,
    ):
        self.reconciler = reconciler
        self.store = store or reconciler.store
        self.namespace = namespace if namespace is not None else config.NAMESPACE
        self.kinds = kinds or list(config.WATCHED_KINDS)
        self.worker_count = worker_count or config.WORKER_COUNT
        self.resync_interval = (
            config.RESYNC_INTERVAL_SECONDS if resync_interval is None else resync_interval
        )

        self._queue: asyncio.Queue[ObjectRef] = asyncio.Queue()
        self._queued: set[ObjectRef] = set()
        self._processing: set[ObjectRef] = set()
        self._dirty: set[ObjectRef] = set()
        self._timers: dict[ObjectRef, asyncio.TimerHandle] = {}
        self._failures: dict[ObjectRef, int] = {}
        self._tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Queue
    # =========================================================================

    def enqueue(self, ref: ObjectRef, delay: float = 0.0) -> None:
        """Schedule ref for reconciliation, now or after delay seconds."""
        if delay <= 0:
            self._add(ref)
            return

        loop = asyncio.get_running_loop()
        due = loop.time() + delay
        existing = self._timers.get(ref)
        if existing is not None:
            if existing.when() <= due:
                return
            existing.cancel()
        self._timers[ref] = loop.call_at(due, self._fire, ref)

    def _fire(self, ref: ObjectRef) -> None:
        self._timers.pop(ref, None)
        self._add(ref)

    def _add(self, ref: ObjectRef) -> None:
        if ref in self._processing:
            self._dirty.add(ref)
            return
        if ref in self._queued:
            return
        self._queued.add(ref)
        self._queue.put_nowait(ref)

    def pending(self) -> int:
        """Number of keys waiting in the queue (not counting delayed ones)."""
        return len(self._queued)

    def backoff(self, failures: int) -> float:
        """Retry delay after the given number of consecutive failures."""
        delay = config.ERROR_BACKOFF_BASE_SECONDS * (2 ** max(failures - 1, 0))
        return min(delay, config.ERROR_BACKOFF_MAX_SECONDS)

    # =========================================================================
    # Workers
    # =========================================================================

    async def _worker(self, worker_id: int) -> None:
        while True:
            ref = await self._queue.get()
            self._queued.discard(ref)
            self._processing.add(ref)
            try:
                result = await asyncio.to_thread(self.reconciler.reconcile, ref)
            except Exception as e:
                logger.error(f"Worker {worker_id}: unexpected error reconciling {ref}: {e}")
                logger.debug(format_traceback(e))
                result = ReconcileResult(ReconcileStatus.FAILED, error=e)
            finally:
                self._processing.discard(ref)

            self._handle_result(ref, result)
            if ref in self._dirty:
                self._dirty.discard(ref)
                self._add(ref)
            self._queue.task_done()

    def _handle_result(self, ref: ObjectRef, result: ReconcileResult) -> None:
        if result.failed:
            failures = self._failures.get(ref, 0) + 1
            self._failures[ref] = failures
            delay = self.backoff(failures)
            logger.warning(
                f"Requeue {ref} in {delay:.1f}s after failure #{failures}: {result.error}"
            )
            self.enqueue(ref, delay)
            return

        self._failures.pop(ref, None)
        if result.requeue_after:
            logger.debug(f"Requeue {ref} in {result.requeue_after:.1f}s ({result.status.value})")
            self.enqueue(ref, result.requeue_after)
        elif result.status.is_not_ready:
            logger.debug(f"{ref} is {result.status.value}, waiting for the next resync")

    # =========================================================================
    # Resync
    # =========================================================================

    async def resync_once(self) -> int:
        """List every watched kind and enqueue each object. Returns the count."""
        count = 0
        for kind in self.kinds:
            bodies = await asyncio.to_thread(self.store.list, kind, self.namespace or None)
            for body in bodies:
                self.enqueue(ObjectRef.from_object(body))
                count += 1
        return count

    async def _resync_loop(self) -> None:
        while True:
            try:
                count = await self.resync_once()
                logger.debug(f"Resync queued {count} objects, {self.pending()} pending")
            except NetClaimError as e:
                logger.error(f"Error listing provisioning objects: {e}")
            if self.resync_interval <= 0:
                logger.info("Periodic resync disabled, listed objects once")
                return
            await asyncio.sleep(self.resync_interval)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, resync: bool = True) -> None:
        """Start workers (and the resync loop) on the running event loop."""
        for worker_id in range(self.worker_count):
            self._spawn(self._worker(worker_id))
        if resync:
            self._spawn(self._resync_loop())
        logger.info(
            f"Controller started: {self.worker_count} workers, "
            f"kinds={self.kinds}, namespace={self.namespace or '*'}"
        )

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def join(self) -> None:
        """Wait until the queue is drained (delayed keys are not waited for)."""
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel workers, the resync loop and any delayed requeues."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Controller stopped")

    async def run(self) -> None:
        """Run until cancelled."""
        self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()
