"""
=============================================================================
CONNECTION WORKER POOL
=============================================================================

Every accepted connection is served start to finish (keep-alive loop
included) by one worker thread. Workers take jobs from a bounded queue:

    ┌──────────────┐      ┌───────────────────────────┐      ┌──────────┐
    │ accept loop  │ ───► │ jobs (maxsize=queue_size)  │ ───► │ worker-0 │
    │ try_submit() │      │ [conn] [conn] [conn] ...   │      │ worker-1 │
    └──────┬───────┘      └───────────────────────────┘      │   ...    │
           │                                                  └──────────┘
           └── queue full → False, the server answers 503

The accept loop must never block on a busy pool, so there is no blocking
submit: a job is either queued at once or refused.

=============================================================================
GROWTH
=============================================================================

    start()          min_workers threads
    try_submit()     +1 thread while every worker is busy and jobs wait,
                     up to max_workers
    shutdown()       drain the queue, one stop marker per worker, join

The pool never shrinks while running: an idle worker costs one blocked
thread, a missing one costs a 503.

=============================================================================
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, List, Optional, Tuple


logger = logging.getLogger(__name__)


# Queue item telling one worker to exit
_STOP = object()

Job = Tuple[Callable[..., Any], tuple]


class PoolWorker(threading.Thread):
    """Daemon thread running jobs until it takes the stop marker."""

    def __init__(self, jobs: "queue.Queue[Any]", index: int, poll_interval: float):
        super().__init__(name=f"sloth-worker-{index}", daemon=True)
        self.jobs = jobs
        self.index = index
        self.poll_interval = poll_interval
        self.busy = False
        self.completed = 0
        self.failed = 0
        self._stopping = threading.Event()

    def run(self):
        logger.debug(f"{self.name} ready")

        while not self._stopping.is_set():
            try:
                job = self.jobs.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                if job is _STOP:
                    break
                self._run_job(job)
            finally:
                self.jobs.task_done()

        logger.debug(f"{self.name} exited after {self.completed + self.failed} jobs")

    def _run_job(self, job: Job):
        func, args = job
        self.busy = True
        started = time.monotonic()

        try:
            func(*args)
        except Exception:
            self.failed += 1
            logger.exception(
                f"{self.name}: job {getattr(func, '__name__', func)!r} failed "
                f"after {time.monotonic() - started:.3f}s"
            )
        else:
            self.completed += 1
        finally:
            self.busy = False

    def stop(self):
        """Exit after the current job even if no stop marker arrives."""
        self._stopping.set()


class ThreadPool:
    """
    Bounded pool of connection workers.

    Example:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()
        if not pool.try_submit(serve_connection, conn):
            reject(conn)
        pool.shutdown(timeout=5.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        poll_interval: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.poll_interval = poll_interval

        self._jobs: "queue.Queue[Any]" = queue.Queue(maxsize=queue_size)
        self._workers: List[PoolWorker] = []
        self._grow_lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def size(self) -> int:
        return len(self._workers)

    @property
    def busy(self) -> int:
        return sum(1 for worker in self._workers if worker.busy)

    def start(self):
        if self._running:
            return

        with self._grow_lock:
            while len(self._workers) < self.min_workers:
                self._add_worker()
        self._running = True
        logger.info(f"Worker pool started ({self.min_workers}-{self.max_workers} threads)")

    def _add_worker(self):
        # Only called with _grow_lock held
        worker = PoolWorker(self._jobs, len(self._workers), self.poll_interval)
        self._workers.append(worker)
        worker.start()

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def try_submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue func(*args) without blocking.

        Returns:
            False when the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._running:
            raise RuntimeError("Worker pool is not running")

        try:
            self._jobs.put_nowait((func, args))
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        with self._grow_lock:
            if len(self._workers) >= self.max_workers or self._jobs.empty():
                return
            if self.busy < len(self._workers):
                return
            logger.debug(f"All {len(self._workers)} workers busy, adding one")
            self._add_worker()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self, timeout: Optional[float] = None):
        """
        Stop accepting jobs, let queued ones run, then stop every worker.

        Args:
            timeout: Seconds to wait for the queue to drain and for each
                worker to exit. None waits for the queue but joins each
                worker for at most 2 seconds.
        """
        if not self._running:
            return
        self._running = False
        logger.info("Stopping worker pool...")

        deadline = time.monotonic() + timeout if timeout else None
        while not self._jobs.empty():
            if deadline is not None and time.monotonic() > deadline:
                logger.warning(f"{self._jobs.qsize()} queued jobs abandoned at shutdown")
                break
            time.sleep(0.05)

        for worker in self._workers:
            try:
                self._jobs.put_nowait(_STOP)
            except queue.Full:
                worker.stop()

        for worker in self._workers:
            worker.join(timeout or 2.0)
            if worker.is_alive():
                worker.stop()

        with self._grow_lock:
            self._workers.clear()
        logger.info("Worker pool stopped")

    @property
    def stats(self) -> dict:
        return {
            "workers": {"total": self.size, "busy": self.busy},
            "jobs": {
                "queued": self._jobs.qsize(),
                "completed": sum(worker.completed for worker in self._workers),
                "failed": sum(worker.failed for worker in self._workers),
            },
        }
