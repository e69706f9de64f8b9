"""
=============================================================================
THREAD POOL
=============================================================================

Runs connection handlers on a bounded set of worker threads.

    ┌──────────────┐    submit()    ┌──────────────────┐
    │ accept loop  │ ─────────────► │   task queue     │
    └──────────────┘                └────────┬─────────┘
                                             │ get()
                     ┌───────────────────────┼───────────────────────┐
                     ▼                       ▼                       ▼
               ┌──────────┐            ┌──────────┐            ┌──────────┐
               │ Worker-0 │            │ Worker-1 │    ...     │ Worker-N │
               └──────────┘            └──────────┘            └──────────┘

One task is one connection, and a worker keeps it until the connection
closes. min_workers threads start with the pool. When more tasks are
queued than there are idle workers, another worker is added, up to
max_workers. Workers are never retired while the pool runs.

A full queue rejects the task (submit() returns False) rather than
blocking the accept loop.

=============================================================================
SHUTDOWN
=============================================================================

    1. Reject new tasks
    2. Wait (bounded) for queued tasks to be picked up
    3. One poison pill (None) per worker
    4. Join each worker briefly

Workers are daemon threads, so a worker stuck on a connection never keeps
the process alive.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Running a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Pulls tasks off the queue until it receives None or is shut down.

    A task that raises is logged with its traceback; the worker survives
    and takes the next task.
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:  # Poison pill
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Elastic pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=32)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        ...
        pool.shutdown(timeout=5.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 32,
        queue_size: int = 128,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            min_workers: Threads started with the pool.
            max_workers: Upper bound when scaling up under load.
            queue_size: Tasks that may wait for a worker before
                        submit() starts rejecting.
            idle_timeout: How often an idle worker checks for shutdown.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Guards _workers

        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start min_workers threads. Calling it again is a no-op."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        # Unclaimed poison pills from a previous shutdown must not reach new workers
        self._task_queue = queue.Queue(maxsize=self.queue_size)
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_worker()
        self._started = True

    def _spawn_worker(self) -> Worker:
        """Create and start a worker. Caller holds self._lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            logger.warning(f"Task queue full ({self.queue_size}), rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker if queued tasks outnumber idle workers."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return

            idle = sum(1 for w in self._workers if w.state == WorkerState.IDLE)
            if self._task_queue.qsize() > idle:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._spawn_worker()

    def shutdown(self, timeout: Optional[float] = 5.0):
        """
        Stop the pool.

        Args:
            timeout: Seconds to wait for queued tasks to be picked up
                     before giving up on them. None waits indefinitely.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        deadline = None if timeout is None else time.time() + timeout
        while not self._task_queue.empty():
            if deadline is not None and time.time() > deadline:
                logger.warning("Shutdown timeout, abandoning queued tasks")
                break
            time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for _ in workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break  # Workers also see the shutdown flag

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queued_tasks(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for debug logging."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.queued_tasks,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
