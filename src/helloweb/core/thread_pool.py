"""
=============================================================================
CONNECTION WORKER POOL
=============================================================================

Every accepted connection is handed to one worker thread, which owns it
until the connection closes. The pool bounds how many such workers exist
and how many connections may wait for one.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         ThreadPool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop                                                        │
    │      │ submit(handle_connection, args=(sock, addr), block=False)     │
    │      ▼                                                               │
    │   ┌───────────────────────────────────────────┐                      │
    │   │ Task queue (bounded by queue_size)        │── full → rejected    │
    │   └───────────────────────────────────────────┘    (server sends 503)│
    │      │            │            │                                     │
    │      ▼            ▼            ▼                                     │
    │   Worker-0     Worker-1 ... Worker-N      min_workers ≤ N ≤ max      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Scaling: when every worker is busy and tasks are queued, one more worker
is started, up to max_workers. Workers never scale back down.

Shutdown: workers receive one poison pill (None) each and exit after
finishing their current connection.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why reject instead of blocking when the queue is full?"
A: "Blocking would stall the accept loop, so the kernel backlog fills up
   and clients see connect timeouts instead of a clear 503."

Q: "Why a poison pill rather than a flag?"
A: "A worker blocked in queue.get() never re-checks a flag. A None in the
   queue wakes exactly one worker and tells it to leave."

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
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call: func(*args, **kwargs).

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        max_wait: Drop the task if it sat in the queue longer than this.
        on_drop: Called with the same arguments instead of func when the
                 task is dropped for max_wait.
        submitted_at: Time the task was queued.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    max_wait: Optional[float] = None
    on_drop: Optional[Callable[..., Any]] = None
    submitted_at: float = field(default_factory=time.monotonic)

    @property
    def waited(self) -> float:
        return time.monotonic() - self.submitted_at


class Worker(threading.Thread):
    """
    Worker thread that pulls tasks from the shared queue.

        loop:
            task = queue.get()        (wakes every idle_timeout seconds)
            None?  → exit
            run it, log any exception, keep going
            queue.task_done()
    """

    def __init__(
        self,
        task_queue: "queue.Queue[Optional[Task]]",
        worker_id: int,
        idle_timeout: float = 60.0
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._stop_event = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0
        self.tasks_dropped = 0

    def run(self):
        logger.debug(f"{self.name} waiting for connections")

        while not self._stop_event.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} exiting after {self.tasks_completed} tasks")

    def _execute_task(self, task: Task):
        """
        Run one task. Exceptions are logged and counted, never re-raised,
        so one failing connection cannot kill the worker.
        """
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            if task.max_wait is not None and task.waited > task.max_wait:
                logger.warning(
                    f"Dropping task that waited {task.waited:.2f}s "
                    f"(limit {task.max_wait}s)"
                )
                self.tasks_dropped += 1
                if task.on_drop is not None:
                    task.on_drop(*task.args, **task.kwargs)
                return

            task.func(*task.args, **task.kwargs)

            elapsed = time.monotonic() - start_time
            logger.debug(f"{self.name} finished in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.exception(
                f"{self.name} task raised after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        """Ask the worker to exit at its next queue wake-up."""
        self._stop_event.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()

        if not pool.submit(handle, args=(sock, addr), block=False):
            ...  # saturated

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0
    ):
        """
        Args:
            min_workers: Workers started by start().
            max_workers: Upper bound reached by scaling up under load.
            queue_size: Tasks that may wait for a worker.
            idle_timeout: Seconds an idle worker blocks on the queue before
                          re-checking its stop flag.
        """
        if min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if max_workers < min_workers:
            raise ValueError("max_workers must be >= min_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0
        self.tasks_rejected = 0

    def start(self):
        """Start min_workers workers. Calling it twice is a no-op."""
        if self._started:
            return

        logger.info(f"Worker pool: starting {self.min_workers} of up to {self.max_workers} threads")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker_locked()
        self._started = True

    def _add_worker_locked(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        max_wait: Optional[float] = None,
        on_drop: Optional[Callable[..., Any]] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Args:
            func: The function to execute.
            args: Positional arguments.
            kwargs: Keyword arguments.
            max_wait: Drop the task if no worker picks it up in time.
            on_drop: Run instead of func, with the same arguments, when the
                     task is dropped for max_wait.
            block: Wait for queue space instead of failing immediately.
            queue_timeout: With block=True, how long to wait for space.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started:
            raise RuntimeError("submit() before start()")
        if self._shutting_down:
            raise RuntimeError("submit() during shutdown")

        task = Task(
            func=func,
            args=args,
            kwargs=kwargs or {},
            max_wait=max_wait,
            on_drop=on_drop,
        )

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            self.tasks_rejected += 1
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when all are busy and work is waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            busy = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if busy == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(
                    f"All {len(self._workers)} workers busy, adding one"
                )
                self._add_worker_locked()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish before stopping workers.
            timeout: Upper bound on that wait, in seconds.
        """
        if not self._started:
            return

        logger.info(f"Worker pool: stopping {len(self._workers)} threads")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._task_queue.empty():
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        for worker in self._workers:
            worker.stop()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                # the stop flag is picked up at the next idle wake-up
                pass

        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        self._shutting_down = False
        logger.info("Worker pool: stopped")

    @property
    def running(self) -> bool:
        return self._started and not self._shutting_down

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def pending(self) -> int:
        """Tasks waiting in the queue."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counters, e.g. for a debug log line."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.pending,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
                "dropped": sum(w.tasks_dropped for w in self._workers),
                "rejected": self.tasks_rejected,
            },
        }
