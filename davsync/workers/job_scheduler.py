"""
DavSync - Job Scheduler

In-process job scheduler running named units of work on a pool of worker
threads. A name identifies at most one queued unit: submitting under a name
that is already queued replaces the queued unit with the new one, and a
submission for a running name runs once the current run has finished.

Units report SUCCESS, RETRY (run again later with exponential backoff),
REQUEUE (run again shortly, without counting an attempt) or FAILURE.

Author: DavSync Project
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from davsync.exceptions import JobCancelledError
from davsync.util import cancellation_scope

# Configure logging
logger = logging.getLogger(__name__)

PRIORITY_IMMEDIATE = 0
PRIORITY_NORMAL = 1


class JobResult(Enum):
    SUCCESS = "success"
    RETRY = "retry"
    REQUEUE = "requeue"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class JobContext:
    """What a running unit knows about itself."""
    name: str
    run_attempt_count: int


class Job:
    """Base class of schedulable units of work."""

    def run(self, context: JobContext) -> JobResult:
        raise NotImplementedError


@dataclass
class _Unit:
    name: str
    job: Job
    priority: int
    seq: int
    attempt: int = 0
    ready_at: float = 0.0


@dataclass(order=True)
class _Delayed:
    ready_at: float
    seq: int
    name: str = field(compare=False)


class JobScheduler:
    """
    Thread pool with unique named units, retries and periodic submissions.

    Responsibilities:
    - Run units on max_workers threads, most urgent first
    - Keep at most one queued unit per name (latest submission wins)
    - Retry failed runs with exponential backoff
    - Submit periodic units
    - Cancel everything queued and running on request
    """

    def __init__(self, max_workers: int = 6, backoff_seconds: float = 10.0,
                 max_backoff_seconds: float = 300.0, requeue_delay_seconds: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize the scheduler. Worker threads start with start().

        Args:
            max_workers: Number of worker threads
            backoff_seconds: Delay before the first retry; doubles on each retry
            max_backoff_seconds: Upper bound of the retry delay
            requeue_delay_seconds: Delay before a REQUEUE'd unit runs again
            clock: Monotonic time source
        """
        self.max_workers = max_workers
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.requeue_delay_seconds = requeue_delay_seconds
        self._clock = clock

        self._cond = threading.Condition()
        self._seq = itertools.count()
        self._pending: Dict[str, _Unit] = {}
        self._running: Dict[str, _Unit] = {}
        self._next: Dict[str, _Unit] = {}
        self._ready: List[Tuple[int, int, str]] = []
        self._delayed: List[_Delayed] = []

        self._cancel_event = threading.Event()
        self._stop_event = threading.Event()
        self._shutdown = False
        self._threads: List[threading.Thread] = []
        self._periodic_threads: List[threading.Thread] = []

    def start(self) -> None:
        """Start the worker threads."""
        with self._cond:
            if self._threads:
                return
            for index in range(self.max_workers):
                thread = threading.Thread(target=self._worker_loop, name=f"davsync-worker-{index}", daemon=True)
                self._threads.append(thread)
                thread.start()
        logger.debug(f"Started {self.max_workers} worker threads")

    # ==================== Submission ====================

    def enqueue_unique(self, name: str, job: Job, immediate: bool = False) -> None:
        """
        Submit a unit under a unique name.

        Args:
            name: Unit name, e.g. "DB_/DCIM/a.jpg"
            job: The work to run
            immediate: Run ahead of non-immediate units
        """
        priority = PRIORITY_IMMEDIATE if immediate else PRIORITY_NORMAL
        with self._cond:
            if self._shutdown:
                logger.warning(f"Scheduler shut down, dropping {name}")
                return
            unit = _Unit(name=name, job=job, priority=priority, seq=next(self._seq))
            if name in self._running:
                self._next[name] = unit
            else:
                self._queue(unit, self._clock())
            self._cond.notify()

    def schedule_periodic(self, name: str, job_factory: Callable[[], Job], interval_seconds: float,
                          run_now: bool = True) -> None:
        """
        Submit a unit every interval_seconds until shutdown().

        Args:
            name: Unit name
            job_factory: Builds a fresh unit for every period
            interval_seconds: Period
            run_now: Submit once right away
        """
        def loop():
            if run_now:
                self.enqueue_unique(name, job_factory())
            while not self._stop_event.wait(interval_seconds):
                self.enqueue_unique(name, job_factory())

        thread = threading.Thread(target=loop, name=f"davsync-periodic-{name}", daemon=True)
        self._periodic_threads.append(thread)
        thread.start()
        logger.info(f"Scheduled {name} every {interval_seconds}s")

    def _queue(self, unit: _Unit, ready_at: float) -> None:
        # Caller holds self._cond
        unit.ready_at = ready_at
        self._pending[unit.name] = unit
        if ready_at <= self._clock():
            heapq.heappush(self._ready, (unit.priority, unit.seq, unit.name))
        else:
            heapq.heappush(self._delayed, _Delayed(ready_at, unit.seq, unit.name))

    # ==================== Introspection ====================

    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending) + len(self._next)

    def running_count(self) -> int:
        with self._cond:
            return len(self._running)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until nothing is queued or running.

        Returns:
            True when idle, False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._pending and not self._running and not self._next,
                timeout=timeout,
            )

    # ==================== Cancellation ====================

    def cancel_all(self, timeout: Optional[float] = None) -> None:
        """
        Drop every queued unit and cancel the running ones.

        Running units observe the cancellation at their next wait or request
        and stop with JobCancelledError. Returns once they have stopped.
        """
        with self._cond:
            dropped = len(self._pending) + len(self._next)
            self._pending.clear()
            self._next.clear()
            self._ready.clear()
            self._delayed.clear()
            self._cancel_event.set()
            self._cond.notify_all()
            logger.info(f"Cancelling {len(self._running)} running and {dropped} queued jobs")
            self._cond.wait_for(lambda: not self._running, timeout=timeout)
            self._cancel_event.clear()
            self._cond.notify_all()

    def shutdown(self, wait: bool = True) -> None:
        """Cancel everything and stop the worker and periodic threads."""
        self._stop_event.set()
        self.cancel_all(timeout=30 if wait else 0)
        with self._cond:
            self._shutdown = True
            self._cond.notify_all()
        if wait:
            for thread in self._threads + self._periodic_threads:
                thread.join(timeout=5)
        logger.debug("Job scheduler stopped")

    # ==================== Workers ====================

    def _take(self) -> Tuple[Optional[_Unit], Optional[float]]:
        """Pop the most urgent ready unit, or return how long to wait for one."""
        now = self._clock()
        while self._delayed and self._delayed[0].ready_at <= now:
            delayed = heapq.heappop(self._delayed)
            unit = self._pending.get(delayed.name)
            if unit is not None and unit.seq == delayed.seq:
                heapq.heappush(self._ready, (unit.priority, unit.seq, unit.name))

        while self._ready:
            _, seq, name = heapq.heappop(self._ready)
            unit = self._pending.get(name)
            if unit is not None and unit.seq == seq:
                del self._pending[name]
                return unit, None

        wait = self._delayed[0].ready_at - now if self._delayed else None
        return None, wait

    def _worker_loop(self) -> None:
        while True:
            with self._cond:
                while True:
                    if self._shutdown:
                        return
                    unit, wait = (None, None) if self._cancel_event.is_set() else self._take()
                    if unit is not None:
                        self._running[unit.name] = unit
                        break
                    self._cond.wait(timeout=wait)

            result = self._execute(unit)

            with self._cond:
                del self._running[unit.name]
                replacement = self._next.pop(unit.name, None)
                now = self._clock()
                if self._cancel_event.is_set():
                    logger.debug(f"Not rescheduling cancelled {unit.name}")
                elif replacement is not None:
                    self._queue(replacement, now)
                elif result == JobResult.RETRY:
                    unit.attempt += 1
                    unit.seq = next(self._seq)
                    delay = self.backoff_delay(unit.attempt)
                    logger.debug(f"Retrying {unit.name} in {delay}s (attempt {unit.attempt})")
                    self._queue(unit, now + delay)
                elif result == JobResult.REQUEUE:
                    unit.seq = next(self._seq)
                    self._queue(unit, now + self.requeue_delay_seconds)
                self._cond.notify_all()

    def backoff_delay(self, attempt: int) -> float:
        """Exponential retry delay for the given attempt number (1-based)."""
        return min(self.backoff_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)

    def _execute(self, unit: _Unit) -> JobResult:
        context = JobContext(name=unit.name, run_attempt_count=unit.attempt)
        with cancellation_scope(self._cancel_event):
            try:
                return unit.job.run(context)
            except JobCancelledError:
                logger.info(f"Job {unit.name} cancelled")
                return JobResult.CANCELLED
            except Exception as e:
                logger.exception(f"Job {unit.name} crashed: {e}")
                return JobResult.FAILURE
