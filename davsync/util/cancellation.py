"""
DavSync - Cooperative Cancellation

Background jobs run in worker threads. The scheduler binds a cancellation
event to the running job through a context variable; blocking waits in the
client, the lock registry and the permit pool poll it so a cancelled job
stops promptly with JobCancelledError.

Author: DavSync Project
"""

import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from davsync.exceptions import JobCancelledError

POLL_INTERVAL_SECONDS = 0.1

_current_cancel_event: ContextVar[Optional[threading.Event]] = ContextVar(
    "davsync_cancel_event", default=None
)


@contextmanager
def cancellation_scope(event: threading.Event) -> Iterator[threading.Event]:
    """Bind a cancellation event to the current thread for the duration of a job."""
    token = _current_cancel_event.set(event)
    try:
        yield event
    finally:
        _current_cancel_event.reset(token)


def is_cancelled() -> bool:
    event = _current_cancel_event.get()
    return event is not None and event.is_set()


def check_cancelled() -> None:
    """Raise JobCancelledError if the current job was cancelled."""
    if is_cancelled():
        raise JobCancelledError("Job cancelled")


def acquire_cancellable(primitive, timeout: Optional[float] = None) -> bool:
    """
    Acquire a Lock or Semaphore, giving up early if the current job is cancelled.

    Args:
        primitive: Anything with acquire(timeout=...)
        timeout: Maximum wait in seconds, None to wait forever

    Returns:
        True if acquired, False on timeout

    Raises:
        JobCancelledError: If the job was cancelled while waiting
    """
    event = _current_cancel_event.get()
    if event is None and timeout is None:
        return primitive.acquire()

    waited = 0.0
    while True:
        check_cancelled()
        slice_seconds = POLL_INTERVAL_SECONDS
        if timeout is not None:
            slice_seconds = min(slice_seconds, max(timeout - waited, 0.0))
        if primitive.acquire(timeout=slice_seconds):
            return True
        waited += slice_seconds
        if timeout is not None and waited >= timeout:
            return False
