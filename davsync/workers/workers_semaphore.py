"""
DavSync - Workers Semaphore

Process-wide permit pool bounding how many sync jobs talk to the server at
the same time. Sized to max_requests_per_host so jobs never queue up inside
the HTTP connection pool.

Author: DavSync Project
"""

import logging
import threading
from typing import Optional

from davsync.util import acquire_cancellable

# Configure logging
logger = logging.getLogger(__name__)


class WorkersSemaphore:
    """Counting permit pool with timeout and cancellation."""

    def __init__(self, permits: int = 6):
        if permits < 1:
            raise ValueError("At least one permit is required")
        self.permits = permits
        self._semaphore = threading.BoundedSemaphore(permits)

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Take a permit.

        Args:
            timeout: Maximum wait in seconds, None to wait forever

        Returns:
            True if a permit was taken, False on timeout

        Raises:
            JobCancelledError: If the job was cancelled while waiting
        """
        acquired = acquire_cancellable(self._semaphore, timeout)
        if not acquired:
            logger.debug(f"No permit available after {timeout}s")
        return acquired

    def release(self) -> None:
        self._semaphore.release()
