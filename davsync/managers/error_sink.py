"""
DavSync - Error Sink

Persists per-file failures in the SyncError log and raises the user-visible
failure signal. Presentation is up to the listeners (the CLI prints a line,
a GUI could show a notification).

Author: DavSync Project
"""

import logging
import threading
from typing import Callable, List

from .database_manager import DatabaseManager

# Configure logging
logger = logging.getLogger(__name__)

FailureListener = Callable[[str, str], None]


class ErrorSink:
    """Collects synchronization errors."""

    def __init__(self, database_manager: DatabaseManager):
        self.db = database_manager
        self._listeners: List[FailureListener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: FailureListener) -> None:
        """Register a callable(path, message) invoked on every failure signal."""
        with self._lock:
            self._listeners.append(listener)

    def record(self, path: str, message: str) -> None:
        """Append a diagnostic record to the error log."""
        logger.error(f"Sync error on {path}: {message}")
        self.db.insert_error(path, message)

    def signal_failure(self, path: str, message: str) -> None:
        """Raise the user-visible failure signal."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(path, message)
            except Exception as e:
                logger.warning(f"Failure listener raised: {e}")

    def clear(self) -> None:
        self.db.delete_all_errors()
