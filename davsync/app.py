"""
DavSync - Application

Composition root: builds the services from a settings snapshot, wires them
together and pushes configuration changes to the ones that hold settings.

Author: DavSync Project
"""

import logging
from typing import Optional

from davsync.api import WebDavClient
from davsync.managers import DatabaseManager, ErrorSink, LibraryManager
from davsync.models import SyncSettings
from davsync.operations import SyncOperations
from davsync.workers import (
    ConnectivityChecker,
    JobScheduler,
    SyncWorkQueue,
    WorkersSemaphore
)
from davsync.workers.sync_jobs import FULL_SYNC_NAME

# Configure logging
logger = logging.getLogger(__name__)


class SyncApplication:
    """
    Owns every long-lived service of a sync client.

    Responsibilities:
    - Construct and inject the services (no global singletons)
    - Start, cancel and stop background work
    - Apply new settings snapshots
    """

    def __init__(self, settings: SyncSettings, scheduler: Optional[JobScheduler] = None,
                 webdav: Optional[WebDavClient] = None):
        """
        Build the services.

        Args:
            settings: Configuration snapshot
            scheduler: Job scheduler to use, a new thread pool by default
            webdav: WebDAV client to use, built from settings by default

        Raises:
            SyncConfigurationError: If the WebDAV URL is missing or malformed
        """
        self.settings = settings
        root = WebDavClient.build_root_path(settings)

        self.db = DatabaseManager(settings.database_path)
        self.db.initialize_database()
        self.library = LibraryManager(settings.library_path)
        self.error_sink = ErrorSink(self.db)
        self.webdav = webdav or WebDavClient(settings)

        self.connectivity = ConnectivityChecker(root.host, root.port, timeout=settings.connect_timeout)
        self.semaphore = WorkersSemaphore(settings.max_requests_per_host)
        self.scheduler = scheduler or JobScheduler(max_workers=settings.max_requests_per_host)
        self.work_queue = SyncWorkQueue(self.scheduler, self.semaphore, self.connectivity)
        self.engine = SyncOperations(settings, self.webdav, self.db, self.library, self.error_sink, self.work_queue)
        self.work_queue.bind(self.engine, self.library)

    def update_settings(self, settings: SyncSettings) -> None:
        """
        Apply a new configuration snapshot.

        The permit pool and the worker threads keep the size they were
        started with.
        """
        root = WebDavClient.build_root_path(settings)
        self.webdav.update_settings(settings)
        self.connectivity.update_target(root.host, root.port)
        if settings.library_path != self.settings.library_path:
            self.library = LibraryManager(settings.library_path)
            self.engine.library = self.library
            self.work_queue.bind(self.engine, self.library)
        self.engine.update_settings(settings)
        self.settings = settings
        logger.info("Settings updated")

    # ==================== Background work ====================

    def start(self) -> None:
        self.scheduler.start()

    def request_full_sync(self, immediate: bool = True) -> None:
        self.work_queue.enqueue_full_sync(immediate)

    def run_full_sync(self, timeout: Optional[float] = None) -> bool:
        """
        Run one full pass and wait until every job it scheduled has finished.

        Returns:
            True if the queue drained before the timeout
        """
        self.start()
        self.request_full_sync(immediate=True)
        return self.scheduler.wait_idle(timeout)

    def start_periodic(self) -> None:
        """Run a full pass now and then every sync_interval_minutes."""
        self.start()
        self.scheduler.schedule_periodic(
            FULL_SYNC_NAME,
            self.work_queue.full_sync_job,
            self.settings.sync_interval_minutes * 60,
        )

    def cancel_all(self) -> None:
        self.scheduler.cancel_all()

    def close(self) -> None:
        """Stop background work and release connections."""
        self.scheduler.shutdown()
        self.webdav.close()
        self.db.close()
        logger.debug("Application closed")
