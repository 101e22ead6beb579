"""
DavSync - Sync Jobs

The units of background work and the queue that names and submits them:
- DbFileSyncJob ("DB_<path>"): resync one tracked file
- LocalFileSyncJob ("ID_<id>"): sync one local file after a local change
- DavSyncJob ("DAV_<path>"): walk a remote collection or pull a remote file
- FullSyncJob ("FULL_SYNC"): schedule a full pass

Per-file jobs hold a worker permit while they run and check connectivity
first. Failures are retried up to MAX_RUN_ATTEMPTS times, then recorded in
the error log.

Author: DavSync Project
"""

import logging
from typing import Optional

from davsync.exceptions import (
    DavUnauthorizedError,
    JobCancelledError,
    MissingPermissionError,
    SyncConfigurationError
)
from davsync.models import CollectionPath, FilePath

from .connectivity import ConnectivityChecker
from .job_scheduler import Job, JobContext, JobResult, JobScheduler
from .workers_semaphore import WorkersSemaphore

# Configure logging
logger = logging.getLogger(__name__)

MAX_RUN_ATTEMPTS = 5
FULL_SYNC_MAX_RUN_ATTEMPTS = 3
PERMIT_TIMEOUT_SECONDS = 60

FULL_SYNC_NAME = "FULL_SYNC"


class SyncWorkQueue:
    """
    Names and submits sync jobs.

    The engine schedules through this queue and the jobs call back into the
    engine, so the engine is attached with bind() after both exist.
    """

    def __init__(self, scheduler: JobScheduler, semaphore: WorkersSemaphore,
                 connectivity: ConnectivityChecker):
        self.scheduler = scheduler
        self.semaphore = semaphore
        self.connectivity = connectivity
        self.engine = None
        self.library = None

    def bind(self, engine, library) -> None:
        """Attach the engine and the local library the jobs work with."""
        self.engine = engine
        self.library = library

    def enqueue_db_file(self, pathname: str, immediate: bool = False) -> None:
        self.scheduler.enqueue_unique(f"DB_{pathname}", DbFileSyncJob(self, pathname), immediate)

    def enqueue_local_file(self, local_id: int, immediate: bool = False, skip_if_tracked: bool = False) -> None:
        self.scheduler.enqueue_unique(
            f"ID_{local_id}", LocalFileSyncJob(self, local_id, skip_if_tracked), immediate
        )

    def enqueue_dav(self, path: str, immediate: bool = False, is_collection: bool = False) -> None:
        self.scheduler.enqueue_unique(f"DAV_{path}", DavSyncJob(self, path, is_collection, immediate), immediate)

    def enqueue_full_sync(self, immediate: bool = False) -> None:
        self.scheduler.enqueue_unique(FULL_SYNC_NAME, self.full_sync_job(immediate), immediate)

    def full_sync_job(self, immediate: bool = False) -> "FullSyncJob":
        return FullSyncJob(self, immediate)


class SyncJob(Job):
    """
    Base of the per-file jobs.

    Subclasses implement do_work(); run() wraps it with the permit, the
    connectivity check and the retry policy.
    """

    def __init__(self, queue: SyncWorkQueue):
        self.queue = queue

    @property
    def path(self) -> str:
        """Path reported in the error log."""
        raise NotImplementedError

    def do_work(self) -> None:
        raise NotImplementedError

    def run(self, context: JobContext) -> JobResult:
        if not self.queue.semaphore.acquire(timeout=PERMIT_TIMEOUT_SECONDS):
            logger.debug(f"{context.name}: no worker permit, requeueing")
            return JobResult.REQUEUE
        try:
            if not self.queue.connectivity.is_connected():
                logger.info(f"{context.name}: no connectivity, retrying later")
                return JobResult.RETRY
            return self._run_guarded(context)
        finally:
            self.queue.semaphore.release()

    def _run_guarded(self, context: JobContext) -> JobResult:
        try:
            self.do_work()
            return JobResult.SUCCESS
        except JobCancelledError:
            raise
        except (DavUnauthorizedError, SyncConfigurationError) as e:
            self.queue.engine.handle_worker_exception(e, self.path)
            return JobResult.FAILURE
        except Exception as e:
            if context.run_attempt_count < MAX_RUN_ATTEMPTS:
                logger.warning(f"{context.name} failed (attempt {context.run_attempt_count + 1}): {e}")
                return JobResult.RETRY
            logger.exception(f"{context.name} failed for good")
            self.queue.engine.handle_worker_exception(e, self.path)
            return JobResult.FAILURE


class DbFileSyncJob(SyncJob):
    """Resync one tracked file by its remote path."""

    def __init__(self, queue: SyncWorkQueue, pathname: str):
        super().__init__(queue)
        self.pathname = pathname

    @property
    def path(self) -> str:
        return self.pathname

    def do_work(self) -> None:
        self.queue.engine.resync_path(self.pathname)


class LocalFileSyncJob(SyncJob):
    """Sync one local file by identity."""

    def __init__(self, queue: SyncWorkQueue, local_id: int, skip_if_tracked: bool = False):
        super().__init__(queue)
        self.local_id = local_id
        self.skip_if_tracked = skip_if_tracked
        self._local_path: Optional[str] = None

    @property
    def path(self) -> str:
        return self._local_path or f"local file {self.local_id}"

    def do_work(self) -> None:
        local_file = self.queue.library.get_by_id(self.local_id)
        if local_file is None:
            logger.debug(f"Local file {self.local_id} is gone")
            return
        self._local_path = local_file.absolute_path
        self.queue.engine.sync_one(local_file, self.skip_if_tracked)


class DavSyncJob(SyncJob):
    """Walk a remote collection or pull one remote file."""

    def __init__(self, queue: SyncWorkQueue, remote_path: str, is_collection: bool, immediate: bool = False):
        super().__init__(queue)
        self.remote_path = remote_path
        self.is_collection = is_collection
        self.immediate = immediate

    @property
    def path(self) -> str:
        return self.remote_path

    def do_work(self) -> None:
        if self.is_collection:
            self.queue.engine.discover_collection(CollectionPath(self.remote_path), self.immediate)
        else:
            self.queue.engine.handle_sync_resource(FilePath(self.remote_path))


class FullSyncJob(Job):
    """Schedule a full pass. Holds no permit; the work happens in the jobs it submits."""

    def __init__(self, queue: SyncWorkQueue, immediate: bool = False):
        self.queue = queue
        self.immediate = immediate

    def run(self, context: JobContext) -> JobResult:
        engine = self.queue.engine
        try:
            engine.sync_all(self.immediate)
            return JobResult.SUCCESS
        except JobCancelledError:
            raise
        except (MissingPermissionError, SyncConfigurationError) as e:
            engine.handle_worker_exception(e, "/")
            return JobResult.FAILURE
        except Exception as e:
            if context.run_attempt_count < FULL_SYNC_MAX_RUN_ATTEMPTS:
                logger.warning(f"Full sync failed (attempt {context.run_attempt_count + 1}): {e}")
                return JobResult.RETRY
            logger.exception("Full sync failed for good")
            engine.handle_worker_exception(e, "/")
            return JobResult.FAILURE
