"""
DavSync - Workers Package

Background execution: permit pool, connectivity gate, job scheduler and the
sync job units.

Author: DavSync Project
"""

from .connectivity import ConnectivityChecker, has_active_interface
from .workers_semaphore import WorkersSemaphore
from .job_scheduler import Job, JobContext, JobResult, JobScheduler
from .sync_jobs import (
    MAX_RUN_ATTEMPTS,
    SyncWorkQueue,
    SyncJob,
    DbFileSyncJob,
    LocalFileSyncJob,
    DavSyncJob,
    FullSyncJob
)

__all__ = [
    'ConnectivityChecker',
    'has_active_interface',
    'WorkersSemaphore',
    'Job',
    'JobContext',
    'JobResult',
    'JobScheduler',
    'MAX_RUN_ATTEMPTS',
    'SyncWorkQueue',
    'SyncJob',
    'DbFileSyncJob',
    'LocalFileSyncJob',
    'DavSyncJob',
    'FullSyncJob'
]
