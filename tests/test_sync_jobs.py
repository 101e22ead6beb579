"""
Tests for the sync job units

The retry/failure policy around the engine calls, with stub permits,
connectivity and engine.
"""

from unittest.mock import MagicMock

import pytest

from davsync.exceptions import (
    DavProtocolError,
    DavUnauthorizedError,
    JobCancelledError,
    MissingPermissionError
)
from davsync.models import CollectionPath, FilePath
from davsync.workers import (
    MAX_RUN_ATTEMPTS,
    DavSyncJob,
    DbFileSyncJob,
    FullSyncJob,
    JobContext,
    JobResult,
    LocalFileSyncJob,
    SyncWorkQueue
)


@pytest.fixture
def work_queue():
    semaphore = MagicMock()
    semaphore.acquire.return_value = True
    connectivity = MagicMock()
    connectivity.is_connected.return_value = True
    queue = SyncWorkQueue(MagicMock(), semaphore, connectivity)
    queue.bind(MagicMock(), MagicMock())
    return queue


def context(attempt=0, name="job"):
    return JobContext(name=name, run_attempt_count=attempt)


def test_db_file_job_resyncs_path(work_queue):
    job = DbFileSyncJob(work_queue, "/a.jpg")

    assert job.run(context()) == JobResult.SUCCESS
    work_queue.engine.resync_path.assert_called_once_with("/a.jpg")
    work_queue.semaphore.release.assert_called_once()


def test_job_requeued_without_permit(work_queue):
    work_queue.semaphore.acquire.return_value = False
    job = DbFileSyncJob(work_queue, "/a.jpg")

    assert job.run(context()) == JobResult.REQUEUE
    work_queue.engine.resync_path.assert_not_called()
    work_queue.semaphore.release.assert_not_called()


def test_job_retried_without_connectivity(work_queue):
    work_queue.connectivity.is_connected.return_value = False
    job = DbFileSyncJob(work_queue, "/a.jpg")

    assert job.run(context()) == JobResult.RETRY
    work_queue.engine.resync_path.assert_not_called()
    work_queue.semaphore.release.assert_called_once()


def test_job_retried_below_attempt_ceiling(work_queue):
    work_queue.engine.resync_path.side_effect = DavProtocolError("Unexpected code 503", status=503)
    job = DbFileSyncJob(work_queue, "/a.jpg")

    assert job.run(context(attempt=MAX_RUN_ATTEMPTS - 1)) == JobResult.RETRY
    work_queue.engine.handle_worker_exception.assert_not_called()


def test_job_fails_at_attempt_ceiling(work_queue):
    error = DavProtocolError("Unexpected code 503", status=503)
    work_queue.engine.resync_path.side_effect = error
    job = DbFileSyncJob(work_queue, "/a.jpg")

    assert job.run(context(attempt=MAX_RUN_ATTEMPTS)) == JobResult.FAILURE
    work_queue.engine.handle_worker_exception.assert_called_once_with(error, "/a.jpg")
    work_queue.semaphore.release.assert_called_once()


def test_unauthorized_fails_immediately(work_queue):
    error = DavUnauthorizedError("Authentication failed")
    work_queue.engine.resync_path.side_effect = error
    job = DbFileSyncJob(work_queue, "/a.jpg")

    assert job.run(context()) == JobResult.FAILURE
    work_queue.engine.handle_worker_exception.assert_called_once_with(error, "/a.jpg")


def test_cancellation_propagates(work_queue):
    work_queue.engine.resync_path.side_effect = JobCancelledError("Job cancelled")
    job = DbFileSyncJob(work_queue, "/a.jpg")

    with pytest.raises(JobCancelledError):
        job.run(context())
    work_queue.engine.handle_worker_exception.assert_not_called()
    work_queue.semaphore.release.assert_called_once()


def test_local_file_job_syncs_existing_file(work_queue):
    local_file = MagicMock(absolute_path="/lib/a.jpg")
    work_queue.library.get_by_id.return_value = local_file
    job = LocalFileSyncJob(work_queue, 42, skip_if_tracked=True)

    assert job.run(context()) == JobResult.SUCCESS
    work_queue.library.get_by_id.assert_called_once_with(42)
    work_queue.engine.sync_one.assert_called_once_with(local_file, True)


def test_local_file_job_ignores_vanished_file(work_queue):
    work_queue.library.get_by_id.return_value = None
    job = LocalFileSyncJob(work_queue, 42)

    assert job.run(context()) == JobResult.SUCCESS
    work_queue.engine.sync_one.assert_not_called()


def test_dav_job_dispatches_on_kind(work_queue):
    assert DavSyncJob(work_queue, "/DCIM/", True, immediate=True).run(context()) == JobResult.SUCCESS
    work_queue.engine.discover_collection.assert_called_once_with(CollectionPath("/DCIM/"), True)

    assert DavSyncJob(work_queue, "/DCIM/a.jpg", False).run(context()) == JobResult.SUCCESS
    work_queue.engine.handle_sync_resource.assert_called_once_with(FilePath("/DCIM/a.jpg"))


def test_full_sync_job_fails_on_missing_permission(work_queue):
    error = MissingPermissionError("Library not accessible")
    work_queue.engine.sync_all.side_effect = error

    assert FullSyncJob(work_queue).run(context()) == JobResult.FAILURE
    work_queue.engine.handle_worker_exception.assert_called_once_with(error, "/")
    work_queue.semaphore.acquire.assert_not_called()


def test_queue_names_units(work_queue):
    work_queue.enqueue_db_file("/a.jpg")
    work_queue.enqueue_local_file(42, immediate=True)
    work_queue.enqueue_dav("/DCIM/", is_collection=True)
    work_queue.enqueue_full_sync()

    names = [call.args[0] for call in work_queue.scheduler.enqueue_unique.call_args_list]
    assert names == ["DB_/a.jpg", "ID_42", "DAV_/DCIM/", "FULL_SYNC"]
    assert isinstance(work_queue.scheduler.enqueue_unique.call_args_list[1].args[1], LocalFileSyncJob)
