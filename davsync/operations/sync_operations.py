"""
DavSync - Sync Operations Module

Reconciliation engine: decides, per file, which side wins and carries the
decision out through the WebDAV client, the local library and the record
store. Every entry point returns the SyncAction it performed.

Author: DavSync Project
"""

import logging
import os
from typing import Optional

from davsync.exceptions import (
    DavNotEmptyError,
    DavNotFoundError,
    DavSyncError,
    DavUnauthorizedError,
    MissingPermissionError
)
from davsync.models import (
    CollectionPath,
    ConflictStrategy,
    DavPath,
    FilePath,
    LocalFile,
    Resource,
    SyncAction,
    SyncSettings
)
from davsync.models.database import SyncRecord

# Configure logging
logger = logging.getLogger(__name__)


class SyncOperations:
    """
    Reconciles the local library with the remote WebDAV store.

    Responsibilities:
    - Resync a tracked file (the nine-step decision procedure in resync())
    - First sync of an untracked local file
    - Download-if-new of files discovered remotely
    - Schedule a full pass over tracked, untracked and remote files
    - Record worker failures in the error log
    """

    def __init__(self, settings: SyncSettings, webdav, database, library, error_sink, work_queue):
        """
        Initialize the engine.

        Args:
            settings: Current configuration snapshot
            webdav: WebDavClient for the remote side
            database: DatabaseManager holding the SyncRecords
            library: LibraryManager for the local side
            error_sink: ErrorSink recording user-visible failures
            work_queue: Enqueues per-file jobs (see workers.SyncWorkQueue)
        """
        self.settings = settings
        self.dav = webdav
        self.db = database
        self.library = library
        self.error_sink = error_sink
        self.work_queue = work_queue

    def update_settings(self, settings: SyncSettings) -> None:
        """Use a new configuration snapshot for the following operations."""
        self.settings = settings

    # ==================== Path helpers ====================

    def is_excluded(self, path: DavPath) -> bool:
        """
        True if the path, or the collection holding it, is excluded.

        Exclusions are library-relative collection paths without a leading
        slash, e.g. "DCIM/.thumbnails/".
        """
        exclusions = self.settings.path_exclusions
        return (path.get_path_no_leading() in exclusions
                or path.get_parent().get_path_no_leading() in exclusions)

    @staticmethod
    def dav_file_for(local_file: LocalFile) -> FilePath:
        """Remote path mirroring a local file."""
        return FilePath(CollectionPath(local_file.relative_path), local_file.display_name)

    def local_path_for(self, path: DavPath) -> str:
        """Absolute local path mirroring a remote path."""
        return os.path.join(self.settings.library_path, *path.get_path_no_leading().split("/"))

    # ==================== Entry points ====================

    def sync_all(self, immediate: bool = False) -> None:
        """
        Schedule a full pass.

        Every tracked path is resynced, every untracked local file gets its
        initial sync and the remote tree is walked from the root for new files.

        Raises:
            MissingPermissionError: If the library cannot be read and written
        """
        if not self.library.are_mandatory_granted():
            raise MissingPermissionError(f"Library not accessible: {self.settings.library_path}")

        logger.info("Starting full synchronization pass")
        self.error_sink.clear()

        pathnames = self.db.get_all_pathnames()
        for pathname in pathnames:
            self.work_queue.enqueue_db_file(pathname, immediate)

        tracked_ids = set(self.db.get_all_ids())
        untracked = self.library.get_all_ids(self.settings.path_exclusions) - tracked_ids
        for local_id in untracked:
            self.work_queue.enqueue_local_file(local_id, immediate, skip_if_tracked=True)

        self.work_queue.enqueue_dav(CollectionPath().get_path(), immediate, is_collection=True)
        logger.info(f"Scheduled {len(pathnames)} tracked and {len(untracked)} untracked files")

    def sync_one(self, local_file: LocalFile, skip_if_tracked: bool = False) -> SyncAction:
        """
        Synchronize one local file after a local change.

        Args:
            local_file: The changed file
            skip_if_tracked: Leave tracked files to their own resync job

        Returns:
            The action taken
        """
        if local_file.relative_path in self.settings.path_exclusions:
            logger.debug(f"Skipping excluded file {local_file.absolute_path}")
            return SyncAction.NONE

        record = self.db.find_by_id(local_file.id)
        if record is not None:
            if skip_if_tracked:
                return SyncAction.NONE
            return self.resync(record)
        return self.handle_initial_sync(local_file)

    def resync_path(self, pathname: str) -> SyncAction:
        """Resync the record stored under a remote path, if it is still tracked."""
        record = self.db.find_by_name(pathname)
        if record is None:
            logger.debug(f"No record left for {pathname}")
            return SyncAction.NONE
        return self.resync(record)

    def resync(self, record: SyncRecord) -> SyncAction:
        """
        Bring a tracked file back in sync.

        Steps, first match wins:
        1. Excluded: forget the record
        2. Remote gone: delete the local copy and the record, unless the
           local file moved, which is uploaded at its new path
        3. Local gone or trashed: delete the remote copy and the record
        4. Collection present on both sides: nothing to do
        5. Local file moved: move the remote copy (or upload it again)
        6. Unchanged on both sides: refresh metadata only
        7. Changed on both sides: apply the conflict strategy
        8. Changed locally: upload
        9. Changed remotely: download

        Args:
            record: The record to resync

        Returns:
            The action taken
        """
        dav_file_path = FilePath(record.pathname)

        if self.is_excluded(dav_file_path):
            logger.info(f"Forgetting excluded {record.pathname}")
            self.db.delete_record(record)
            return SyncAction.FORGET

        local_file = self.library.get_by_id(record.local_id)

        try:
            remote_file = self.dav.get_properties_from_parent_cache(dav_file_path)
        except DavNotFoundError:
            remote_file = None

        if remote_file is None and local_file is not None and not local_file.is_trashed:
            new_path = self.dav_file_for(local_file)
            if new_path != dav_file_path:
                # Moved on both sides (or a MOVE that went through before its job failed)
                return self._handle_local_move(record, local_file, dav_file_path, new_path, False)

        if remote_file is None:
            logger.info(f"{record.pathname} deleted remotely, deleting local copy")
            if local_file is not None:
                self.library.delete_file(local_file)
            elif os.path.isdir(record.local_pathname):
                os.rmdir(record.local_pathname)
            elif os.path.lexists(record.local_pathname):
                os.remove(record.local_pathname)
            self.db.delete_record(record)
            return SyncAction.DELETE_LOCAL

        if local_file is None or local_file.is_trashed:
            logger.info(f"{record.pathname} deleted locally, deleting remote copy")
            self._delete_remote(record, dav_file_path)
            self.db.delete_record(record)
            return SyncAction.DELETE_REMOTE

        if record.is_collection:
            return SyncAction.NONE

        local_identical = (record.local_date_changed is not None
                           and record.local_date_changed == local_file.date_modified)
        remote_identical = (
            (record.etag is not None and record.etag == remote_file.etag)
            or (record.remote_date_changed is not None
                and record.remote_date_changed == remote_file.last_modified)
        )

        new_path = self.dav_file_for(local_file)
        if new_path != dav_file_path:
            return self._handle_local_move(record, local_file, dav_file_path, new_path, local_identical)

        if local_identical and remote_identical:
            self._resync_metadata(record, local_file)
            return SyncAction.NONE

        if not local_identical and not remote_identical:
            strategy = self.settings.conflict_strategy
            logger.warning(f"Conflict on {record.pathname}, resolving with {strategy.value}")
            if strategy == ConflictStrategy.KEEP_LOCAL:
                self._upload_file(local_file, dav_file_path)
                return SyncAction.UPLOAD
            if strategy == ConflictStrategy.KEEP_REMOTE:
                self._download_existing_file(record, remote_file)
                return SyncAction.DOWNLOAD
            return SyncAction.NONE

        if not local_identical:
            self._upload_file(local_file, dav_file_path)
            return SyncAction.UPLOAD

        self._download_existing_file(record, remote_file)
        return SyncAction.DOWNLOAD

    def handle_initial_sync(self, local_file: LocalFile) -> SyncAction:
        """
        First synchronization of a local file without a record.

        Uploads the file when the remote side has nothing at its path,
        adopts matching collections and otherwise resolves the clash with the
        conflict strategy.

        Returns:
            The action taken
        """
        dav_file_path = self.dav_file_for(local_file)

        if self.is_excluded(dav_file_path):
            return SyncAction.NONE
        if local_file.is_trashed:
            return SyncAction.NONE
        if self.db.find_by_name(dav_file_path.get_path()) is not None:
            logger.debug(f"{dav_file_path} already tracked")
            return SyncAction.NONE

        try:
            remote_file = self.dav.get_properties(dav_file_path)
        except DavNotFoundError:
            remote_file = None

        if remote_file is None:
            self._upload_file(local_file, dav_file_path)
            return SyncAction.UPLOAD

        local_is_collection = os.path.isdir(local_file.absolute_path)
        if local_is_collection and remote_file.is_collection:
            logger.debug(f"Adopting existing collection {dav_file_path}")
            self.db.save_record(self._create_record(local_file, remote_file, True))
            return SyncAction.ADOPT
        if local_is_collection != remote_file.is_collection:
            # A file can neither replace nor be replaced by a collection
            local_kind = "directory" if local_is_collection else "file"
            remote_kind = "collection" if remote_file.is_collection else "file"
            self.error_sink.record(dav_file_path.get_path(),
                                   f"Local {local_kind} clashes with remote {remote_kind}")
            return SyncAction.NONE

        strategy = self.settings.conflict_strategy
        logger.warning(f"{dav_file_path} exists on both sides, resolving with {strategy.value}")
        if strategy == ConflictStrategy.KEEP_LOCAL:
            self._upload_file(local_file, dav_file_path)
            return SyncAction.UPLOAD
        if strategy == ConflictStrategy.KEEP_REMOTE:
            self._download_new_file(remote_file, local_file.absolute_path)
            return SyncAction.DOWNLOAD
        return SyncAction.NONE

    def handle_sync_resource(self, file_path: FilePath) -> SyncAction:
        """
        Pull a remotely discovered file if it is new on this side.

        Nothing happens when the path is excluded, already tracked or when a
        local file already sits where the download would go.
        """
        if self.is_excluded(file_path):
            return SyncAction.NONE

        local_path = self.local_path_for(file_path)
        if self.db.find_by_name(file_path.get_path()) is not None or os.path.lexists(local_path):
            return SyncAction.NONE

        remote_file = self.dav.get_properties(file_path)
        if self._download_new_file(remote_file, local_path) is None:
            return SyncAction.NONE
        return SyncAction.DOWNLOAD

    def discover_collection(self, collection: CollectionPath, immediate: bool = False) -> int:
        """
        Walk one remote collection.

        Child collections are scheduled for further descent and untracked
        files for a download-if-new pull.

        Returns:
            Number of scheduled jobs
        """
        try:
            resources = self.dav.list(collection)
        except DavNotFoundError:
            logger.debug(f"Collection {collection} vanished")
            return 0

        tracked = set(self.db.get_direct_children_pathnames(collection.get_path()))
        scheduled = 0
        for resource in resources:
            path = resource.relative_href
            if path == collection:
                continue
            if resource.is_collection:
                if path.get_path_no_leading() in self.settings.path_exclusions:
                    continue
                self.work_queue.enqueue_dav(path.get_path(), immediate, is_collection=True)
                scheduled += 1
            elif path.get_path() not in tracked:
                self.work_queue.enqueue_dav(path.get_path(), immediate, is_collection=False)
                scheduled += 1

        logger.debug(f"Discovered {scheduled} entries to sync in {collection}")
        return scheduled

    def handle_worker_exception(self, exc: BaseException, path: str) -> None:
        """Record a failed job and raise the user-visible failure signal."""
        if isinstance(exc, DavUnauthorizedError):
            message = f"Authentication failed: {exc}"
        else:
            message = str(exc) or type(exc).__name__
        self.error_sink.record(path, message)
        self.error_sink.signal_failure(path, message)

    # ==================== Transfers ====================

    def _delete_remote(self, record: SyncRecord, dav_file_path: FilePath) -> None:
        try:
            if record.is_collection:
                self.dav.delete_collection_if_empty(CollectionPath(record.pathname))
            else:
                self.dav.delete(dav_file_path)
        except DavNotEmptyError as e:
            logger.warning(f"Keeping remote collection: {e}")
        except DavNotFoundError:
            logger.debug(f"{record.pathname} already deleted remotely")

    def _handle_local_move(self, record: SyncRecord, local_file: LocalFile, old_path: FilePath,
                           new_path: FilePath, local_identical: bool) -> SyncAction:
        """
        Follow a local move on the remote side.

        The old record is only dropped once the remote side reflects the new
        path, so a failed transfer leaves it in place for the retry.
        """
        logger.info(f"{old_path} moved locally to {new_path}")

        if local_identical:
            self.dav.mkcol_recursive(new_path.get_parent())
            self.dav.move(old_path, new_path)
            remote_file = self.dav.get_properties(new_path)
            self.db.save_record(self._create_record(local_file, remote_file, False))
            self.db.delete_record(record)
            return SyncAction.MOVE

        self._upload_file(local_file, new_path)
        try:
            self.dav.delete(old_path)
        except DavNotFoundError:
            pass
        self.db.delete_record(record)
        return SyncAction.UPLOAD

    def _upload_file(self, local_file: LocalFile, dav_file_path: FilePath) -> None:
        """Upload a file (or create a collection) and save its record."""
        is_collection = os.path.isdir(local_file.absolute_path)
        if is_collection:
            target = CollectionPath(dav_file_path.get_path())
            self.dav.mkcol_recursive(target)
            etag = None
        else:
            target = dav_file_path
            self.dav.mkcol_recursive(dav_file_path.get_parent())
            etag = self.dav.put(local_file.absolute_path, dav_file_path)

        remote_file = self.dav.get_properties(target)
        record = self._create_record(local_file, remote_file, is_collection)
        if record.etag is None:
            record.etag = etag
        self.db.save_record(record)

    def _download(self, remote_file: Resource, absolute_path: str) -> Optional[LocalFile]:
        """Download a file, restore its remote modification time and index it."""
        self.dav.download(FilePath.from_resource(remote_file), absolute_path)
        if remote_file.last_modified is not None:
            stat = os.stat(absolute_path)
            mtime_ns = int(remote_file.last_modified.timestamp()) * 1_000_000_000
            os.utime(absolute_path, ns=(stat.st_atime_ns, mtime_ns))
        return self.library.notify_updated_file(absolute_path)

    def _download_existing_file(self, record: SyncRecord, remote_file: Resource) -> None:
        local_file = self._download(remote_file, record.local_pathname)
        if local_file is None:
            raise DavSyncError(f"Downloaded file disappeared: {record.local_pathname}")
        self.db.save_record(self._create_record(local_file, remote_file, record.is_collection))

    def _download_new_file(self, remote_file: Resource, absolute_path: str) -> Optional[LocalFile]:
        local_file = self._download(remote_file, absolute_path)
        if local_file is None:
            logger.warning(f"Downloaded file not found in library: {absolute_path}")
            return None
        self.db.save_record(self._create_record(local_file, remote_file, False))
        return local_file

    def _create_record(self, local_file: LocalFile, remote_file: Resource, is_collection: bool) -> SyncRecord:
        return SyncRecord(
            pathname=self.dav_file_for(local_file).get_path(),
            local_id=local_file.id,
            local_pathname=local_file.absolute_path,
            etag=remote_file.etag,
            local_date_changed=local_file.date_modified,
            remote_date_changed=remote_file.last_modified,
            is_collection=is_collection,
        )

    def _resync_metadata(self, record: SyncRecord, local_file: LocalFile) -> None:
        """Follow a local path drift without transferring anything."""
        if record.local_pathname != local_file.absolute_path:
            record.local_pathname = local_file.absolute_path
            self.db.save_record(record)
