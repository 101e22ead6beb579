"""
DavSync - Library Manager

Local file index of the media library: enumerates the files below the library
root, looks them up by identity, deletes them and refreshes entries after a
download wrote a new file.

Author: DavSync Project
"""

import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from davsync.models import LocalFile

# Configure logging
logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Files moved to the trash keep their directory but get this name prefix
TRASHED_PREFIX = ".trashed-"

# Partial downloads (see WebDavClient.download)
TEMPORARY_PREFIX = ".davsync-"


def mtime_to_datetime(st_mtime_ns: int) -> datetime:
    """Exact (microsecond) conversion of a stat mtime to an aware UTC datetime."""
    return EPOCH + timedelta(microseconds=st_mtime_ns // 1000)


class LibraryManager:
    """
    Manages the local media library.

    Responsibilities:
    - Enumerate syncable files with identity, path, timestamp and trashed flag
    - Fetch one file by identity (inode number)
    - Delete one file
    - Refresh the index after a new local file was written
    - Check the library is readable and writable
    """

    def __init__(self, library_path: str):
        """
        Initialize library manager.

        Args:
            library_path: Root directory of the media library
        """
        self.library_path = Path(library_path).resolve()
        self._index: Dict[int, str] = {}
        self._index_lock = threading.Lock()

    def are_mandatory_granted(self) -> bool:
        """True if the library root exists and can be listed, read and written."""
        return self.library_path.is_dir() and os.access(self.library_path, os.R_OK | os.W_OK | os.X_OK)

    def _to_local_file(self, absolute_path: str) -> Optional[LocalFile]:
        try:
            stat = os.stat(absolute_path)
        except FileNotFoundError:
            return None

        parent = os.path.dirname(absolute_path)
        relative_dir = Path(os.path.relpath(parent, self.library_path)).as_posix()
        relative_path = "" if relative_dir == "." else f"{relative_dir}/"
        display_name = os.path.basename(absolute_path)
        return LocalFile(
            id=stat.st_ino,
            display_name=display_name,
            date_modified=mtime_to_datetime(stat.st_mtime_ns),
            absolute_path=absolute_path,
            relative_path=relative_path,
            is_trashed=display_name.startswith(TRASHED_PREFIX),
        )

    def _walk(self) -> Iterable[str]:
        for directory, _, file_names in os.walk(self.library_path):
            for name in file_names:
                if name.startswith(TEMPORARY_PREFIX):
                    continue
                yield os.path.join(directory, name)

    def scan(self) -> List[LocalFile]:
        """Enumerate every file of the library and rebuild the identity index."""
        files = []
        index = {}
        for absolute_path in self._walk():
            local_file = self._to_local_file(absolute_path)
            if local_file is None:
                continue
            files.append(local_file)
            index[local_file.id] = absolute_path
        with self._index_lock:
            self._index = index
        logger.debug(f"Scanned {len(files)} files in {self.library_path}")
        return files

    def get_all(self) -> List[LocalFile]:
        """Every file of the library, freshly scanned."""
        return self.scan()

    def get_all_ids(self, path_exclusions: Iterable[str] = ()) -> Set[int]:
        """
        Identities of every syncable file.

        Args:
            path_exclusions: Library-relative directories to leave out ("DCIM/Thumbs/")

        Returns:
            Identities of files that are neither trashed nor excluded
        """
        exclusions = set(path_exclusions)
        return {
            f.id for f in self.get_all()
            if not f.is_trashed and f.relative_path not in exclusions
        }

    def get_by_id(self, local_id: int) -> Optional[LocalFile]:
        """Look a file up by identity, rescanning once if the index is stale."""
        with self._index_lock:
            absolute_path = self._index.get(local_id)
        if absolute_path is not None:
            local_file = self._to_local_file(absolute_path)
            if local_file is not None and local_file.id == local_id:
                return local_file

        for local_file in self.scan():
            if local_file.id == local_id:
                return local_file
        return None

    def get_by_path(self, absolute_path: str) -> Optional[LocalFile]:
        return self._to_local_file(os.path.abspath(absolute_path))

    def delete_file(self, local_file: LocalFile) -> None:
        """Delete a file (or an empty directory) from the library."""
        path = local_file.absolute_path
        if os.path.isdir(path):
            os.rmdir(path)
        elif os.path.lexists(path):
            os.remove(path)
        with self._index_lock:
            self._index.pop(local_file.id, None)
        logger.info(f"Deleted local file {path}")

    def notify_updated_file(self, absolute_path: str) -> Optional[LocalFile]:
        """
        Register a file written behind the index's back (e.g. by a download).

        Returns:
            The refreshed entry, None if the file is not there
        """
        local_file = self.get_by_path(absolute_path)
        if local_file is not None:
            with self._index_lock:
                self._index[local_file.id] = local_file.absolute_path
        return local_file
