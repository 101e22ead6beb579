"""
Shared fixtures for the DavSync tests

Provides an in-memory WebDAV store standing in for WebDavClient, a temporary
library and database, and a ready-to-use reconciliation engine.
"""

import itertools
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from davsync.exceptions import DavNotEmptyError, DavNotFoundError, DavProtocolError
from davsync.managers import DatabaseManager, ErrorSink, LibraryManager
from davsync.models import CollectionPath, FilePath, Resource, RootPath, SyncSettings
from davsync.operations import SyncOperations

FIXTURES_DIR = Path(__file__).parent / "fixtures"

ROOT_URL = "https://dav.example.com/remote.php/dav/files/foouser/"


def load_fixture(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


@dataclass
class FakeEntry:
    content: bytes
    last_modified: datetime
    etag: str


class FakeWebDav:
    """In-memory WebDAV store with the WebDavClient interface used by the engine."""

    def __init__(self):
        self.root_url = RootPath(ROOT_URL)
        self.files = {}
        self.collections = {"/"}
        self.calls = []
        self._etags = itertools.count(1)
        self._clock = datetime(2023, 6, 10, 21, 6, 18, tzinfo=timezone.utc)
        self._lock = threading.RLock()

    # ---- test helpers ----

    def _next_etag(self) -> str:
        return f'"etag-{next(self._etags)}"'

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=60)
        return self._clock

    def add_file(self, path: str, content: bytes = b"remote") -> FakeEntry:
        with self._lock:
            self.mkcol_recursive(FilePath(path).get_parent(), record=False)
            entry = FakeEntry(content, self._tick(), self._next_etag())
            self.files[path] = entry
            return entry

    def update_file(self, path: str, content: bytes) -> FakeEntry:
        with self._lock:
            entry = self.files[path]
            entry.content = content
            entry.last_modified = self._tick()
            entry.etag = self._next_etag()
            return entry

    def _resource(self, path: str, is_collection: bool) -> Resource:
        href = self.root_url.path + path.lstrip("/")
        if is_collection:
            return Resource(root_path=self.root_url, href=href, is_collection=True, etag='"col"')
        entry = self.files[path]
        return Resource(
            root_path=self.root_url,
            href=href,
            last_modified=entry.last_modified,
            is_collection=False,
            etag=entry.etag,
            content_length=str(len(entry.content)),
            content_type="image/jpeg",
        )

    # ---- WebDavClient interface ----

    def get_properties(self, path) -> Resource:
        with self._lock:
            self.calls.append(("PROPFIND", path.get_path()))
            if path.get_path() in self.files:
                return self._resource(path.get_path(), False)
            collection = CollectionPath(path.get_path()).get_path()
            if collection in self.collections:
                return self._resource(collection, True)
            raise DavNotFoundError(path.get_path())

    def get_properties_from_parent_cache(self, path) -> Resource:
        return self.get_properties(path)

    def _children(self, collection: str):
        depth = collection.count("/")
        files = [p for p in self.files if p.startswith(collection) and p.count("/") == depth]
        collections = [c for c in self.collections
                       if c != collection and c.startswith(collection) and c.count("/") == depth + 1]
        return files, collections

    def list(self, collection: CollectionPath):
        with self._lock:
            self.calls.append(("LIST", collection.get_path()))
            if collection.get_path() not in self.collections:
                raise DavNotFoundError(collection.get_path())
            files, collections = self._children(collection.get_path())
            return ([self._resource(collection.get_path(), True)]
                    + [self._resource(c, True) for c in sorted(collections)]
                    + [self._resource(f, False) for f in sorted(files)])

    def mkcol_recursive(self, path: CollectionPath, record: bool = True) -> None:
        with self._lock:
            if record:
                self.calls.append(("MKCOL", path.get_path()))
            current = "/"
            for segment in path.get_path_no_leading().split("/"):
                if segment:
                    current = f"{current}{segment}/"
                    self.collections.add(current)

    def delete(self, path) -> None:
        with self._lock:
            self.calls.append(("DELETE", path.get_path()))
            if path.get_path() in self.files:
                del self.files[path.get_path()]
                return
            collection = CollectionPath(path.get_path()).get_path()
            if collection not in self.collections:
                raise DavNotFoundError(path.get_path())
            self.collections = {c for c in self.collections if not c.startswith(collection)}
            self.files = {p: e for p, e in self.files.items() if not p.startswith(collection)}

    def delete_collection_if_empty(self, path: CollectionPath) -> None:
        with self._lock:
            files, collections = self._children(path.get_path())
            if files or collections:
                raise DavNotEmptyError(f"Cannot delete {path.get_path()}: not empty")
            self.delete(path)

    def move(self, src, dst) -> None:
        with self._lock:
            self.calls.append(("MOVE", src.get_path(), dst.get_path()))
            if dst.get_path() in self.files:
                raise DavProtocolError("Precondition failed", status=412)
            if src.get_path() not in self.files:
                raise DavNotFoundError(src.get_path())
            self.files[dst.get_path()] = self.files.pop(src.get_path())

    def put(self, local_file_path: str, file: FilePath):
        with self._lock:
            self.calls.append(("PUT", file.get_path()))
            if file.get_parent().get_path() not in self.collections:
                raise DavProtocolError("Conflict", status=409)
            with open(local_file_path, "rb") as f:
                content = f.read()
            entry = FakeEntry(content, self._tick(), self._next_etag())
            self.files[file.get_path()] = entry
            return entry.etag

    def download(self, remote_file: FilePath, local_file_path: str) -> None:
        with self._lock:
            self.calls.append(("GET", remote_file.get_path()))
            if remote_file.get_path() not in self.files:
                raise DavNotFoundError(remote_file.get_path())
            content = self.files[remote_file.get_path()].content
        os.makedirs(os.path.dirname(local_file_path), exist_ok=True)
        with open(local_file_path, "wb") as f:
            f.write(content)

    def transfer_calls(self):
        return [call for call in self.calls if call[0] in ("PUT", "GET", "MOVE", "DELETE")]


class RecordingQueue:
    """Work queue that remembers what the engine scheduled."""

    def __init__(self):
        self.db_files = []
        self.local_files = []
        self.dav = []

    def enqueue_db_file(self, pathname, immediate=False):
        self.db_files.append(pathname)

    def enqueue_local_file(self, local_id, immediate=False, skip_if_tracked=False):
        self.local_files.append((local_id, skip_if_tracked))

    def enqueue_dav(self, path, immediate=False, is_collection=False):
        self.dav.append((path, is_collection))


@pytest.fixture
def fake_dav():
    return FakeWebDav()


@pytest.fixture
def library_dir(tmp_path):
    path = tmp_path / "library"
    path.mkdir()
    return path


@pytest.fixture
def database(tmp_path):
    db = DatabaseManager(str(tmp_path / "db" / "davsync.db"))
    db.initialize_database()
    yield db
    db.close()


@pytest.fixture
def settings(library_dir, tmp_path):
    return SyncSettings(
        url=ROOT_URL,
        library_path=str(library_dir),
        database_path=str(tmp_path / "db" / "davsync.db"),
    )


@pytest.fixture
def library(library_dir):
    return LibraryManager(str(library_dir))


@pytest.fixture
def error_sink(database):
    return ErrorSink(database)


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def engine(settings, fake_dav, database, library, error_sink, queue):
    return SyncOperations(settings, fake_dav, database, library, error_sink, queue)
