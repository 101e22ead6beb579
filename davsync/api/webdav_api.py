"""
DavSync - WebDAV Communication Module

Handles all communication with the remote WebDAV store.
Listing (PROPFIND), collection creation (MKCOL), upload (PUT),
download (GET), MOVE and DELETE, with a short-lived listing cache and
per-path locks so concurrent jobs never create the same collection twice.

Author: DavSync Project
"""

import logging
import os
import tempfile
import threading
from typing import Dict, List, Optional, Set

import requests
from requests.adapters import HTTPAdapter

from davsync.exceptions import (
    DavNotEmptyError,
    DavNotFoundError,
    DavProtocolError,
    DavUnauthorizedError,
    SyncConfigurationError
)
from davsync.models import CollectionPath, DavPath, FilePath, Resource, RootPath, SyncSettings
from davsync.util import BoundedTTLMap, ParametrizedLock, check_cancelled

from .auth import ChallengeAuth
from .propfind_parser import parse_propfind

# Configure logging
logger = logging.getLogger(__name__)

LIST_CACHE_TTL_SECONDS = 30
LIST_CACHE_MAX_ENTRIES = 1000
DOWNLOAD_CHUNK_SIZE = 64 * 1024


class WebDavClient:
    """
    Client for a WebDAV file store.

    Responsibilities:
    - Issue WebDAV requests below the configured root
    - Map HTTP failures to typed exceptions
    - Cache depth-1 listings for a short time
    - Create missing collections exactly once, even under concurrency
    """

    def __init__(self, settings: SyncSettings):
        """
        Initialize the client from a configuration snapshot.

        Args:
            settings: Current settings (URL, WebDAV path, credentials, limits)

        Raises:
            SyncConfigurationError: If the URL is missing or malformed
        """
        self._mkcol_lock: ParametrizedLock[str] = ParametrizedLock()
        self._list_lock: ParametrizedLock[str] = ParametrizedLock()
        self._list_cache: BoundedTTLMap[str, List[Resource]] = BoundedTTLMap(
            max_size=LIST_CACHE_MAX_ENTRIES,
            ttl_seconds=LIST_CACHE_TTL_SECONDS,
        )
        # Collections known to exist, never probed again
        self._existing_collections: Set[str] = set()
        self._existing_lock = threading.Lock()
        self.session: Optional[requests.Session] = None
        self.update_settings(settings)

    @staticmethod
    def build_root_path(settings: SyncSettings) -> RootPath:
        if not settings.url:
            raise SyncConfigurationError("No WebDAV URL configured")
        return RootPath(settings.url).concat(CollectionPath(settings.dav_path))

    def update_settings(self, settings: SyncSettings) -> None:
        """
        Switch to a new configuration snapshot.

        A new root invalidates the listing cache and the known collections.
        """
        root_url = self.build_root_path(settings)
        logger.debug(f"Configuring WebDAV client with URL: {root_url.canonical_url}")

        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=settings.max_requests_per_host,
            pool_maxsize=settings.max_requests_per_host,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.verify = settings.verify_ssl

        old_session = self.session
        self.root_url = root_url
        self.session = session
        self.auth = ChallengeAuth(settings.username, settings.password)
        self.timeout = (settings.connect_timeout, settings.read_timeout)
        self._list_cache.clear()
        with self._existing_lock:
            self._existing_collections.clear()

        if old_session is not None:
            old_session.close()

    def close(self):
        """Close the session and release pooled connections."""
        if self.session:
            self.session.close()
            logger.debug("WebDAV client session closed")

    # ==================== Request plumbing ====================

    def _send(self, method: str, url: str, headers: Dict[str, str], body_path: Optional[str],
              auth, stream: bool) -> requests.Response:
        try:
            if body_path is None:
                return self.session.request(method, url, headers=headers, auth=auth,
                                            timeout=self.timeout, stream=stream)
            with open(body_path, "rb") as body:
                return self.session.request(method, url, headers=headers, data=body, auth=auth,
                                            timeout=self.timeout, stream=stream)
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Cannot connect to server at {url}: {e}")
            raise DavProtocolError(f"Cannot connect to server at {url}") from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timed out: {method} {url}")
            raise DavProtocolError(f"Request timed out: {method} {url}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {str(e)}")
            raise DavProtocolError(f"Request error: {str(e)}") from e

    def _make_request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                      body_path: Optional[str] = None, stream: bool = False) -> requests.Response:
        """
        Make a WebDAV request, negotiating authentication on a 401 challenge.

        Args:
            method: HTTP or WebDAV method (PROPFIND, MKCOL, ...)
            url: Full, already encoded URL
            headers: Extra request headers
            body_path: Local file to send as request body
            stream: Whether to stream the response body

        Returns:
            The successful (2xx) response

        Raises:
            DavNotFoundError: On 404
            DavUnauthorizedError: On 401 after negotiation
            DavProtocolError: On any other failure
        """
        check_cancelled()
        headers = dict(headers or {})
        logger.debug(f"WebDAV request: {method} {url}")

        auth = self.auth.for_url(url)
        response = self._send(method, url, headers, body_path, auth, stream)
        if response.status_code == 401:
            negotiated = self.auth.negotiate(response)
            if negotiated is not None and negotiated is not auth:
                response.close()
                check_cancelled()
                response = self._send(method, url, headers, body_path, negotiated, stream)

        if response.status_code == 404:
            response.close()
            raise DavNotFoundError(url)
        if response.status_code == 401:
            response.close()
            logger.warning(f"Authentication rejected for {url}")
            raise DavUnauthorizedError(f"Authentication failed for {url}")
        if not 200 <= response.status_code < 300:
            body = response.text
            response.close()
            logger.error(f"Request failed with status {response.status_code}: {method} {url}")
            raise DavProtocolError(
                f"Unexpected code {response.status_code} for {method} {url}",
                status=response.status_code,
                body=body,
            )
        return response

    def _propfind(self, url: str, depth: int = 1) -> List[Resource]:
        # RFC 4918: an empty PROPFIND body means allprop
        response = self._make_request("PROPFIND", url, headers={"Depth": str(depth)})
        return parse_propfind(response.content, self.root_url)

    # ==================== Listing ====================

    def list(self, path: CollectionPath) -> List[Resource]:
        """List a collection (depth 1); the collection itself is included."""
        return self._propfind(self.root_url.url_for(path), 1)

    def get_children(self, path: CollectionPath) -> List[Resource]:
        """List a collection without its own entry."""
        return [r for r in self.list(path) if r.relative_href.get_path() != path.get_path()]

    def list_cached(self, path: CollectionPath) -> List[Resource]:
        """
        List a collection through a short-lived cache.

        Concurrent callers asking for the same uncached collection share a
        single PROPFIND.
        """
        key = path.get_path()
        with self._list_lock.locked(key):
            resources = self._list_cache.get(key)
            if resources is None:
                resources = self.list(path)
                self._list_cache.put(key, resources)
            return resources

    def get_properties(self, path: DavPath) -> Resource:
        """
        Fetch the properties of a single file or collection (depth 0).

        Raises:
            DavNotFoundError: If the path does not exist
        """
        resources = self._propfind(self.root_url.url_for(path), 0)
        if not resources:
            raise DavProtocolError(f"Empty PROPFIND response for {path}")
        return resources[0]

    def get_properties_from_parent_cache(self, path: DavPath) -> Resource:
        """
        Look a path up in the cached listing of its parent first.

        Falls back to get_properties() when the parent listing does not
        mention it.
        """
        resource_path = path.get_path()
        for resource in self.list_cached(path.get_parent()):
            if resource.relative_href.get_path() == resource_path:
                return resource
        return self.get_properties(path)

    def exists(self, path: DavPath) -> bool:
        """Test if a collection or a file exists."""
        try:
            self._propfind(self.root_url.url_for(path), 0)
            return True
        except DavNotFoundError:
            return False

    # ==================== Mutations ====================

    def delete(self, path: DavPath) -> None:
        """
        Delete a file or a collection.

        Raises:
            DavNotFoundError: If it was already gone
        """
        key = path.get_path_no_leading()
        with self._mkcol_lock.locked(key):
            with self._existing_lock:
                if isinstance(path, CollectionPath):
                    # Descendants go away with the collection
                    self._existing_collections = {
                        known for known in self._existing_collections if not known.startswith(key)
                    }
                else:
                    self._existing_collections.discard(key)
            self._make_request("DELETE", self.root_url.url_for(path)).close()
        logger.info(f"Deleted remote {path}")

    def delete_collection_if_empty(self, path: CollectionPath) -> None:
        """
        Delete a collection only if it has no children.

        Raises:
            DavNotEmptyError: If anything besides the collection itself is listed
        """
        resources = self.list(path)
        if any(r.relative_href.get_path() != path.get_path() for r in resources):
            raise DavNotEmptyError(f"Cannot delete {path.get_path()}: not empty")
        self.delete(path)

    def _mkcol(self, path: CollectionPath) -> None:
        """Create a collection whose parent already exists."""
        try:
            self._make_request("MKCOL", self.root_url.url_for(path)).close()
        except DavProtocolError as e:
            # 405: the collection appeared in the meantime
            if e.status != 405:
                raise
            logger.debug(f"Collection already exists: {path}")

    def mkcol_recursive(self, path: CollectionPath) -> None:
        """Create a collection and any missing ancestor, one segment at a time."""
        current = ""
        for segment in path.get_path_no_leading().split("/"):
            if not segment:
                continue
            current = f"{current}/{segment}"
            collection = CollectionPath(current)
            key = collection.get_path_no_leading()
            with self._mkcol_lock.locked(key):
                with self._existing_lock:
                    if key in self._existing_collections:
                        continue
                if not self.exists(collection):
                    logger.debug(f"Creating collection {collection}")
                    self._mkcol(collection)
                with self._existing_lock:
                    self._existing_collections.add(key)

    def move(self, src: DavPath, dst: DavPath) -> None:
        """
        Move a file or collection. Never overwrites an existing destination.

        Raises:
            DavProtocolError: If the destination exists (412) or on other failure
        """
        headers = {
            "Overwrite": "F",
            "Destination": self.root_url.url_for(dst),
        }
        self._make_request("MOVE", self.root_url.url_for(src), headers=headers).close()
        logger.info(f"Moved remote {src} -> {dst}")

    def put(self, local_file_path: str, file: FilePath) -> Optional[str]:
        """
        Upload a file into an existing collection.

        Source creation and modification times are sent in the ownCloud /
        Nextcloud X-OC-CTime and X-OC-MTime headers when they can be read.

        Args:
            local_file_path: Absolute path of the local file
            file: Destination path

        Returns:
            The ETag assigned by the server, if any
        """
        headers = {}
        try:
            stat = os.stat(local_file_path)
            headers["X-OC-MTime"] = str(int(stat.st_mtime))
            headers["X-OC-CTime"] = str(int(getattr(stat, "st_birthtime", stat.st_ctime)))
        except OSError as e:
            logger.warning(f"Cannot read attributes of {local_file_path}: {e}")

        response = self._make_request("PUT", self.root_url.url_for(file), headers=headers,
                                      body_path=local_file_path)
        etag = response.headers.get("ETag")
        response.close()
        logger.info(f"Uploaded {local_file_path} -> {file}")
        return etag

    def download(self, remote_file: FilePath, local_file_path: str) -> None:
        """
        Download a file, replacing any existing local copy.

        Intermediate local directories are created as needed; the body is
        written to a temporary file first so a failed transfer never leaves a
        truncated file behind.
        """
        directory = os.path.dirname(local_file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        response = self._make_request("GET", self.root_url.url_for(remote_file), stream=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".davsync-", dir=directory or None)
        try:
            try:
                with response, os.fdopen(fd, "wb") as out:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        check_cancelled()
                        if chunk:
                            out.write(chunk)
            except requests.exceptions.RequestException as e:
                raise DavProtocolError(f"Download error: {str(e)}") from e
            os.replace(tmp_path, local_file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Downloaded {remote_file} -> {local_file_path}")
