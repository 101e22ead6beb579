"""
DavSync - Remote Path Model

Typed, normalized representations of remote WebDAV locations:
- RootPath: the configured server URL (always ending with "/")
- CollectionPath: a directory below the root (always "/.../")
- FilePath: a file below the root (always "/...", never ending with "/")

Paths below the root are kept decoded; percent_encode_path() is applied
only when building request URLs.

Author: DavSync Project
"""

from typing import Optional, Union
from urllib.parse import quote, unquote, urlsplit

from davsync.exceptions import SyncConfigurationError

# Characters allowed unescaped inside a path segment (RFC 3986 pchar minus unreserved)
SEGMENT_SAFE_CHARS = "!$&'()*+,;=:@"


def percent_encode_path(path: str) -> str:
    """
    Percent-encode a path, each "/"-delimited segment independently.

    Args:
        path: Decoded path, with or without leading slash

    Returns:
        Encoded path, separators preserved
    """
    return "/".join(quote(segment, safe=SEGMENT_SAFE_CHARS) for segment in path.split("/"))


class RootPath:
    """
    Root of the remote store.

    Attributes:
        canonical_url: Server URL, always ending with "/"
        path: Decoded URL path, always starting and ending with "/"
    """

    def __init__(self, url: str):
        if not url or not url.lower().startswith(("http://", "https://")):
            raise SyncConfigurationError("WebDAV URL must start with http(s)")
        if "?" in url or "#" in url:
            raise SyncConfigurationError("WebDAV URL malformed")
        self.canonical_url = url if url.endswith("/") else f"{url}/"
        parts = urlsplit(self.canonical_url)
        if not parts.netloc:
            raise SyncConfigurationError("WebDAV URL malformed")
        self.path = unquote(parts.path) or "/"

    @property
    def host(self) -> str:
        return urlsplit(self.canonical_url).hostname or ""

    @property
    def port(self) -> int:
        parts = urlsplit(self.canonical_url)
        if parts.port:
            return parts.port
        return 443 if parts.scheme.lower() == "https" else 80

    def concat(self, collection: "CollectionPath") -> "RootPath":
        """Return a new root pointing at a collection below this one."""
        return RootPath(self.canonical_url + collection.get_path_no_leading())

    def url_for(self, path: "DavPath") -> str:
        """Build the request URL of a path below this root."""
        return self.canonical_url + percent_encode_path(path.get_path_no_leading())

    def __eq__(self, other) -> bool:
        return isinstance(other, RootPath) and other.canonical_url == self.canonical_url

    def __hash__(self) -> int:
        return hash(self.canonical_url)

    def __repr__(self) -> str:
        return f"RootPath({self.canonical_url!r})"


class DavPath:
    """Common behaviour of collections and files below the root."""

    _path: str

    def get_path(self) -> str:
        return self._path

    def get_path_no_leading(self) -> str:
        return self._path[1:]

    def get_parent(self) -> "CollectionPath":
        stripped = self._path.rstrip("/")
        if not stripped:
            return CollectionPath("/")
        return CollectionPath(stripped[:stripped.rfind("/") + 1])

    def __eq__(self, other) -> bool:
        return type(other) is type(self) and other._path == self._path

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._path))

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._path!r})"


class CollectionPath(DavPath):
    """A collection path, normalized to start and end with "/"."""

    def __init__(self, path: str = "/"):
        path = path or "/"
        if not path.startswith("/"):
            path = f"/{path}"
        if not path.endswith("/"):
            path = f"{path}/"
        self._path = path


class FilePath(DavPath):
    """
    A file path, normalized to start with "/" and never end with "/".

    Can be built from a full path, from a collection and a file name, or from
    a listed Resource (see from_resource()).
    """

    def __init__(self, path: Union[str, CollectionPath], name: Optional[str] = None):
        if isinstance(path, CollectionPath):
            if name is None:
                raise ValueError("File name is required when building from a collection")
            path = path.get_path() + name.strip("/")
        if not path.startswith("/"):
            path = f"/{path}"
        self._path = path.rstrip("/") or "/"

    @classmethod
    def from_resource(cls, resource) -> "FilePath":
        return cls(resource.relative_href.get_path())
