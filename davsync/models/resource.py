"""
DavSync - Resource Model

Immutable snapshot of one entry of a PROPFIND listing.

Author: DavSync Project
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from urllib.parse import urlsplit

from .dav_path import CollectionPath, FilePath, RootPath


@dataclass(frozen=True)
class Resource:
    """
    One remote file or collection as reported by the server.

    Attributes:
        root_path: Root the listing was requested under
        href: Decoded href (URL path) of the resource
        creation_date: Creation date, if the server reports one
        last_modified: Last modification date
        is_collection: True for collections
        etag: Opaque content version token
        content_length: Size in bytes as reported (raw string)
        content_type: MIME type
    """
    root_path: RootPath
    href: Optional[str] = None
    creation_date: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    is_collection: bool = False
    etag: Optional[str] = None
    content_length: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def relative_href(self) -> Union[FilePath, CollectionPath]:
        """The href rebased under the root path, typed per is_collection."""
        if self.href is None:
            raise ValueError("Resource has no href")
        href = self.href
        if href.lower().startswith(("http://", "https://")):
            href = urlsplit(href).path
        root = self.root_path.path
        if href.startswith(root):
            relative = href[len(root):]
        elif href.rstrip("/") == root.rstrip("/"):
            relative = ""
        else:
            relative = href
        return CollectionPath(relative) if self.is_collection else FilePath(relative)
