"""
DavSync - Not Found Error Exception

Raised when the server answers 404 for a path.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class DavNotFoundError(DavSyncError):
    """Exception raised when a remote file or collection does not exist."""

    def __init__(self, url: str):
        super().__init__(f"Not found: {url}")
        self.url = url
