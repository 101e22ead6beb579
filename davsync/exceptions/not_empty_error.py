"""
DavSync - Not Empty Error Exception

Raised when refusing to delete a remote collection that still has children.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class DavNotEmptyError(DavSyncError):
    """Exception raised when a collection is not empty."""
    pass
