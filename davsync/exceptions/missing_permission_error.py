"""
DavSync - Missing Permission Error Exception

Raised when the local library cannot be read or written.
Aborts a full synchronization pass.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class MissingPermissionError(DavSyncError):
    """Exception for missing local filesystem permissions."""
    pass
