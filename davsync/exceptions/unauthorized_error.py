"""
DavSync - Unauthorized Error Exception

Raised when the server rejects the configured credentials.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class DavUnauthorizedError(DavSyncError):
    """Exception for authentication errors."""
    pass
