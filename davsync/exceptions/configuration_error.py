"""
DavSync - Configuration Error Exception

Raised when the WebDAV endpoint or other settings are unusable.
Not retried: the user has to fix the configuration first.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class SyncConfigurationError(DavSyncError):
    """Exception for invalid or missing configuration."""
    pass
