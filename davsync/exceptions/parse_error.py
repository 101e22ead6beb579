"""
DavSync - Parse Error Exception

Raised when a PROPFIND response cannot be parsed.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class DavParseError(DavSyncError):
    """Exception for malformed multistatus documents."""
    pass
