"""
DavSync - Base Exception

Base exception class for all DavSync errors.

Author: DavSync Project
"""


class DavSyncError(Exception):
    """Base exception for DavSync errors."""
    pass
