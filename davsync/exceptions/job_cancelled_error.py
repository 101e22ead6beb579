"""
DavSync - Job Cancelled Error Exception

Raised inside a background job when the scheduler cancels it.

Author: DavSync Project
"""

from .davsync_error import DavSyncError


class JobCancelledError(DavSyncError):
    """Exception raised when a job is cancelled while waiting or running."""
    pass
