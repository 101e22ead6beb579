"""
DavSync - Protocol Error Exception

Raised for any unexpected HTTP status or network failure.

Author: DavSync Project
"""

from typing import Optional

from .davsync_error import DavSyncError


class DavProtocolError(DavSyncError):
    """
    Exception for unexpected server answers.

    Attributes:
        status: HTTP status code, None when the request never got an answer
        body: Response body (may be empty)
    """

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body
