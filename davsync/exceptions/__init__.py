"""
DavSync - Exceptions Package

Contains all exception classes for the DavSync client.

Author: DavSync Project
"""

from .davsync_error import DavSyncError
from .configuration_error import SyncConfigurationError
from .not_found_error import DavNotFoundError
from .unauthorized_error import DavUnauthorizedError
from .protocol_error import DavProtocolError
from .parse_error import DavParseError
from .not_empty_error import DavNotEmptyError
from .missing_permission_error import MissingPermissionError
from .job_cancelled_error import JobCancelledError

__all__ = [
    'DavSyncError',
    'SyncConfigurationError',
    'DavNotFoundError',
    'DavUnauthorizedError',
    'DavProtocolError',
    'DavParseError',
    'DavNotEmptyError',
    'MissingPermissionError',
    'JobCancelledError'
]
