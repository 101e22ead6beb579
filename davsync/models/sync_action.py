"""
DavSync - Sync Action Model

Outcome of a single reconciliation decision.

Author: DavSync Project
"""

from enum import Enum


class SyncAction(Enum):
    """Action taken for one file by the reconciliation engine."""
    NONE = "none"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    MOVE = "move"
    DELETE_LOCAL = "delete_local"
    DELETE_REMOTE = "delete_remote"
    FORGET = "forget"
    ADOPT = "adopt"
