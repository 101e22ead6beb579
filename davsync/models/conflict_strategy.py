"""
DavSync - Conflict Strategy Model

What to do when a file changed on both sides since the last sync.

Author: DavSync Project
"""

from enum import Enum


class ConflictStrategy(Enum):
    """
    Conflict resolution strategies.

    - KEEP_LOCAL: upload the local copy over the remote one
    - KEEP_REMOTE: download the remote copy over the local one
    - IGNORE: leave both sides untouched
    """
    KEEP_LOCAL = "keep_local"
    KEEP_REMOTE = "keep_remote"
    IGNORE = "ignore"
