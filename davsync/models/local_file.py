"""
DavSync - Local File Model

A file of the local media library, as enumerated by the library index.

Author: DavSync Project
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LocalFile:
    """
    Local library entry.

    Attributes:
        id: Local identity (inode number, stable across renames)
        display_name: File name, e.g. "IMG1024.JPG"
        date_modified: Modification time (UTC)
        absolute_path: Absolute filesystem path
        relative_path: Directory relative to the library root, "" or ending with "/",
                       e.g. "DCIM/Vacation/"
        is_trashed: True when the file sits in the trash
    """
    id: int
    display_name: str
    date_modified: datetime
    absolute_path: str
    relative_path: str
    is_trashed: bool = False
