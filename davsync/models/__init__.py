"""
DavSync - Models Package

Contains data models and enumerations used by the client.

Author: DavSync Project
"""

from .dav_path import (
    RootPath,
    DavPath,
    CollectionPath,
    FilePath,
    percent_encode_path
)
from .resource import Resource
from .local_file import LocalFile
from .conflict_strategy import ConflictStrategy
from .sync_action import SyncAction
from .sync_settings import SyncSettings

__all__ = [
    'RootPath',
    'DavPath',
    'CollectionPath',
    'FilePath',
    'percent_encode_path',
    'Resource',
    'LocalFile',
    'ConflictStrategy',
    'SyncAction',
    'SyncSettings'
]
