"""
DavSync - Managers Package

Contains manager classes for configuration, persistence, the local library
and error reporting.

Author: DavSync Project
"""

from .config_manager import ConfigManager, DEFAULT_CONFIG
from .database_manager import DatabaseManager
from .library_manager import LibraryManager
from .error_sink import ErrorSink

__all__ = [
    'ConfigManager',
    'DEFAULT_CONFIG',
    'DatabaseManager',
    'LibraryManager',
    'ErrorSink'
]
