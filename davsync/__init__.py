"""
DavSync - WebDAV Media Library Synchronization

Bidirectional synchronization of a local media library with a WebDAV store.

Author: DavSync Project
"""

from .version import VERSION

__version__ = VERSION

__all__ = ['VERSION']
