"""
DavSync - Database Models Package

This package contains all SQLAlchemy database model definitions.
"""

# Import Base first
from davsync.models.database.base import Base, UTCDateTime

# Import all models
from davsync.models.database.sync_record import SyncRecord
from davsync.models.database.sync_error import SyncError

__all__ = [
    'Base',
    'UTCDateTime',
    'SyncRecord',
    'SyncError',
]
