"""
DavSync - Sync Error Database Model

Append-only log of per-file failures that exhausted their retries.
Cleared at the start of every full synchronization pass.
"""

from sqlalchemy import Column, Integer, String

from davsync.models.database.base import Base, UTCDateTime


class SyncError(Base):
    """Error table - diagnostic records shown to the user"""
    __tablename__ = "error"

    error_id = Column(Integer, primary_key=True, autoincrement=True)
    created_date = Column(UTCDateTime, nullable=False)
    path = Column(String, nullable=False)
    message = Column(String, nullable=False)
