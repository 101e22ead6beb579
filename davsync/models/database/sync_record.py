"""
DavSync - Sync Record Database Model

One row per tracked file, pairing a local file identity with its remote
counterpart and the last state both sides were seen in.
"""

from sqlalchemy import Boolean, Column, Index, Integer, String

from davsync.models.database.base import Base, UTCDateTime


class SyncRecord(Base):
    """
    File table - tracks synchronization state.
    Mutated only by the reconciliation engine.
    """
    __tablename__ = "file"

    pathname = Column(String, primary_key=True)  # remote path, leading "/"
    local_id = Column(Integer, nullable=False)  # local identity (inode)
    local_pathname = Column(String, nullable=False)  # absolute local path
    etag = Column(String, nullable=True)
    local_date_changed = Column(UTCDateTime, nullable=True)
    remote_date_changed = Column(UTCDateTime, nullable=True)
    is_collection = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('idx_file_local_id', 'local_id'),
    )

    def __repr__(self) -> str:
        return f"SyncRecord(pathname={self.pathname!r}, local_id={self.local_id}, etag={self.etag!r})"
