"""
DavSync - Database Manager

This module manages the SQLite database holding the synchronization state:
one SyncRecord per tracked file and the SyncError log.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine, func
from sqlalchemy.orm import sessionmaker

from davsync.models.database import Base, SyncError, SyncRecord

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Manages database connection, initialization, and operations

    Every method opens its own short session and commits before returning,
    so records handed out are detached snapshots that callers may keep.
    """

    def __init__(self, db_path: str = "database/davsync.db"):
        """
        Initialize database manager

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Ensure database directory exists
        db_dir = Path(db_path).parent
        if db_dir and str(db_dir) != '.':
            db_dir.mkdir(parents=True, exist_ok=True)

        # Worker threads share the engine; SQLite waits up to 30s on a locked database
        self.engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def initialize_database(self) -> None:
        """Create all tables if they don't exist"""
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Database initialized: {self.db_path}")

    def close(self) -> None:
        self.engine.dispose()

    # ==================== Sync records ====================

    def get_all_ids(self) -> List[int]:
        """Local identities of every tracked file"""
        with self.SessionLocal() as session:
            return [row[0] for row in session.query(SyncRecord.local_id).all()]

    def get_all_pathnames(self) -> List[str]:
        with self.SessionLocal() as session:
            return [row[0] for row in session.query(SyncRecord.pathname).all()]

    def get_direct_children_pathnames(self, collection_path: str) -> List[str]:
        """
        Tracked paths directly inside a collection.

        Args:
            collection_path: Collection path with leading and trailing "/"

        Returns:
            Pathnames one level below the collection (no deeper descendants)
        """
        with self.SessionLocal() as session:
            rows = session.query(SyncRecord.pathname).filter(
                SyncRecord.pathname.startswith(collection_path, autoescape=True)
            ).all()
        return [
            row[0] for row in rows
            if "/" not in row[0][len(collection_path):].rstrip("/")
        ]

    def count_records(self) -> int:
        with self.SessionLocal() as session:
            return session.query(func.count(SyncRecord.pathname)).scalar()

    def find_by_name(self, pathname: str) -> Optional[SyncRecord]:
        with self.SessionLocal() as session:
            return session.get(SyncRecord, pathname)

    def find_by_id(self, local_id: int) -> Optional[SyncRecord]:
        with self.SessionLocal() as session:
            return session.query(SyncRecord).filter(SyncRecord.local_id == local_id).first()

    def save_record(self, record: SyncRecord) -> None:
        """Insert or replace a (possibly detached) record, keyed by pathname"""
        with self.SessionLocal() as session:
            session.merge(record)
            session.commit()
        logger.debug(f"Saved {record}")

    def delete_record(self, record: SyncRecord) -> None:
        with self.SessionLocal() as session:
            session.query(SyncRecord).filter(SyncRecord.pathname == record.pathname).delete()
            session.commit()
        logger.debug(f"Deleted {record}")

    # ==================== Sync errors ====================

    def insert_error(self, path: str, message: str) -> None:
        with self.SessionLocal() as session:
            session.add(SyncError(created_date=datetime.now(timezone.utc), path=path, message=message))
            session.commit()

    def get_errors(self) -> List[SyncError]:
        with self.SessionLocal() as session:
            return session.query(SyncError).order_by(SyncError.created_date.desc()).all()

    def count_errors(self) -> int:
        with self.SessionLocal() as session:
            return session.query(func.count(SyncError.error_id)).scalar()

    def delete_all_errors(self) -> None:
        with self.SessionLocal() as session:
            session.query(SyncError).delete()
            session.commit()
