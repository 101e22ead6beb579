"""
DavSync - Sync Settings Model

Immutable snapshot of the configuration consumed by the protocol client and
the reconciliation engine. Produced by ConfigManager.get_settings() and
replaced as a whole when the configuration changes.

Author: DavSync Project
"""

from typing import FrozenSet

from pydantic import BaseModel, ConfigDict, Field

from .conflict_strategy import ConflictStrategy


class SyncSettings(BaseModel):
    """Configuration snapshot"""
    model_config = ConfigDict(frozen=True)

    url: str = ""
    dav_path: str = ""
    username: str = ""
    password: str = Field(default="", repr=False)
    verify_ssl: bool = True
    library_path: str = ""
    database_path: str = "database/davsync.db"
    conflict_strategy: ConflictStrategy = ConflictStrategy.IGNORE
    path_exclusions: FrozenSet[str] = frozenset()
    sync_interval_minutes: int = 60
    max_requests_per_host: int = 6
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
