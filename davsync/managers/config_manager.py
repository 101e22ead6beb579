"""
DavSync - Configuration Manager

Handles loading and saving client configuration from/to config.json.
Manages OS credential store integration for password storage.

Author: DavSync Project
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from davsync.exceptions import SyncConfigurationError
from davsync.models import ConflictStrategy, SyncSettings

# Configure logging
logger = logging.getLogger(__name__)

KEYRING_SERVICE = "DavSync"

# Default configuration values
DEFAULT_CONFIG = {
    "url": "",
    "dav_path": "",
    "username": None,  # Username stored in config, password in OS credential store
    "verify_ssl": True,
    "library_path": None,  # None means the user's Pictures folder
    "database_path": "database/davsync.db",
    "conflict_strategy": ConflictStrategy.IGNORE.value,
    "path_exclusions": [],  # Library-relative directories, e.g. "DCIM/.thumbnails/"
    "sync_interval_minutes": 60,
    "max_requests_per_host": 6,  # Also the size of the worker permit pool
    "connect_timeout": 10,
    "read_timeout": 60,
    "log_level": "INFO",
    "log_retention_days": 30
}


class ConfigManager:
    """
    Manages client configuration and credentials.

    Responsibilities:
    - Load/save config.json next to the executable (same location as logs folder)
    - Store/retrieve password from OS credential store via keyring
    - Build immutable SyncSettings snapshots for the sync services
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory holding config.json. Defaults to the
                        executable directory (frozen) or the working directory.
        """
        if config_dir is not None:
            base_dir = Path(config_dir)
        elif getattr(sys, 'frozen', False):
            # Running as compiled executable
            base_dir = Path(sys.executable).parent
        else:
            # Running as script
            base_dir = Path.cwd()

        self.base_dir = base_dir
        self.config_file = base_dir / "config.json"
        self.config: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration from config.json.
        Creates default config if file doesn't exist.

        Returns:
            Configuration dictionary
        """
        if self.config_file.exists():
            logger.debug(f"Loading configuration from {self.config_file}")
            try:
                with open(self.config_file, 'r') as f:
                    self.config = json.load(f)
            except json.JSONDecodeError as e:
                raise SyncConfigurationError(f"Invalid configuration file {self.config_file}: {e}") from e
            # Merge with defaults for any missing keys
            for key, value in DEFAULT_CONFIG.items():
                if key not in self.config:
                    self.config[key] = value
            logger.info("Configuration loaded successfully")
        else:
            logger.info(f"Configuration file not found, creating default at {self.config_file}")
            self.config = json.loads(json.dumps(DEFAULT_CONFIG))
            self.save_config()

        return self.config

    def save_config(self):
        """Save current configuration to config.json."""
        logger.debug(f"Saving configuration to {self.config_file}")
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self.config, f, indent=2)
        logger.debug("Configuration saved successfully")

    def get(self, key: str, default=None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        """
        Set configuration value and save to file.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self.config[key] = value
        self.save_config()

    def store_credentials(self, username: str, password: str):
        """
        Store credentials in OS credential store.

        Args:
            username: Username to store
            password: Password to store (securely in OS credential store)
        """
        import keyring

        logger.info(f"Storing credentials for user: {username}")

        # Store username in config.json
        self.set("username", username)

        # Store password in OS credential store
        keyring.set_password(KEYRING_SERVICE, username, password)

        logger.debug("Credentials stored successfully")

    def get_credentials(self) -> Optional[tuple[str, str]]:
        """
        Retrieve credentials from OS credential store.

        Returns:
            Tuple of (username, password) or None if not found
        """
        import keyring
        from keyring.errors import KeyringError

        logger.debug("Retrieving credentials from OS credential store")

        # Get username from config
        username = self.get("username")
        if not username:
            logger.debug("No username found in configuration")
            return None

        # Get password from OS credential store
        try:
            password = keyring.get_password(KEYRING_SERVICE, username)
        except KeyringError as e:
            logger.warning(f"Credential store unavailable: {e}")
            return None
        if not password:
            logger.warning(f"No password found in credential store for user: {username}")
            return None

        logger.debug(f"Credentials retrieved successfully for user: {username}")
        return (username, password)

    def get_library_path(self) -> Path:
        """Local library root, defaulting to the user's Pictures folder."""
        configured = self.get("library_path")
        if configured:
            return Path(configured).expanduser()
        return Path.home() / "Pictures"

    def get_settings(self) -> SyncSettings:
        """
        Build an immutable settings snapshot from the current configuration.

        Returns:
            SyncSettings

        Raises:
            SyncConfigurationError: If a value is invalid
        """
        credentials = self.get_credentials()
        username, password = credentials if credentials else (self.get("username") or "", "")

        database_path = Path(self.get("database_path", DEFAULT_CONFIG["database_path"]))
        if not database_path.is_absolute():
            database_path = self.base_dir / database_path

        try:
            return SyncSettings(
                url=self.get("url") or "",
                dav_path=self.get("dav_path") or "",
                username=username,
                password=password,
                verify_ssl=self.get("verify_ssl", True),
                library_path=str(self.get_library_path()),
                database_path=str(database_path),
                conflict_strategy=ConflictStrategy(self.get("conflict_strategy", ConflictStrategy.IGNORE.value)),
                path_exclusions=frozenset(self.get("path_exclusions") or []),
                sync_interval_minutes=self.get("sync_interval_minutes", 60),
                max_requests_per_host=self.get("max_requests_per_host", 6),
                connect_timeout=self.get("connect_timeout", 10),
                read_timeout=self.get("read_timeout", 60),
            )
        except (ValueError, ValidationError) as e:
            raise SyncConfigurationError(f"Invalid configuration: {e}") from e
