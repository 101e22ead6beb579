"""
DavSync - CLI Mode Module

Implements the command-line interface for headless/automated operations.
Uses stored credentials, runs operations in the foreground and logs to a
timestamped file.

Author: DavSync Project
"""

import getpass
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from davsync.app import SyncApplication
from davsync.exceptions import (
    DavProtocolError,
    DavUnauthorizedError,
    SyncConfigurationError
)
from davsync.managers import ConfigManager
from davsync.models import CollectionPath


# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_MISSING_PERMISSION = 4


def setup_cli_logging(config_manager: ConfigManager) -> Path:
    """
    Setup logging for CLI mode with timestamped log file.

    Creates log file with format: davsync-YYYY-MM-DD-HH-MM-SS.log
    in a "logs" subdirectory next to config.json.

    Args:
        config_manager: ConfigManager instance for log settings

    Returns:
        Path to the created log file
    """
    # Get log level from config
    log_level = config_manager.get("log_level", "INFO")

    # Create timestamped log filename
    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
    log_filename = f"davsync-{timestamp}.log"

    # Create logs subdirectory if it doesn't exist
    log_dir = config_manager.base_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / log_filename

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)  # Also output to console
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"DavSync CLI Mode - Log file: {log_file}")
    logger.info(f"Log level: {log_level}")

    return log_file


def cleanup_old_logs(config_manager: ConfigManager, current_log: Path):
    """
    Delete log files older than retention period.

    Args:
        config_manager: ConfigManager instance for retention settings
        current_log: Path to current log file (don't delete this)
    """
    logger = logging.getLogger(__name__)
    retention_days = config_manager.get("log_retention_days", 30)

    if retention_days <= 0:
        return  # Retention disabled

    cutoff_time = datetime.now().timestamp() - (retention_days * 86400)

    deleted_count = 0
    for log_file in current_log.parent.glob("davsync-*.log"):
        if log_file == current_log:
            continue

        try:
            if log_file.stat().st_mtime < cutoff_time:
                log_file.unlink()
                deleted_count += 1
        except OSError as e:
            logger.warning(f"Failed to delete old log file {log_file}: {e}")

    if deleted_count > 0:
        logger.info(f"Deleted {deleted_count} old log file(s)")


def store_password(config_manager: ConfigManager) -> int:
    """Prompt for WebDAV credentials and keep them in the OS credential store."""
    username = input("WebDAV username: ").strip()
    if not username:
        print("No username given", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    password = getpass.getpass("WebDAV password: ")
    config_manager.store_credentials(username, password)
    print(f"Credentials stored for {username}")
    return EXIT_SUCCESS


def print_status(app: SyncApplication):
    print(f"Server:        {app.webdav.root_url.canonical_url}")
    print(f"Library:       {app.settings.library_path}")
    print(f"Tracked files: {app.db.count_records()}")
    print(f"Errors:        {app.db.count_errors()}")


def print_errors(app: SyncApplication) -> int:
    errors = app.db.get_errors()
    if not errors:
        print("No synchronization errors")
        return EXIT_SUCCESS
    for error in errors:
        print(f"{error.created_date:%Y-%m-%d %H:%M:%S}  {error.path}: {error.message}")
    return EXIT_FAILURE


def check_server(app: SyncApplication) -> int:
    """Probe the WebDAV root once so credential problems stop the run early."""
    logger = logging.getLogger(__name__)
    try:
        if not app.webdav.exists(CollectionPath()):
            logger.error(f"WebDAV path not found: {app.webdav.root_url.canonical_url}")
            return EXIT_CONFIG_ERROR
    except DavUnauthorizedError as e:
        logger.error(f"Authentication failed: {e}")
        return EXIT_AUTH_ERROR
    except DavProtocolError as e:
        logger.error(f"Server not reachable: {e}")
        return EXIT_FAILURE
    return EXIT_SUCCESS


def run_sync(app: SyncApplication, timeout: Optional[float]) -> int:
    logger = logging.getLogger(__name__)

    if not app.library.are_mandatory_granted():
        logger.error(f"Library not accessible: {app.settings.library_path}")
        return EXIT_MISSING_PERMISSION

    exit_code = check_server(app)
    if exit_code != EXIT_SUCCESS:
        return exit_code

    app.error_sink.add_listener(lambda path, message: logger.error(f"FAILED {path}: {message}"))

    if not app.run_full_sync(timeout):
        logger.error(f"Synchronization did not finish within {timeout}s")
        app.cancel_all()
        return EXIT_FAILURE

    error_count = app.db.count_errors()
    if error_count:
        logger.error(f"Synchronization finished with {error_count} error(s)")
        return EXIT_FAILURE
    return EXIT_SUCCESS


def run_watch(app: SyncApplication) -> int:
    logger = logging.getLogger(__name__)

    if not app.library.are_mandatory_granted():
        logger.error(f"Library not accessible: {app.settings.library_path}")
        return EXIT_MISSING_PERMISSION

    app.error_sink.add_listener(lambda path, message: logger.error(f"FAILED {path}: {message}"))
    app.start_periodic()
    logger.info(f"Watching, full pass every {app.settings.sync_interval_minutes} minute(s). Ctrl+C to stop")

    stop = threading.Event()
    while not stop.wait(1):
        pass
    return EXIT_SUCCESS


def run_cli_operation(operation: str, config_dir: Optional[Path] = None,
                      timeout: Optional[float] = None) -> int:
    """
    Execute a CLI operation.

    Process:
    1. Load configuration
    2. Setup logging to timestamped file
    3. Build the services from a settings snapshot
    4. Execute requested operation
    5. Return appropriate exit code

    Args:
        operation: "sync", "status", "errors", "watch" or "login"
        config_dir: Directory holding config.json
        timeout: Maximum seconds to wait for a sync to finish

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    logger = None
    app = None

    try:
        config_mgr = ConfigManager(config_dir)
        config_mgr.load_config()

        if operation == "login":
            return store_password(config_mgr)

        log_file = setup_cli_logging(config_mgr)
        logger = logging.getLogger(__name__)
        cleanup_old_logs(config_mgr, log_file)

        logger.info("=" * 60)
        logger.info(f"Starting DavSync CLI: {operation.upper()}")
        logger.info("=" * 60)

        settings = config_mgr.get_settings()
        if settings.username and not settings.password:
            logger.error("No stored password found. Run 'davsync login' first.")
            return EXIT_AUTH_ERROR

        app = SyncApplication(settings)

        if operation == "status":
            print_status(app)
            return EXIT_SUCCESS
        elif operation == "errors":
            return print_errors(app)
        elif operation == "sync":
            exit_code = run_sync(app, timeout)
        elif operation == "watch":
            exit_code = run_watch(app)
        else:
            logger.error(f"Unknown operation: {operation}")
            return EXIT_FAILURE

        if exit_code == EXIT_SUCCESS:
            logger.info(f"{operation.upper()} COMPLETED SUCCESSFULLY")
        else:
            logger.error(f"{operation.upper()} FAILED")
        return exit_code

    except SyncConfigurationError as e:
        if logger:
            logger.error(f"Configuration error: {e}")
        else:
            print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    except KeyboardInterrupt:
        if logger:
            logger.warning("Operation cancelled by user (Ctrl+C)")
        else:
            print("\nOperation cancelled by user", file=sys.stderr)
        return EXIT_SUCCESS if operation == "watch" else EXIT_FAILURE

    except Exception as e:
        if logger:
            logger.exception(f"Unexpected error: {e}")
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    finally:
        if app is not None:
            app.close()
