"""
DavSync - Main Entry Point

This is the main entry point for the DavSync command-line client.

Author: DavSync Project
"""

import sys
import argparse
from pathlib import Path

from davsync.cli import run_cli_operation
from davsync.version import VERSION


def main():
    """
    Main entry point for DavSync.

    Parses command-line arguments and runs one of:
    - sync: one full synchronization pass (default)
    - status: tracked file and error counts
    - errors: the error log of the last pass
    - watch: periodic full passes until interrupted
    - login: store WebDAV credentials
    """
    parser = argparse.ArgumentParser(
        description='DavSync - WebDAV Media Library Synchronization',
    )

    parser.add_argument('operation', nargs='?', default='sync',
                        choices=['sync', 'status', 'errors', 'watch', 'login'],
                        help='Operation to perform (default: sync)')

    parser.add_argument('--config-dir', type=Path,
                        help='Directory holding config.json (default: current directory)')

    parser.add_argument('--timeout', type=float,
                        help='Maximum seconds to wait for a sync to finish')

    parser.add_argument('--version', action='version', version=f'DavSync {VERSION}')

    args = parser.parse_args()

    return run_cli_operation(args.operation, args.config_dir, args.timeout)


if __name__ == '__main__':
    sys.exit(main())
