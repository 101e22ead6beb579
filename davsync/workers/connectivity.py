"""
DavSync - Connectivity Checker

Decides whether the network is usable for a sync job: some non-loopback
interface must be up and the WebDAV server must accept a TCP connection.

Author: DavSync Project
"""

import logging
import socket
import threading
import time
from typing import Any, Optional, Sequence

import psutil

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 3.0

# A positive probe is trusted for this long before the server is probed again
PROBE_VALIDITY_SECONDS = 10.0


def _is_loopback(name: str, entries: Sequence[Any]) -> bool:
    if name.lower().startswith("lo"):
        return True
    for addr in entries:
        address = getattr(addr, "address", "")
        if isinstance(address, str) and (address.startswith("127.") or address == "::1"):
            return True
    return False


def has_active_interface() -> bool:
    """True if a non-loopback network interface is up."""
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    for name, entries in addrs.items():
        if _is_loopback(name, entries):
            continue
        entry_stats = stats.get(name)
        if entry_stats is not None and entry_stats.isup:
            return True
    return False


class ConnectivityChecker:
    """
    Network gate for sync jobs.

    Responsibilities:
    - Check that a non-loopback interface is up (psutil)
    - Probe the WebDAV host with a TCP connection
    - Remember a successful probe for a few seconds
    """

    def __init__(self, host: str, port: int, timeout: float = DEFAULT_PROBE_TIMEOUT,
                 clock=time.monotonic):
        """
        Initialize the checker.

        Args:
            host: WebDAV server host name
            port: WebDAV server port
            timeout: TCP connect timeout in seconds
            clock: Monotonic time source
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self._clock = clock
        self._validated_at: Optional[float] = None
        self._lock = threading.Lock()

    def update_target(self, host: str, port: int) -> None:
        """Probe a different server from now on."""
        with self._lock:
            self.host = host
            self.port = port
            self._validated_at = None

    def is_connected(self) -> bool:
        """True if the network is up and the server is reachable."""
        if not has_active_interface():
            logger.debug("No active network interface")
            return False

        with self._lock:
            host, port = self.host, self.port
            if self._validated_at is not None and self._clock() - self._validated_at < PROBE_VALIDITY_SECONDS:
                return True

        try:
            with socket.create_connection((host, port), timeout=self.timeout):
                pass
        except OSError as exc:
            logger.info(f"Server {host}:{port} not reachable: {exc}")
            with self._lock:
                self._validated_at = None
            return False

        with self._lock:
            self._validated_at = self._clock()
        return True
