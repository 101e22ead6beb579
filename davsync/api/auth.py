"""
DavSync - Challenge Based Authentication

Picks Basic or Digest authentication from the WWW-Authenticate challenge of a
401 response and remembers the choice per (host, realm), so that following
requests to the same server are authenticated up front.

Author: DavSync Project
"""

import logging
import re
import threading
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import requests
from requests.auth import AuthBase, HTTPBasicAuth, HTTPDigestAuth

# Configure logging
logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r'(?:^|,)\s*(basic|digest|bearer|negotiate|ntlm)\b', re.IGNORECASE)
_REALM_RE = re.compile(r'realm\s*=\s*"([^"]*)"', re.IGNORECASE)

# Preferred order when a server offers several schemes
SUPPORTED_SCHEMES = ("digest", "basic")


def parse_challenges(header: str) -> List[Tuple[str, Optional[str]]]:
    """
    Split a WWW-Authenticate header into (scheme, realm) pairs.

    Args:
        header: Raw header value, possibly holding several challenges,
                e.g. 'Basic realm="Nextcloud", Digest realm="dav", nonce="abc"'

    Returns:
        List of (lowercase scheme, realm or None), in header order
    """
    matches = list(_SCHEME_RE.finditer(header or ""))
    challenges = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(header)
        segment = header[match.end():end]
        realm_match = _REALM_RE.search(segment)
        challenges.append((match.group(1).lower(), realm_match.group(1) if realm_match else None))
    return challenges


class ChallengeAuth:
    """
    Basic/Digest negotiation with a per-realm scheme cache.

    Responsibilities:
    - Parse server challenges and choose a supported scheme
    - Cache the authenticator per (host, realm)
    - Hand out the cached authenticator for later requests to the same host
    """

    def __init__(self, username: str, password: str):
        """
        Initialize the negotiator.

        Args:
            username: WebDAV username, empty for anonymous access
            password: WebDAV password
        """
        self.username = username
        self.password = password
        self._by_realm: Dict[Tuple[str, Optional[str]], AuthBase] = {}
        self._realm_by_host: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _host(url: str) -> str:
        return urlsplit(url).netloc.lower()

    def for_url(self, url: str) -> Optional[AuthBase]:
        """Return the authenticator already negotiated for this host, if any."""
        host = self._host(url)
        with self._lock:
            if host not in self._realm_by_host:
                return None
            return self._by_realm.get((host, self._realm_by_host[host]))

    def negotiate(self, response: requests.Response) -> Optional[AuthBase]:
        """
        Choose an authenticator from a 401 response.

        Args:
            response: The 401 response carrying WWW-Authenticate

        Returns:
            The authenticator to retry with, None if no credentials are set or
            the server offers no supported scheme
        """
        if not self.username:
            return None

        challenges = parse_challenges(response.headers.get("WWW-Authenticate", ""))
        offered = {scheme: realm for scheme, realm in reversed(challenges)}
        scheme = next((s for s in SUPPORTED_SCHEMES if s in offered), None)
        if scheme is None:
            logger.warning(f"No supported authentication scheme in challenge: {[c[0] for c in challenges]}")
            return None

        realm = offered[scheme]
        host = self._host(response.url)
        with self._lock:
            auth = self._by_realm.get((host, realm))
            if auth is None:
                if scheme == "digest":
                    auth = HTTPDigestAuth(self.username, self.password)
                else:
                    auth = HTTPBasicAuth(self.username, self.password)
                self._by_realm[(host, realm)] = auth
                logger.debug(f"Using {scheme} authentication for {host} (realm: {realm})")
            self._realm_by_host[host] = realm
        return auth
