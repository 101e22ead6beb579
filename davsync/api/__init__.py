"""
DavSync - API Package

This package contains the WebDAV protocol client and its response parser.
"""

from .webdav_api import WebDavClient
from .auth import ChallengeAuth, parse_challenges
from .propfind_parser import parse_propfind, parse_http_date, parse_iso_or_http_date

__all__ = [
    'WebDavClient',
    'ChallengeAuth',
    'parse_challenges',
    'parse_propfind',
    'parse_http_date',
    'parse_iso_or_http_date'
]
