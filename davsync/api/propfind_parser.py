"""
DavSync - PROPFIND Response Parser

Turns a WebDAV multistatus document into Resource records.
Pure function: no I/O, same input always gives the same output.

Author: DavSync Project
"""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Union
from urllib.parse import unquote

from davsync.exceptions import DavParseError
from davsync.models import Resource, RootPath

# Configure logging
logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    """Strip the "{namespace}" prefix ElementTree puts in front of tag names."""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _text(element: ET.Element) -> Optional[str]:
    """Element text, None for empty elements (never an empty string)."""
    text = (element.text or "").strip()
    return text or None


def parse_http_date(value: str) -> datetime:
    """
    Parse an RFC 1123 HTTP-date, e.g. "Sat, 10 Jun 2023 21:06:18 GMT".

    Raises:
        DavParseError: If the value is not an HTTP-date
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as e:
        raise DavParseError(f"Invalid HTTP date: {value!r}") from e
    if parsed is None:
        raise DavParseError(f"Invalid HTTP date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_iso_or_http_date(value: str) -> datetime:
    """
    Parse a creation date.

    RFC 4918 asks for RFC 3339, but some servers send an HTTP-date instead,
    so both are accepted.

    Raises:
        DavParseError: If neither format matches
    """
    iso_value = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(iso_value)
    except ValueError:
        return parse_http_date(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _is_ok(propstat: ET.Element) -> bool:
    """True unless the propstat carries a non-200 status ("HTTP/1.1 404 Not Found")."""
    statuses = _children(propstat, "status")
    if not statuses:
        return True
    parts = (_text(statuses[0]) or "").split()
    return len(parts) > 1 and parts[1] == "200"


def _parse_response(response: ET.Element, root_path: RootPath) -> Resource:
    fields: Dict[str, object] = {}

    hrefs = _children(response, "href")
    if hrefs:
        href = _text(hrefs[0])
        fields["href"] = unquote(href) if href is not None else None

    for propstat in _children(response, "propstat"):
        if not _is_ok(propstat):
            continue
        for prop in _children(propstat, "prop"):
            for element in prop:
                name = _local_name(element.tag)
                text = _text(element)
                if name == "creationdate":
                    fields["creation_date"] = parse_iso_or_http_date(text) if text else None
                elif name == "getlastmodified":
                    fields["last_modified"] = parse_http_date(text) if text else None
                elif name == "resourcetype":
                    fields["is_collection"] = bool(_children(element, "collection"))
                elif name == "getetag":
                    fields["etag"] = text
                elif name == "getcontentlength":
                    fields["content_length"] = text
                elif name == "getcontenttype":
                    fields["content_type"] = text

    return Resource(root_path=root_path, **fields)


def parse_propfind(body: Union[bytes, str], root_path: RootPath) -> List[Resource]:
    """
    Parse a PROPFIND multistatus body.

    Args:
        body: Raw response body
        root_path: Root the request was issued under (used to rebase hrefs)

    Returns:
        One Resource per top-level response element, in document order

    Raises:
        DavParseError: On malformed XML or unparseable dates
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise DavParseError(f"Malformed PROPFIND response: {e}") from e

    resources = [_parse_response(response, root_path) for response in _children(root, "response")]
    logger.debug(f"Parsed {len(resources)} resources")
    return resources
