"""
Tests for the PROPFIND response parser

Uses recorded multistatus bodies from tests/fixtures.
"""

from datetime import datetime, timezone

import pytest

from davsync.api import parse_http_date, parse_iso_or_http_date, parse_propfind
from davsync.exceptions import DavParseError
from davsync.models import CollectionPath, FilePath, Resource, RootPath

from conftest import load_fixture

ROOT = RootPath("https://foo")
JUNE_10 = datetime(2023, 6, 10, 21, 6, 18, tzinfo=timezone.utc)


def test_collection_listing():
    resources = parse_propfind(load_fixture("propfind.xml"), ROOT)
    assert len(resources) == 8
    assert [r.is_collection for r in resources] == [True] * 4 + [False] * 4
    assert resources[4].href == "/remote.php/dav/files/foouser/Nextcloud Manual.pdf"


def test_file():
    resources = parse_propfind(load_fixture("file.xml"), ROOT)
    assert resources == [Resource(
        root_path=ROOT,
        href="/remote.php/dav/files/foouser/DCIM/bar.jpg",
        creation_date=None,
        last_modified=JUNE_10,
        is_collection=False,
        etag='"bacfa6f123dee073dc9e20774470681a"',
        content_length="425623",
        content_type="image/jpeg",
    )]


@pytest.mark.parametrize("fixture, href", [
    ("file_uri_encoded.xml", "/remote.php/dav/files/foouser/Foo Bar/2023-08-01.jpg"),
    ("file_uri_encoded2.xml", "/remote.php/dav/files/foouser/#1234 (1).pdf"),
])
def test_href_is_decoded(fixture, href):
    assert parse_propfind(load_fixture(fixture), ROOT)[0].href == href


def test_directory():
    resources = parse_propfind(load_fixture("directory.xml"), ROOT)
    assert resources == [Resource(
        root_path=ROOT,
        href="/remote.php/dav/files/foouser/Documents/",
        last_modified=datetime(2023, 6, 1, 8, 16, 46, tzinfo=timezone.utc),
        is_collection=True,
        etag='"647853ef0e5ec"',
    )]


def test_parser_is_deterministic():
    body = load_fixture("propfind.xml")
    assert parse_propfind(body, ROOT) == parse_propfind(body, ROOT)


def test_relative_href_under_root():
    root = RootPath("https://foo/remote.php/dav/files/foouser/")
    resources = parse_propfind(load_fixture("propfind.xml"), root)
    assert resources[0].relative_href == CollectionPath("/")
    assert resources[1].relative_href == CollectionPath("/DCIM/")
    assert resources[4].relative_href == FilePath("/Nextcloud Manual.pdf")


def test_empty_elements_are_absent():
    body = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:">
  <d:response>
    <d:href>/a.jpg</d:href>
    <d:propstat><d:prop>
      <d:getetag></d:getetag>
      <d:getcontenttype/>
      <d:getlastmodified> </d:getlastmodified>
    </d:prop></d:propstat>
  </d:response>
</d:multistatus>"""
    resource = parse_propfind(body, ROOT)[0]
    assert resource.etag is None
    assert resource.content_type is None
    assert resource.last_modified is None


def test_only_successful_propstats_count():
    body = b"""<?xml version="1.0"?>
<d:multistatus xmlns:d="DAV:">
  <d:response>
    <d:href>/a.jpg</d:href>
    <d:propstat>
      <d:prop>
        <d:getetag>"abc"</d:getetag>
        <d:getcontenttype>image/jpeg</d:getcontenttype>
      </d:prop>
      <d:status>HTTP/1.1 200 OK</d:status>
    </d:propstat>
    <d:propstat>
      <d:prop>
        <d:getetag/>
        <d:getcontenttype/>
        <d:resourcetype><d:collection/></d:resourcetype>
      </d:prop>
      <d:status>HTTP/1.1 404 Not Found</d:status>
    </d:propstat>
  </d:response>
</d:multistatus>"""
    resource = parse_propfind(body, ROOT)[0]
    assert resource.etag == '"abc"'
    assert resource.content_type == "image/jpeg"
    assert not resource.is_collection


def test_creation_date_formats():
    assert parse_iso_or_http_date("2023-06-10T21:06:18Z") == JUNE_10
    assert parse_iso_or_http_date("2023-06-10T23:06:18+02:00") == JUNE_10
    assert parse_iso_or_http_date("Sat, 10 Jun 2023 21:06:18 GMT") == JUNE_10
    with pytest.raises(DavParseError):
        parse_iso_or_http_date("yesterday")


def test_http_date():
    assert parse_http_date("Sat, 10 Jun 2023 21:06:18 GMT") == JUNE_10
    with pytest.raises(DavParseError):
        parse_http_date("not a date")


def test_malformed_xml():
    with pytest.raises(DavParseError):
        parse_propfind(b"<d:multistatus xmlns:d='DAV:'><d:response>", ROOT)
