"""
Tests for the remote path model

Normalization of collection and file paths, root URL validation and
percent-encoding of request paths.
"""

import pytest

from davsync.exceptions import SyncConfigurationError
from davsync.models import CollectionPath, FilePath, Resource, RootPath, percent_encode_path


def test_file_in_collection():
    file = FilePath(CollectionPath("/foo/bar"), "foo.jpg")
    assert file.get_path() == "/foo/bar/foo.jpg"
    assert file.get_path_no_leading() == "foo/bar/foo.jpg"


@pytest.mark.parametrize("collection", ["/", ""])
def test_file_in_root_collection(collection):
    file = FilePath(CollectionPath(collection), "foo.jpg")
    assert file.get_path() == "/foo.jpg"
    assert file.get_path_no_leading() == "foo.jpg"


@pytest.mark.parametrize("raw", ["/DCIM/bar.jpg", "DCIM/bar.jpg", "/DCIM/bar.jpg/"])
def test_file_from_string(raw):
    file = FilePath(raw)
    assert file.get_path() == "/DCIM/bar.jpg"
    assert file.get_path_no_leading() == "DCIM/bar.jpg"


def test_file_from_resource():
    root = RootPath("https://foo/remote.php/dav/files/foouser")
    resource = Resource(root_path=root, href="/remote.php/dav/files/foouser/DCIM/bar.jpg")
    file = FilePath.from_resource(resource)
    assert file.get_path() == "/DCIM/bar.jpg"


@pytest.mark.parametrize("raw, expected", [
    ("", "/"),
    ("/", "/"),
    ("DCIM", "/DCIM/"),
    ("/DCIM", "/DCIM/"),
    ("DCIM/Camera/", "/DCIM/Camera/"),
])
def test_collection_normalization(raw, expected):
    assert CollectionPath(raw).get_path() == expected


def test_parents():
    assert FilePath("/DCIM/Camera/a.jpg").get_parent() == CollectionPath("/DCIM/Camera/")
    assert FilePath("/a.jpg").get_parent() == CollectionPath("/")
    assert CollectionPath("/DCIM/Camera/").get_parent() == CollectionPath("/DCIM/")
    assert CollectionPath("/").get_parent() == CollectionPath("/")


def test_equality_depends_on_kind():
    assert FilePath("/DCIM") != CollectionPath("/DCIM/")
    assert FilePath("DCIM/a.jpg") == FilePath("/DCIM/a.jpg")
    assert len({FilePath("/a.jpg"), FilePath("a.jpg")}) == 1


def test_root_path_canonical_url():
    root = RootPath("https://foo/remote.php/dav/files/foouser")
    assert root.canonical_url == "https://foo/remote.php/dav/files/foouser/"
    assert root.path == "/remote.php/dav/files/foouser/"
    assert root.host == "foo"
    assert root.port == 443
    assert RootPath("http://foo:8080").port == 8080


def test_root_path_concat():
    root = RootPath("https://foo").concat(CollectionPath("remote.php/dav/files/foouser"))
    assert root.canonical_url == "https://foo/remote.php/dav/files/foouser/"
    assert RootPath("https://foo/").concat(CollectionPath("")) == RootPath("https://foo")


def test_root_path_url_for_encodes():
    root = RootPath("https://foo/dav/")
    assert root.url_for(FilePath("/Foo Bar/#1.jpg")) == "https://foo/dav/Foo%20Bar/%231.jpg"
    assert root.url_for(CollectionPath("/")) == "https://foo/dav/"


@pytest.mark.parametrize("url", [
    "",
    "foo",
    "ftp://foo/",
    "https://foo/?query=1",
    "https://foo/#fragment",
    "https://",
])
def test_root_path_rejects_invalid_url(url):
    with pytest.raises(SyncConfigurationError):
        RootPath(url)


@pytest.mark.parametrize("raw, expected", [
    ("DCIM/bar.jpg", "DCIM/bar.jpg"),
    ("DCIM/#1234.jpg", "DCIM/%231234.jpg"),
    ("DCIM/foo bar baz.jpg", "DCIM/foo%20bar%20baz.jpg"),
    ("#1234.jpg", "%231234.jpg"),
    ("/foo/bar baz/#1234.jpg", "/foo/bar%20baz/%231234.jpg"),
    ("Photos/été?.jpg", "Photos/%C3%A9t%C3%A9%3F.jpg"),
])
def test_percent_encode_path(raw, expected):
    assert percent_encode_path(raw) == expected
