"""
test_store.py — Tests for the file-backed document store.

Run with:
    pytest tests/test_store.py -v
"""

from __future__ import annotations

import io
import os
import stat

import pytest

from capship.app.atom.models import Feed, Text, parse_feed
from capship.app.core.errors import InvalidArgument, NotFoundError, PayloadTooLarge
from capship.app.storage.store import DocumentKind, DocumentStore, safe_filename


@pytest.fixture
def store(tmp_path, logger) -> DocumentStore:
    return DocumentStore(str(tmp_path / "root"), logger=logger)


def _make_feed(feed_id: str = "urn:feed") -> Feed:
    return Feed(id=feed_id, title=Text(content="t"), updated="2018-08-15T16:57:00-06:00")


class TestLayout:

    def test_creates_directories(self, store, tmp_path):
        assert (tmp_path / "root" / "alerts").is_dir()
        assert (tmp_path / "root" / "feeds").is_dir()

    def test_directory_mode(self, store):
        mode = stat.S_IMODE(os.stat(store.directory(DocumentKind.ALERTS)).st_mode)
        assert mode & 0o700 == 0o700
        assert mode & 0o044 == 0

    def test_empty_root_rejected(self, logger):
        with pytest.raises(InvalidArgument):
            DocumentStore("", logger=logger)

    def test_existing_root_reused(self, store, logger):
        store.store(DocumentKind.ALERTS, "a.xml", b"<a/>")
        again = DocumentStore(str(store.root), logger=logger)
        assert again.retrieve(DocumentKind.ALERTS, "a.xml") == b"<a/>"


class TestStoreRetrieve:

    def test_round_trip(self, store):
        assert store.store(DocumentKind.ALERTS, "a.xml", b"<alert/>") == 8
        assert store.retrieve(DocumentKind.ALERTS, "a.xml") == b"<alert/>"

    def test_overwrite(self, store):
        store.store(DocumentKind.ALERTS, "a.xml", b"first")
        store.store(DocumentKind.ALERTS, "a.xml", b"second")
        assert store.retrieve(DocumentKind.ALERTS, "a.xml") == b"second"

    def test_missing(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.retrieve(DocumentKind.ALERTS, "nope.xml")
        assert exc_info.value.status_code == 404
        assert exc_info.value.details["reference"] == "nope.xml"

    def test_kinds_are_separate(self, store):
        store.store(DocumentKind.FEEDS, "x.xml", b"feed")
        with pytest.raises(NotFoundError):
            store.retrieve(DocumentKind.ALERTS, "x.xml")


class TestFilenames:

    @pytest.mark.parametrize("raw, expected", [
        ("a.xml", "a.xml"),
        ("../../etc/passwd", "passwd"),
        ("dir/a.xml", "a.xml"),
        ("..\\a.xml", "a.xml"),
    ])
    def test_reduced_to_base_name(self, raw, expected):
        assert safe_filename(raw) == expected

    @pytest.mark.parametrize("raw", ["", ".", "..", "a/.."])
    def test_rejected(self, raw):
        with pytest.raises(InvalidArgument):
            safe_filename(raw)


class TestStoreUpload:

    def test_within_limit(self, store):
        assert store.store_upload("a.xml", io.BytesIO(b"12345"), max_size=5) == 5
        assert store.retrieve(DocumentKind.ALERTS, "a.xml") == b"12345"

    def test_too_large_writes_nothing(self, store):
        with pytest.raises(PayloadTooLarge) as exc_info:
            store.store_upload("big.xml", io.BytesIO(b"123456"), max_size=5)
        assert exc_info.value.status_code == 413
        assert "Max filesize: 5b" in exc_info.value.message
        assert not store.path_for(DocumentKind.ALERTS, "big.xml").exists()


class TestPublishFeed:

    def test_publish_and_read(self, store):
        written = store.publish_feed(_make_feed())
        data = store.retrieve_feed()
        assert written == len(data)
        assert parse_feed(data).id == "urn:feed"
        assert store.feed_path.name == "cap_feed.xml"

    def test_replaces_previous(self, store):
        store.publish_feed(_make_feed("urn:one"))
        store.publish_feed(_make_feed("urn:two"))
        assert parse_feed(store.retrieve_feed()).id == "urn:two"
        leftovers = [p.name for p in store.directory(DocumentKind.FEEDS).iterdir()]
        assert leftovers == ["cap_feed.xml"]

    def test_no_feed_yet(self, store):
        with pytest.raises(NotFoundError):
            store.retrieve_feed()

    def test_custom_feed_filename(self, tmp_path, logger):
        custom = DocumentStore(str(tmp_path), logger=logger, feed_filename="national.xml")
        custom.publish_feed(_make_feed())
        assert (tmp_path / "feeds" / "national.xml").is_file()
