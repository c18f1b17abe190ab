"""
File-backed storage for alert and feed documents.

Layout under the configured root:

    <root>/alerts/<filename>   uploaded CAP alerts, one per file
    <root>/feeds/<filename>    generated Atom feeds

Directories are created once when the store is built. Writes overwrite
silently (last writer wins). The canonical feed is replaced atomically:
the new document is written next to it and renamed over it, so readers
see either the previous or the new feed, never a partial one.
"""

from __future__ import annotations

import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from capship.app.atom.models import Feed, feed_to_xml
from capship.app.core.errors import (
    InvalidArgument,
    NotFoundError,
    PayloadTooLarge,
    StorageError,
)

DIR_MODE = 0o711


class DocumentKind(str, Enum):
    """Stored document kinds; the value is the directory name."""
    ALERTS = "alerts"
    FEEDS = "feeds"


def safe_filename(filename: str) -> str:
    """Reduce ``filename`` to a bare name inside its kind directory."""
    name = Path(filename.replace("\\", "/")).name if filename else ""
    if name in ("", ".", ".."):
        raise InvalidArgument(f"invalid file name {filename!r}", argument="filename")
    return name


class DocumentStore:
    """
    Stores and retrieves documents by kind and file name.

    Usage:
        store = DocumentStore("/var/lib/capship/", logger=log)
        store.store(DocumentKind.ALERTS, "KAR0-0306112239-SW.xml", data)
        raw = store.retrieve(DocumentKind.ALERTS, "KAR0-0306112239-SW.xml")
        store.publish_feed(feed)
    """

    def __init__(self, root: str, logger: logging.Logger, feed_filename: str = "cap_feed.xml"):
        if not root:
            raise InvalidArgument("root must be specified", argument="root")
        if not feed_filename:
            raise InvalidArgument("feed file name must be specified", argument="feed_filename")
        self.root = Path(root)
        self.logger = logger
        self.feed_filename = safe_filename(feed_filename)

        for kind in DocumentKind:
            path = self.directory(kind)
            try:
                path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError("mkdir", str(path), exc.strerror or str(exc)) from exc

    def directory(self, kind: DocumentKind) -> Path:
        return self.root / DocumentKind(kind).value

    def path_for(self, kind: DocumentKind, filename: str) -> Path:
        return self.directory(kind) / safe_filename(filename)

    @property
    def feed_path(self) -> Path:
        return self.directory(DocumentKind.FEEDS) / self.feed_filename

    def store(self, kind: DocumentKind, filename: str, data: bytes) -> int:
        """Write ``data`` to ``<root>/<kind>/<filename>``; returns bytes written."""
        path = self.path_for(kind, filename)
        try:
            with open(path, "wb") as fh:
                written = fh.write(data)
        except OSError as exc:
            raise StorageError("write", str(path), exc.strerror or str(exc)) from exc
        self.logger.info(
            "File uploaded to: %s Bytes written: %d", path, written,
            extra={"path": str(path), "bytes_written": written},
        )
        return written

    def store_upload(self, filename: str, stream: BinaryIO, max_size: int) -> int:
        """
        Store an uploaded alert read from ``stream``.

        At most ``max_size`` bytes are accepted; a larger payload raises
        ``PayloadTooLarge`` and nothing is written.
        """
        name = safe_filename(filename)
        data = stream.read(max_size + 1)
        if len(data) > max_size:
            raise PayloadTooLarge(max_size)
        return self.store(DocumentKind.ALERTS, name, data)

    def retrieve(self, kind: DocumentKind, filename: str) -> bytes:
        """Read a stored document; ``NotFoundError`` when it does not exist."""
        path = self.path_for(kind, filename)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError):
            raise NotFoundError(DocumentKind(kind).value[:-1], reference=path.name) from None
        except OSError as exc:
            raise StorageError("read", str(path), exc.strerror or str(exc)) from exc

    def retrieve_feed(self) -> bytes:
        return self.retrieve(DocumentKind.FEEDS, self.feed_filename)

    def publish_feed(self, feed: Feed) -> int:
        """Serialize ``feed`` (indented) and replace the canonical feed file."""
        data = feed_to_xml(feed, indent=True)
        path = self.feed_path
        fd, tmp = tempfile.mkstemp(prefix=".feed-", dir=str(path.parent))
        try:
            with os.fdopen(fd, "wb") as fh:
                written = fh.write(data)
            os.chmod(tmp, 0o644)
            os.replace(tmp, path)
        except OSError as exc:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise StorageError("publish", str(path), exc.strerror or str(exc)) from exc

        self.logger.info(
            "Feed published to %s (%d entries, %d bytes)",
            path, len(feed.entries), written,
            extra={"path": str(path), "entries": len(feed.entries), "bytes_written": written},
        )
        return written
