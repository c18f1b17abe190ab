"""
generator.py — Aggregate a directory of CAP alerts into one Atom feed.

═══════════════════════════════════════════════════════════════════════════
PROJECTION (one alert file → one feed entry)
═══════════════════════════════════════════════════════════════════════════

    entry field          source
    ───────────          ──────────────────────────────────────────────
    id                   alert.identifier
    title                info[0].headline
    updated, published   alert.sent
    author               one person named alert.sender
    summary              info[0].description
    link                 host_name + "alerts/" + file name
    category             one category per info[0].category code
    areaDesc             "; " + areaDesc for every area of info[0]
    polygon, circle      every area's polygons / circles, in order
    geocode              one (name, value) pair per area geocode
    event, effective,    info[0].*
    expires, urgency,
    severity, certainty
    status, msgType      alert.*

Only the first info block of an alert is projected. The area description
keeps a leading "; " before the first area as well. Geocode pairs are
appended verbatim; repeated names are not merged.

The feed-level fields come from ``FeedIdentity``; ``updated`` is the
generation time. Files are read in lexicographic order and any file that
cannot be read or parsed aborts the whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from capship.app.atom.models import (
    Category,
    Entry,
    Feed,
    Generator,
    Geocode,
    Link,
    Person,
    Text,
)
from capship.app.cap.models import Alert, parse_any_alert
from capship.app.core.config import Settings
from capship.app.core.errors import CapshipError, DecodeError, StorageError
from capship.app.core.logging_config import TRACE
from capship.app.shared import timestamp

ALERTS_PATH = "alerts/"
FEED_PATH = "cap/"
AREA_SEPARATOR = "; "


@dataclass
class FeedIdentity:
    """Feed-level values that are configured rather than derived."""
    host_name: str
    title: str
    author: str
    generator: str
    logo: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedIdentity":
        return cls(
            host_name=settings.HOST_NAME,
            title=settings.FEED_TITLE,
            author=settings.FEED_AUTHOR,
            generator=settings.FEED_GENERATOR,
            logo=settings.FEED_LOGO,
        )


def alert_to_entry(alert: Alert, href: str) -> Entry:
    """Project ``alert`` into a feed entry linking to ``href``."""
    if not alert.info:
        raise DecodeError("alert", "alert has no info block", identifier=alert.identifier)
    info = alert.info[0]

    area_desc = ""
    polygons: List[str] = []
    circles: List[str] = []
    geocode = Geocode()
    for area in info.area:
        area_desc = area_desc + AREA_SEPARATOR + area.area_desc
        polygons.extend(area.polygon)
        circles.extend(area.circle)
        for nv in area.geocode:
            geocode.add(nv.value_name, nv.value)

    return Entry(
        id=alert.identifier,
        title=Text(content=info.headline),
        updated=alert.sent,
        author=[Person(name=alert.sender)],
        link=[Link(href=href)],
        summary=Text(content=info.description),
        category=[Category(content=code) for code in info.category],
        published=alert.sent,
        event=info.event,
        effective=info.effective,
        expires=info.expires,
        status=alert.status,
        msg_type=alert.msg_type,
        urgency=info.urgency,
        severity=info.severity,
        certainty=info.certainty,
        area_desc=area_desc,
        polygon=polygons,
        circle=circles,
        geocode=geocode,
    )


def alert_files(alert_dir: Path) -> List[Path]:
    """Regular files directly under ``alert_dir``, sorted by name."""
    try:
        return sorted((p for p in alert_dir.iterdir() if not p.is_dir()), key=lambda p: p.name)
    except OSError as exc:
        raise StorageError("list", str(alert_dir), exc.strerror or str(exc)) from exc


def generate_feed(alert_dir: Path, identity: FeedIdentity, logger: logging.Logger) -> Feed:
    """
    Build a feed with one entry per alert file in ``alert_dir``.

    An empty directory yields a feed without entries.
    """
    entries: List[Entry] = []
    for path in alert_files(Path(alert_dir)):
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.error("Aggregation aborted, cannot read %s: %s", path, exc)
            raise StorageError("read", str(path), exc.strerror or str(exc)) from exc
        try:
            alert = parse_any_alert(data)
            entry = alert_to_entry(alert, identity.host_name + ALERTS_PATH + path.name)
        except CapshipError as exc:
            logger.error("Aggregation aborted at %s: %s", path.name, exc.message)
            exc.details.setdefault("file", path.name)
            raise
        logger.log(TRACE, "Projected %s into entry %s", path.name, entry.id)
        entries.append(entry)

    feed = Feed(
        id=identity.host_name + FEED_PATH,
        title=Text(content=identity.title),
        updated=timestamp.now(),
        author=[Person(name=identity.author)],
        link=[Link(href=identity.host_name + FEED_PATH)],
        generator=Generator(content=identity.generator),
        logo=identity.logo,
        entries=entries,
    )
    logger.debug("Generated feed %s with %d entries", feed.id, len(entries))
    return feed
