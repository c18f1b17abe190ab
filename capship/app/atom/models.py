"""
models.py — Atom syndication documents carrying CAP alert summaries.

Defines:
    • Feed       — root ``feed`` element in the Atom namespace
    • Entry      — one alert summary (Atom entry + CAP extension fields)
    • Source     — provenance of an entry copied from another feed
    • Text, Person, Link, Category, Generator — Atom constructs
    • Geocode    — parallel ``valueName``/``value`` lists

The CAP extension fields on ``Entry`` follow the NWS national feed: event,
effective, expires, status, msgType, urgency, severity, certainty,
areaDesc, polygon, circle, geocode and parameter. On input they are
matched by local name, so both ``cap:event`` and ``event`` decode.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from capship.app.core.errors import DecodeError
from capship.app.shared.named_value import NamedValue, search
from capship.app.shared.timestamp import TimeStr, parse_time
from capship.app.shared.xml_utils import (
    XML_NS,
    attribute,
    chardata,
    child,
    children,
    decode,
    element,
    elements,
    encode,
    local_name,
    namespace_of,
    parse_root,
    to_bytes,
)

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"


@dataclass
class CommonAttributes:
    """``xml:base`` and ``xml:lang``, allowed on every Atom element."""
    base: str = attribute(f"{{{XML_NS}}}base")
    lang: str = attribute(f"{{{XML_NS}}}lang")


@dataclass
class Text(CommonAttributes):
    """
    A human-readable text construct.

    ``type`` is ``text`` (default), ``html`` (entity-escaped) or ``xhtml``;
    for xhtml only the character data of the inline markup is kept.
    """
    content: str = chardata()
    type: str = attribute("type")
    src: str = attribute("src")


@dataclass
class Person(CommonAttributes):
    name: str = element("name", required=True)
    uri: str = element("uri")
    email: str = element("email")


@dataclass
class Link(CommonAttributes):
    """
    A reference from a feed or entry to a web resource.

    ``rel`` is one of alternate (default), enclosure, related, self or via.
    Links to CAP alerts should be absolute and use type
    ``application/cap+xml``.
    """
    href: str = attribute("href", required=True)
    rel: str = attribute("rel")
    type: str = attribute("type")
    hreflang: str = attribute("hreflang")
    title: str = attribute("title")
    length: str = attribute("length")


@dataclass
class Category(CommonAttributes):
    content: str = chardata()
    term: str = attribute("term", required=True)
    scheme: str = attribute("scheme")
    label: str = attribute("label")


@dataclass
class Generator(CommonAttributes):
    content: str = chardata()
    uri: str = attribute("uri")
    version: str = attribute("version")


@dataclass
class Geocode:
    """
    Geocodes as two parallel lists: ``names[i]`` labels ``values[i]``.

    A value may hold several space-separated codes under one name.
    """
    names: List[str] = elements("valueName")
    values: List[str] = elements("value")

    def get_geocodes(self, name: str) -> List[str]:
        """Split the value of the first entry named ``name``; ``[]`` if none."""
        for index, value_name in enumerate(self.names):
            if value_name == name:
                if index >= len(self.values):
                    return []
                return self.values[index].split(" ")
        return []

    def add(self, name: str, value: str) -> None:
        self.names.append(name)
        self.values.append(value)


@dataclass
class Source:
    """Metadata of the source feed for entries copied from elsewhere."""
    id: str = element("id", required=True)
    title: Text = child("title", Text, required=True)
    updated: TimeStr = element("updated", required=True)
    author: List[Person] = children("author", Person)
    link: List[Link] = children("link", Link)
    category: List[Category] = children("category", Category)
    contributor: List[Person] = children("contributor", Person)
    generator: Generator = child("generator", Generator)
    icon: str = element("icon")
    logo: str = element("logo")
    rights: Text = child("rights", Text)
    subtitle: Text = child("subtitle", Text)


@dataclass
class Entry(CommonAttributes):
    # required
    id: str = element("id", required=True)                  # cap identifier
    title: Text = child("title", Text, required=True)       # info headline
    updated: TimeStr = element("updated", required=True)
    # recommended
    author: List[Person] = children("author", Person)
    content: Text = child("content", Text)
    link: List[Link] = children("link", Link)               # URL of the full CAP alert
    summary: Text = child("summary", Text, required=True)
    # optional
    category: List[Category] = children("category", Category)
    contributor: List[Person] = children("contributor", Person)
    published: TimeStr = element("published", required=True)  # cap sent
    rights: Text = child("rights", Text)
    source: List[Source] = children("source", Source)
    # CAP extensions
    event: str = element("event")
    effective: TimeStr = element("effective")
    expires: TimeStr = element("expires")
    status: str = element("status")
    msg_type: str = element("msgType")
    urgency: str = element("urgency")
    severity: str = element("severity")
    certainty: str = element("certainty")
    area_desc: str = element("areaDesc")
    polygon: List[str] = elements("polygon")
    circle: List[str] = elements("circle")
    geocode: Geocode = child("geocode", Geocode)
    parameter: List[NamedValue] = children("parameter", NamedValue)

    def get_parameter(self, name: str) -> str:
        """First parameter value for ``name`` or ``""``."""
        return search(self.parameter, name)

    def expires_time(self) -> datetime:
        return parse_time(self.expires)


@dataclass
class Feed(CommonAttributes):
    # required
    id: str = element("id", required=True)
    title: Text = child("title", Text, required=True)
    updated: TimeStr = element("updated", required=True)
    author: List[Person] = children("author", Person)   # required unless every entry has one
    link: List[Link] = children("link", Link)
    # optional
    category: List[Category] = children("category", Category)
    contributor: List[Person] = children("contributor", Person)
    generator: Generator = child("generator", Generator)
    icon: str = element("icon")
    logo: str = element("logo")
    rights: Text = child("rights", Text)
    subtitle: Text = child("subtitle", Text)
    entries: List[Entry] = children("entry", Entry)

    def updated_time(self) -> datetime:
        return parse_time(self.updated)


def parse_feed(data: bytes) -> Feed:
    """Parse XML bytes into an Atom Feed."""
    root = parse_root(data, "feed")
    if local_name(root.tag) != "feed" or namespace_of(root.tag) != ATOM_NAMESPACE:
        raise DecodeError(
            "feed",
            f"expected element <feed> in name space {ATOM_NAMESPACE} "
            f"but have <{local_name(root.tag)}> in name space {namespace_of(root.tag) or '(none)'}",
        )
    try:
        return decode(Feed, root)
    except ValueError as exc:
        raise DecodeError("feed", str(exc)) from exc


def feed_to_xml(feed: Feed, indent: bool = True) -> bytes:
    """Serialize ``feed``; ``indent`` gives the two-space readable form."""
    return to_bytes(encode(feed, "feed"), ATOM_NAMESPACE, indent=indent)
