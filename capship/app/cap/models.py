"""
models.py — CAP (Common Alerting Protocol) alert documents.

Defines:
    • Alert    — a CAP 1.2 alert message (root element ``alert``)
    • Alert11  — the same shape under the CAP 1.1 namespace
    • Info     — a typed/localised detail block of an alert
    • Resource — a supplementary file referenced by an info block
    • Area     — the geographic scope of an info block

═══════════════════════════════════════════════════════════════════════════
DOCUMENT SHAPE
═══════════════════════════════════════════════════════════════════════════

    alert
    ├── identifier, sender, sent, status, msgType, scope   (required)
    ├── source, restriction, addresses, code*, note,
    │   references*, incidents*                             (optional)
    └── info*
        ├── category*, event, responseType*, urgency,
        │   severity, certainty, eventCode*, effective, ...
        ├── parameter*        (valueName/value pairs)
        ├── resource*
        └── area*
            ├── areaDesc, polygon*, circle*, altitude, ceiling
            └── geocode*      (valueName/value pairs)

CAP 1.1 and 1.2 share this shape; the root namespace tells them apart.
Timestamps are kept as wire strings (see ``shared.timestamp``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, List

from capship.app.core.errors import DecodeError
from capship.app.shared.named_value import NamedValue, append_value, search, search_all
from capship.app.shared.timestamp import TimeStr, format_time, parse_time
from capship.app.shared.xml_utils import (
    children,
    decode,
    element,
    elements,
    encode,
    integer,
    local_name,
    namespace_of,
    parse_root,
    to_bytes,
)

CAP12_NAMESPACE = "urn:oasis:names:tc:emergency:cap:1.2"
CAP11_NAMESPACE = "urn:oasis:names:tc:emergency:cap:1.1"


@dataclass
class Resource:
    """A digital asset (image, audio, ...) supplementing an info block."""
    resource_desc: str = element("resourceDesc", required=True)
    mime_type: str = element("mimeType", required=True)
    size: int = integer("size")                     # bytes, 0 = unknown
    uri: str = element("uri")
    deref_uri: str = element("derefUri")            # base64 content
    digest: str = element("digest")                 # SHA-1 of the resource


@dataclass
class Area:
    """
    The affected area of an info block.

    ``polygon`` entries are space-separated ``lat,lon`` point lists;
    ``circle`` entries are ``lat,lon radius``. Altitude and ceiling are
    decimals kept as strings.
    """
    area_desc: str = element("areaDesc", required=True)
    polygon: List[str] = elements("polygon")
    circle: List[str] = elements("circle")
    geocode: List[NamedValue] = children("geocode", NamedValue)
    altitude: str = element("altitude")
    ceiling: str = element("ceiling")

    def get_geocode(self, name: str) -> str:
        """First geocode value for ``name`` (e.g. ``"SAME"``) or ``""``."""
        return search(self.geocode, name)

    def get_geocodes(self, name: str) -> List[str]:
        """Every geocode value for ``name``, in document order."""
        return search_all(self.geocode, name)

    def add_geocode(self, name: str, value: str) -> None:
        append_value(self.geocode, name, value)


@dataclass
class Info:
    language: str = element("language")
    category: List[str] = elements("category")
    event: str = element("event", required=True)
    response_type: List[str] = elements("responseType")
    urgency: str = element("urgency", required=True)
    severity: str = element("severity", required=True)
    certainty: str = element("certainty", required=True)
    audience: str = element("audience")
    event_code: List[NamedValue] = children("eventCode", NamedValue)
    effective: TimeStr = element("effective")
    onset: TimeStr = element("onset")
    expires: TimeStr = element("expires")
    sender_name: str = element("senderName")
    headline: str = element("headline")
    description: str = element("description")
    instruction: str = element("instruction")
    web: str = element("web")
    contact: str = element("contact")
    parameter: List[NamedValue] = children("parameter", NamedValue)
    resource: List[Resource] = children("resource", Resource)
    area: List[Area] = children("area", Area)

    def get_parameter(self, name: str) -> str:
        """First parameter value for ``name`` or ``""``."""
        return search(self.parameter, name)

    def add_parameter(self, name: str, value: str) -> None:
        append_value(self.parameter, name, value)


@dataclass
class Alert:
    """A CAP 1.2 alert message."""

    NAMESPACE: ClassVar[str] = CAP12_NAMESPACE

    identifier: str = element("identifier", required=True)
    sender: str = element("sender", required=True)
    sent: TimeStr = element("sent", required=True)
    status: str = element("status", required=True)      # Actual | Exercise | System | Test | Draft
    msg_type: str = element("msgType", required=True)   # Alert | Update | Cancel | Ack | Error
    source: str = element("source")
    scope: str = element("scope", required=True)        # Public | Restricted | Private
    restriction: str = element("restriction")
    addresses: str = element("addresses")
    code: List[str] = elements("code")
    note: str = element("note")
    references: List[str] = elements("references")
    incidents: List[str] = elements("incidents")
    info: List[Info] = children("info", Info)

    def sent_time(self) -> datetime:
        return parse_time(self.sent)

    def set_sent(self, t: datetime) -> None:
        self.sent = format_time(t)

    def to_xml(self, indent: bool = True) -> bytes:
        """Serialize to the wire form under this variant's namespace."""
        return to_bytes(encode(self, "alert"), self.NAMESPACE, indent=indent)


@dataclass
class Alert11(Alert):
    """A CAP 1.1 alert message; same fields as ``Alert``."""

    NAMESPACE: ClassVar[str] = CAP11_NAMESPACE


def _decode_alert(root, cls: type) -> Alert:
    if local_name(root.tag) != "alert" or namespace_of(root.tag) != cls.NAMESPACE:
        raise DecodeError(
            "alert",
            f"expected element <alert> in name space {cls.NAMESPACE} "
            f"but have <{local_name(root.tag)}> in name space {namespace_of(root.tag) or '(none)'}",
        )
    try:
        return decode(cls, root)
    except ValueError as exc:
        raise DecodeError("alert", str(exc)) from exc


def parse_alert(data: bytes) -> Alert:
    """Parse XML bytes into a CAP 1.2 Alert."""
    return _decode_alert(parse_root(data, "alert"), Alert)


def parse_alert11(data: bytes) -> Alert11:
    """Parse XML bytes into a CAP 1.1 Alert."""
    return _decode_alert(parse_root(data, "alert"), Alert11)


def parse_any_alert(data: bytes) -> Alert:
    """Parse a CAP 1.2 alert, falling back to CAP 1.1 by root namespace."""
    root = parse_root(data, "alert")
    cls = Alert11 if namespace_of(root.tag) == CAP11_NAMESPACE else Alert
    return _decode_alert(root, cls)
