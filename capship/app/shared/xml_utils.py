"""
Declarative XML mapping for the CAP and Atom dataclasses.

Document fields are declared with the helpers below; the metadata they
attach drives ``decode`` (ElementTree element → dataclass) and ``encode``
(dataclass → ElementTree element):

    element("identifier")          single child element text
    elements("code")               repeated child element texts
    integer("size")                child element holding an integer
    child("title", Text)           nested document
    children("entry", Entry)       repeated nested documents
    attribute("href")              XML attribute
    chardata()                     the element's own text

Child elements are matched on local name in any namespace, so CAP
extension elements inside an Atom feed (``cap:event``) decode the same as
unqualified ones.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import field, fields
from typing import Any, Type, TypeVar

from capship.app.core.errors import DecodeError

XML_NS = "http://www.w3.org/XML/1998/namespace"

T = TypeVar("T")


def element(tag: str, *, required: bool = False) -> Any:
    return field(default="", metadata={"xml": tag, "kind": "text", "required": required})


def elements(tag: str) -> Any:
    return field(default_factory=list, metadata={"xml": tag, "kind": "texts"})


def integer(tag: str) -> Any:
    return field(default=0, metadata={"xml": tag, "kind": "int"})


def child(tag: str, cls: type, *, required: bool = False) -> Any:
    return field(
        default_factory=cls,
        metadata={"xml": tag, "kind": "child", "type": cls, "required": required},
    )


def children(tag: str, cls: type) -> Any:
    return field(default_factory=list, metadata={"xml": tag, "kind": "children", "type": cls})


def attribute(name: str, *, required: bool = False) -> Any:
    return field(default="", metadata={"xml": name, "kind": "attr", "required": required})


def chardata() -> Any:
    return field(default="", metadata={"kind": "chardata"})


def local_name(tag: str) -> str:
    """``{urn:x}alert`` → ``alert``."""
    return tag.rsplit("}", 1)[-1]


def namespace_of(tag: str) -> str:
    """``{urn:x}alert`` → ``urn:x``; ``""`` for unqualified tags."""
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def _text(el: ET.Element) -> str:
    return "".join(el.itertext())


def decode(cls: Type[T], el: ET.Element) -> T:
    """Build a ``cls`` instance from ``el`` using the field metadata."""
    values = {}
    for f in fields(cls):
        meta = f.metadata
        kind = meta.get("kind")
        if kind is None:
            continue
        if kind == "attr":
            values[f.name] = el.get(meta["xml"], "")
            continue
        if kind == "chardata":
            values[f.name] = _text(el)
            continue

        matches = el.findall("{*}" + meta["xml"])
        if kind == "text":
            values[f.name] = _text(matches[0]) if matches else ""
        elif kind == "int":
            raw = _text(matches[0]).strip() if matches else ""
            values[f.name] = int(raw) if raw else 0
        elif kind == "texts":
            values[f.name] = [_text(m) for m in matches]
        elif kind == "child":
            values[f.name] = decode(meta["type"], matches[0]) if matches else meta["type"]()
        elif kind == "children":
            values[f.name] = [decode(meta["type"], m) for m in matches]
    return cls(**values)


def is_empty(obj: Any) -> bool:
    return obj == type(obj)()


def encode(obj: Any, tag: str) -> ET.Element:
    """
    Build an element named ``tag`` from ``obj``.

    Empty optional values are omitted; fields declared ``required`` are
    always written.
    """
    el = ET.Element(tag)
    for f in fields(obj):
        meta = f.metadata
        kind = meta.get("kind")
        if kind is None:
            continue
        value = getattr(obj, f.name)
        required = meta.get("required", False)

        if kind == "attr":
            if value or required:
                el.set(meta["xml"], value)
        elif kind == "chardata":
            if value:
                el.text = value
        elif kind == "text":
            if value or required:
                ET.SubElement(el, meta["xml"]).text = value
        elif kind == "int":
            if value:
                ET.SubElement(el, meta["xml"]).text = str(value)
        elif kind == "texts":
            for item in value:
                ET.SubElement(el, meta["xml"]).text = item
        elif kind == "child":
            if required or not is_empty(value):
                el.append(encode(value, meta["xml"]))
        elif kind == "children":
            for item in value:
                el.append(encode(item, meta["xml"]))
    return el


def to_bytes(root: ET.Element, namespace: str, *, indent: bool = True) -> bytes:
    """Serialize ``root`` with ``namespace`` as the default namespace."""
    root.set("xmlns", namespace)
    if indent:
        ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def parse_root(data: bytes, document: str) -> ET.Element:
    """
    Parse ``data`` and return its root element.

    Raises ``DecodeError`` with reason ``EOF`` when the input ends before
    any element starts, or with the parser's message for malformed markup.
    """
    if not data or b"<" not in data:
        raise DecodeError(document, "EOF")
    try:
        return ET.fromstring(data)
    except ET.ParseError as exc:
        raise DecodeError(document, str(exc), position=list(exc.position)) from exc
