"""
Ordered (name, value) pairs shared by CAP parameters, event codes and
geocodes.

Several entries may share a name; lookups are exact and case-sensitive.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from capship.app.shared.xml_utils import element


@dataclass
class NamedValue:
    value_name: str = element("valueName", required=True)
    value: str = element("value", required=True)


def search(values: List[NamedValue], name: str) -> str:
    """Return the value of the first entry named ``name``, or ``""``."""
    for nv in values:
        if nv.value_name == name:
            return nv.value
    return ""


def search_all(values: List[NamedValue], name: str) -> List[str]:
    """Return every value named ``name`` in original order."""
    return [nv.value for nv in values if nv.value_name == name]


def append_value(values: List[NamedValue], name: str, value: str) -> None:
    """Append a new entry; existing entries with the same name are kept."""
    values.append(NamedValue(value_name=name, value=value))
