"""
Conversion between ``datetime`` and the wire timestamp string.

CAP and Atom both carry RFC 3339 date-times with an explicit UTC offset,
e.g. ``2003-06-11T22:39:00-07:00``. An empty string means "absent" and
must be checked by the caller before parsing.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from capship.app.core.errors import MalformedTimestamp

# Alias used in type hints for wire timestamps ("" = absent)
TimeStr = str

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})",
    re.ASCII,
)


def format_time(t: datetime) -> TimeStr:
    """Render ``t`` in RFC 3339 form; naive datetimes are taken as UTC."""
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    rendered = t.replace(microsecond=0).isoformat()
    if t.utcoffset() == timedelta(0):
        rendered = rendered[:-6] + "Z"
    return rendered


def parse_time(s: TimeStr) -> datetime:
    """Parse an RFC 3339 timestamp into an offset-aware ``datetime``."""
    m = _RFC3339.fullmatch(s)
    if m is None:
        raise MalformedTimestamp(s)

    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    fraction, offset = m.group(7), m.group(8)
    microsecond = int(fraction[1:7].ljust(6, "0")) if fraction else 0

    if offset == "Z":
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise MalformedTimestamp(s)
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    try:
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)
    except ValueError:
        raise MalformedTimestamp(s) from None


def now() -> TimeStr:
    """Current time in the wire format, in the local offset."""
    return format_time(datetime.now().astimezone())
