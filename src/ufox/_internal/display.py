"""Locale-style display helpers shared by the views and the CSV export.

Output mimics the ``en-US`` browser locale: ``1/31/2025`` for dates and
``2:05:09 PM`` for times.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from datetime import datetime, tzinfo

PLACEHOLDER = "—"


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return a :class:`ZoneInfo` for *name*, or ``None`` for the local zone."""
    if not name:
        return None
    return ZoneInfo(name)


def localize(ts: datetime, tz: tzinfo | None = None) -> datetime:
    """Convert an aware timestamp to *tz* (the local zone when ``None``)."""
    return ts.astimezone(tz)


def format_date(ts: datetime, tz: tzinfo | None = None) -> str:
    local = localize(ts, tz)
    return f"{local.month}/{local.day}/{local.year}"


def format_time(ts: datetime, tz: tzinfo | None = None) -> str:
    local = localize(ts, tz)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d}:{local.second:02d} {suffix}"


def format_datetime(ts: datetime, tz: tzinfo | None = None) -> str:
    return f"{format_date(ts, tz)}, {format_time(ts, tz)}"


def format_number(value: float) -> str:
    """Render *value* the way a JS template literal would (``20`` not ``20.0``)."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)
