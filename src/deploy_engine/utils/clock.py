"""Time helpers built on arrow."""

from datetime import datetime

import arrow


def utcnow() -> datetime:
    """Current UTC time as an aware ``datetime``."""
    return arrow.utcnow().datetime


def epoch_millis() -> int:
    return int(arrow.utcnow().float_timestamp * 1000)


def describe_age(moment: datetime, now: datetime | None = None) -> str:
    """Describe how long ago ``moment`` was, e.g. ``3 days ago``.

    Uses the largest whole unit among days, hours and minutes; anything under
    a minute is ``just now``.
    """
    reference = arrow.get(now) if now is not None else arrow.utcnow()
    delta = reference - arrow.get(moment)
    seconds = max(int(delta.total_seconds()), 0)

    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        count = seconds // size
        if count:
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"
