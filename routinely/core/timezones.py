"""Timezone and label helpers for family-local wall-clock time.

Board windows are naive wall-clock datetimes in the family's IANA zone.
Every conversion and every clock label goes through this module so that
labels never depend on the server's local zone.
"""

import logging
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from routinely.config import settings

logger = logging.getLogger(__name__)


def get_zone(name: str | None) -> ZoneInfo:
    """Return a ZoneInfo for ``name``, falling back to the default family zone."""
    try:
        return ZoneInfo(name or settings.DEFAULT_FAMILY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using %s", name, settings.DEFAULT_FAMILY_TIMEZONE)
        return ZoneInfo(settings.DEFAULT_FAMILY_TIMEZONE)


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive instants as UTC (SQLite drops tzinfo on read)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_wall_clock(instant: datetime, zone: ZoneInfo) -> datetime:
    """Convert an instant into a naive wall-clock datetime in ``zone``."""
    return ensure_aware(instant).astimezone(zone).replace(tzinfo=None, microsecond=0)


def local_date(instant: datetime, zone: ZoneInfo) -> date:
    return ensure_aware(instant).astimezone(zone).date()


def combine_date_and_time(day: date, clock: time | None) -> datetime | None:
    if clock is None:
        return None
    return datetime.combine(day, clock)


def format_time_label(value: datetime | None) -> str | None:
    """``HH:MM`` of a wall-clock datetime."""
    if value is None:
        return None
    return value.strftime("%H:%M")


def format_instant_label(instant: datetime | None, zone: ZoneInfo) -> str | None:
    """``HH:MM`` of an instant rendered in ``zone``."""
    if instant is None:
        return None
    return format_time_label(to_wall_clock(instant, zone))


def format_duration(seconds: int | None) -> str | None:
    """Human duration: ``N min``, ``H h`` or ``H h M min``; None when unknown."""
    if not seconds or seconds <= 0:
        return None

    minutes = seconds // 60
    hours, remaining_minutes = divmod(minutes, 60)

    if hours > 0:
        if remaining_minutes == 0:
            return f"{hours} h"
        return f"{hours} h {remaining_minutes} min"

    return f"{max(1, minutes)} min"
