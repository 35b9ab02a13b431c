"""Work calendar resolver — pure time logic.

Turns a user's stored timezone into a local "now", reads their per-weekday
work settings, and computes the Monday-start week around a date.

Weekday indexes follow the stored profile: 0 = Sunday .. 6 = Saturday.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from worksummary.data.models import DEFAULT_WORK_START

if TYPE_CHECKING:
    from worksummary.data.models import User

logger = logging.getLogger(__name__)

SUNDAY = 0
MONDAY = 1

# Monday first, Sunday last.
_WEEK_SCAN_ORDER = (1, 2, 3, 4, 5, 6, 0)


def local_now(tz_name: str | None, now: datetime | None = None) -> datetime:
    """Return the wall-clock time in `tz_name` as an aware datetime.

    Args:
        tz_name: IANA timezone name, e.g. "Europe/Lisbon". None or an
            unknown name falls back to the server's local timezone.
        now: The instant to convert. Defaults to the current time; naive
            values are taken as server-local.
    """
    instant = now if now is not None else datetime.now(timezone.utc)
    if instant.tzinfo is None:
        instant = instant.astimezone()

    if tz_name:
        try:
            return instant.astimezone(ZoneInfo(tz_name))
        except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
            logger.warning(
                "Unknown timezone %r, falling back to server time: %s", tz_name, exc,
            )
    return instant.astimezone()


def weekday_index(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def work_hours_for_weekday(user: User, weekday: int) -> float:
    return float(user.work_hours[weekday] or 0)


def work_start_for_weekday(user: User, weekday: int) -> str:
    return user.work_start[weekday] or DEFAULT_WORK_START


def start_hour(work_start: str) -> int:
    """Hour of an "HH:MM" string. Raises ValueError on malformed input."""
    hour_part, sep, _ = work_start.strip().partition(":")
    if not sep:
        raise ValueError(f"No colon in work start time: {work_start!r}")
    hour = int(hour_part)
    if not 0 <= hour <= 23:
        raise ValueError(f"Hour out of range: {work_start!r}")
    return hour


def first_work_day_of_week(user: User) -> int | None:
    """First weekday, scanning Monday through Sunday, with work hours > 0."""
    for weekday in _WEEK_SCAN_ORDER:
        if work_hours_for_weekday(user, weekday) > 0:
            return weekday
    return None


def format_date_key(value: date) -> str:
    """YYYY-MM-DD in the value's own calendar (no UTC shift)."""
    return value.strftime("%Y-%m-%d")


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing `day`."""
    if isinstance(day, datetime):
        day = day.date()
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)
