"""Timezone helpers built on pytz.

Day boundaries in the planner are local midnight in a task's IANA timezone,
never UTC midnight.
"""
from datetime import date, datetime
from typing import Union

import pytz

from app.errors import InvalidRule

DateLike = Union[date, datetime]


def get_timezone(name: str):
    """Resolve an IANA timezone name, rejecting unknown names."""
    try:
        return pytz.timezone(name)
    except pytz.exceptions.UnknownTimeZoneError:
        raise InvalidRule(f"Unknown timezone: {name}", {"timezone": name})


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are assumed to already be UTC."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def to_local_date(value: DateLike, tz) -> date:
    """
    Calendar date of `value` in timezone `tz`.

    Aware datetimes are converted; naive datetimes are taken as local
    wall-clock time and plain dates are returned unchanged.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    return value


def utc_now() -> datetime:
    """Current time as an aware UTC datetime; every timestamp written to the database uses this."""
    return datetime.now(pytz.utc)


def local_today(tz) -> date:
    return utc_now().astimezone(tz).date()


def local_midnight(day: date, tz) -> datetime:
    """Aware datetime for the start of `day` in `tz`."""
    return tz.localize(datetime(day.year, day.month, day.day))
