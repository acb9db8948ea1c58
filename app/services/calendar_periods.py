"""
Calendar Period Bucketer

Period boundaries for the weekly, month-block and year-block planning views.
All periods are inclusive on both ends: `end` is the last calendar day of
the period, not the first day of the next one.

Weeks start on Sunday while week numbers follow ISO-8601 (Monday weeks,
Thursday rule). The two are computed independently on purpose; the weekly
view depends on both conventions as they are.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional

from app.errors import InvalidRule
from app.utils.timezones import DateLike, get_timezone, to_local_date

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class PeriodKind(str, Enum):
    """Planning views and the periods they are bucketed into."""
    WEEK = "week"
    THREE_MONTHS = "3mo"
    SIX_MONTHS = "6mo"
    TWELVE_MONTHS = "12mo"
    THREE_YEARS = "3yr"
    FIVE_YEARS = "5yr"


MONTH_BLOCKS = {
    PeriodKind.THREE_MONTHS: 3,
    PeriodKind.SIX_MONTHS: 6,
    PeriodKind.TWELVE_MONTHS: 12,
}

YEAR_BLOCKS = {
    PeriodKind.THREE_YEARS: 3,
    PeriodKind.FIVE_YEARS: 5,
}


@dataclass(frozen=True)
class Period:
    start: date
    end: date
    label: str

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class WeekPeriod:
    start: date
    end: date
    iso_week_number: int

    @property
    def label(self) -> str:
        return f"Week {self.iso_week_number}"


def _as_day(value: DateLike, timezone: Optional[str]) -> date:
    if not isinstance(value, date):
        raise InvalidRule(f"Expected a date, got {value!r}")
    if timezone is None:
        # no zone to convert into: take the wall-clock date as given
        return value.date() if isinstance(value, datetime) else value
    return to_local_date(value, get_timezone(timezone))


def _offset(day: date, days: int) -> date:
    try:
        return day + timedelta(days=days)
    except OverflowError:
        raise InvalidRule(f"Date out of range: {day} {days:+d} days")


def _check_year(year: int) -> int:
    if not 1 <= year <= 9999:
        raise InvalidRule(f"Year out of range: {year}", {"year": year})
    return year


def week_start(day: date) -> date:
    """The Sunday on or before `day`."""
    return _offset(day, -((day.weekday() + 1) % 7))


def iso_week_number(day: date) -> int:
    """ISO-8601 week number: move to the Thursday of the day's Monday-based week, then count weeks."""
    thursday = _offset(day, 3 - day.weekday())
    return (thursday.timetuple().tm_yday - 1) // 7 + 1


def week_of(value: DateLike, timezone: Optional[str] = None) -> WeekPeriod:
    """Sunday-to-Saturday week containing `value`, with the ISO week number of `value` itself."""
    day = _as_day(value, timezone)
    start = week_start(day)
    return WeekPeriod(start=start, end=_offset(start, 6), iso_week_number=iso_week_number(day))


def days_in_week(value: DateLike, timezone: Optional[str] = None) -> List[Period]:
    """The seven single-day periods of the week containing `value`."""
    start = week_of(value, timezone).start
    days = []
    for offset in range(7):
        day = _offset(start, offset)
        days.append(Period(day, day, f"{DAY_NAMES[offset]}, {calendar.month_abbr[day.month]} {day.day}"))
    return days


def date_from_week(week: int, year: int) -> date:
    """
    Sunday starting week `week` of `year`, for week-number navigation.

    Week 1 starts on the first Sunday of the year (January 1 itself when it
    is a Sunday).
    """
    if not 1 <= week <= 53:
        raise InvalidRule(f"Week must be between 1 and 53, got {week}")
    jan1 = date(_check_year(year), 1, 1)
    first_sunday = _offset(jan1, (7 - (jan1.weekday() + 1) % 7) % 7)
    return _offset(first_sunday, 7 * (week - 1))


def add_months(day: date, months: int) -> date:
    """First day of the month `months` after the month of `day`."""
    year, month0 = divmod(day.year * 12 + day.month - 1 + months, 12)
    return date(_check_year(year), month0 + 1, 1)


def month_period(day: date) -> Period:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return Period(
        start=date(day.year, day.month, 1),
        end=date(day.year, day.month, last_day),
        label=f"{calendar.month_name[day.month]} {day.year}",
    )


def year_period(year: int) -> Period:
    _check_year(year)
    return Period(start=date(year, 1, 1), end=date(year, 12, 31), label=str(year))


def month_periods(anchor: DateLike, count: int, timezone: Optional[str] = None) -> List[Period]:
    """`count` consecutive calendar months starting with the anchor's month."""
    if count < 0:
        raise InvalidRule(f"Period count must not be negative, got {count}")
    first = _as_day(anchor, timezone)
    return [month_period(add_months(first, i)) for i in range(count)]


def year_periods(anchor: DateLike, count: int, timezone: Optional[str] = None) -> List[Period]:
    """`count` consecutive calendar years starting with the anchor's year."""
    if count < 0:
        raise InvalidRule(f"Period count must not be negative, got {count}")
    first = _as_day(anchor, timezone)
    return [year_period(first.year + i) for i in range(count)]


def periods_for(kind: PeriodKind, anchor: DateLike, timezone: Optional[str] = None) -> List[Period]:
    """
    Periods shown by a planning view.

    The weekly view is bucketed by day; month and year views by calendar
    month and calendar year.
    """
    kind = PeriodKind(kind)
    if kind == PeriodKind.WEEK:
        return days_in_week(anchor, timezone)
    if kind in MONTH_BLOCKS:
        return month_periods(anchor, MONTH_BLOCKS[kind], timezone)
    return year_periods(anchor, YEAR_BLOCKS[kind], timezone)


def shift_anchor(kind: PeriodKind, anchor: date, steps: int) -> date:
    """Anchor of the previous (negative steps) or next view: one week, or one whole block of months/years."""
    kind = PeriodKind(kind)
    if kind == PeriodKind.WEEK:
        return _offset(anchor, 7 * steps)
    if kind in MONTH_BLOCKS:
        return add_months(anchor, MONTH_BLOCKS[kind] * steps)
    return date(_check_year(anchor.year + YEAR_BLOCKS[kind] * steps), 1, 1)
