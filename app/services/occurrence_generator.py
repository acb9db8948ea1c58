"""
Occurrence Generator

Expands a RecurrenceRule into the concrete local dates it falls on. Nothing
here is persisted: occurrences are recomputed from the rule on every query,
so editing a rule can never leave stale occurrence rows behind.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, List, Optional

from app.errors import InvalidRule
from app.models.recurrence_rule import RecurrencePattern, RecurrenceRule
from app.models.task import Task
from app.utils.timezones import DateLike, as_utc, get_timezone, to_local_date

logger = logging.getLogger(__name__)

MAX_YEAR = date.max.year


@dataclass(frozen=True)
class Occurrence:
    """One date on which a task is due. Derived, never stored."""
    task_id: int
    occurrence_date: date


def sunday_index(day: date) -> int:
    """Weekday index with Sunday=0 .. Saturday=6."""
    return (day.weekday() + 1) % 7


def _clamped_days(year: int, month: int, days_of_month) -> List[int]:
    """Requested days clamped to the month length, ascending and de-duplicated."""
    last_day = calendar.monthrange(year, month)[1]
    return sorted(set(min(day, last_day) for day in days_of_month))


class OccurrenceSequence:
    """
    Lazy, restartable and finite sequence of occurrence dates.

    Each iteration recomputes from the rule, so iterating twice yields the
    same dates. The sequence is bounded by range_end and by the rule's own
    end condition, whichever comes first.
    """

    def __init__(self, rule: RecurrenceRule, anchor: date, range_start: date, range_end: date):
        self.rule = rule
        self.anchor = anchor
        self.range_start = range_start
        self.range_end = range_end

    def __iter__(self) -> Iterator[date]:
        rule = self.rule
        stop = self.range_end
        if rule.end_date is not None and rule.end_date < stop:
            stop = rule.end_date
        if stop < self.range_start or stop < self.anchor:
            return
        if rule.pattern == RecurrencePattern.WEEKLY and not rule.days_of_week:
            return

        limit = rule.max_count
        # Counted rules must walk from the anchor to know how many occurrences
        # precede range_start; uncounted ones can jump straight there.
        skip = 0 if limit is not None else self._periods_before_start()

        seen = 0
        for candidate in self._candidates(skip):
            if candidate > stop:
                break
            seen += 1
            if limit is not None and seen > limit:
                break
            if candidate >= self.range_start:
                yield candidate

    def __repr__(self):
        return (
            f"OccurrenceSequence({self.rule.pattern.value}, anchor={self.anchor}, "
            f"range={self.range_start}..{self.range_end})"
        )

    def _periods_before_start(self) -> int:
        rule = self.rule
        anchor = self.anchor
        start = self.range_start
        if start <= anchor:
            return 0

        if rule.pattern == RecurrencePattern.DAILY:
            return (start - anchor).days // rule.interval
        if rule.pattern == RecurrencePattern.WEEKLY:
            anchor_week = anchor - timedelta(days=sunday_index(anchor))
            start_week = start - timedelta(days=sunday_index(start))
            return (start_week - anchor_week).days // (7 * rule.interval)
        if rule.pattern == RecurrencePattern.MONTHLY:
            months = (start.year - anchor.year) * 12 + (start.month - anchor.month)
            return months // rule.interval
        return (start.year - anchor.year) // rule.interval

    def _candidates(self, skip: int) -> Iterator[date]:
        pattern = self.rule.pattern
        if pattern == RecurrencePattern.DAILY:
            return self._daily(skip)
        if pattern == RecurrencePattern.WEEKLY:
            return self._weekly(skip)
        if pattern == RecurrencePattern.MONTHLY:
            return self._monthly(skip)
        return self._yearly(skip)

    def _daily(self, skip: int) -> Iterator[date]:
        step = self.rule.interval
        k = skip
        while True:
            try:
                yield self.anchor + timedelta(days=k * step)
            except OverflowError:
                return
            k += 1

    def _weekly(self, skip: int) -> Iterator[date]:
        anchor = self.anchor
        first_week = anchor - timedelta(days=sunday_index(anchor))
        step = 7 * self.rule.interval
        k = skip
        while True:
            try:
                week_start = first_week + timedelta(days=k * step)
                days = [week_start + timedelta(days=d) for d in self.rule.days_of_week]
            except OverflowError:
                return
            for day in days:
                if day >= anchor:
                    yield day
            k += 1

    def _monthly(self, skip: int) -> Iterator[date]:
        anchor = self.anchor
        days_of_month = self.rule.days_of_month or (anchor.day,)
        first = anchor.year * 12 + (anchor.month - 1)
        k = skip
        while True:
            year, month0 = divmod(first + k * self.rule.interval, 12)
            if year > MAX_YEAR:
                return
            for day in _clamped_days(year, month0 + 1, days_of_month):
                candidate = date(year, month0 + 1, day)
                if candidate >= anchor:
                    yield candidate
            k += 1

    def _yearly(self, skip: int) -> Iterator[date]:
        anchor = self.anchor
        months = self.rule.months or (anchor.month - 1,)
        days_of_month = self.rule.days_of_month or (anchor.day,)
        k = skip
        while True:
            year = anchor.year + k * self.rule.interval
            if year > MAX_YEAR:
                return
            for month0 in months:
                for day in _clamped_days(year, month0 + 1, days_of_month):
                    candidate = date(year, month0 + 1, day)
                    if candidate >= anchor:
                        yield candidate
            k += 1


def generate(
    rule: RecurrenceRule,
    anchor: DateLike,
    range_start: DateLike,
    range_end: DateLike,
    timezone: str,
) -> OccurrenceSequence:
    """
    Expand `rule` into the occurrence dates falling in [range_start, range_end].

    Args:
        rule: The recurrence rule
        anchor: First possible occurrence; the rule steps from here
        range_start: Inclusive start of the query range
        range_end: Inclusive end of the query range
        timezone: IANA name; aware datetimes are converted to local dates in it

    Returns:
        OccurrenceSequence of local dates, ascending

    Raises:
        InvalidRule: If the rule or timezone is invalid (raised before any output)
    """
    if not isinstance(rule, RecurrenceRule):
        raise InvalidRule(f"Expected a RecurrenceRule, got {type(rule).__name__}")
    for name, value in (("anchor", anchor), ("range_start", range_start), ("range_end", range_end)):
        if not isinstance(value, date):
            raise InvalidRule(f"{name} must be a date or datetime, got {value!r}")

    tz = get_timezone(timezone)
    return OccurrenceSequence(
        rule,
        to_local_date(anchor, tz),
        to_local_date(range_start, tz),
        to_local_date(range_end, tz),
    )


def next_occurrence(rule: RecurrenceRule, anchor: DateLike, after: DateLike, timezone: str) -> Optional[date]:
    """First occurrence strictly after `after`, or None once the rule has ended."""
    tz = get_timezone(timezone)
    start = to_local_date(after, tz) + timedelta(days=1)
    for day in generate(rule, anchor, start, date.max, timezone):
        return day
    return None


def task_anchor(task: Task) -> date:
    """Local anchor date of a recurring task: its due date, else its creation day."""
    anchor = task.local_due_date()
    if anchor is None:
        anchor = as_utc(task.created_at).astimezone(get_timezone(task.timezone)).date()
    return anchor


def occurrences_for_task(
    task: Task,
    range_start: DateLike,
    range_end: DateLike,
    timezone: Optional[str] = None,
) -> List[Occurrence]:
    """
    Occurrences of a single task in the range.

    Recurring tasks are expanded from their rule in the task's own timezone.
    Non-recurring tasks occur once, on their due date, if it falls in range.
    `timezone` only controls how datetime range bounds are turned into days.
    """
    query_tz = get_timezone(timezone or task.timezone)
    start = to_local_date(range_start, query_tz)
    end = to_local_date(range_end, query_tz)

    if not task.is_recurring:
        due = task.local_due_date()
        if due is not None and start <= due <= end:
            return [Occurrence(task.id, due)]
        return []

    rule = task.recurrence
    dates = generate(rule, task_anchor(task), start, end, task.timezone)
    occurrences = [Occurrence(task.id, day) for day in dates]
    logger.debug(f"Task {task.id}: {len(occurrences)} occurrences between {start} and {end}")
    return occurrences
