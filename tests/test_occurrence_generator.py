"""Tests for expanding recurrence rules into occurrence dates."""

import pytest
from datetime import date, datetime, timedelta

import pytz

from app.errors import InvalidRule
from app.models.recurrence_rule import EndsAfterCount, EndsOnDate, RecurrenceRule
from app.models.task import Task
from app.services.occurrence_generator import (
    Occurrence,
    generate,
    next_occurrence,
    occurrences_for_task,
    sunday_index,
)

TZ = "America/New_York"


def dates(rule, anchor, start, end, timezone=TZ):
    return list(generate(rule, anchor, start, end, timezone))


class TestDaily:

    def test_every_day(self):
        rule = RecurrenceRule(pattern="daily")
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 5))
        assert result == [date(2024, 1, d) for d in range(1, 6)]

    def test_interval_steps_from_anchor(self):
        rule = RecurrenceRule(pattern="daily", interval=3)
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 12))
        assert result == [date(2024, 1, 4), date(2024, 1, 7), date(2024, 1, 10)]

    def test_nothing_before_anchor(self):
        rule = RecurrenceRule(pattern="daily")
        result = dates(rule, date(2024, 1, 10), date(2024, 1, 1), date(2024, 1, 11))
        assert result == [date(2024, 1, 10), date(2024, 1, 11)]

    def test_ends_on_date_is_inclusive(self):
        rule = RecurrenceRule(pattern="daily", end=EndsOnDate(on=date(2024, 1, 3)))
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 31))
        assert result == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_after_count_is_counted_from_anchor(self):
        rule = RecurrenceRule(pattern="daily", end=EndsAfterCount(count=10))
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 31))
        assert result == [date(2024, 1, d) for d in range(5, 11)]

    def test_range_before_anchor_is_empty(self):
        rule = RecurrenceRule(pattern="daily")
        assert dates(rule, date(2024, 6, 1), date(2024, 1, 1), date(2024, 5, 31)) == []


class TestWeekly:

    def test_monday_wednesday_friday(self):
        rule = RecurrenceRule(pattern="weekly", days_of_week=[1, 3, 5])
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 14))
        assert result == [
            date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 5),
            date(2024, 1, 8), date(2024, 1, 10), date(2024, 1, 12),
        ]

    def test_days_before_anchor_in_first_week_are_skipped(self):
        # anchor is a Wednesday; Sunday and Monday of that week precede it
        rule = RecurrenceRule(pattern="weekly", days_of_week=[0, 1])
        result = dates(rule, date(2024, 1, 3), date(2024, 1, 1), date(2024, 1, 15))
        assert result == [date(2024, 1, 7), date(2024, 1, 8), date(2024, 1, 14), date(2024, 1, 15)]

    def test_every_other_week(self):
        rule = RecurrenceRule(pattern="weekly", interval=2, days_of_week=[2])
        result = dates(rule, date(2024, 1, 2), date(2024, 1, 1), date(2024, 1, 31))
        assert result == [date(2024, 1, 2), date(2024, 1, 16), date(2024, 1, 30)]

    def test_after_count_mid_series(self):
        rule = RecurrenceRule(pattern="weekly", days_of_week=[1, 3, 5], end=EndsAfterCount(count=4))
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 6), date(2024, 1, 31))
        assert result == [date(2024, 1, 8)]

    def test_empty_days_yield_nothing(self):
        rule = RecurrenceRule(pattern="weekly")
        assert dates(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 12, 31)) == []

    def test_each_aligned_window_holds_every_selected_day(self):
        rule = RecurrenceRule(pattern="weekly", interval=2, days_of_week=[0, 3, 6])
        anchor = date(2024, 1, 7)  # Sunday
        for k in range(10):
            window_start = anchor + timedelta(days=14 * k)
            window = dates(rule, anchor, window_start, window_start + timedelta(days=13))
            assert len(window) == 3
            assert sorted(sunday_index(d) for d in window) == [0, 3, 6]


class TestMonthly:

    def test_day_31_clamps_to_month_end(self):
        rule = RecurrenceRule(pattern="monthly", days_of_month=[31])
        result = dates(rule, date(2023, 1, 1), date(2023, 1, 1), date(2023, 4, 30))
        assert result == [date(2023, 1, 31), date(2023, 2, 28), date(2023, 3, 31), date(2023, 4, 30)]

    def test_leap_february(self):
        rule = RecurrenceRule(pattern="monthly", days_of_month=[31])
        result = dates(rule, date(2024, 2, 1), date(2024, 2, 1), date(2024, 2, 29))
        assert result == [date(2024, 2, 29)]

    def test_clamped_duplicates_collapse(self):
        rule = RecurrenceRule(pattern="monthly", days_of_month=[30, 31])
        result = dates(rule, date(2023, 2, 1), date(2023, 2, 1), date(2023, 2, 28))
        assert result == [date(2023, 2, 28)]

    def test_empty_days_use_anchor_day(self):
        rule = RecurrenceRule(pattern="monthly")
        result = dates(rule, date(2024, 1, 15), date(2024, 1, 1), date(2024, 3, 31))
        assert result == [date(2024, 1, 15), date(2024, 2, 15), date(2024, 3, 15)]

    def test_after_count_mid_series(self):
        rule = RecurrenceRule(pattern="monthly", days_of_month=[31], end=EndsAfterCount(count=3))
        result = dates(rule, date(2023, 1, 1), date(2023, 3, 1), date(2023, 12, 31))
        assert result == [date(2023, 3, 31)]

    def test_fast_forward_matches_full_walk(self):
        rule = RecurrenceRule(pattern="monthly", interval=2, days_of_month=[1, 15])
        anchor = date(2020, 1, 1)
        full = dates(rule, anchor, anchor, date(2024, 12, 31))
        tail = dates(rule, anchor, date(2024, 1, 1), date(2024, 12, 31))
        assert tail == [d for d in full if d >= date(2024, 1, 1)]


class TestFastForward:
    """Starting mid-series gives the same dates as walking from the anchor."""

    @pytest.mark.parametrize(
        "rule",
        [
            RecurrenceRule(pattern="daily", interval=3),
            RecurrenceRule(pattern="daily", interval=17),
            RecurrenceRule(pattern="weekly", interval=3, days_of_week=[0, 4]),
            RecurrenceRule(pattern="weekly", interval=2, days_of_week=[6]),
            RecurrenceRule(pattern="monthly", interval=5, days_of_month=[29, 31]),
            RecurrenceRule(pattern="yearly", interval=2, months=[1], days_of_month=[29]),
            RecurrenceRule(pattern="yearly", interval=3, months=[0, 11], days_of_month=[1, 31]),
        ],
        ids=lambda rule: f"{rule.pattern.value}-every-{rule.interval}",
    )
    @pytest.mark.parametrize("start", [date(2023, 2, 28), date(2024, 3, 1), date(2031, 12, 31)])
    def test_matches_full_walk(self, rule, start):
        anchor = date(2020, 1, 15)
        end = date(2032, 12, 31)
        full = dates(rule, anchor, anchor, end)
        assert dates(rule, anchor, start, end) == [d for d in full if d >= start]


class TestYearly:

    def test_february_29_clamps_outside_leap_years(self):
        rule = RecurrenceRule(pattern="yearly", months=[1], days_of_month=[29])
        result = dates(rule, date(2023, 1, 1), date(2023, 1, 1), date(2025, 12, 31))
        assert result == [date(2023, 2, 28), date(2024, 2, 29), date(2025, 2, 28)]

    def test_months_and_days_cross_product(self):
        rule = RecurrenceRule(pattern="yearly", months=[0, 6], days_of_month=[1, 15])
        result = dates(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 12, 31))
        assert result == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 7, 1), date(2024, 7, 15)]

    def test_empty_sets_use_anchor_month_and_day(self):
        rule = RecurrenceRule(pattern="yearly")
        result = dates(rule, date(2024, 3, 10), date(2024, 1, 1), date(2026, 12, 31))
        assert result == [date(2024, 3, 10), date(2025, 3, 10), date(2026, 3, 10)]


class TestGenerateInputs:

    def test_aware_anchor_uses_local_date(self):
        rule = RecurrenceRule(pattern="daily")
        anchor = datetime(2024, 1, 1, 3, 0, tzinfo=pytz.utc)
        result = dates(rule, anchor, date(2023, 12, 31), date(2024, 1, 1))
        assert result == [date(2023, 12, 31), date(2024, 1, 1)]

    def test_unknown_timezone_fails_before_output(self):
        rule = RecurrenceRule(pattern="daily")
        with pytest.raises(InvalidRule):
            generate(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 2), "Mars/Olympus")

    def test_non_date_input_is_rejected(self):
        rule = RecurrenceRule(pattern="daily")
        with pytest.raises(InvalidRule):
            generate(rule, "2024-01-01", date(2024, 1, 1), date(2024, 1, 2), TZ)

    def test_sequence_is_restartable(self):
        rule = RecurrenceRule(pattern="weekly", days_of_week=[1, 4])
        sequence = generate(rule, date(2024, 1, 1), date(2024, 1, 1), date(2024, 2, 29), TZ)
        assert list(sequence) == list(sequence)

    def test_end_of_calendar_terminates(self):
        rule = RecurrenceRule(pattern="yearly", interval=1000)
        result = dates(rule, date(2024, 5, 1), date(2024, 1, 1), date.max)
        assert result == [date(2024, 5, 1), date(3024, 5, 1), date(4024, 5, 1), date(5024, 5, 1),
                          date(6024, 5, 1), date(7024, 5, 1), date(8024, 5, 1), date(9024, 5, 1)]


class TestNextOccurrence:

    def test_next_after_a_date(self):
        rule = RecurrenceRule(pattern="weekly", days_of_week=[1, 3, 5])
        assert next_occurrence(rule, date(2024, 1, 1), date(2024, 1, 5), TZ) == date(2024, 1, 8)

    def test_none_once_ended(self):
        rule = RecurrenceRule(pattern="daily", end=EndsAfterCount(count=2))
        assert next_occurrence(rule, date(2024, 1, 1), date(2024, 1, 2), TZ) is None


class TestOccurrencesForTask:

    def test_recurring_task_uses_due_date_as_anchor(self):
        task = Task(
            id=1,
            title="Water plants",
            due_date=datetime(2024, 1, 1, 15, 0),
            timezone=TZ,
        )
        task.apply_recurrence(RecurrenceRule(pattern="daily", interval=2))
        result = occurrences_for_task(task, date(2024, 1, 1), date(2024, 1, 6))
        assert result == [Occurrence(1, date(2024, 1, 1)), Occurrence(1, date(2024, 1, 3)), Occurrence(1, date(2024, 1, 5))]

    def test_non_recurring_task_occurs_on_due_date(self):
        task = Task(id=2, title="Pay rent", due_date=datetime(2024, 1, 10, 17, 0), timezone=TZ)
        assert occurrences_for_task(task, date(2024, 1, 1), date(2024, 1, 31)) == [Occurrence(2, date(2024, 1, 10))]
        assert occurrences_for_task(task, date(2024, 2, 1), date(2024, 2, 29)) == []

    def test_task_without_due_date_has_no_single_occurrence(self):
        task = Task(id=3, title="Someday", timezone=TZ)
        assert occurrences_for_task(task, date(2024, 1, 1), date(2024, 12, 31)) == []
