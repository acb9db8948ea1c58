"""Tests for timezone helpers and the timestamps written to the database."""

import pytest
from datetime import date, datetime

import pytz

from app.errors import InvalidRule
from app.models.goal import Goal
from app.models.task import Task
from app.models.task_completion import TaskCompletion
from app.utils.timezones import as_utc, get_timezone, to_local_date, utc_now


class TestTimestamps:
    """Every timestamp written to the database carries a UTC offset."""

    def test_utc_now_is_aware(self):
        now = utc_now()
        assert now.tzinfo is not None
        assert now.utcoffset().total_seconds() == 0

    @pytest.mark.parametrize(
        "model",
        [
            Task(title="Plan"),
            Goal(label="Save"),
            TaskCompletion(task_id=1, completion_date=date(2024, 1, 1)),
        ],
        ids=["task", "goal", "completion"],
    )
    def test_model_defaults_are_aware(self, model):
        assert model.created_at.tzinfo is not None
        assert model.updated_at.tzinfo is not None

    def test_stored_task_round_trips(self, session):
        task = Task(title="Stored", due_date=datetime(2024, 1, 2, 17, 0, tzinfo=pytz.utc))
        session.add(task)
        session.commit()
        session.refresh(task)
        assert task.due_date_utc() == datetime(2024, 1, 2, 17, 0, tzinfo=pytz.utc)
        assert as_utc(task.created_at) <= utc_now()


class TestConversions:

    def test_naive_values_are_read_as_utc(self):
        assert as_utc(datetime(2024, 1, 1, 12, 0)) == datetime(2024, 1, 1, 12, 0, tzinfo=pytz.utc)

    def test_aware_value_converted_to_local_date(self):
        tz = get_timezone("America/New_York")
        assert to_local_date(datetime(2024, 1, 1, 3, 0, tzinfo=pytz.utc), tz) == date(2023, 12, 31)

    def test_plain_date_passes_through(self):
        assert to_local_date(date(2024, 5, 1), get_timezone("Asia/Tokyo")) == date(2024, 5, 1)

    def test_unknown_timezone(self):
        with pytest.raises(InvalidRule):
            get_timezone("Nowhere/Special")
