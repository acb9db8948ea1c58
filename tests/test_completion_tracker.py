"""Tests for per-occurrence completion tracking."""

import pytest
from datetime import date, datetime
from typing import Dict, Tuple

import pytz

from app.errors import UnknownReference
from app.models.recurrence_rule import RecurrenceRule
from app.models.task import Task
from app.models.task_completion import TaskCompletion
from app.services.completion_tracker import CompletionState, CompletionTracker
from app.services.storage import CompletionStore, SQLModelCompletionStore


class InMemoryCompletionStore(CompletionStore):
    """Dictionary-backed store for exercising the tracker without a database."""

    def __init__(self, tasks):
        self.tasks = {task.id: task for task in tasks}
        self.records: Dict[Tuple[int, date], TaskCompletion] = {}
        self.writes = 0

    def get_task(self, task_id):
        return self.tasks.get(task_id)

    def set_task_completed(self, task, completed, completed_at):
        self.writes += 1
        task.completed = completed
        task.completed_at = completed_at
        return task

    def get_completion(self, task_id, completion_date):
        return self.records.get((task_id, completion_date))

    def save_completion(self, task_id, completion_date, completed, completed_at):
        self.writes += 1
        record = TaskCompletion(
            task_id=task_id,
            completion_date=completion_date,
            completed=completed,
            completed_at=completed_at,
        )
        self.records[(task_id, completion_date)] = record
        return record

    def list_completions(self, task_ids, start, end):
        ids = set(task_ids)
        return [
            record for (task_id, day), record in self.records.items()
            if task_id in ids and start <= day <= end
        ]


class BrokenStore(InMemoryCompletionStore):
    def save_completion(self, task_id, completion_date, completed, completed_at):
        raise ConnectionError("database unavailable")


def recurring_task(task_id=1):
    task = Task(id=task_id, title="Stretch")
    task.apply_recurrence(RecurrenceRule(pattern="daily"))
    return task


@pytest.fixture
def store():
    return InMemoryCompletionStore([recurring_task(1), Task(id=2, title="Buy milk")])


@pytest.fixture
def tracker(store):
    return CompletionTracker(store)


class TestRecurringCompletion:

    def test_untoggled_occurrence_is_incomplete(self, tracker):
        assert tracker.state(1, date(2024, 1, 1)) == CompletionState(False)
        assert tracker.is_complete(1, date(2024, 1, 1)) is False

    def test_toggle_sets_completed_at(self, tracker):
        state = tracker.toggle(1, date(2024, 1, 1))
        assert state.completed is True
        assert isinstance(state.completed_at, datetime)
        assert state.completed_at.tzinfo is not None

    def test_toggle_twice_restores_state(self, tracker):
        day = date(2024, 1, 1)
        tracker.toggle(1, day)
        state = tracker.toggle(1, day)
        assert state.completed is False
        assert state.completed_at is None
        assert tracker.is_complete(1, day) is False

    def test_occurrences_are_independent(self, tracker):
        tracker.toggle(1, date(2024, 1, 1))
        assert tracker.is_complete(1, date(2024, 1, 1)) is True
        assert tracker.is_complete(1, date(2024, 1, 2)) is False

    def test_toggle_does_not_touch_task_flag(self, tracker, store):
        tracker.toggle(1, date(2024, 1, 1))
        assert store.tasks[1].completed is False

    def test_set_complete_is_last_write_wins(self, tracker):
        day = date(2024, 1, 3)
        tracker.set_complete(1, day, True)
        tracker.set_complete(1, day, True)
        assert tracker.is_complete(1, day) is True
        tracker.set_complete(1, day, False)
        assert tracker.is_complete(1, day) is False

    def test_completion_map(self, tracker):
        tracker.toggle(1, date(2024, 1, 1))
        tracker.toggle(1, date(2024, 1, 5))
        tracker.toggle(1, date(2024, 2, 1))
        found = tracker.completion_map([1], date(2024, 1, 1), date(2024, 1, 31))
        assert set(found) == {(1, date(2024, 1, 1)), (1, date(2024, 1, 5))}
        assert all(state.completed for state in found.values())


class TestNonRecurringCompletion:

    def test_toggle_flips_task_flag(self, tracker, store):
        state = tracker.toggle(2, date(2024, 1, 1))
        assert state.completed is True
        assert store.tasks[2].completed is True
        assert store.records == {}

    def test_state_ignores_occurrence_date(self, tracker):
        tracker.toggle(2, date(2024, 1, 1))
        assert tracker.is_complete(2, date(2030, 6, 1)) is True


class TestFailures:

    def test_unknown_task(self, tracker, store):
        with pytest.raises(UnknownReference):
            tracker.toggle(99, date(2024, 1, 1))
        assert store.writes == 0

    def test_storage_errors_propagate(self):
        tracker = CompletionTracker(BrokenStore([recurring_task(1)]))
        with pytest.raises(ConnectionError):
            tracker.toggle(1, date(2024, 1, 1))


class TestSQLModelCompletionStore:

    def test_save_completion_upserts(self, session):
        task = recurring_task(None)
        session.add(task)
        session.commit()
        session.refresh(task)

        store = SQLModelCompletionStore(session)
        store.save_completion(task.id, date(2024, 1, 1), True, datetime(2024, 1, 1, 12, 0, tzinfo=pytz.utc))
        store.save_completion(task.id, date(2024, 1, 1), False, None)

        records = store.list_completions([task.id], date(2024, 1, 1), date(2024, 1, 1))
        assert len(records) == 1
        assert records[0].completed is False

    def test_tracker_round_trip_through_database(self, session):
        task = recurring_task(None)
        session.add(task)
        session.commit()
        session.refresh(task)

        tracker = CompletionTracker(SQLModelCompletionStore(session))
        tracker.toggle(task.id, date(2024, 3, 4))
        assert tracker.is_complete(task.id, date(2024, 3, 4)) is True
        assert tracker.is_complete(task.id, date(2024, 3, 5)) is False
