"""
Completion Tracker

Completion of a recurring task is tracked per occurrence date in
TaskCompletion rows, separately from the rule. Non-recurring tasks keep using
their own `completed` flag.

Every toggle is a single read-modify-write against the store, applied in
arrival order. There is no locking or version check: two clients toggling
the same occurrence at once resolve as last-write-wins, and storage errors
reach the caller unchanged.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, Optional, Tuple

from app.errors import UnknownReference
from app.models.task import Task
from app.services.storage import CompletionStore
from app.utils.logger import get_logger
from app.utils.timezones import utc_now

logger = get_logger("taskplanner.completion")


@dataclass(frozen=True)
class CompletionState:
    """Result of a completion read or write."""
    completed: bool
    completed_at: Optional[datetime] = None


class CompletionTracker:
    """Maps (task id, occurrence date) to completion state."""

    def __init__(self, store: CompletionStore):
        self.store = store

    def _require_task(self, task_id: int) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise UnknownReference("task", task_id)
        return task

    def state(self, task_id: int, occurrence_date: date) -> CompletionState:
        """Current completion state; an occurrence never toggled is not completed."""
        task = self._require_task(task_id)
        if not task.is_recurring:
            return CompletionState(task.completed, task.completed_at)

        record = self.store.get_completion(task_id, occurrence_date)
        if record is None:
            return CompletionState(False)
        return CompletionState(record.completed, record.completed_at)

    def is_complete(self, task_id: int, occurrence_date: date) -> bool:
        return self.state(task_id, occurrence_date).completed

    def set_complete(self, task_id: int, occurrence_date: date, completed: bool) -> CompletionState:
        """Set completion explicitly; non-recurring tasks update their own flag."""
        task = self._require_task(task_id)
        return self._write(task, occurrence_date, completed)

    def toggle(self, task_id: int, occurrence_date: date) -> CompletionState:
        """
        Flip completion of one occurrence.

        Rapid double toggles are not de-duplicated; clients are expected to
        read the state before writing.
        """
        task = self._require_task(task_id)
        if task.is_recurring:
            record = self.store.get_completion(task_id, occurrence_date)
            current = record.completed if record is not None else False
        else:
            current = task.completed
        return self._write(task, occurrence_date, not current)

    def _write(self, task: Task, occurrence_date: date, completed: bool) -> CompletionState:
        completed_at = utc_now() if completed else None

        if not task.is_recurring:
            task = self.store.set_task_completed(task, completed, completed_at)
            logger.info("Task completion updated", task_id=task.id, completed=completed)
            return CompletionState(task.completed, task.completed_at)

        record = self.store.save_completion(task.id, occurrence_date, completed, completed_at)
        logger.info(
            "Occurrence completion updated",
            task_id=task.id,
            occurrence_date=occurrence_date.isoformat(),
            completed=completed,
        )
        return CompletionState(record.completed, record.completed_at)

    def completion_map(self, task_ids: Iterable[int], start: date, end: date) -> Dict[Tuple[int, date], CompletionState]:
        """Bulk-load stored completion records for overlaying a view (recurring tasks only)."""
        return {
            (record.task_id, record.completion_date): CompletionState(record.completed, record.completed_at)
            for record in self.store.list_completions(task_ids, start, end)
        }
