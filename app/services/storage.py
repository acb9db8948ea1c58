"""
Completion Store Interface

The Completion Tracker talks to storage only through this interface so the
tracking rules stay independent of the database. `SQLModelCompletionStore`
is the production implementation; tests may substitute their own.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from app.models.task import Task
from app.models.task_completion import TaskCompletion
from app.utils.timezones import utc_now


class CompletionStore(ABC):
    """Storage operations needed to track completion state."""

    @abstractmethod
    def get_task(self, task_id: int) -> Optional[Task]:
        """
        Retrieve a task by id.

        Returns:
            The task if found, None otherwise
        """
        pass

    @abstractmethod
    def set_task_completed(self, task: Task, completed: bool, completed_at: Optional[datetime]) -> Task:
        """Persist the completed flag of a non-recurring task."""
        pass

    @abstractmethod
    def get_completion(self, task_id: int, completion_date: date) -> Optional[TaskCompletion]:
        """Completion record for one occurrence, None if it was never toggled."""
        pass

    @abstractmethod
    def save_completion(
        self,
        task_id: int,
        completion_date: date,
        completed: bool,
        completed_at: Optional[datetime],
    ) -> TaskCompletion:
        """Create or overwrite the completion record for one occurrence (last write wins)."""
        pass

    @abstractmethod
    def list_completions(self, task_ids: Iterable[int], start: date, end: date) -> List[TaskCompletion]:
        """All completion records for the given tasks with dates in [start, end]."""
        pass


class SQLModelCompletionStore(CompletionStore):
    """CompletionStore backed by a SQLModel session."""

    def __init__(self, session: Session):
        self.session = session

    def get_task(self, task_id: int) -> Optional[Task]:
        return self.session.get(Task, task_id)

    def set_task_completed(self, task: Task, completed: bool, completed_at: Optional[datetime]) -> Task:
        task.completed = completed
        task.completed_at = completed_at
        task.updated_at = utc_now()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def get_completion(self, task_id: int, completion_date: date) -> Optional[TaskCompletion]:
        statement = (
            select(TaskCompletion)
            .where(TaskCompletion.task_id == task_id)
            .where(TaskCompletion.completion_date == completion_date)
        )
        return self.session.exec(statement).first()

    def save_completion(
        self,
        task_id: int,
        completion_date: date,
        completed: bool,
        completed_at: Optional[datetime],
    ) -> TaskCompletion:
        record = self.get_completion(task_id, completion_date)
        now = utc_now()
        if record is None:
            record = TaskCompletion(task_id=task_id, completion_date=completion_date, created_at=now)
        record.completed = completed
        record.completed_at = completed_at
        record.updated_at = now

        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def list_completions(self, task_ids: Iterable[int], start: date, end: date) -> List[TaskCompletion]:
        ids = list(task_ids)
        if not ids:
            return []
        statement = (
            select(TaskCompletion)
            .where(TaskCompletion.task_id.in_(ids))
            .where(TaskCompletion.completion_date >= start)
            .where(TaskCompletion.completion_date <= end)
        )
        return list(self.session.exec(statement).all())
