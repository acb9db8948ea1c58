"""Per-occurrence completion record for recurring tasks."""
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from datetime import datetime, date
from typing import Optional

from app.utils.timezones import utc_now


class TaskCompletion(SQLModel, table=True):
    """
    Completion state of one occurrence of a recurring task.

    Rows are created lazily on the first toggle of an occurrence; a missing
    row means the occurrence is not completed.
    """
    __tablename__ = "task_completion"
    __table_args__ = (UniqueConstraint("task_id", "completion_date", name="uq_task_completion_occurrence"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(index=True)  # weak reference to task.id
    completion_date: date = Field(index=True)  # local occurrence date
    completed: bool = Field(default=False)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
