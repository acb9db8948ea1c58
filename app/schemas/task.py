"""Task schemas: the only place camelCase/snake_case and legacy shapes are reconciled."""
from pydantic import AliasChoices, Field, model_validator
from datetime import date, datetime
from typing import Any, Dict, Optional

from app.models.goal import Goal
from app.models.task import Task, TaskType
from app.schemas.recurrence import CamelModel, RecurrenceRuleRecord

# Flat recurrence fields sent by older clients, in either naming convention
LEGACY_RECURRENCE_FIELDS = {
    "pattern": ("recurrencePattern", "recurrence_pattern"),
    "interval": ("recurrenceInterval", "recurrence_interval"),
    "days_of_week": ("recurrenceDayOfWeek", "recurrence_day_of_week"),
    "days_of_month": ("recurrenceDayOfMonth", "recurrence_day_of_month"),
    "months": ("recurrenceMonth", "recurrence_month"),
    "end_type": ("recurrenceEndType", "recurrence_end_type"),
    "end_date": ("recurrenceEndDate", "recurrence_end_date"),
    "end_count": ("recurrenceCount", "recurrence_count"),
}


def fold_legacy_recurrence(data: Any) -> Any:
    """Move flat `recurrence*` fields into a nested `recurrence` record."""
    if not isinstance(data, dict) or data.get("recurrence") is not None:
        return data

    record = {}
    for field, names in LEGACY_RECURRENCE_FIELDS.items():
        for name in names:
            if data.get(name) is not None:
                record[field] = data[name]
                break
    if "pattern" not in record:
        return data

    if "end_type" not in record:
        if record.get("end_date"):
            record["end_type"] = "on_date"
        elif record.get("end_count"):
            record["end_type"] = "after_occurrences"

    folded = {k: v for k, v in data.items() if not any(k in names for names in LEGACY_RECURRENCE_FIELDS.values())}
    folded["recurrence"] = record
    return folded


class TaskCreate(CamelModel):
    """Schema for creating a task."""
    title: str = Field(..., min_length=1, max_length=200, validation_alias=AliasChoices("title", "text"))
    description: Optional[str] = Field(None, max_length=1000)
    task_type: TaskType = Field(
        TaskType.PERSONAL, validation_alias=AliasChoices("type", "taskType", "task_type")
    )
    due_date: Optional[datetime] = None  # ISO-8601; naive values are read in `timezone`
    timezone: Optional[str] = None  # IANA name
    completed: bool = False
    parent_id: Optional[int] = None
    goal_id: Optional[int] = None
    priority: int = 0
    is_recurring: bool = False
    recurrence: Optional[RecurrenceRuleRecord] = None

    @model_validator(mode="before")
    @classmethod
    def _adapt_legacy_shape(cls, data):
        return fold_legacy_recurrence(data)

    @model_validator(mode="after")
    def _recurrence_matches_flag(self):
        if self.recurrence is not None and "is_recurring" not in self.model_fields_set:
            self.is_recurring = True
        if self.is_recurring and self.recurrence is None:
            raise ValueError("Recurring tasks require a recurrence rule")
        if not self.is_recurring and self.recurrence is not None:
            raise ValueError("Recurrence rule given for a non-recurring task")
        return self


class TaskUpdate(CamelModel):
    """Schema for updating a task; only fields that are sent are changed."""
    title: Optional[str] = Field(None, min_length=1, max_length=200, validation_alias=AliasChoices("title", "text"))
    description: Optional[str] = Field(None, max_length=1000)
    task_type: Optional[TaskType] = Field(None, validation_alias=AliasChoices("type", "taskType", "task_type"))
    due_date: Optional[datetime] = None
    timezone: Optional[str] = None
    parent_id: Optional[int] = None
    goal_id: Optional[int] = None
    priority: Optional[int] = None
    is_recurring: Optional[bool] = None
    recurrence: Optional[RecurrenceRuleRecord] = None

    @model_validator(mode="before")
    @classmethod
    def _adapt_legacy_shape(cls, data):
        return fold_legacy_recurrence(data)

    def changes(self) -> Dict[str, Any]:
        """Field name -> value for every field the client actually sent."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class TaskReparent(CamelModel):
    parent_id: Optional[int] = None


class TaskResponse(CamelModel):
    """Schema for task API responses."""
    id: int
    title: str
    description: Optional[str] = None
    task_type: TaskType = Field(
        validation_alias=AliasChoices("type", "taskType", "task_type"), serialization_alias="type"
    )
    completed: bool
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    timezone: str
    parent_id: Optional[int] = None
    goal_id: Optional[int] = None
    priority: int
    is_recurring: bool
    recurrence: Optional[RecurrenceRuleRecord] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task, parent: Optional[Task], goal: Optional[Goal]) -> "TaskResponse":
        """Response for `task`; `parent` and `goal` are the resolved references, None when dangling."""
        rule = task.recurrence
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            task_type=task.task_type,
            completed=task.completed,
            completed_at=task.completed_at,
            due_date=task.due_date_utc(),
            timezone=task.timezone,
            parent_id=parent.id if parent is not None else None,
            goal_id=goal.id if goal is not None else None,
            priority=task.priority,
            is_recurring=task.is_recurring,
            recurrence=RecurrenceRuleRecord.from_rule(rule) if rule is not None else None,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class CompletionToggle(CamelModel):
    """Schema for toggling completion of one occurrence."""
    task_id: int
    occurrence_date: date


class CompletionSet(CompletionToggle):
    completed: bool


class CompletionResponse(CamelModel):
    task_id: int
    occurrence_date: date
    completed: bool
    completed_at: Optional[datetime] = None
