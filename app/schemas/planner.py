"""Planner query schemas: occurrences, periods and plan buckets."""
from datetime import date
from typing import List, Optional

from app.models.task import TaskType
from app.schemas.recurrence import CamelModel


class OccurrenceResponse(CamelModel):
    task_id: int
    occurrence_date: date
    title: str
    task_type: TaskType
    priority: int
    parent_id: Optional[int] = None
    parent_title: Optional[str] = None
    goal_id: Optional[int] = None
    is_recurring: bool
    completed: bool


class PeriodResponse(CamelModel):
    start: date
    end: date
    label: str


class WeekResponse(CamelModel):
    start: date
    end: date
    iso_week_number: int
    label: str


class PlanBucketResponse(PeriodResponse):
    occurrences: List[OccurrenceResponse]


class PlanResponse(CamelModel):
    kind: str
    anchor_date: date
    timezone: str
    previous_anchor: date
    next_anchor: date
    periods: List[PlanBucketResponse]


class TaskStatsResponse(CamelModel):
    total: int
    completed: int
    pending: int
    overdue: int
