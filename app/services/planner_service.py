"""
Planner Service

Builds the weekly and multi-month/year plan views: asks the period bucketer
for periods, expands each task into occurrences, overlays completion state
and orders entries by priority.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlmodel import Session, select

from app.models.goal import Goal
from app.models.task import Task, TaskType, DEFAULT_TIMEZONE
from app.services.calendar_periods import Period, PeriodKind, periods_for, shift_anchor
from app.services.completion_tracker import CompletionState, CompletionTracker
from app.services.occurrence_generator import Occurrence, occurrences_for_task
from app.services.storage import SQLModelCompletionStore
from app.services.task_hierarchy import TaskHierarchyResolver, sibling_sort_key
from app.utils.timezones import get_timezone, local_today

logger = logging.getLogger(__name__)


class StatusFilter(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class ViewConfig:
    """Everything a plan view depends on, passed explicitly instead of held as UI state."""
    kind: PeriodKind = PeriodKind.WEEK
    anchor: Optional[date] = None  # defaults to today in `timezone`
    timezone: str = DEFAULT_TIMEZONE
    status: StatusFilter = StatusFilter.ALL
    task_type: Optional[TaskType] = None


@dataclass(frozen=True)
class OccurrenceEntry:
    task: Task
    occurrence_date: date
    completed: bool
    parent: Optional[Task] = None  # resolved; None when missing or dangling
    goal_id: Optional[int] = None  # resolved goal id

    @property
    def parent_title(self) -> Optional[str]:
        return self.parent.title if self.parent is not None else None

    @property
    def task_id(self) -> int:
        return self.task.id


@dataclass
class PlanBucket:
    period: Period
    entries: List[OccurrenceEntry] = field(default_factory=list)


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    overdue: int


def matches_status(entry: OccurrenceEntry, status: StatusFilter, today: date) -> bool:
    if status == StatusFilter.COMPLETED:
        return entry.completed
    if status == StatusFilter.IN_PROGRESS:
        return not entry.completed
    if status == StatusFilter.OVERDUE:
        return not entry.completed and entry.occurrence_date < today
    return True


class PlannerService:
    """Read side of the planner: occurrences, plan buckets and statistics."""

    def __init__(self, session: Session):
        self.session = session
        self.tracker = CompletionTracker(SQLModelCompletionStore(session))

    def _tasks(self, task_type: Optional[TaskType] = None) -> List[Task]:
        statement = select(Task)
        if task_type is not None:
            statement = statement.where(Task.task_type == task_type)
        return list(self.session.exec(statement).all())

    def occurrences(
        self,
        range_start: date,
        range_end: date,
        timezone: str = DEFAULT_TIMEZONE,
        task_type: Optional[TaskType] = None,
    ) -> List[OccurrenceEntry]:
        """
        Every occurrence of every task in [range_start, range_end] with completion state.

        Ordered by date, then priority and creation order.
        """
        get_timezone(timezone)
        tasks = self._tasks(task_type)
        hierarchy = TaskHierarchyResolver(self._tasks() if task_type is not None else tasks)

        found: List[Occurrence] = []
        for task in tasks:
            found.extend(occurrences_for_task(task, range_start, range_end, timezone))

        recurring_ids = [task.id for task in tasks if task.is_recurring]
        completions: Dict[Tuple[int, date], CompletionState] = self.tracker.completion_map(
            recurring_ids, range_start, range_end
        )
        by_id = {task.id: task for task in tasks}
        goal_ids = set(self.session.exec(select(Goal.id)).all())

        entries = []
        for occurrence in found:
            task = by_id[occurrence.task_id]
            if task.is_recurring:
                state = completions.get((task.id, occurrence.occurrence_date))
                completed = state.completed if state is not None else False
            else:
                completed = task.completed
            entries.append(OccurrenceEntry(
                task=task,
                occurrence_date=occurrence.occurrence_date,
                completed=completed,
                parent=hierarchy.parent_of(task.id),
                goal_id=task.goal_id if task.goal_id in goal_ids else None,
            ))

        entries.sort(key=lambda e: (e.occurrence_date,) + sibling_sort_key(e.task))
        logger.debug(f"{len(entries)} occurrences between {range_start} and {range_end}")
        return entries

    def anchor_for(self, config: ViewConfig) -> date:
        """Configured anchor, or today in the view's timezone."""
        return config.anchor or local_today(get_timezone(config.timezone))

    def plan(self, config: ViewConfig) -> List[PlanBucket]:
        """Periods of the configured view, each holding the occurrences that fall in it."""
        today = local_today(get_timezone(config.timezone))
        anchor = self.anchor_for(config)
        periods = periods_for(config.kind, anchor)
        buckets = [PlanBucket(period) for period in periods]
        if not periods:
            return buckets

        entries = self.occurrences(periods[0].start, periods[-1].end, config.timezone, config.task_type)
        for entry in entries:
            if not matches_status(entry, config.status, today):
                continue
            for bucket in buckets:
                if bucket.period.contains(entry.occurrence_date):
                    bucket.entries.append(entry)
                    break
        return buckets

    def navigation(self, config: ViewConfig) -> Tuple[date, date]:
        """Anchors of the previous and next views."""
        anchor = self.anchor_for(config)
        return shift_anchor(config.kind, anchor, -1), shift_anchor(config.kind, anchor, 1)

    def stats(self, timezone: str = DEFAULT_TIMEZONE) -> TaskStats:
        """
        Counts over task records (not occurrences).

        A recurring task counts as completed only through its own flag, so
        recurring tasks are always pending here; overdue means a past due day
        that is not completed.
        """
        today = local_today(get_timezone(timezone))
        tasks = self._tasks()
        completed = sum(1 for task in tasks if task.completed and not task.is_recurring)
        overdue = 0
        for task in tasks:
            if task.is_recurring or task.completed:
                continue
            due = task.local_due_date(timezone)
            if due is not None and due < today:
                overdue += 1
        return TaskStats(total=len(tasks), completed=completed, pending=len(tasks) - completed, overdue=overdue)
