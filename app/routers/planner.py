"""Planner router: occurrences, completion toggles, periods and plan views."""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from datetime import date

from app.models.task import TaskType, DEFAULT_TIMEZONE
from app.schemas.planner import (
    OccurrenceResponse,
    PeriodResponse,
    PlanBucketResponse,
    PlanResponse,
    TaskStatsResponse,
    WeekResponse,
)
from app.schemas.task import CompletionResponse, CompletionSet, CompletionToggle
from app.services.calendar_periods import PeriodKind, date_from_week, periods_for, week_of
from app.services.completion_tracker import CompletionState, CompletionTracker
from app.services.planner_service import OccurrenceEntry, PlannerService, StatusFilter, ViewConfig
from app.services.storage import SQLModelCompletionStore
from app.db.config import get_session
from sqlmodel import Session

router = APIRouter(prefix="/planner", tags=["Planner"])


def get_planner_service(session: Session = Depends(get_session)) -> PlannerService:
    """Dependency for getting PlannerService instance."""
    return PlannerService(session)


def get_completion_tracker(session: Session = Depends(get_session)) -> CompletionTracker:
    """Dependency for getting CompletionTracker instance."""
    return CompletionTracker(SQLModelCompletionStore(session))


def _occurrence_response(entry: OccurrenceEntry) -> OccurrenceResponse:
    task = entry.task
    return OccurrenceResponse(
        task_id=task.id,
        occurrence_date=entry.occurrence_date,
        title=task.title,
        task_type=task.task_type,
        priority=task.priority,
        parent_id=entry.parent.id if entry.parent is not None else None,
        parent_title=entry.parent_title,
        goal_id=entry.goal_id,
        is_recurring=task.is_recurring,
        completed=entry.completed,
    )


def _completion_response(task_id: int, occurrence_date: date, state: CompletionState) -> CompletionResponse:
    return CompletionResponse(
        task_id=task_id,
        occurrence_date=occurrence_date,
        completed=state.completed,
        completed_at=state.completed_at,
    )


@router.get("/occurrences", response_model=List[OccurrenceResponse])
async def list_occurrences(
    range_start: date = Query(..., alias="rangeStart"),
    range_end: date = Query(..., alias="rangeEnd"),
    timezone: str = Query(DEFAULT_TIMEZONE),
    task_type: Optional[TaskType] = Query(None, alias="type"),
    service: PlannerService = Depends(get_planner_service),
):
    """All task occurrences in the range, ordered by date then priority."""
    entries = service.occurrences(range_start, range_end, timezone, task_type)
    return [_occurrence_response(entry) for entry in entries]


@router.get("/completions", response_model=CompletionResponse)
async def get_completion(
    task_id: int = Query(..., alias="taskId"),
    occurrence_date: date = Query(..., alias="occurrenceDate"),
    tracker: CompletionTracker = Depends(get_completion_tracker),
):
    return _completion_response(task_id, occurrence_date, tracker.state(task_id, occurrence_date))


@router.post("/completions/toggle", response_model=CompletionResponse)
async def toggle_completion(
    body: CompletionToggle,
    tracker: CompletionTracker = Depends(get_completion_tracker),
):
    """Flip completion of one occurrence (or of a non-recurring task)."""
    state = tracker.toggle(body.task_id, body.occurrence_date)
    return _completion_response(body.task_id, body.occurrence_date, state)


@router.put("/completions", response_model=CompletionResponse)
async def set_completion(
    body: CompletionSet,
    tracker: CompletionTracker = Depends(get_completion_tracker),
):
    state = tracker.set_complete(body.task_id, body.occurrence_date, body.completed)
    return _completion_response(body.task_id, body.occurrence_date, state)


@router.get("/periods", response_model=List[PeriodResponse])
async def list_periods(
    kind: PeriodKind = Query(...),
    anchor_date: date = Query(..., alias="anchorDate"),
):
    """Periods of a planning view: days for `week`, months or years otherwise."""
    return [PeriodResponse(start=p.start, end=p.end, label=p.label) for p in periods_for(kind, anchor_date)]


@router.get("/week", response_model=WeekResponse)
async def get_week(day: date = Query(..., alias="date")):
    """Sunday-start week containing `date`, with its ISO week number."""
    week = week_of(day)
    return WeekResponse(start=week.start, end=week.end, iso_week_number=week.iso_week_number, label=week.label)


@router.get("/week-start", response_model=WeekResponse)
async def get_week_start(week: int = Query(...), year: int = Query(...)):
    """Week reached by jumping to a week number of a year."""
    found = week_of(date_from_week(week, year))
    return WeekResponse(start=found.start, end=found.end, iso_week_number=found.iso_week_number, label=found.label)


@router.get("/plan", response_model=PlanResponse)
async def get_plan(
    kind: PeriodKind = Query(PeriodKind.WEEK),
    anchor_date: Optional[date] = Query(None, alias="anchorDate"),
    timezone: str = Query(DEFAULT_TIMEZONE),
    status_filter: StatusFilter = Query(StatusFilter.ALL, alias="status"),
    task_type: Optional[TaskType] = Query(None, alias="type"),
    service: PlannerService = Depends(get_planner_service),
):
    """A whole plan view: periods with the occurrences bucketed into them."""
    config = ViewConfig(
        kind=kind,
        anchor=anchor_date,
        timezone=timezone,
        status=status_filter,
        task_type=task_type,
    )
    buckets = service.plan(config)
    previous_anchor, next_anchor = service.navigation(config)
    return PlanResponse(
        kind=kind.value,
        anchor_date=service.anchor_for(config),
        timezone=timezone,
        previous_anchor=previous_anchor,
        next_anchor=next_anchor,
        periods=[
            PlanBucketResponse(
                start=bucket.period.start,
                end=bucket.period.end,
                label=bucket.period.label,
                occurrences=[_occurrence_response(entry) for entry in bucket.entries],
            )
            for bucket in buckets
        ],
    )


@router.get("/stats", response_model=TaskStatsResponse)
async def get_stats(
    timezone: str = Query(DEFAULT_TIMEZONE),
    service: PlannerService = Depends(get_planner_service),
):
    stats = service.stats(timezone)
    return TaskStatsResponse(
        total=stats.total,
        completed=stats.completed,
        pending=stats.pending,
        overdue=stats.overdue,
    )
