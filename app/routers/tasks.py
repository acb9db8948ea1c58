"""Task router."""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional, Dict, Any
from datetime import date

from app.models.task import TaskType, DEFAULT_TIMEZONE
from app.schemas.planner import OccurrenceResponse
from app.schemas.task import TaskCreate, TaskUpdate, TaskReparent, TaskResponse
from app.services.completion_tracker import CompletionTracker
from app.services.occurrence_generator import occurrences_for_task
from app.services.storage import SQLModelCompletionStore
from app.services.task_service import TaskService
from app.db.config import get_session
from sqlmodel import Session

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix


def get_task_service(session: Session = Depends(get_session)) -> TaskService:
    """Dependency for getting TaskService instance."""
    return TaskService(session)


def _get_or_404(service: TaskService, task_id: int):
    task = service.get_by_id(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.get("/tasks", response_model=Dict[str, Any])
async def list_tasks(
    service: TaskService = Depends(get_task_service),
    completed: Optional[bool] = Query(None, description="Filter by completion flag"),
    task_type: Optional[TaskType] = Query(None, alias="type", description="Filter by task type"),
    goal_id: Optional[int] = Query(None, alias="goalId", description="Filter by goal"),
    parent_id: Optional[int] = Query(None, alias="parentId", description="Filter by parent task"),
    recurring: Optional[bool] = Query(None, description="Only recurring / non-recurring tasks"),
):
    """List tasks ordered by priority, then creation order."""
    tasks = service.list_tasks(
        completed=completed,
        task_type=task_type,
        goal_id=goal_id,
        parent_id=parent_id,
        recurring=recurring,
    )
    return {
        "tasks": [response.model_dump(mode="json", by_alias=True) for response in service.to_responses(tasks)],
        "count": len(tasks)
    }


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    service: TaskService = Depends(get_task_service),
):
    """Create a task, optionally recurring."""
    return service.to_response(service.create(task_data))


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    return service.to_response(_get_or_404(service, task_id))


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_data: TaskUpdate,
    service: TaskService = Depends(get_task_service),
):
    """Update the fields present in the request body."""
    task = service.update(task_id, task_data)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return service.to_response(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Delete a task; its children become roots."""
    success = service.delete(task_id)
    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )


@router.patch("/tasks/{task_id}/parent", response_model=TaskResponse)
async def reparent_task(
    task_id: int,
    body: TaskReparent,
    service: TaskService = Depends(get_task_service),
):
    """Move a task under another task (or to the root with parentId null)."""
    task = service.reparent(task_id, body.parent_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return service.to_response(task)


@router.patch("/tasks/{task_id}/priority", response_model=TaskResponse)
async def update_priority(
    task_id: int,
    priority: int = Query(..., description="New priority, lower sorts first"),
    service: TaskService = Depends(get_task_service),
):
    task = service.update_priority(task_id, priority)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return service.to_response(task)


@router.get("/tasks/{task_id}/children", response_model=List[TaskResponse])
async def get_children(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Direct children, by priority then creation order."""
    _get_or_404(service, task_id)
    return service.to_responses(service.hierarchy().children_of(task_id))


@router.get("/tasks/{task_id}/occurrences", response_model=List[OccurrenceResponse])
async def get_task_occurrences(
    task_id: int,
    range_start: date = Query(..., alias="rangeStart"),
    range_end: date = Query(..., alias="rangeEnd"),
    timezone: str = Query(DEFAULT_TIMEZONE),
    service: TaskService = Depends(get_task_service),
):
    """Occurrence dates of one task with their completion state."""
    task = _get_or_404(service, task_id)
    parent = service.parent_of(task)
    goal = service.goal_of(task)
    tracker = CompletionTracker(SQLModelCompletionStore(service.session))
    completions = tracker.completion_map([task.id], range_start, range_end) if task.is_recurring else {}
    return [
        OccurrenceResponse(
            task_id=task.id,
            occurrence_date=occurrence.occurrence_date,
            title=task.title,
            task_type=task.task_type,
            priority=task.priority,
            parent_id=parent.id if parent is not None else None,
            parent_title=parent.title if parent is not None else None,
            goal_id=goal.id if goal is not None else None,
            is_recurring=task.is_recurring,
            completed=(
                completions[(task.id, occurrence.occurrence_date)].completed
                if (task.id, occurrence.occurrence_date) in completions
                else task.completed and not task.is_recurring
            ),
        )
        for occurrence in occurrences_for_task(task, range_start, range_end, timezone)
    ]
