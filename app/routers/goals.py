"""Goal router."""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from app.schemas.goal import GoalCreate, GoalUpdate, GoalResponse
from app.schemas.task import TaskResponse
from app.services.goal_service import GoalService
from app.services.task_service import TaskService
from app.db.config import get_session
from sqlmodel import Session

router = APIRouter(tags=["Goals"])


def get_goal_service(session: Session = Depends(get_session)) -> GoalService:
    """Dependency for getting GoalService instance."""
    return GoalService(session)


def _not_found():
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Goal not found"
    )


@router.get("/goals", response_model=List[GoalResponse])
async def list_goals(service: GoalService = Depends(get_goal_service)):
    return service.list_goals()


@router.post("/goals", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(goal_data: GoalCreate, service: GoalService = Depends(get_goal_service)):
    return service.create(goal_data)


@router.get("/goals/{goal_id}", response_model=GoalResponse)
async def get_goal(goal_id: int, service: GoalService = Depends(get_goal_service)):
    goal = service.get_by_id(goal_id)
    if not goal:
        raise _not_found()
    return goal


@router.patch("/goals/{goal_id}", response_model=GoalResponse)
async def update_goal(goal_id: int, goal_data: GoalUpdate, service: GoalService = Depends(get_goal_service)):
    goal = service.update(goal_id, goal_data)
    if not goal:
        raise _not_found()
    return goal


@router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal(goal_id: int, service: GoalService = Depends(get_goal_service)):
    """Delete a goal; tasks that referenced it are kept with their goal cleared."""
    if not service.delete(goal_id):
        raise _not_found()


@router.get("/goals/{goal_id}/tasks", response_model=List[TaskResponse])
async def get_goal_tasks(goal_id: int, service: GoalService = Depends(get_goal_service)):
    if not service.get_by_id(goal_id):
        raise _not_found()
    return TaskService(service.session).to_responses(service.tasks_for_goal(goal_id))
