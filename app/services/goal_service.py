"""Goal service."""
from sqlmodel import Session, select
from typing import List, Optional
import logging

from app.models.goal import Goal
from app.models.task import Task
from app.schemas.goal import GoalCreate, GoalUpdate
from app.utils.logger import get_logger
from app.utils.timezones import utc_now

logger = logging.getLogger(__name__)
audit_logger = get_logger("taskplanner.goals")


class GoalService:
    """Service class for goal CRUD."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: GoalCreate) -> Goal:
        now = utc_now()
        goal = Goal(
            label=data.label,
            description=data.description,
            progress=data.progress,
            created_at=now,
            updated_at=now,
        )
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        logger.info(f"Created goal {goal.id}")
        return goal

    def get_by_id(self, goal_id: int) -> Optional[Goal]:
        return self.session.get(Goal, goal_id)

    def list_goals(self) -> List[Goal]:
        statement = select(Goal).order_by(Goal.created_at.asc(), Goal.id.asc())
        return list(self.session.exec(statement).all())

    def update(self, goal_id: int, data: GoalUpdate) -> Optional[Goal]:
        goal = self.get_by_id(goal_id)
        if not goal:
            return None

        for name, value in data.changes().items():
            if value is not None or name == "description":
                setattr(goal, name, value)
        goal.updated_at = utc_now()

        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def delete(self, goal_id: int) -> bool:
        """
        Delete a goal, then clear goal_id on the tasks that referenced it.

        Tasks are never deleted with their goal. The two commits are not one
        transaction; a task left pointing at the deleted goal reads as having
        no goal until it is next written.
        """
        goal = self.get_by_id(goal_id)
        if not goal:
            return False

        self.session.delete(goal)
        self.session.commit()

        tasks = self.session.exec(select(Task).where(Task.goal_id == goal_id)).all()
        for task in tasks:
            task.goal_id = None
            task.updated_at = utc_now()
            self.session.add(task)
        self.session.commit()

        audit_logger.info("Goal deleted", goal_id=goal_id, cleared_tasks=len(tasks))
        return True

    def tasks_for_goal(self, goal_id: int) -> List[Task]:
        statement = (
            select(Task)
            .where(Task.goal_id == goal_id)
            .order_by(Task.priority.asc(), Task.created_at.asc(), Task.id.asc())
        )
        return list(self.session.exec(statement).all())
