"""Task service: CRUD shell around the recurrence engine."""
from sqlmodel import Session, select, delete
from typing import List, Optional
from datetime import datetime
import logging

from app.errors import InvalidRule, UnknownReference
from app.models.goal import Goal
from app.models.recurrence_rule import RecurrenceRule
from app.models.task import Task, TaskType, DEFAULT_TIMEZONE
from app.models.task_completion import TaskCompletion
from app.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from app.services.task_hierarchy import TaskHierarchyResolver
from app.utils.logger import get_logger
from app.utils.timezones import as_utc, get_timezone, utc_now

logger = logging.getLogger(__name__)
audit_logger = get_logger("taskplanner.tasks")


def normalize_due_date(due_date: Optional[datetime], tz_name: str) -> Optional[datetime]:
    """Naive due dates are wall-clock time in the task's timezone; store everything as UTC."""
    if due_date is None:
        return None
    if due_date.tzinfo is None:
        due_date = get_timezone(tz_name).localize(due_date)
    return as_utc(due_date)


class TaskService:
    """Service class for task CRUD, reparenting and reference cleanup."""

    def __init__(self, session: Session):
        self.session = session

    def _ensure_goal_exists(self, goal_id: Optional[int]) -> None:
        if goal_id is not None and self.session.get(Goal, goal_id) is None:
            raise UnknownReference("goal", goal_id)

    def _ensure_task_exists(self, task_id: Optional[int]) -> None:
        if task_id is not None and self.session.get(Task, task_id) is None:
            raise UnknownReference("task", task_id)

    def create(self, data: TaskCreate) -> Task:
        """Create a task; the recurrence rule is validated before anything is written."""
        rule = data.recurrence.to_rule() if data.recurrence is not None else None
        tz_name = data.timezone or DEFAULT_TIMEZONE
        get_timezone(tz_name)
        self._ensure_goal_exists(data.goal_id)
        self._ensure_task_exists(data.parent_id)

        now = utc_now()
        task = Task(
            title=data.title,
            description=data.description,
            task_type=data.task_type,
            due_date=normalize_due_date(data.due_date, tz_name),
            timezone=tz_name,
            completed=data.completed if rule is None else False,
            completed_at=now if data.completed and rule is None else None,
            parent_id=data.parent_id,
            goal_id=data.goal_id,
            priority=data.priority,
            created_at=now,
            updated_at=now,
        )
        task.apply_recurrence(rule)

        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        logger.info(f"Created task {task.id} (recurring={task.is_recurring})")
        return task

    def get_by_id(self, task_id: int) -> Optional[Task]:
        return self.session.get(Task, task_id)

    def list_tasks(
        self,
        completed: Optional[bool] = None,
        task_type: Optional[TaskType] = None,
        goal_id: Optional[int] = None,
        parent_id: Optional[int] = None,
        recurring: Optional[bool] = None,
    ) -> List[Task]:
        """List tasks ordered by priority, then creation order."""
        statement = select(Task)
        if completed is not None:
            statement = statement.where(Task.completed == completed)
        if task_type is not None:
            statement = statement.where(Task.task_type == task_type)
        if goal_id is not None:
            statement = statement.where(Task.goal_id == goal_id)
        if parent_id is not None:
            statement = statement.where(Task.parent_id == parent_id)
        if recurring is not None:
            statement = statement.where(Task.is_recurring == recurring)

        statement = statement.order_by(Task.priority.asc(), Task.created_at.asc(), Task.id.asc())
        return list(self.session.exec(statement).all())

    def hierarchy(self) -> TaskHierarchyResolver:
        return TaskHierarchyResolver(self.session.exec(select(Task)).all())

    def update(self, task_id: int, data: TaskUpdate) -> Optional[Task]:
        """Update the fields that were sent; rule, references and hierarchy are validated first."""
        task = self.get_by_id(task_id)
        if not task:
            return None

        changes = data.changes()
        rule = self._updated_rule(task, changes)
        if changes.get("timezone") is not None:
            get_timezone(changes["timezone"])
        if "goal_id" in changes:
            self._ensure_goal_exists(changes["goal_id"])
        if "parent_id" in changes:
            self._check_reparent(task_id, changes["parent_id"])

        if changes.get("timezone") is not None:
            task.timezone = changes["timezone"]
        if "goal_id" in changes:
            task.goal_id = changes["goal_id"]
        if "parent_id" in changes:
            task.parent_id = changes["parent_id"]
        if changes.get("title") is not None:
            task.title = changes["title"]
        if "description" in changes:
            task.description = changes["description"]
        if changes.get("task_type") is not None:
            task.task_type = changes["task_type"]
        if changes.get("priority") is not None:
            task.priority = changes["priority"]
        if "due_date" in changes:
            task.due_date = normalize_due_date(changes["due_date"], task.timezone)

        task.apply_recurrence(rule)
        task.updated_at = utc_now()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def _updated_rule(self, task: Task, changes: dict) -> Optional[RecurrenceRule]:
        """Rule the task should carry after applying `changes`."""
        if "recurrence" not in changes and "is_recurring" not in changes:
            return task.recurrence

        record = changes.get("recurrence")
        is_recurring = changes.get("is_recurring")
        if is_recurring is None:
            is_recurring = record is not None if "recurrence" in changes else task.is_recurring

        if not is_recurring:
            if record is not None:
                raise InvalidRule("Recurrence rule given for a non-recurring task")
            return None
        if record is not None:
            return record.to_rule()
        if task.is_recurring:
            return task.recurrence
        raise InvalidRule("Recurring tasks require a recurrence rule")

    def _check_reparent(self, task_id: int, new_parent_id: Optional[int]) -> None:
        self._ensure_task_exists(new_parent_id)
        self.hierarchy().ensure_can_reparent(task_id, new_parent_id)

    def reparent(self, task_id: int, new_parent_id: Optional[int]) -> Optional[Task]:
        """Move a task under a new parent (None makes it a root)."""
        task = self.get_by_id(task_id)
        if not task:
            return None

        self._check_reparent(task_id, new_parent_id)
        task.parent_id = new_parent_id
        task.updated_at = utc_now()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def update_priority(self, task_id: int, priority: int) -> Optional[Task]:
        task = self.get_by_id(task_id)
        if not task:
            return None

        task.priority = priority
        task.updated_at = utc_now()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def delete(self, task_id: int) -> bool:
        """
        Delete a task and its completion history, then clear parent_id on its children.

        The two writes are independent; if the second one fails the children
        keep a dangling parent_id, which reads as "no parent".
        """
        task = self.get_by_id(task_id)
        if not task:
            return False

        self.session.exec(delete(TaskCompletion).where(TaskCompletion.task_id == task_id))
        self.session.delete(task)
        self.session.commit()

        children = self.session.exec(select(Task).where(Task.parent_id == task_id)).all()
        for child in children:
            child.parent_id = None
            child.updated_at = utc_now()
            self.session.add(child)
        self.session.commit()

        audit_logger.info("Task deleted", task_id=task_id, orphaned_children=len(children))
        return True

    def parent_of(self, task: Task) -> Optional[Task]:
        """The task's parent; a dangling parent_id reads as no parent."""
        if task.parent_id is None:
            return None
        return self.session.get(Task, task.parent_id)

    def goal_of(self, task: Task) -> Optional[Goal]:
        """The task's goal; a dangling goal_id reads as no goal."""
        if task.goal_id is None:
            return None
        return self.session.get(Goal, task.goal_id)

    def to_response(self, task: Task) -> TaskResponse:
        return TaskResponse.from_task(task, self.parent_of(task), self.goal_of(task))

    def to_responses(self, tasks: List[Task]) -> List[TaskResponse]:
        """Responses for many tasks, resolving references against one snapshot."""
        hierarchy = self.hierarchy()
        goals = {goal.id: goal for goal in self.session.exec(select(Goal)).all()}
        return [
            TaskResponse.from_task(task, hierarchy.parent_of(task.id), goals.get(task.goal_id))
            for task in tasks
        ]
