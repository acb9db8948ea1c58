"""Task Hierarchy Resolver over a snapshot of tasks."""
from typing import Dict, Iterable, List, Optional

from app.errors import CycleDetected
from app.models.task import Task
from app.utils.logger import get_logger
from app.utils.timezones import as_utc, utc_now

audit_logger = get_logger("taskplanner.hierarchy")


def sibling_sort_key(task: Task):
    """Priority ascending, then creation order."""
    created = as_utc(task.created_at) if task.created_at is not None else utc_now()
    return (task.priority, created, task.id or 0)


def sort_siblings(tasks: Iterable[Task]) -> List[Task]:
    return sorted(tasks, key=sibling_sort_key)


class TaskHierarchyResolver:
    """
    Navigates parent/child links between tasks.

    Parent ids are weak references: an id that no longer resolves is treated
    as if the task had no parent.
    """

    def __init__(self, tasks: Iterable[Task]):
        self._tasks: Dict[int, Task] = {task.id: task for task in tasks}
        self._children: Dict[int, List[Task]] = {}
        for task in self._tasks.values():
            if task.parent_id is not None:
                self._children.setdefault(task.parent_id, []).append(task)

    def get(self, task_id: int) -> Optional[Task]:
        return self._tasks.get(task_id)

    def parent_of(self, task_id: int) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None or task.parent_id is None:
            return None
        return self._tasks.get(task.parent_id)

    def children_of(self, task_id: int) -> List[Task]:
        return sort_siblings(self._children.get(task_id, []))

    def roots(self) -> List[Task]:
        """Tasks without a (resolvable) parent."""
        return sort_siblings(
            task for task in self._tasks.values()
            if task.parent_id is None or task.parent_id not in self._tasks
        )

    def ancestors(self, task_id: int) -> List[Task]:
        """Parent chain from the direct parent upward."""
        chain = []
        seen = {task_id}
        parent = self.parent_of(task_id)
        while parent is not None and parent.id not in seen:
            chain.append(parent)
            seen.add(parent.id)
            parent = self.parent_of(parent.id)
        return chain

    def would_create_cycle(self, task_id: int, new_parent_id: Optional[int]) -> bool:
        """
        Whether making `new_parent_id` the parent of `task_id` creates a cycle.

        Walks upward from the proposed parent; finding `task_id` on the way
        means the task would become its own ancestor.
        """
        if new_parent_id is None:
            return False
        current = new_parent_id
        visited = set()
        while current is not None and current not in visited:
            if current == task_id:
                return True
            visited.add(current)
            node = self._tasks.get(current)
            current = node.parent_id if node is not None else None
        return False

    def ensure_can_reparent(self, task_id: int, new_parent_id: Optional[int]) -> None:
        if self.would_create_cycle(task_id, new_parent_id):
            audit_logger.warning("Reparent rejected", task_id=task_id, parent_id=new_parent_id, reason="cycle")
            raise CycleDetected(task_id, new_parent_id)
