"""Planner error types shared by the recurrence engine and the API layer."""
from typing import Any, Dict, Optional


class PlannerError(Exception):
    """Base exception for planner errors"""
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidRule(PlannerError):
    """A recurrence rule (or generator input) that can never produce a valid schedule."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_RULE", message, details)


class CycleDetected(PlannerError):
    """Reparenting a task would make it its own ancestor."""
    def __init__(self, task_id: int, new_parent_id: int):
        super().__init__(
            "CYCLE_DETECTED",
            f"Cannot move task {task_id} under {new_parent_id}: it would create a cycle",
            {"task_id": task_id, "new_parent_id": new_parent_id},
        )


class UnknownReference(PlannerError):
    """A task or goal id that does not resolve to an existing entity."""
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            "UNKNOWN_REFERENCE",
            f"{entity.capitalize()} {entity_id} not found",
            {"entity": entity, "id": entity_id},
        )
