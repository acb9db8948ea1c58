"""Routers package for the task planner API."""

from .goals import router as goals_router
from .planner import router as planner_router
from .tasks import router as tasks_router

__all__ = ["goals_router", "planner_router", "tasks_router"]
