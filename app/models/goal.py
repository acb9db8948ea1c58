"""Goal model for SQLModel."""
from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional

from app.utils.timezones import utc_now


class Goal(SQLModel, table=True):
    """Goal entity; tasks reference it weakly through task.goal_id."""

    id: Optional[int] = Field(default=None, primary_key=True)
    label: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    progress: int = Field(default=0, ge=0, le=100)  # percentage
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
