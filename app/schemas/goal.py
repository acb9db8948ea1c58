"""Goal schemas."""
from pydantic import AliasChoices, Field
from datetime import datetime
from typing import Any, Dict, Optional

from app.schemas.recurrence import CamelModel


class GoalCreate(CamelModel):
    label: str = Field(..., min_length=1, max_length=200, validation_alias=AliasChoices("label", "text"))
    description: Optional[str] = Field(None, max_length=1000, validation_alias=AliasChoices("description", "goal"))
    progress: int = Field(default=0, ge=0, le=100)


class GoalUpdate(CamelModel):
    label: Optional[str] = Field(None, min_length=1, max_length=200, validation_alias=AliasChoices("label", "text"))
    description: Optional[str] = Field(None, max_length=1000, validation_alias=AliasChoices("description", "goal"))
    progress: Optional[int] = Field(None, ge=0, le=100)

    def changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class GoalResponse(CamelModel):
    id: int
    label: str
    description: Optional[str] = None
    progress: int
    created_at: datetime
    updated_at: datetime
