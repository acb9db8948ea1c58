"""Recurrence rule record schema (wire shape of a RecurrenceRule)."""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.recurrence_rule import RecurrenceRule


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case input and serializes as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RecurrenceRuleRecord(CamelModel):
    """Flat record: endType selects which of endDate/endCount applies."""
    pattern: Literal["daily", "weekly", "monthly", "yearly"]
    interval: int = 1
    days_of_week: List[int] = Field(default_factory=list)  # 0-6, Sunday=0
    days_of_month: List[int] = Field(default_factory=list)  # 1-31
    months: List[int] = Field(default_factory=list)  # 0-11
    end_type: Literal["never", "on_date", "after_occurrences"] = "never"
    end_date: Optional[date] = None
    end_count: Optional[int] = None

    def to_rule(self) -> RecurrenceRule:
        """Build the validated core rule; raises InvalidRule."""
        return RecurrenceRule.from_fields(
            pattern=self.pattern,
            interval=self.interval,
            days_of_week=self.days_of_week,
            days_of_month=self.days_of_month,
            months=self.months,
            end_type=self.end_type,
            end_date=self.end_date,
            end_count=self.end_count,
        )

    @classmethod
    def from_rule(cls, rule: RecurrenceRule) -> "RecurrenceRuleRecord":
        return cls(
            pattern=rule.pattern.value,
            interval=rule.interval,
            days_of_week=list(rule.days_of_week),
            days_of_month=list(rule.days_of_month),
            months=list(rule.months),
            end_type=rule.end_type.value,
            end_date=rule.end_date,
            end_count=rule.max_count,
        )
