"""Task model for SQLModel."""
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime, date
from enum import Enum
from typing import List, Optional
import os

from app.models.recurrence_rule import RecurrenceRule
from app.utils.timezones import as_utc, get_timezone, utc_now

DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "America/New_York")


class TaskType(str, Enum):
    """Closed set of task categories used by the planner's type filter."""
    DAILY = "daily"
    PERSONAL = "personal"
    FINANCE = "finance"
    QUICK = "quick"
    MUSIC = "music"
    CALENDAR = "calendar"
    HOME = "home"
    NOTE = "note"
    BUG = "bug"
    BOOK = "book"
    CAR = "car"
    TV = "tv"

    @property
    def label(self) -> str:
        return TASK_TYPE_LABELS[self]


TASK_TYPE_LABELS = {
    TaskType.DAILY: "Daily Task",
    TaskType.PERSONAL: "Personal",
    TaskType.FINANCE: "Finance",
    TaskType.QUICK: "Quick Task",
    TaskType.MUSIC: "Music",
    TaskType.CALENDAR: "Calendar",
    TaskType.HOME: "Home",
    TaskType.NOTE: "Note",
    TaskType.BUG: "Bug",
    TaskType.BOOK: "Book",
    TaskType.CAR: "Car",
    TaskType.TV: "TV",
}


class Task(SQLModel, table=True):
    """Task entity; recurring tasks embed their RecurrenceRule as columns."""

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    task_type: TaskType = Field(default=TaskType.PERSONAL)
    completed: bool = Field(default=False)  # only meaningful when not recurring
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    due_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))  # stored as UTC
    timezone: str = Field(default=DEFAULT_TIMEZONE, max_length=64)  # IANA name
    priority: int = Field(default=0)  # lower sorts first

    # Weak references: looked up by id, never enforced or cascaded
    parent_id: Optional[int] = Field(default=None, index=True)
    goal_id: Optional[int] = Field(default=None, index=True)

    # Embedded recurrence rule, present iff is_recurring
    is_recurring: bool = Field(default=False)
    recurrence_pattern: Optional[str] = Field(default=None, max_length=20)  # daily, weekly, monthly, yearly
    recurrence_interval: int = Field(default=1)
    recurrence_days_of_week: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))  # 0-6, Sunday=0
    recurrence_days_of_month: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))  # 1-31
    recurrence_months: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))  # 0-11
    recurrence_end_type: str = Field(default="never", max_length=20)  # never, on_date, after_occurrences
    recurrence_end_date: Optional[date] = Field(default=None)
    recurrence_count: Optional[int] = Field(default=None)

    @property
    def recurrence(self) -> Optional[RecurrenceRule]:
        """The embedded rule; raises InvalidRule if the stored columns are inconsistent."""
        if not self.is_recurring:
            return None
        return RecurrenceRule.from_fields(
            pattern=self.recurrence_pattern,
            interval=self.recurrence_interval,
            days_of_week=self.recurrence_days_of_week,
            days_of_month=self.recurrence_days_of_month,
            months=self.recurrence_months,
            end_type=self.recurrence_end_type,
            end_date=self.recurrence_end_date,
            end_count=self.recurrence_count,
        )

    def apply_recurrence(self, rule: Optional[RecurrenceRule]) -> None:
        """Replace the embedded rule (None makes the task non-recurring)."""
        if rule is None:
            self.is_recurring = False
            self.recurrence_pattern = None
            self.recurrence_interval = 1
            self.recurrence_days_of_week = None
            self.recurrence_days_of_month = None
            self.recurrence_months = None
            self.recurrence_end_type = "never"
            self.recurrence_end_date = None
            self.recurrence_count = None
            return

        self.is_recurring = True
        self.recurrence_pattern = rule.pattern.value
        self.recurrence_interval = rule.interval
        self.recurrence_days_of_week = list(rule.days_of_week)
        self.recurrence_days_of_month = list(rule.days_of_month)
        self.recurrence_months = list(rule.months)
        self.recurrence_end_type = rule.end_type.value
        self.recurrence_end_date = rule.end_date
        self.recurrence_count = rule.max_count

    def due_date_utc(self) -> Optional[datetime]:
        """Due date as an aware UTC datetime (SQLite hands back naive values)."""
        if self.due_date is None:
            return None
        return as_utc(self.due_date)

    def local_due_date(self, tz_name: Optional[str] = None) -> Optional[date]:
        """Calendar day the task is due on, in its own timezone unless one is given."""
        due = self.due_date_utc()
        if due is None:
            return None
        return due.astimezone(get_timezone(tz_name or self.timezone)).date()
