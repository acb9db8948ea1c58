"""Recurrence Rule value type embedded in recurring tasks."""
from datetime import date
from enum import Enum
from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.errors import InvalidRule


class RecurrencePattern(str, Enum):
    """Unit a recurrence steps by."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrenceEndType(str, Enum):
    """Stored/wire name of the end condition."""
    NEVER = "never"
    ON_DATE = "on_date"
    AFTER_OCCURRENCES = "after_occurrences"


class NeverEnds(BaseModel):
    """The rule repeats indefinitely."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["never"] = "never"


class EndsOnDate(BaseModel):
    """No occurrence strictly after `on` is emitted."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["on_date"] = "on_date"
    on: date


class EndsAfterCount(BaseModel):
    """The rule stops after its `count`-th occurrence, counted from the anchor."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["after_occurrences"] = "after_occurrences"
    count: int


RecurrenceEnd = Union[NeverEnds, EndsOnDate, EndsAfterCount]


def _normalize_int_set(value):
    if value is None:
        return ()
    return tuple(sorted(set(int(v) for v in value)))


class RecurrenceRule(BaseModel):
    """
    Declarative description of a repeating schedule.

    Weekdays use 0=Sunday..6=Saturday and months use 0=January..11=December.
    Rules are immutable and validated on construction; anything that could
    never yield a sensible schedule raises InvalidRule instead of a
    pydantic ValidationError.
    """
    model_config = ConfigDict(frozen=True)

    pattern: RecurrencePattern
    interval: int = 1
    days_of_week: Tuple[int, ...] = ()  # weekly only
    days_of_month: Tuple[int, ...] = ()  # monthly and yearly
    months: Tuple[int, ...] = ()  # yearly only
    end: RecurrenceEnd = Field(default_factory=NeverEnds, discriminator="kind")

    @field_validator("days_of_week", "days_of_month", "months", mode="before")
    @classmethod
    def _sorted_unique(cls, value):
        return _normalize_int_set(value)

    @model_validator(mode="after")
    def _check_rule(self):
        if self.interval < 1:
            raise InvalidRule(
                f"Recurrence interval must be at least 1, got {self.interval}",
                {"interval": self.interval},
            )

        bad_weekdays = [d for d in self.days_of_week if not 0 <= d <= 6]
        if bad_weekdays:
            raise InvalidRule(f"Days of week must be between 0 and 6, got {bad_weekdays}")

        bad_days = [d for d in self.days_of_month if not 1 <= d <= 31]
        if bad_days:
            raise InvalidRule(f"Days of month must be between 1 and 31, got {bad_days}")

        bad_months = [m for m in self.months if not 0 <= m <= 11]
        if bad_months:
            raise InvalidRule(f"Months must be between 0 and 11, got {bad_months}")

        if isinstance(self.end, EndsAfterCount):
            if self.end.count < 1:
                raise InvalidRule(
                    f"Occurrence count must be at least 1, got {self.end.count}",
                    {"count": self.end.count},
                )
            if self.pattern == RecurrencePattern.WEEKLY and not self.days_of_week:
                # would have to walk forever looking for occurrences to count
                raise InvalidRule(
                    "Weekly rule ending after a number of occurrences needs at least one day of week"
                )
        return self

    @property
    def end_type(self) -> RecurrenceEndType:
        return RecurrenceEndType(self.end.kind)

    @property
    def end_date(self) -> Optional[date]:
        return self.end.on if isinstance(self.end, EndsOnDate) else None

    @property
    def max_count(self) -> Optional[int]:
        return self.end.count if isinstance(self.end, EndsAfterCount) else None

    @classmethod
    def from_fields(
        cls,
        pattern: str,
        interval: Optional[int] = 1,
        days_of_week=None,
        days_of_month=None,
        months=None,
        end_type: Optional[str] = "never",
        end_date: Optional[date] = None,
        end_count: Optional[int] = None,
    ) -> "RecurrenceRule":
        """Build a rule from the flat column/record layout (endType + endDate/endCount)."""
        try:
            kind = RecurrenceEndType(end_type or "never")
        except ValueError:
            raise InvalidRule(f"Unknown recurrence end type: {end_type}")
        try:
            pattern = RecurrencePattern(pattern)
        except ValueError:
            raise InvalidRule(f"Unknown recurrence pattern: {pattern}")

        if kind == RecurrenceEndType.ON_DATE:
            if end_date is None:
                raise InvalidRule("Recurrence ending on a date requires an end date")
            end = EndsOnDate(on=end_date)
        elif kind == RecurrenceEndType.AFTER_OCCURRENCES:
            if end_count is None:
                raise InvalidRule("Recurrence ending after occurrences requires a count")
            end = EndsAfterCount(count=end_count)
        else:
            end = NeverEnds()

        return cls(
            pattern=pattern,
            interval=1 if interval is None else interval,
            days_of_week=days_of_week,
            days_of_month=days_of_month,
            months=months,
            end=end,
        )
