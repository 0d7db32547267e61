"""Pydantic v2 schemas for the JSONB schedule columns."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from slotwise.core.exceptions import InvalidScheduleError
from slotwise.scheduling.schedule import parse_date, parse_time, validate_schedule
from slotwise.scheduling.types import DateOverride, DayRange, TimeRange, WeeklySchedule


class TimeRangeSchema(BaseModel):
    start: str = Field(..., min_length=4, max_length=8, examples=["09:00"])
    end: str = Field(..., min_length=4, max_length=8, examples=["17:00", "24:00"])

    model_config = {"extra": "ignore"}

    def to_domain(self) -> TimeRange:
        return TimeRange(start=parse_time(self.start), end=parse_time(self.end))


class DayRangeSchema(TimeRangeSchema):
    days: List[int] = Field(..., min_length=1, description="Weekday numbers, Monday=0 .. Sunday=6")

    @field_validator("days")
    @classmethod
    def _days_in_week(cls, value: List[int]) -> List[int]:
        bad = [d for d in value if not 0 <= d <= 6]
        if bad:
            raise ValueError(f"weekday numbers must be 0..6, got {bad}")
        return sorted(set(value))

    def to_domain(self) -> DayRange:
        return DayRange(start=parse_time(self.start), end=parse_time(self.end), days=tuple(self.days))


class DateOverrideSchema(BaseModel):
    date: str = Field(..., examples=["2026-03-04"])
    ranges: List[TimeRangeSchema] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    def to_domain(self) -> DateOverride:
        return DateOverride(date=parse_date(self.date), ranges=tuple(r.to_domain() for r in self.ranges))


class ScheduleDocument(BaseModel):
    """A schedule row's timezone plus its availability and override documents."""

    timezone: Optional[str] = Field(None, max_length=64)
    availability: List[DayRangeSchema] = Field(default_factory=list)
    date_overrides: List[DateOverrideSchema] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    def to_domain(self) -> WeeklySchedule:
        schedule = WeeklySchedule(
            timezone=self.timezone,
            availability=tuple(r.to_domain() for r in self.availability),
            date_overrides=tuple(o.to_domain() for o in self.date_overrides),
        )
        validate_schedule(schedule)
        return schedule


def load_weekly_schedule(source: Any) -> WeeklySchedule:
    """Validate a Schedule row (or an equivalent mapping) into a WeeklySchedule.

    Shape errors and value errors both surface as InvalidScheduleError.
    """
    try:
        if isinstance(source, dict):
            document = ScheduleDocument.model_validate(source)
        else:
            document = ScheduleDocument.model_validate(source, from_attributes=True)
    except PydanticValidationError as exc:
        raise InvalidScheduleError(
            "Stored schedule is malformed",
            details={"errors": exc.errors(include_url=False, include_context=False)},
            cause=exc,
        ) from exc
    return document.to_domain()
