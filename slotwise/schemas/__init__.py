"""Pydantic schemas for stored documents."""
from slotwise.schemas.schedule import (
    DateOverrideSchema,
    DayRangeSchema,
    ScheduleDocument,
    TimeRangeSchema,
    load_weekly_schedule,
)

__all__ = [
    "DateOverrideSchema",
    "DayRangeSchema",
    "ScheduleDocument",
    "TimeRangeSchema",
    "load_weekly_schedule",
]
