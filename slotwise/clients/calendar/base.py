from __future__ import annotations

import datetime as _dt
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, Sequence

from slotwise.scheduling.types import BusyInterval, BusyIntervalWithTimeZone, CalendarCredential, SelectedCalendar


def parse_instant(value: Any) -> _dt.datetime:
    """Parse a provider timestamp (ISO 8601, "Z" suffix allowed) into an aware datetime."""
    if isinstance(value, _dt.datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = _dt.datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_dt.timezone.utc)
    return parsed


def busy_from_mapping(item: Mapping[str, Any], *, time_zone: Optional[str] = None) -> BusyInterval:
    """Build a busy interval from a {"start": ..., "end": ...} provider payload."""
    start = parse_instant(item["start"])
    end = parse_instant(item["end"])
    if time_zone is not None:
        return BusyIntervalWithTimeZone(start=start, end=end, time_zone=time_zone)
    return BusyInterval(start=start, end=end)


class BaseCalendarService(ABC):
    """Capability: busy intervals of an integration's calendars over [date_from, date_to]."""

    def __init__(self, credential: CalendarCredential) -> None:
        self.credential = credential

    @property
    @abstractmethod
    def integration_type(self) -> str:
        ...

    @abstractmethod
    async def get_availability(
        self,
        date_from: str,
        date_to: str,
        selected_calendars: Sequence[SelectedCalendar],
        should_serve_cache: Optional[bool] = None,
    ) -> List[BusyInterval]:
        """Busy intervals for ``selected_calendars``; an empty list means the primary calendar."""
        ...

    async def get_availability_with_time_zones(
        self,
        date_from: str,
        date_to: str,
        selected_calendars: Sequence[SelectedCalendar],
    ) -> Optional[List[BusyIntervalWithTimeZone]]:
        """Busy intervals annotated with each calendar's timezone.

        Default implementation returns ``None`` (not supported).
        """
        return None
