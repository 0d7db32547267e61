"""Core data structures for busy-time aggregation, slot computation and holds."""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

CredentialId = Union[int, str]


def _require_aware(value: _dt.datetime, name: str) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware, got naive {value!r}")


@dataclass(frozen=True)
class CalendarCredential:
    """A stored integration credential.

    ``type`` is the integration type (``google_calendar``, ``office365_calendar``, ...).
    ``app_id`` identifies the integration and becomes the busy interval ``source``.
    ``key`` holds provider secrets and is never logged.
    """

    id: CredentialId
    type: str
    app_id: Optional[str] = None
    invalid: bool = False
    delegated_to_id: Optional[str] = None
    user_id: Optional[int] = None
    key: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_delegated(self) -> bool:
        """Organisation-wide credential: explicit delegation or a synthetic negative id."""
        if self.delegated_to_id:
            return True
        return isinstance(self.id, int) and not isinstance(self.id, bool) and self.id < 0


@dataclass(frozen=True)
class SelectedCalendar:
    """One externally chosen calendar of an integration."""

    integration: str
    external_id: str
    credential_id: Optional[CredentialId] = None


@dataclass(frozen=True)
class BusyInterval:
    """Half-open [start, end) range during which the host is unavailable."""

    start: _dt.datetime
    end: _dt.datetime
    source: Optional[str] = None

    def __post_init__(self) -> None:
        _require_aware(self.start, "start")
        _require_aware(self.end, "end")
        if self.end < self.start:
            raise ValueError(f"busy interval ends before it starts: {self.start} > {self.end}")

    def overlaps(self, start: _dt.datetime, end: _dt.datetime) -> bool:
        return start < self.end and self.start < end


@dataclass(frozen=True)
class BusyIntervalWithTimeZone(BusyInterval):
    """Busy interval annotated with the timezone its source calendar reports."""

    time_zone: Optional[str] = None


@dataclass(frozen=True)
class TimeRange:
    """Wall-clock range within one day. ``end == 00:00`` means midnight at day end."""

    start: _dt.time
    end: _dt.time

    @property
    def ends_at_midnight(self) -> bool:
        return self.end == _dt.time(0, 0)


@dataclass(frozen=True)
class DayRange(TimeRange):
    """Weekly availability entry; ``days`` uses Python weekday numbers (Monday == 0)."""

    days: Tuple[int, ...] = ()


@dataclass(frozen=True)
class DateOverride:
    """Replaces the weekly pattern for one date. No ranges means unavailable."""

    date: _dt.date
    ranges: Tuple[TimeRange, ...] = ()

    @classmethod
    def unavailable(cls, date: _dt.date) -> "DateOverride":
        return cls(date=date, ranges=())

    @property
    def is_unavailable(self) -> bool:
        return not self.ranges


@dataclass(frozen=True)
class WeeklySchedule:
    timezone: Optional[str]
    availability: Tuple[DayRange, ...] = ()
    date_overrides: Tuple[DateOverride, ...] = ()


@dataclass(frozen=True)
class SlotBooking:
    """An existing booking on the host's event type, used for seat counting."""

    start: _dt.datetime
    end: _dt.datetime
    attendees: int = 1

    def __post_init__(self) -> None:
        _require_aware(self.start, "start")
        _require_aware(self.end, "end")


@dataclass(frozen=True)
class Slot:
    start: _dt.datetime
    end: _dt.datetime
    attendees: int = 0
    seats_total: Optional[int] = None

    @property
    def seats_remaining(self) -> Optional[int]:
        if self.seats_total is None:
            return None
        return max(0, self.seats_total - self.attendees)

    @property
    def is_full(self) -> bool:
        return self.seats_total is not None and self.attendees >= self.seats_total


@dataclass(frozen=True)
class SlotReservation:
    """Exclusive, time-boxed hold on one exact slot."""

    id: Any
    event_type_id: int
    slot_utc_start: _dt.datetime
    slot_utc_end: _dt.datetime
    uid: str
    release_at: _dt.datetime

    def is_live(self, now: _dt.datetime) -> bool:
        return self.release_at > now
