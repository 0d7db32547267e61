"""Availability engine: tile schedule windows into slots and drop those that collide with busy time.

Pure and synchronous. Every comparison is done on UTC instants; rendering in a
display timezone is the caller's job.
"""
from __future__ import annotations

import bisect
import datetime as _dt
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from slotwise.core.exceptions import InvalidScheduleError, ValidationError
from slotwise.scheduling.schedule import Window, resolve_windows
from slotwise.scheduling.types import BusyInterval, Slot, SlotBooking, WeeklySchedule

SlotsByDate = Dict[_dt.date, List[Slot]]

_UTC = _dt.timezone.utc


class _BusyIndex:
    """Merged, sorted busy ranges answering "does [start, end) strictly overlap anything"."""

    def __init__(self, ranges: Iterable[Window]) -> None:
        merged: List[List[_dt.datetime]] = []
        for start, end in sorted(ranges):
            if merged and start <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])
        self._starts = [r[0] for r in merged]
        self._ends = [r[1] for r in merged]

    def __len__(self) -> int:
        return len(self._starts)

    def overlaps(self, start: _dt.datetime, end: _dt.datetime) -> bool:
        # First merged range ending after ``start`` is the only candidate.
        idx = bisect.bisect_right(self._ends, start)
        return idx < len(self._starts) and self._starts[idx] < end


def _utc(value: _dt.datetime) -> _dt.datetime:
    return value.astimezone(_UTC)


def tile_window(
    window: Window,
    duration: _dt.timedelta,
    step: _dt.timedelta,
) -> List[Tuple[_dt.datetime, _dt.datetime]]:
    """Candidate [start, end) pairs anchored at the window start and fully inside it."""
    start, end = window
    out = []
    cursor = start
    while cursor + duration <= end:
        out.append((cursor, cursor + duration))
        cursor += step
    return out


def validate_range(date_from: _dt.date, date_to: _dt.date, max_range_days: Optional[int] = None) -> None:
    if date_to < date_from:
        raise ValidationError(
            f"date_to {date_to} is before date_from {date_from}",
            details={"date_from": str(date_from), "date_to": str(date_to)},
        )
    if max_range_days is not None and (date_to - date_from).days + 1 > max_range_days:
        raise ValidationError(
            f"Requested range spans more than {max_range_days} days",
            details={"max_range_days": max_range_days},
        )


def _validate_inputs(
    date_from: _dt.date,
    date_to: _dt.date,
    slot_duration_minutes: int,
    seats_per_slot: Optional[int],
    slot_interval_minutes: Optional[int],
    max_range_days: Optional[int],
) -> None:
    validate_range(date_from, date_to, max_range_days)
    if slot_duration_minutes <= 0:
        raise InvalidScheduleError(f"slot_duration_minutes must be positive, got {slot_duration_minutes}")
    if slot_interval_minutes is not None and slot_interval_minutes <= 0:
        raise ValidationError(f"slot_interval_minutes must be positive, got {slot_interval_minutes}")
    if seats_per_slot is not None and seats_per_slot < 1:
        raise ValidationError(f"seats_per_slot must be at least 1, got {seats_per_slot}")


def compute_slots(
    schedule: WeeklySchedule,
    busy: Sequence[BusyInterval],
    date_from: _dt.date,
    date_to: _dt.date,
    slot_duration_minutes: int,
    seats_per_slot: Optional[int] = None,
    *,
    bookings: Sequence[SlotBooking] = (),
    slot_interval_minutes: Optional[int] = None,
    before_event_buffer_minutes: int = 0,
    after_event_buffer_minutes: int = 0,
    minimum_booking_notice_minutes: int = 0,
    now: Optional[_dt.datetime] = None,
    max_range_days: Optional[int] = None,
) -> SlotsByDate:
    """Bookable slots for every date in [date_from, date_to], keyed by date in the schedule's zone.

    Steps:
      1. Resolve each date's windows (override if present, else the weekly pattern).
      2. Tile windows into ``slot_duration_minutes`` slots, stepping by
         ``slot_interval_minutes`` (defaults to the duration).
      3. Drop slots strictly overlapping busy time, widened by the event buffers.
      4. Seated event types: bookings at the exact slot count as attendees
         instead of busy time; full slots are kept and flagged (see drop_full_slots).
      5. Drop slots starting before ``now + minimum_booking_notice_minutes``.

    Dates with no slots map to an empty list.
    """
    _validate_inputs(
        date_from, date_to, slot_duration_minutes, seats_per_slot, slot_interval_minutes, max_range_days
    )
    if minimum_booking_notice_minutes and now is None:
        raise ValidationError("now is required when minimum_booking_notice_minutes is set")

    windows_by_date = resolve_windows(schedule, date_from, date_to)

    duration = _dt.timedelta(minutes=slot_duration_minutes)
    step = _dt.timedelta(minutes=slot_interval_minutes or slot_duration_minutes)
    before = _dt.timedelta(minutes=before_event_buffer_minutes)
    after = _dt.timedelta(minutes=after_event_buffer_minutes)

    candidates = {
        day: [tile for window in windows for tile in tile_window(window, duration, step)]
        for day, windows in windows_by_date.items()
    }
    on_grid = {tile for tiles in candidates.values() for tile in tiles}

    # Seated bookings only share capacity with the exact slot they occupy;
    # anything off the grid blocks time like a regular booking.
    busy_ranges: List[Window] = [(_utc(b.start), _utc(b.end)) for b in busy]
    attendees_at: Dict[Window, int] = {}
    for booking in bookings:
        key = (_utc(booking.start), _utc(booking.end))
        if seats_per_slot is None or key not in on_grid:
            busy_ranges.append(key)
        else:
            attendees_at[key] = attendees_at.get(key, 0) + booking.attendees
    index = _BusyIndex(busy_ranges)

    earliest = None
    if now is not None:
        earliest = _utc(now) + _dt.timedelta(minutes=minimum_booking_notice_minutes)

    result: SlotsByDate = {}
    for day, tiles in candidates.items():
        day_slots: List[Slot] = []
        for start, end in tiles:
            if earliest is not None and start < earliest:
                continue
            if index.overlaps(start - before, end + after):
                continue
            if seats_per_slot is None:
                day_slots.append(Slot(start=start, end=end))
            else:
                day_slots.append(
                    Slot(
                        start=start,
                        end=end,
                        attendees=attendees_at.get((start, end), 0),
                        seats_total=seats_per_slot,
                    )
                )
        result[day] = day_slots
    return result


def drop_full_slots(slots_by_date: SlotsByDate) -> SlotsByDate:
    """Caller-side capacity filter for seated event types."""
    return {day: [s for s in slots if not s.is_full] for day, slots in slots_by_date.items()}


def flatten(slots_by_date: SlotsByDate) -> List[Slot]:
    return [slot for day in sorted(slots_by_date) for slot in slots_by_date[day]]
