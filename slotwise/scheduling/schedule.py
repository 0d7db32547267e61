"""Weekly schedule resolution: turn a WeeklySchedule into absolute availability windows per date."""
from __future__ import annotations

import datetime as _dt
from typing import Dict, Iterable, Iterator, List, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slotwise.core.exceptions import InvalidScheduleError
from slotwise.scheduling.types import TimeRange, WeeklySchedule

Window = Tuple[_dt.datetime, _dt.datetime]

_UTC = _dt.timezone.utc


def load_timezone(name: str | None) -> ZoneInfo:
    if not name or not str(name).strip():
        raise InvalidScheduleError("Schedule has no timezone")
    try:
        return ZoneInfo(str(name).strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidScheduleError(
            f"Unknown schedule timezone: {name!r}", details={"timezone": name}, cause=exc
        ) from exc


def parse_date(value: Union[str, _dt.date]) -> _dt.date:
    """Accept a date or an ISO ``YYYY-MM-DD`` string; impossible dates are schedule defects."""
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    try:
        return _dt.date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise InvalidScheduleError(
            f"Date override references an impossible date: {value!r}", details={"date": value}, cause=exc
        ) from exc


def parse_time(value: Union[str, _dt.time]) -> _dt.time:
    """Accept HH:MM / HH:MM:SS strings; "24:00" is midnight at the end of the day."""
    if isinstance(value, _dt.time):
        return value
    raw = str(value).strip()
    if raw in ("24:00", "24:00:00"):
        return _dt.time(0, 0)
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return _dt.datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise InvalidScheduleError(f"Invalid time of day: {value!r}", details={"time": value})


def _check_range(rng: TimeRange, where: str) -> None:
    if rng.ends_at_midnight:
        return
    if rng.end <= rng.start:
        raise InvalidScheduleError(
            f"{where}: range end {rng.end} is not after start {rng.start}",
            details={"start": str(rng.start), "end": str(rng.end)},
        )


def validate_schedule(schedule: WeeklySchedule) -> ZoneInfo:
    """Fail fast on schedule defects and return the schedule's zone."""
    tz = load_timezone(schedule.timezone)
    for rng in schedule.availability:
        bad_days = [d for d in rng.days if not 0 <= d <= 6]
        if bad_days:
            raise InvalidScheduleError(f"Invalid weekday numbers: {bad_days}", details={"days": bad_days})
        _check_range(rng, "weekly availability")
    for override in schedule.date_overrides:
        if not isinstance(override.date, _dt.date):
            raise InvalidScheduleError(f"Date override has no valid date: {override.date!r}")
        for rng in override.ranges:
            _check_range(rng, f"override {override.date.isoformat()}")
    return tz


def _to_window(day: _dt.date, rng: TimeRange, tz: ZoneInfo) -> Window:
    start = _dt.datetime.combine(day, rng.start, tzinfo=tz)
    if rng.ends_at_midnight:
        end = _dt.datetime.combine(day + _dt.timedelta(days=1), _dt.time(0, 0), tzinfo=tz)
    else:
        end = _dt.datetime.combine(day, rng.end, tzinfo=tz)
    return start.astimezone(_UTC), end.astimezone(_UTC)


def _merge_overlapping(windows: Iterable[Window]) -> List[Window]:
    # Touching windows stay separate so each keeps its own tiling anchor.
    merged: List[Window] = []
    for start, end in sorted(windows):
        if merged and start < merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def iter_dates(date_from: _dt.date, date_to: _dt.date) -> Iterator[_dt.date]:
    day = date_from
    while day <= date_to:
        yield day
        day += _dt.timedelta(days=1)


def overrides_by_date(schedule: WeeklySchedule) -> Dict[_dt.date, List[TimeRange]]:
    """Index overrides by date; several overrides for one date contribute all their ranges."""
    out: Dict[_dt.date, List[TimeRange]] = {}
    for override in schedule.date_overrides:
        out.setdefault(override.date, []).extend(override.ranges)
    return out


def windows_for_date(
    schedule: WeeklySchedule,
    day: _dt.date,
    tz: ZoneInfo,
    overrides: Dict[_dt.date, List[TimeRange]] | None = None,
) -> List[Window]:
    if overrides is None:
        overrides = overrides_by_date(schedule)
    if day in overrides:
        ranges: List[TimeRange] = overrides[day]
    else:
        weekday = day.weekday()
        ranges = [rng for rng in schedule.availability if weekday in rng.days]
    return _merge_overlapping(_to_window(day, rng, tz) for rng in ranges)


def resolve_windows(
    schedule: WeeklySchedule,
    date_from: _dt.date,
    date_to: _dt.date,
) -> Dict[_dt.date, List[Window]]:
    """Availability windows (UTC) for every date in [date_from, date_to], in the schedule's zone."""
    tz = validate_schedule(schedule)
    overrides = overrides_by_date(schedule)
    return {day: windows_for_date(schedule, day, tz, overrides) for day in iter_dates(date_from, date_to)}

