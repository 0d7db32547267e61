"""AvailabilityService: stored schedule + calendar busy time + bookings + holds -> bookable slots."""
from __future__ import annotations

import dataclasses
import datetime as _dt
import logging
from collections import Counter
from typing import TYPE_CHECKING, List, Optional, Tuple
from uuid import UUID

from slotwise.config import SchedulingConfig, load_scheduling_config
from slotwise.core.clock import Clock, utc_now
from slotwise.core.exceptions import NotFoundError
from slotwise.infra.database.repositories import BookingRepository, ScheduleRepository, SelectedSlotRepository
from slotwise.scheduling.reservations import ReservationStore, SlotReservationLedger
from slotwise.scheduling.schedule import load_timezone
from slotwise.scheduling.slots import SlotsByDate, compute_slots, drop_full_slots, validate_range
from slotwise.scheduling.types import BusyInterval, SlotBooking
from slotwise.schemas.schedule import load_weekly_schedule
from slotwise.services.busy_times_service import BusyTimesService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from slotwise.clients.calendar.registry import CalendarRegistry

logger = logging.getLogger(__name__)

_UTC = _dt.timezone.utc

BOOKING_SOURCE = "booking"


class AvailabilityService:
    def __init__(
        self,
        session: "AsyncSession",
        *,
        registry: Optional["CalendarRegistry"] = None,
        config: Optional[SchedulingConfig] = None,
        clock: Clock = utc_now,
        store: Optional[ReservationStore] = None,
    ) -> None:
        self._session = session
        self._config = config or load_scheduling_config()
        self._clock = clock
        self._schedules = ScheduleRepository(session)
        self._bookings = BookingRepository(session)
        self._busy_times = BusyTimesService(session, registry=registry, config=self._config)
        self._ledger = SlotReservationLedger(
            store if store is not None else SelectedSlotRepository(session),
            clock=clock,
            default_ttl=self._config.reservation_ttl,
        )

    async def get_slots(
        self,
        user_id: int,
        schedule_id: UUID,
        date_from: _dt.date,
        date_to: _dt.date,
        duration: Optional[int] = None,
        *,
        event_type_id: Optional[int] = None,
        seats_per_slot: Optional[int] = None,
        booker_uid: Optional[str] = None,
        slot_interval_minutes: Optional[int] = None,
        before_event_buffer_minutes: int = 0,
        after_event_buffer_minutes: int = 0,
        minimum_booking_notice_minutes: int = 0,
        should_serve_cache: Optional[bool] = None,
    ) -> SlotsByDate:
        """Bookable slots per date for one of the user's schedules.

        1. Load and validate the stored schedule (NotFoundError / InvalidScheduleError)
        2. Aggregate calendar busy time over the local-day range; failed calendars are skipped
        3. Load active bookings: same event type counts seats, anything else is busy time
        4. Run the slot engine
        5. Seated event types: count other bookers' live holds and drop full slots
        """
        validate_range(date_from, date_to, self._config.max_slot_range_days)
        row = await self._schedules.get_for_user(schedule_id, user_id)
        if row is None:
            raise NotFoundError(
                f"Schedule {schedule_id} not found",
                details={"schedule_id": str(schedule_id), "user_id": user_id},
            )
        schedule = load_weekly_schedule(row)
        range_start, range_end = self._utc_bounds(schedule.timezone, date_from, date_to)
        duration = duration or self._config.default_slot_duration_minutes

        busy_result = await self._busy_times.get_busy_times(
            user_id, range_start, range_end, should_serve_cache=should_serve_cache
        )
        busy: List[BusyInterval] = list(busy_result.intervals)
        bookings: List[SlotBooking] = []
        for booking in await self._bookings.list_active_for_user(user_id, range_start, range_end):
            if seats_per_slot is not None and booking.event_type_id == event_type_id:
                bookings.append(
                    SlotBooking(start=booking.start_time, end=booking.end_time, attendees=booking.attendee_count)
                )
            else:
                busy.append(BusyInterval(start=booking.start_time, end=booking.end_time, source=BOOKING_SOURCE))

        slots = compute_slots(
            schedule,
            busy,
            date_from,
            date_to,
            duration,
            seats_per_slot,
            bookings=bookings,
            slot_interval_minutes=slot_interval_minutes,
            before_event_buffer_minutes=before_event_buffer_minutes,
            after_event_buffer_minutes=after_event_buffer_minutes,
            minimum_booking_notice_minutes=minimum_booking_notice_minutes,
            now=self._clock(),
            max_range_days=self._config.max_slot_range_days,
        )

        if seats_per_slot is not None and event_type_id is not None:
            slots = await self._apply_holds(slots, event_type_id, range_start, range_end, booker_uid)

        logger.debug(
            "Computed %d slots for user %s schedule %s (%s..%s)",
            sum(len(v) for v in slots.values()), user_id, schedule_id, date_from, date_to,
        )
        return slots

    @staticmethod
    def _utc_bounds(timezone: Optional[str], date_from: _dt.date, date_to: _dt.date) -> Tuple[_dt.datetime, _dt.datetime]:
        tz = load_timezone(timezone)
        start = _dt.datetime.combine(date_from, _dt.time(0, 0), tzinfo=tz)
        end = _dt.datetime.combine(date_to + _dt.timedelta(days=1), _dt.time(0, 0), tzinfo=tz)
        return start.astimezone(_UTC), end.astimezone(_UTC)

    async def _apply_holds(
        self,
        slots: SlotsByDate,
        event_type_id: int,
        range_start: _dt.datetime,
        range_end: _dt.datetime,
        booker_uid: Optional[str],
    ) -> SlotsByDate:
        holds = await self._ledger.held_by_others(event_type_id, range_start, range_end, booker_uid)
        if not holds:
            return drop_full_slots(slots)
        held = Counter((h.slot_utc_start, h.slot_utc_end) for h in holds)
        counted = {
            day: [
                dataclasses.replace(s, attendees=s.attendees + held[(s.start, s.end)]) if (s.start, s.end) in held else s
                for s in day_slots
            ]
            for day, day_slots in slots.items()
        }
        return drop_full_slots(counted)
