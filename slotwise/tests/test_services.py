"""Unit tests for the session-scoped services with mocked repositories."""
from __future__ import annotations

import asyncio
import datetime as dt
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from slotwise.clients.calendar.base import BaseCalendarService
from slotwise.clients.calendar.registry import CalendarRegistry
from slotwise.config import SchedulingConfig
from slotwise.core.clock import fixed_clock
from slotwise.core.exceptions import InvalidScheduleError, NotFoundError, ReservationConflictError, ValidationError
from slotwise.scheduling.reservations import InMemoryReservationStore, SlotReservationLedger
from slotwise.scheduling.types import BusyInterval
from slotwise.services import AvailabilityService, BusyTimesService, ReservationService

UTC = dt.timezone.utc
MONDAY = dt.date(2026, 3, 2)
NOW = dt.datetime(2026, 3, 1, 8, 0, tzinfo=UTC)
CONFIG = SchedulingConfig(
    reservation_ttl_minutes=10,
    default_slot_duration_minutes=30,
    calendar_fetch_timeout_seconds=5,
    max_slot_range_days=31,
)


def _run(coro):
    return asyncio.run(coro)


def at(hh, mm=0, day=MONDAY):
    return dt.datetime(day.year, day.month, day.day, hh, mm, tzinfo=UTC)


class StaticCalendar(BaseCalendarService):
    def __init__(self, credential, busy):
        super().__init__(credential)
        self.busy = busy
        self.ranges = []

    @property
    def integration_type(self) -> str:
        return "google_calendar"

    async def get_availability(self, date_from, date_to, selected_calendars, should_serve_cache=None):
        self.ranges.append((date_from, date_to))
        return list(self.busy)


def _registry(busy, services=None):
    registry = CalendarRegistry()

    def build(credential):
        service = StaticCalendar(credential, busy)
        if services is not None:
            services.append(service)
        return service

    registry.register("google_calendar", build)
    return registry


def _credential_row(**kwargs):
    defaults = {
        "id": 1,
        "user_id": 7,
        "type": "google_calendar",
        "app_id": "google-calendar",
        "key": {"type": "service_account"},
        "invalid": False,
        "delegated_to_id": None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _schedule_row(**kwargs):
    defaults = {
        "id": uuid4(),
        "user_id": 7,
        "name": "Working hours",
        "timezone": "UTC",
        "availability": [{"days": [0, 1, 2, 3, 4], "start": "09:00", "end": "17:00"}],
        "date_overrides": [],
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _booking_row(start, minutes=30, event_type_id=5, attendee_count=1):
    return SimpleNamespace(
        id=uuid4(),
        event_type_id=event_type_id,
        user_id=7,
        start_time=start,
        end_time=start + dt.timedelta(minutes=minutes),
        status="accepted",
        attendee_count=attendee_count,
    )


def _repo_patches(credentials=(), selections=(), schedule=None, bookings=()):
    cred_repo = MagicMock()
    cred_repo.list_calendar_credentials = AsyncMock(return_value=list(credentials))
    sel_repo = MagicMock()
    sel_repo.list_for_user = AsyncMock(return_value=list(selections))
    sched_repo = MagicMock()
    sched_repo.get_for_user = AsyncMock(return_value=schedule)
    booking_repo = MagicMock()
    booking_repo.list_active_for_user = AsyncMock(return_value=list(bookings))
    return [
        patch("slotwise.services.busy_times_service.CredentialRepository", return_value=cred_repo),
        patch("slotwise.services.busy_times_service.CalendarSelectionRepository", return_value=sel_repo),
        patch("slotwise.services.availability_service.ScheduleRepository", return_value=sched_repo),
        patch("slotwise.services.availability_service.BookingRepository", return_value=booking_repo),
    ], sched_repo, booking_repo


class _PatchedTestCase(unittest.TestCase):
    def _patch(self, **kwargs):
        patches, sched_repo, booking_repo = _repo_patches(**kwargs)
        for p in patches:
            p.start()
            self.addCleanup(p.stop)
        return sched_repo, booking_repo


class TestBusyTimesService(_PatchedTestCase):
    def test_rows_are_converted_and_aggregated(self):
        self._patch(
            credentials=[_credential_row(), _credential_row(id=2, invalid=True)],
            selections=[SimpleNamespace(integration="google_calendar", external_id="me@example.com", credential_id=1)],
        )
        services = []
        busy = [BusyInterval(start=at(10), end=at(10, 30))]
        svc = BusyTimesService(MagicMock(), registry=_registry(busy, services), config=CONFIG)
        result = _run(svc.get_busy_times(7, "2026-03-02T00:00:00Z", "2026-03-03T00:00:00Z"))
        self.assertEqual(len(services), 1)
        self.assertEqual(services[0].credential.key, {"type": "service_account"})
        self.assertEqual(result.queried, {1: ("me@example.com",)})
        self.assertEqual([i.source for i in result.intervals], ["google-calendar"])

    def test_user_without_calendars(self):
        self._patch()
        svc = BusyTimesService(MagicMock(), registry=_registry([]), config=CONFIG)
        result = _run(svc.get_busy_times(7, "2026-03-02", "2026-03-03"))
        self.assertEqual(result.intervals, [])


class TestAvailabilityService(_PatchedTestCase):
    def _service(self, busy=(), store=None, services=None):
        return AvailabilityService(
            MagicMock(),
            registry=_registry(list(busy), services),
            config=CONFIG,
            clock=fixed_clock(NOW),
            store=store or InMemoryReservationStore(),
        )

    def test_calendar_busy_and_other_bookings_remove_slots(self):
        self._patch(
            credentials=[_credential_row()],
            selections=[SimpleNamespace(integration="google_calendar", external_id="me@example.com", credential_id=1)],
            schedule=_schedule_row(),
            bookings=[_booking_row(at(11))],
        )
        services = []
        svc = self._service(busy=[BusyInterval(start=at(10), end=at(10, 30))], services=services)
        slots = _run(svc.get_slots(7, uuid4(), MONDAY, MONDAY))
        starts = [s.start for s in slots[MONDAY]]
        self.assertEqual(len(starts), 14)
        self.assertNotIn(at(10), starts)
        self.assertNotIn(at(11), starts)
        self.assertEqual(services[0].ranges, [(at(0).isoformat(), at(0, day=dt.date(2026, 3, 3)).isoformat())])

    def test_local_day_bounds_drive_queries(self):
        _, booking_repo = self._patch(schedule=_schedule_row(timezone="Europe/Istanbul"))
        svc = self._service()
        _run(svc.get_slots(7, uuid4(), MONDAY, MONDAY, 60))
        _, range_start, range_end = booking_repo.list_active_for_user.await_args.args
        self.assertEqual(range_start, dt.datetime(2026, 3, 1, 21, 0, tzinfo=UTC))
        self.assertEqual(range_end, dt.datetime(2026, 3, 2, 21, 0, tzinfo=UTC))

    def test_seated_event_counts_bookings_and_other_holds(self):
        self._patch(
            schedule=_schedule_row(),
            bookings=[_booking_row(at(9)), _booking_row(at(9, 30)), _booking_row(at(13), event_type_id=99)],
        )
        store = InMemoryReservationStore()
        ledger = SlotReservationLedger(store, clock=fixed_clock(NOW))

        async def scenario():
            await ledger.reserve(5, at(9), at(9, 30), "someone-else")
            await ledger.reserve(5, at(9, 30), at(10), "booker-1")
            svc = self._service(store=store)
            return await svc.get_slots(7, uuid4(), MONDAY, MONDAY, 30, event_type_id=5, seats_per_slot=2, booker_uid="booker-1")

        day = _run(scenario())[MONDAY]
        by_start = {s.start: s for s in day}
        self.assertNotIn(at(9), by_start)
        self.assertEqual(by_start[at(9, 30)].attendees, 1)
        self.assertEqual(by_start[at(9, 30)].seats_remaining, 1)
        self.assertNotIn(at(13), by_start)

    def test_missing_schedule(self):
        self._patch(schedule=None)
        with self.assertRaises(NotFoundError):
            _run(self._service().get_slots(7, uuid4(), MONDAY, MONDAY))

    def test_malformed_schedule(self):
        self._patch(schedule=_schedule_row(timezone="Not/AZone"))
        with self.assertRaises(InvalidScheduleError):
            _run(self._service().get_slots(7, uuid4(), MONDAY, MONDAY))

    def test_range_checked_before_loading(self):
        sched_repo, _ = self._patch(schedule=_schedule_row())
        with self.assertRaises(ValidationError):
            _run(self._service().get_slots(7, uuid4(), MONDAY, MONDAY + dt.timedelta(days=40)))
        sched_repo.get_for_user.assert_not_awaited()

    def test_past_slots_dropped_with_notice(self):
        self._patch(schedule=_schedule_row())
        svc = AvailabilityService(
            MagicMock(),
            registry=_registry([]),
            config=CONFIG,
            clock=fixed_clock(at(12)),
            store=InMemoryReservationStore(),
        )
        day = _run(svc.get_slots(7, uuid4(), MONDAY, MONDAY, minimum_booking_notice_minutes=30))[MONDAY]
        self.assertEqual(day[0].start, at(12, 30))


class TestReservationService(unittest.TestCase):
    def _service(self, store):
        return ReservationService(MagicMock(), config=CONFIG, clock=fixed_clock(NOW), store=store)

    def test_reserve_uses_configured_ttl(self):
        svc = self._service(InMemoryReservationStore())
        reservation = _run(svc.reserve(5, at(9), at(9, 30), "booker-1"))
        self.assertEqual(reservation.release_at, NOW + dt.timedelta(minutes=10))

    def test_confirm_by_other_booker_conflicts(self):
        svc = self._service(InMemoryReservationStore())

        async def scenario():
            await svc.reserve(5, at(9), at(9, 30), "booker-1")
            self.assertTrue(await svc.is_reserved_by_other(5, at(9), at(9, 30), "booker-2"))
            await svc.confirm(5, at(9), at(9, 30), "booker-2")

        with self.assertRaises(ReservationConflictError):
            _run(scenario())

    def test_confirm_consumes_own_hold(self):
        svc = self._service(InMemoryReservationStore())

        async def scenario():
            await svc.reserve(5, at(9), at(9, 30), "booker-1")
            await svc.confirm(5, at(9), at(9, 30), "booker-1")
            return await svc.is_reserved_by_other(5, at(9), at(9, 30), "booker-2")

        self.assertFalse(_run(scenario()))

    def test_release(self):
        svc = self._service(InMemoryReservationStore())

        async def scenario():
            reservation = await svc.reserve(5, at(9), at(9, 30), "booker-1")
            await svc.release(reservation.id)
            return await svc.ledger.is_reserved_by_other(5, at(9), at(9, 30), "booker-2")

        self.assertFalse(_run(scenario()))

    def test_default_store_is_sql_repository(self):
        from slotwise.infra.database.repositories import SelectedSlotRepository

        session = MagicMock()
        svc = ReservationService(session, config=CONFIG)
        self.assertIsInstance(svc.ledger._store, SelectedSlotRepository)
