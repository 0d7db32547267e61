"""Unit tests for the SQL-backed reservation store with a mocked AsyncSession."""
from __future__ import annotations

import asyncio
import datetime as dt
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from slotwise.core.exceptions import ReservationConflictError
from slotwise.infra.database.repositories import SelectedSlotRepository
from slotwise.scheduling.reservations import SlotReservationLedger

UTC = dt.timezone.utc
NOW = dt.datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
START = dt.datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
END = START + dt.timedelta(minutes=30)


def _run(coro):
    return asyncio.run(coro)


def _row(**kwargs):
    defaults = {
        "id": uuid4(),
        "event_type_id": 42,
        "slot_utc_start": START,
        "slot_utc_end": END,
        "uid": "booker-a",
        "release_at": NOW + dt.timedelta(minutes=5),
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _session(scalar=None, rowcount=0):
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = [scalar] if scalar is not None else []
    result.rowcount = rowcount
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.flush = AsyncMock()
    return session


def _sql(session) -> str:
    stmt = session.execute.call_args[0][0]
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestClaim(unittest.TestCase):
    def test_claim_returns_reservation_from_returned_row(self):
        row = _row()
        session = _session(scalar=row)
        reservation = _run(SelectedSlotRepository(session).claim(42, START, END, "booker-a", row.release_at, NOW))
        self.assertEqual(reservation.id, row.id)
        self.assertEqual(reservation.uid, "booker-a")
        sql = _sql(session)
        self.assertIn("ON CONFLICT ON CONSTRAINT uq_selected_slots_slot DO UPDATE", sql)
        self.assertIn("RETURNING", sql)
        session.flush.assert_awaited_once()

    def test_claim_refused_surfaces_as_conflict(self):
        session = _session(scalar=None)
        ledger = SlotReservationLedger(SelectedSlotRepository(session), clock=lambda: NOW)
        with self.assertRaises(ReservationConflictError):
            _run(ledger.reserve(42, START, END, "booker-b"))


class TestQueries(unittest.TestCase):
    def test_find_live_other_excludes_caller(self):
        session = _session(scalar=_row(uid="booker-a"))
        found = _run(SelectedSlotRepository(session).find_live_other(42, START, END, "booker-b", NOW))
        self.assertEqual(found.uid, "booker-a")
        sql = _sql(session)
        self.assertIn("selected_slots.uid !=", sql)
        self.assertIn("selected_slots.release_at >", sql)

    def test_find_live_other_without_uid_has_no_owner_filter(self):
        session = _session(scalar=None)
        found = _run(SelectedSlotRepository(session).find_live_other(42, START, END, None, NOW))
        self.assertIsNone(found)
        self.assertNotIn("selected_slots.uid !=", _sql(session))

    def test_list_live_maps_rows(self):
        session = _session(scalar=_row(uid="booker-c"))
        holds = _run(SelectedSlotRepository(session).list_live(42, START, END, NOW, exclude_uid="booker-a"))
        self.assertEqual([h.uid for h in holds], ["booker-c"])


class TestDelete(unittest.TestCase):
    def test_delete_reports_whether_a_row_went_away(self):
        self.assertTrue(_run(SelectedSlotRepository(_session(rowcount=1)).delete(uuid4())))
        self.assertFalse(_run(SelectedSlotRepository(_session(rowcount=0)).delete(uuid4())))

    def test_delete_owned_returns_rowcount(self):
        session = _session(rowcount=1)
        removed = _run(SelectedSlotRepository(session).delete_owned(42, START, END, "booker-a"))
        self.assertEqual(removed, 1)
        self.assertIn("DELETE FROM selected_slots", _sql(session))
