"""SelectedSlot repository: PostgreSQL-backed ReservationStore.

``claim`` is a single INSERT ... ON CONFLICT DO UPDATE on the slot's unique
constraint. The update only fires when the existing row belongs to the same
uid or has expired, so of two racing owners exactly one gets a row back.
"""
from __future__ import annotations

import datetime as _dt
import uuid
from typing import Any, List, Optional

from sqlalchemy import case, delete as sa_delete, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from slotwise.infra.database.models.selected_slot import SLOT_UNIQUE_CONSTRAINT, SelectedSlot
from slotwise.infra.database.repositories.base import BaseRepository
from slotwise.scheduling.reservations import ReservationStore
from slotwise.scheduling.types import SlotReservation


def _to_reservation(row: SelectedSlot) -> SlotReservation:
    return SlotReservation(
        id=row.id,
        event_type_id=row.event_type_id,
        slot_utc_start=row.slot_utc_start,
        slot_utc_end=row.slot_utc_end,
        uid=row.uid,
        release_at=row.release_at,
    )


class SelectedSlotRepository(BaseRepository[SelectedSlot], ReservationStore):
    model = SelectedSlot

    async def find_live_other(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: Optional[str],
        now: _dt.datetime,
    ) -> Optional[SlotReservation]:
        stmt = (
            select(SelectedSlot)
            .where(SelectedSlot.event_type_id == event_type_id)
            .where(SelectedSlot.slot_utc_start == slot_utc_start)
            .where(SelectedSlot.slot_utc_end == slot_utc_end)
            .where(SelectedSlot.release_at > now)
            .limit(1)
        )
        if uid is not None:
            stmt = stmt.where(SelectedSlot.uid != uid)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_reservation(row) if row is not None else None

    async def claim(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
        release_at: _dt.datetime,
        now: _dt.datetime,
    ) -> Optional[SlotReservation]:
        stmt = pg_insert(SelectedSlot).values(
            id=uuid.uuid4(),
            event_type_id=event_type_id,
            slot_utc_start=slot_utc_start,
            slot_utc_end=slot_utc_end,
            uid=uid,
            release_at=release_at,
        )
        stmt = stmt.on_conflict_do_update(
            constraint=SLOT_UNIQUE_CONSTRAINT,
            set_={
                # A renewal keeps its id; taking over an expired hold gets a fresh one.
                "id": case((SelectedSlot.uid == stmt.excluded.uid, SelectedSlot.id), else_=stmt.excluded.id),
                "uid": stmt.excluded.uid,
                "release_at": stmt.excluded.release_at,
            },
            where=or_(SelectedSlot.uid == stmt.excluded.uid, SelectedSlot.release_at <= now),
        ).returning(SelectedSlot)
        result = await self.session.execute(stmt, execution_options={"populate_existing": True})
        row = result.scalar_one_or_none()
        await self.session.flush()
        return _to_reservation(row) if row is not None else None

    async def delete(self, reservation_id: Any) -> bool:
        stmt = (
            sa_delete(SelectedSlot)
            .where(SelectedSlot.id == reservation_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def delete_owned(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
    ) -> int:
        stmt = (
            sa_delete(SelectedSlot)
            .where(SelectedSlot.event_type_id == event_type_id)
            .where(SelectedSlot.slot_utc_start == slot_utc_start)
            .where(SelectedSlot.slot_utc_end == slot_utc_end)
            .where(SelectedSlot.uid == uid)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def list_live(
        self,
        event_type_id: int,
        range_start: _dt.datetime,
        range_end: _dt.datetime,
        now: _dt.datetime,
        exclude_uid: Optional[str] = None,
    ) -> List[SlotReservation]:
        stmt = (
            select(SelectedSlot)
            .where(SelectedSlot.event_type_id == event_type_id)
            .where(SelectedSlot.slot_utc_start >= range_start)
            .where(SelectedSlot.slot_utc_start < range_end)
            .where(SelectedSlot.release_at > now)
            .order_by(SelectedSlot.slot_utc_start)
        )
        if exclude_uid is not None:
            stmt = stmt.where(SelectedSlot.uid != exclude_uid)
        result = await self.session.execute(stmt)
        return [_to_reservation(row) for row in result.scalars().all()]
