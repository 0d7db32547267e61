"""Booking repository: active bookings overlapping a range."""
from __future__ import annotations

import datetime as _dt
from typing import List

from sqlalchemy import select

from slotwise.infra.database.models.booking import Booking
from slotwise.infra.database.repositories.base import BaseRepository

ACTIVE_STATUSES = ("accepted", "pending")


class BookingRepository(BaseRepository[Booking]):
    model = Booking

    async def list_active_for_user(
        self,
        user_id: int,
        range_start: _dt.datetime,
        range_end: _dt.datetime,
    ) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .where(Booking.status.in_(ACTIVE_STATUSES))
            .where(Booking.start_time < range_end)
            .where(Booking.end_time > range_start)
            .order_by(Booking.start_time)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
