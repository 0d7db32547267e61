"""Schedule repository."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select

from slotwise.infra.database.models.schedule import Schedule
from slotwise.infra.database.repositories.base import BaseRepository


class ScheduleRepository(BaseRepository[Schedule]):
    model = Schedule

    async def get_for_user(self, schedule_id: UUID, user_id: int) -> Optional[Schedule]:
        stmt = select(Schedule).where(Schedule.id == schedule_id).where(Schedule.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
