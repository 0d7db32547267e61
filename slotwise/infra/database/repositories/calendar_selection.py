"""CalendarSelection repository."""
from __future__ import annotations

from slotwise.infra.database.models.calendar_selection import CalendarSelection
from slotwise.infra.database.repositories.base import BaseRepository


class CalendarSelectionRepository(BaseRepository[CalendarSelection]):
    model = CalendarSelection
