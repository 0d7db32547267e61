"""Repositories for the slotwise database."""
from slotwise.infra.database.repositories.base import BaseRepository
from slotwise.infra.database.repositories.booking import BookingRepository
from slotwise.infra.database.repositories.calendar_selection import CalendarSelectionRepository
from slotwise.infra.database.repositories.credential import CredentialRepository
from slotwise.infra.database.repositories.schedule import ScheduleRepository
from slotwise.infra.database.repositories.selected_slot import SelectedSlotRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CalendarSelectionRepository",
    "CredentialRepository",
    "ScheduleRepository",
    "SelectedSlotRepository",
]
