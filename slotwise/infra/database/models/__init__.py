"""
slotwise.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from slotwise.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from slotwise.infra.database.models.booking import Booking
from slotwise.infra.database.models.calendar_selection import CalendarSelection
from slotwise.infra.database.models.credential import Credential
from slotwise.infra.database.models.schedule import Schedule
from slotwise.infra.database.models.selected_slot import SelectedSlot

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "Booking",
    "CalendarSelection",
    "Credential",
    "Schedule",
    "SelectedSlot",
]
