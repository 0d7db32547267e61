"""
slotwise.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, session_scope, get_db, init_db, close_engine
  Base, Credential, CalendarSelection, Schedule, Booking, SelectedSlot (models)
  CredentialRepository, CalendarSelectionRepository, ScheduleRepository,
  BookingRepository, SelectedSlotRepository
"""
from slotwise.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    get_db,
    init_db,
    session_scope,
)
from slotwise.infra.database.models import (
    Base,
    Booking,
    CalendarSelection,
    Credential,
    Schedule,
    SelectedSlot,
)
from slotwise.infra.database.repositories import (
    BookingRepository,
    CalendarSelectionRepository,
    CredentialRepository,
    ScheduleRepository,
    SelectedSlotRepository,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "get_db",
    "init_db",
    "close_engine",
    "session_scope",
    "Base",
    "Credential",
    "CalendarSelection",
    "Schedule",
    "Booking",
    "SelectedSlot",
    "CredentialRepository",
    "CalendarSelectionRepository",
    "ScheduleRepository",
    "BookingRepository",
    "SelectedSlotRepository",
]
