"""SelectedSlot ORM: a booker's temporary hold on one exact slot.

The unique constraint on (event_type_id, slot_utc_start, slot_utc_end) is what
arbitrates racing reservations; expired rows are replaced in place.
"""
from __future__ import annotations

import datetime as _dt
import uuid

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.infra.database.models.base import Base, _uuid_pk

SLOT_UNIQUE_CONSTRAINT = "uq_selected_slots_slot"


class SelectedSlot(Base):
    __tablename__ = "selected_slots"
    __table_args__ = (
        UniqueConstraint("event_type_id", "slot_utc_start", "slot_utc_end", name=SLOT_UNIQUE_CONSTRAINT),
        Index("ix_selected_slots_release_at", "release_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    event_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_utc_start: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    slot_utc_end: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    uid: Mapped[str] = mapped_column(String(255), nullable=False)
    release_at: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
