"""Booking ORM: the subset of a booking the slot engine needs."""
from __future__ import annotations

import datetime as _dt
import uuid

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Booking(Base, TimestampMixin):
    """
    status: "accepted" | "pending" | "cancelled" | "rejected"
    attendee_count: confirmed attendees; more than one only on seated event types.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_user_start", "user_id", "start_time"),
        Index("ix_bookings_event_type_start", "event_type_id", "start_time"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    event_type_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="accepted")
    attendee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
