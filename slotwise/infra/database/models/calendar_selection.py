"""CalendarSelection ORM: an external calendar a user chose for conflict checking."""
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class CalendarSelection(Base, TimestampMixin):
    __tablename__ = "selected_calendars"
    __table_args__ = (
        UniqueConstraint("user_id", "integration", "external_id", name="uq_selected_calendars_user_calendar"),
        Index("ix_selected_calendars_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    integration: Mapped[str] = mapped_column(String(64), nullable=False)
    external_id: Mapped[str] = mapped_column(String(512), nullable=False)
    credential_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("credentials.id", ondelete="CASCADE"), nullable=True
    )
