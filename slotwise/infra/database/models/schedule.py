"""Schedule ORM: a user's weekly availability and date overrides.

availability:   [{"days": [0, 1, 2, 3, 4], "start": "09:00", "end": "17:00"}, ...]
date_overrides: [{"date": "2026-03-04", "ranges": []}, ...]  (empty ranges = unavailable)
Validated by slotwise.schemas.schedule before use.
"""
from __future__ import annotations

import uuid
from typing import Any, List, Optional

from sqlalchemy import Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Schedule(Base, TimestampMixin):
    __tablename__ = "schedules"
    __table_args__ = (Index("ix_schedules_user_id", "user_id"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="Working hours")
    timezone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    availability: Mapped[List[dict[str, Any]]] = mapped_column(JSONB, nullable=False, server_default="[]")
    date_overrides: Mapped[List[dict[str, Any]]] = mapped_column(JSONB, nullable=False, server_default="[]")
