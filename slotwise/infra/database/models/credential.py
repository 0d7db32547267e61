"""Credential ORM: one stored integration credential of a user."""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from slotwise.infra.database.models.base import Base, TimestampMixin


class Credential(Base, TimestampMixin):
    """
    type: integration type, e.g. "google_calendar", "office365_calendar", "zoom_video".
    key: provider secrets (service account JSON or OAuth tokens); never logged.
    invalid: set when the provider rejected the credential; excluded from busy-time lookups.
    """

    __tablename__ = "credentials"
    __table_args__ = (
        Index("ix_credentials_user_id", "user_id"),
        Index("ix_credentials_type", "type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    app_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    key: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    invalid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delegated_to_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
