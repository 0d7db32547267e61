"""
slotwise.config.scheduling – tunables for busy-time aggregation, slot
computation and reservation holds.

Env vars: RESERVATION_TTL_MINUTES, DEFAULT_SLOT_DURATION_MINUTES,
CALENDAR_FETCH_TIMEOUT_SECONDS, MAX_SLOT_RANGE_DAYS.
"""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass

from slotwise.config._env import env_int, require_int


@dataclass(frozen=True)
class SchedulingConfig:
    reservation_ttl_minutes: int = 5
    """How long a hold survives while the booker completes checkout."""

    default_slot_duration_minutes: int = 30

    calendar_fetch_timeout_seconds: int = 30
    """Per-credential time limit for a provider's busy-time query."""

    max_slot_range_days: int = 62
    """Widest [date_from, date_to] span the engine accepts."""

    def __post_init__(self) -> None:
        require_int(self.reservation_ttl_minutes, "reservation_ttl_minutes")
        require_int(self.default_slot_duration_minutes, "default_slot_duration_minutes")
        require_int(self.calendar_fetch_timeout_seconds, "calendar_fetch_timeout_seconds")
        require_int(self.max_slot_range_days, "max_slot_range_days")

    @property
    def reservation_ttl(self) -> _dt.timedelta:
        return _dt.timedelta(minutes=self.reservation_ttl_minutes)

    @classmethod
    def from_env(cls, **overrides: object) -> SchedulingConfig:
        return cls(
            reservation_ttl_minutes=env_int(overrides, "reservation_ttl_minutes", "RESERVATION_TTL_MINUTES", 5),
            default_slot_duration_minutes=env_int(
                overrides, "default_slot_duration_minutes", "DEFAULT_SLOT_DURATION_MINUTES", 30
            ),
            calendar_fetch_timeout_seconds=env_int(
                overrides, "calendar_fetch_timeout_seconds", "CALENDAR_FETCH_TIMEOUT_SECONDS", 30
            ),
            max_slot_range_days=env_int(overrides, "max_slot_range_days", "MAX_SLOT_RANGE_DAYS", 62),
        )


def load_scheduling_config(**overrides: object) -> SchedulingConfig:
    """Load and validate scheduling config from environment (with optional overrides)."""
    return SchedulingConfig.from_env(**overrides)
