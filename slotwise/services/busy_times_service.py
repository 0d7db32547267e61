"""BusyTimesService: load a user's calendar credentials and selections, then aggregate busy time."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from slotwise.config import SchedulingConfig, load_scheduling_config
from slotwise.infra.database.repositories import CalendarSelectionRepository, CredentialRepository
from slotwise.scheduling.busy_times import (
    BusyTimesResult,
    DateLike,
    collect_busy_intervals,
    collect_busy_intervals_with_timezones,
)
from slotwise.scheduling.types import CalendarCredential, SelectedCalendar

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from slotwise.clients.calendar.registry import CalendarRegistry
    from slotwise.infra.database.models import CalendarSelection, Credential

logger = logging.getLogger(__name__)


def to_calendar_credential(row: "Credential") -> CalendarCredential:
    return CalendarCredential(
        id=row.id,
        type=row.type,
        app_id=row.app_id,
        invalid=bool(row.invalid),
        delegated_to_id=row.delegated_to_id,
        user_id=row.user_id,
        key=dict(row.key or {}),
    )


def to_selected_calendar(row: "CalendarSelection") -> SelectedCalendar:
    return SelectedCalendar(
        integration=row.integration,
        external_id=row.external_id,
        credential_id=row.credential_id,
    )


class BusyTimesService:
    """Busy time of one user across every connected calendar."""

    def __init__(
        self,
        session: "AsyncSession",
        *,
        registry: Optional["CalendarRegistry"] = None,
        config: Optional[SchedulingConfig] = None,
    ) -> None:
        self._session = session
        self._credentials = CredentialRepository(session)
        self._selections = CalendarSelectionRepository(session)
        self._registry = registry
        self._config = config or load_scheduling_config()

    async def _load(self, user_id: int) -> Tuple[List[CalendarCredential], List[SelectedCalendar]]:
        credential_rows: Sequence["Credential"] = await self._credentials.list_calendar_credentials(user_id)
        selection_rows: Sequence["CalendarSelection"] = await self._selections.list_for_user(user_id)
        return (
            [to_calendar_credential(row) for row in credential_rows],
            [to_selected_calendar(row) for row in selection_rows],
        )

    async def get_busy_times(
        self,
        user_id: int,
        date_from: DateLike,
        date_to: DateLike,
        *,
        should_serve_cache: Optional[bool] = None,
    ) -> BusyTimesResult:
        credentials, selected = await self._load(user_id)
        result = await collect_busy_intervals(
            credentials,
            date_from,
            date_to,
            selected,
            should_serve_cache=should_serve_cache,
            registry=self._registry,
            timeout_seconds=self._config.calendar_fetch_timeout_seconds,
        )
        if result.is_partial:
            logger.warning(
                "Busy times for user %s are partial: credentials %s failed",
                user_id, result.failed_credential_ids,
            )
        return result

    async def get_busy_times_with_timezones(
        self,
        user_id: int,
        date_from: DateLike,
        date_to: DateLike,
    ) -> BusyTimesResult:
        credentials, selected = await self._load(user_id)
        return await collect_busy_intervals_with_timezones(
            credentials,
            date_from,
            date_to,
            selected,
            registry=self._registry,
            timeout_seconds=self._config.calendar_fetch_timeout_seconds,
        )
