"""ReservationService: slot holds backed by the selected_slots table."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, Any, Optional

from slotwise.config import SchedulingConfig, load_scheduling_config
from slotwise.core.clock import Clock, utc_now
from slotwise.infra.database.repositories import SelectedSlotRepository
from slotwise.scheduling.reservations import ReservationStore, SlotReservationLedger
from slotwise.scheduling.types import SlotReservation

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class ReservationService:
    """Session-scoped facade over SlotReservationLedger. The caller owns the transaction."""

    def __init__(
        self,
        session: "AsyncSession",
        *,
        config: Optional[SchedulingConfig] = None,
        clock: Clock = utc_now,
        store: Optional[ReservationStore] = None,
    ) -> None:
        self._session = session
        self._config = config or load_scheduling_config()
        self._ledger = SlotReservationLedger(
            store if store is not None else SelectedSlotRepository(session),
            clock=clock,
            default_ttl=self._config.reservation_ttl,
        )

    @property
    def ledger(self) -> SlotReservationLedger:
        return self._ledger

    async def is_reserved_by_other(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: Optional[str],
    ) -> bool:
        return await self._ledger.is_reserved_by_other(event_type_id, slot_utc_start, slot_utc_end, uid)

    async def reserve(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
        ttl: Optional[_dt.timedelta] = None,
    ) -> SlotReservation:
        return await self._ledger.reserve(event_type_id, slot_utc_start, slot_utc_end, uid, ttl)

    async def release(self, reservation_id: Any) -> None:
        await self._ledger.release(reservation_id)

    async def confirm(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
    ) -> None:
        """Booking confirmation: raises ReservationConflictError if someone else holds the slot."""
        await self._ledger.consume(event_type_id, slot_utc_start, slot_utc_end, uid)
        logger.info("Slot %s-%s of event type %s confirmed for %s", slot_utc_start, slot_utc_end, event_type_id, uid)
