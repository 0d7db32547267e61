"""Slot reservation ledger: short-lived, owner-scoped holds on one exact slot.

A hold is keyed by (event_type_id, slot_utc_start, slot_utc_end). Holds whose
``release_at`` is not strictly after "now" are treated as absent; nothing has
to sweep them for the checks here to be correct.

``is_reserved_by_other`` followed by ``reserve`` is not atomic. The store is
the arbiter: its ``claim`` must refuse a live row owned by someone else, and
the ledger turns that refusal into ReservationConflictError.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from slotwise.core.clock import Clock, utc_now
from slotwise.core.exceptions import ReservationConflictError, ValidationError
from slotwise.scheduling.types import SlotReservation

logger = logging.getLogger(__name__)

_UTC = _dt.timezone.utc

SlotKey = Tuple[int, _dt.datetime, _dt.datetime]


class ReservationStore(ABC):
    """Storage for holds. Implementations must make ``claim`` atomic per slot key."""

    @abstractmethod
    async def find_live_other(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: Optional[str],
        now: _dt.datetime,
    ) -> Optional[SlotReservation]:
        """A live hold on the exact slot whose owner is not ``uid`` (any owner when ``uid`` is None)."""

    @abstractmethod
    async def claim(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
        release_at: _dt.datetime,
        now: _dt.datetime,
    ) -> Optional[SlotReservation]:
        """Create or renew the hold; None when another owner holds a live row."""

    @abstractmethod
    async def delete(self, reservation_id: Any) -> bool:
        """Remove a hold by id; False when there was nothing to remove."""

    @abstractmethod
    async def delete_owned(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
    ) -> int:
        """Remove ``uid``'s hold on the exact slot; returns rows removed."""

    @abstractmethod
    async def list_live(
        self,
        event_type_id: int,
        range_start: _dt.datetime,
        range_end: _dt.datetime,
        now: _dt.datetime,
        exclude_uid: Optional[str] = None,
    ) -> List[SlotReservation]:
        """Live holds of the event type whose slot starts in [range_start, range_end)."""


class InMemoryReservationStore(ReservationStore):
    """Process-local store, for single-worker deployments and tests."""

    def __init__(self) -> None:
        self._rows: Dict[SlotKey, SlotReservation] = {}
        self._lock = asyncio.Lock()

    async def find_live_other(self, event_type_id, slot_utc_start, slot_utc_end, uid, now):
        row = self._rows.get((event_type_id, slot_utc_start, slot_utc_end))
        if row is None or not row.is_live(now):
            return None
        if uid is not None and row.uid == uid:
            return None
        return row

    async def claim(self, event_type_id, slot_utc_start, slot_utc_end, uid, release_at, now):
        key = (event_type_id, slot_utc_start, slot_utc_end)
        async with self._lock:
            existing = self._rows.get(key)
            if existing is not None and existing.is_live(now) and existing.uid != uid:
                return None
            reservation_id = existing.id if existing is not None and existing.uid == uid else uuid.uuid4()
            row = SlotReservation(
                id=reservation_id,
                event_type_id=event_type_id,
                slot_utc_start=slot_utc_start,
                slot_utc_end=slot_utc_end,
                uid=uid,
                release_at=release_at,
            )
            self._rows[key] = row
            return row

    async def delete(self, reservation_id):
        async with self._lock:
            for key, row in list(self._rows.items()):
                if row.id == reservation_id:
                    del self._rows[key]
                    return True
        return False

    async def delete_owned(self, event_type_id, slot_utc_start, slot_utc_end, uid):
        key = (event_type_id, slot_utc_start, slot_utc_end)
        async with self._lock:
            row = self._rows.get(key)
            if row is not None and row.uid == uid:
                del self._rows[key]
                return 1
        return 0

    async def list_live(self, event_type_id, range_start, range_end, now, exclude_uid=None):
        return sorted(
            (
                row
                for row in self._rows.values()
                if row.event_type_id == event_type_id
                and range_start <= row.slot_utc_start < range_end
                and row.is_live(now)
                and (exclude_uid is None or row.uid != exclude_uid)
            ),
            key=lambda row: row.slot_utc_start,
        )


def _as_utc(value: _dt.datetime, name: str) -> _dt.datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{name} must be timezone-aware", details={name: str(value)})
    return value.astimezone(_UTC)


class SlotReservationLedger:
    """Checks, takes and releases holds; "now" comes from the injected clock."""

    def __init__(
        self,
        store: ReservationStore,
        *,
        clock: Clock = utc_now,
        default_ttl: _dt.timedelta = _dt.timedelta(minutes=5),
    ) -> None:
        self._store = store
        self._clock = clock
        self._default_ttl = default_ttl

    def _slot(self, slot_utc_start: _dt.datetime, slot_utc_end: _dt.datetime) -> Tuple[_dt.datetime, _dt.datetime]:
        start = _as_utc(slot_utc_start, "slot_utc_start")
        end = _as_utc(slot_utc_end, "slot_utc_end")
        if end <= start:
            raise ValidationError("Slot end must be after its start", details={"start": str(start), "end": str(end)})
        return start, end

    async def is_reserved_by_other(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: Optional[str],
    ) -> bool:
        start, end = self._slot(slot_utc_start, slot_utc_end)
        row = await self._store.find_live_other(event_type_id, start, end, uid, self._clock())
        return row is not None

    async def reserve(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
        ttl: Optional[_dt.timedelta] = None,
    ) -> SlotReservation:
        """Create or renew ``uid``'s hold. Raises ReservationConflictError when someone else holds it."""
        if not uid:
            raise ValidationError("A reservation needs an owner uid")
        ttl = ttl if ttl is not None else self._default_ttl
        if ttl <= _dt.timedelta(0):
            raise ValidationError("Reservation ttl must be positive", details={"ttl_seconds": ttl.total_seconds()})
        start, end = self._slot(slot_utc_start, slot_utc_end)
        now = self._clock()
        reservation = await self._store.claim(event_type_id, start, end, uid, now + ttl, now)
        if reservation is None:
            logger.info("Slot %s-%s of event type %s already held by another booker", start, end, event_type_id)
            raise ReservationConflictError(
                "Slot is no longer available",
                details={"event_type_id": event_type_id, "slot_utc_start": start.isoformat(), "slot_utc_end": end.isoformat()},
            )
        logger.debug("Held slot %s-%s of event type %s until %s", start, end, event_type_id, reservation.release_at)
        return reservation

    async def release(self, reservation_id: Any) -> None:
        """Drop a hold. Unknown, expired or already released ids are a no-op."""
        removed = await self._store.delete(reservation_id)
        if not removed:
            logger.debug("Release of reservation %s: nothing to remove", reservation_id)

    async def consume(
        self,
        event_type_id: int,
        slot_utc_start: _dt.datetime,
        slot_utc_end: _dt.datetime,
        uid: str,
    ) -> None:
        """At booking confirmation: fail if another booker holds the slot, else drop the caller's hold."""
        start, end = self._slot(slot_utc_start, slot_utc_end)
        if await self._store.find_live_other(event_type_id, start, end, uid, self._clock()) is not None:
            raise ReservationConflictError(
                "Slot is no longer available",
                details={"event_type_id": event_type_id, "slot_utc_start": start.isoformat(), "slot_utc_end": end.isoformat()},
            )
        await self._store.delete_owned(event_type_id, start, end, uid)

    async def held_by_others(
        self,
        event_type_id: int,
        range_start: _dt.datetime,
        range_end: _dt.datetime,
        uid: Optional[str],
    ) -> List[SlotReservation]:
        """Live holds of other bookers on slots starting in [range_start, range_end)."""
        return await self._store.list_live(
            event_type_id,
            _as_utc(range_start, "range_start"),
            _as_utc(range_end, "range_end"),
            self._clock(),
            exclude_uid=uid,
        )
