"""Busy-interval aggregation across a user's calendar integrations.

Every credential is fetched concurrently and settled independently: a provider
that errors or times out is recorded in ``BusyTimesResult.failures`` while the
other credentials' intervals are still returned.
"""
from __future__ import annotations

import asyncio
import dataclasses
import datetime as _dt
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from slotwise.clients.calendar.base import BaseCalendarService, busy_from_mapping
from slotwise.clients.calendar.registry import CalendarRegistry, default_registry
from slotwise.core.exceptions import CredentialResolutionError, SlotwiseError, UpstreamFetchError
from slotwise.scheduling.credentials import (
    ResolvedCalendar,
    calendar_credentials,
    resolve_calendars,
    timezone_aware_credentials,
)
from slotwise.scheduling.types import (
    BusyInterval,
    BusyIntervalWithTimeZone,
    CalendarCredential,
    CredentialId,
    SelectedCalendar,
)

logger = logging.getLogger(__name__)

DateLike = Union[str, _dt.date, _dt.datetime]

_Fetch = Callable[[BaseCalendarService, List[SelectedCalendar]], Awaitable[Optional[Sequence[Any]]]]


@dataclass
class BusyTimesResult:
    """Aggregated busy intervals plus the per-credential failures seen on the way."""

    intervals: List[BusyInterval] = field(default_factory=list)
    failures: List[SlotwiseError] = field(default_factory=list)
    queried: Dict[CredentialId, Tuple[str, ...]] = field(default_factory=dict)
    """External calendar ids passed to each fetched credential, in query order."""

    @property
    def failed_credential_ids(self) -> List[CredentialId]:
        return [f.details.get("credential_id") for f in self.failures]

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)


def _iso(value: DateLike) -> str:
    if isinstance(value, str):
        return value
    return value.isoformat()


def selected_calendars_for(
    credential: CalendarCredential,
    selected_calendars: Sequence[SelectedCalendar],
) -> List[SelectedCalendar]:
    """Calendars of this credential's integration, sorted by external id for stable cache keys."""
    return sorted(
        (sc for sc in selected_calendars if sc.integration == credential.type),
        key=lambda sc: sc.external_id,
    )


def _source_of(credential: CalendarCredential) -> str:
    return credential.app_id or credential.type


def _tag(item: Any, source: str, *, with_time_zone: bool = False) -> BusyInterval:
    if not isinstance(item, BusyInterval):
        time_zone = (item.get("timeZone") or item.get("time_zone")) if with_time_zone else None
        item = busy_from_mapping(item, time_zone=time_zone)
    if with_time_zone and not isinstance(item, BusyIntervalWithTimeZone):
        item = BusyIntervalWithTimeZone(start=item.start, end=item.end)
    return dataclasses.replace(item, source=source)


def _as_upstream_error(credential: CalendarCredential, exc: BaseException) -> SlotwiseError:
    details = {"credential_id": credential.id, "type": credential.type}
    if isinstance(exc, SlotwiseError):
        return exc.with_details(**details)
    if isinstance(exc, asyncio.TimeoutError):
        return UpstreamFetchError(f"Calendar fetch timed out for {credential.type!r}", details=details, cause=exc)
    return UpstreamFetchError(f"Calendar fetch failed for {credential.type!r}", details=details, cause=exc)


def _check_any_resolved(resolved: List[ResolvedCalendar]) -> None:
    if resolved and all(item.error is not None for item in resolved):
        raise CredentialResolutionError(
            "No calendar credential could be resolved",
            details={"credential_ids": [item.credential.id for item in resolved]},
            cause=resolved[0].error,
        )


async def _aggregate(
    resolved: List[ResolvedCalendar],
    selected_calendars: Sequence[SelectedCalendar],
    fetch: _Fetch,
    *,
    query_delegated_without_selection: bool,
    timeout_seconds: Optional[float],
    with_time_zone: bool = False,
) -> BusyTimesResult:
    result = BusyTimesResult()
    jobs = []
    fetched: List[CalendarCredential] = []

    for item in resolved:
        if item.error is not None:
            result.failures.append(item.error)
            continue
        credential = item.credential
        passed = selected_calendars_for(credential, selected_calendars)
        if not passed:
            if not (query_delegated_without_selection and credential.is_delegated):
                logger.debug("No selected calendars for credential %s: skipping availability call", credential.id)
                continue
            # Delegation is enforced at organisation level; the provider falls back to the primary calendar.
            logger.debug("Delegated credential %s has no selected calendars: querying anyway", credential.id)
        result.queried[credential.id] = tuple(sc.external_id for sc in passed)
        call = fetch(item.service, passed)
        jobs.append(asyncio.wait_for(call, timeout_seconds) if timeout_seconds else call)
        fetched.append(credential)

    settled = await asyncio.gather(*jobs, return_exceptions=True)
    for credential, outcome in zip(fetched, settled):
        if isinstance(outcome, (KeyboardInterrupt, SystemExit)):
            raise outcome
        if not isinstance(outcome, BaseException):
            source = _source_of(credential)
            try:
                intervals = [_tag(raw, source, with_time_zone=with_time_zone) for raw in outcome or []]
            except Exception as exc:
                outcome = exc
            else:
                result.intervals.extend(intervals)
                continue
        error = _as_upstream_error(credential, outcome)
        logger.warning("Busy times unavailable for credential %s (%s): %s", credential.id, credential.type, error)
        result.failures.append(error)
    return result


async def collect_busy_intervals(
    credentials: Sequence[CalendarCredential],
    date_from: DateLike,
    date_to: DateLike,
    selected_calendars: Sequence[SelectedCalendar],
    *,
    should_serve_cache: Optional[bool] = None,
    registry: Optional[CalendarRegistry] = None,
    timeout_seconds: Optional[float] = None,
) -> BusyTimesResult:
    """Busy intervals of every valid calendar credential, with failures reported separately.

    Raises CredentialResolutionError only when no candidate credential resolves at all.
    """
    candidates = calendar_credentials(credentials)
    if not candidates:
        return BusyTimesResult()
    resolved = await resolve_calendars(candidates, registry or default_registry)
    _check_any_resolved(resolved)

    date_from_iso, date_to_iso = _iso(date_from), _iso(date_to)

    def fetch(service: BaseCalendarService, passed: List[SelectedCalendar]):
        return service.get_availability(date_from_iso, date_to_iso, passed, should_serve_cache)

    result = await _aggregate(
        resolved,
        selected_calendars,
        fetch,
        query_delegated_without_selection=True,
        timeout_seconds=timeout_seconds,
    )
    logger.debug(
        "Aggregated %d busy intervals from %d credentials (%d failed)",
        len(result.intervals), len(result.queried), len(result.failures),
    )
    return result


async def get_busy_intervals(
    credentials: Sequence[CalendarCredential],
    date_from: DateLike,
    date_to: DateLike,
    selected_calendars: Sequence[SelectedCalendar],
    *,
    should_serve_cache: Optional[bool] = None,
    registry: Optional[CalendarRegistry] = None,
    timeout_seconds: Optional[float] = None,
) -> List[BusyInterval]:
    """Flat busy intervals tagged with their source integration. Order is unspecified."""
    result = await collect_busy_intervals(
        credentials,
        date_from,
        date_to,
        selected_calendars,
        should_serve_cache=should_serve_cache,
        registry=registry,
        timeout_seconds=timeout_seconds,
    )
    return result.intervals


async def collect_busy_intervals_with_timezones(
    credentials: Sequence[CalendarCredential],
    date_from: DateLike,
    date_to: DateLike,
    selected_calendars: Sequence[SelectedCalendar],
    *,
    registry: Optional[CalendarRegistry] = None,
    timeout_seconds: Optional[float] = None,
) -> BusyTimesResult:
    """Like collect_busy_intervals, restricted to the timezone-reporting provider.

    Credentials without selected calendars are skipped, delegated or not.
    """
    candidates = timezone_aware_credentials(credentials)
    if not candidates:
        return BusyTimesResult()
    resolved = await resolve_calendars(candidates, registry or default_registry)
    _check_any_resolved(resolved)

    date_from_iso, date_to_iso = _iso(date_from), _iso(date_to)

    def fetch(service: BaseCalendarService, passed: List[SelectedCalendar]):
        return service.get_availability_with_time_zones(date_from_iso, date_to_iso, passed)

    return await _aggregate(
        resolved,
        selected_calendars,
        fetch,
        query_delegated_without_selection=False,
        timeout_seconds=timeout_seconds,
        with_time_zone=True,
    )


async def get_busy_intervals_with_timezones(
    credentials: Sequence[CalendarCredential],
    date_from: DateLike,
    date_to: DateLike,
    selected_calendars: Sequence[SelectedCalendar],
    *,
    registry: Optional[CalendarRegistry] = None,
    timeout_seconds: Optional[float] = None,
) -> List[BusyIntervalWithTimeZone]:
    result = await collect_busy_intervals_with_timezones(
        credentials,
        date_from,
        date_to,
        selected_calendars,
        registry=registry,
        timeout_seconds=timeout_seconds,
    )
    return [i for i in result.intervals if isinstance(i, BusyIntervalWithTimeZone)]
