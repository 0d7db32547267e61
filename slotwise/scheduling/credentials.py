"""Credential resolution: stored credentials -> calendar services, one failure at a time."""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from slotwise.clients.calendar.base import BaseCalendarService
from slotwise.clients.calendar.registry import CalendarRegistry
from slotwise.core.exceptions import CredentialResolutionError
from slotwise.scheduling.types import CalendarCredential

logger = logging.getLogger(__name__)

CALENDAR_TYPE_SUFFIX = "_calendar"
TIMEZONE_AWARE_TYPE = "google_calendar"


def calendar_credentials(credentials: Iterable[CalendarCredential]) -> List[CalendarCredential]:
    """Valid credentials of any calendar integration."""
    return [c for c in credentials if c.type.endswith(CALENDAR_TYPE_SUFFIX) and not c.invalid]


def timezone_aware_credentials(credentials: Iterable[CalendarCredential]) -> List[CalendarCredential]:
    """Valid credentials of the one provider that reports calendar timezones."""
    return [c for c in credentials if c.type == TIMEZONE_AWARE_TYPE and not c.invalid]


@dataclass
class ResolvedCalendar:
    credential: CalendarCredential
    service: Optional[BaseCalendarService] = None
    error: Optional[CredentialResolutionError] = None


async def resolve_calendar(credential: CalendarCredential, registry: CalendarRegistry) -> ResolvedCalendar:
    """Build the calendar service for one credential; failures degrade to "no calendar"."""
    try:
        service = registry.build(credential.type, credential)
        if inspect.isawaitable(service):
            service = await service
    except KeyError as exc:
        logger.warning("No calendar provider registered for credential %s (%s)", credential.id, credential.type)
        return ResolvedCalendar(
            credential,
            error=CredentialResolutionError(
                f"No calendar provider for {credential.type!r}",
                details={"credential_id": credential.id, "type": credential.type},
                cause=exc,
            ),
        )
    except Exception as exc:
        logger.warning(
            "Calendar provider init failed for credential %s (%s): %s",
            credential.id, credential.type, exc,
        )
        return ResolvedCalendar(
            credential,
            error=CredentialResolutionError(
                f"Calendar provider init failed for {credential.type!r}",
                details={"credential_id": credential.id, "type": credential.type},
                cause=exc,
            ),
        )
    return ResolvedCalendar(credential, service=service)


async def resolve_calendars(
    credentials: List[CalendarCredential],
    registry: CalendarRegistry,
) -> List[ResolvedCalendar]:
    """Resolve all credentials concurrently; the result is index-aligned with ``credentials``."""
    return list(await asyncio.gather(*(resolve_calendar(c, registry) for c in credentials)))
