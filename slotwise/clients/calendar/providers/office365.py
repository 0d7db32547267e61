"""Microsoft 365 provider: Graph calendarView-backed BaseCalendarService + registry builder."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from slotwise.clients.calendar.base import BaseCalendarService, parse_instant
from slotwise.core.exceptions import ConfigurationError
from slotwise.scheduling.types import BusyInterval, CalendarCredential, SelectedCalendar

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Events shown as these do not block new bookings.
_NON_BLOCKING_SHOW_AS = frozenset({"free", "workingElsewhere"})


def _graph_instant(value: str):
    # Graph returns 7 fractional digits; datetime accepts at most 6.
    head, dot, frac = value.partition(".")
    if dot:
        value = f"{head}.{frac[:6]}"
    return parse_instant(value)


class Office365CalendarService(BaseCalendarService):
    """Busy times from Microsoft Graph calendar views, reported in UTC."""

    def __init__(
        self,
        credential: CalendarCredential,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(credential)
        self._http = http_client
        self._timeout = timeout

    @property
    def integration_type(self) -> str:
        return "office365_calendar"

    def _headers(self) -> Dict[str, str]:
        token = (self.credential.key or {}).get("access_token")
        if not token:
            raise ConfigurationError(
                "Office 365 credential has no access token",
                details={"credential_id": self.credential.id},
            )
        return {"Authorization": f"Bearer {token}", "Prefer": 'outlook.timezone="UTC"'}

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    @staticmethod
    def _view_urls(selected_calendars: Sequence[SelectedCalendar]) -> List[str]:
        if not selected_calendars:
            return [f"{GRAPH_BASE_URL}/me/calendar/calendarView"]
        return [
            f"{GRAPH_BASE_URL}/me/calendars/{quote(sc.external_id, safe='')}/calendarView"
            for sc in selected_calendars
        ]

    async def _fetch_view(
        self, client: httpx.AsyncClient, url: str, params: Dict[str, str], headers: Dict[str, str]
    ) -> List[Dict[str, Any]]:
        events: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        next_params: Optional[Dict[str, str]] = params
        while next_url:
            response = await client.get(next_url, params=next_params, headers=headers)
            response.raise_for_status()
            payload = response.json()
            events.extend(payload.get("value", []))
            # nextLink already carries the query string
            next_url = payload.get("@odata.nextLink")
            next_params = None
        return events

    async def get_availability(
        self,
        date_from: str,
        date_to: str,
        selected_calendars: Sequence[SelectedCalendar],
        should_serve_cache: Optional[bool] = None,
    ) -> List[BusyInterval]:
        headers = self._headers()
        params = {
            "startDateTime": date_from,
            "endDateTime": date_to,
            "$select": "start,end,showAs",
            "$top": "500",
        }
        events: List[Dict[str, Any]] = []
        async with self._client() as client:
            for url in self._view_urls(selected_calendars):
                events.extend(await self._fetch_view(client, url, params, headers))

        intervals = [
            BusyInterval(
                start=_graph_instant(event["start"]["dateTime"]),
                end=_graph_instant(event["end"]["dateTime"]),
            )
            for event in events
            if event.get("showAs", "busy") not in _NON_BLOCKING_SHOW_AS
        ]
        logger.debug(
            "Graph calendarView for credential %s: %d events, %d busy",
            self.credential.id, len(events), len(intervals),
        )
        return intervals


def office365_builder(credential: CalendarCredential) -> Office365CalendarService:
    return Office365CalendarService(credential)
