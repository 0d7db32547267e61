"""Google Calendar provider: freebusy-backed BaseCalendarService + registry builder.

Supports two credential modes in ``credential.key``:
  1. Service account JSON (type == "service_account"), optionally impersonating
     ``subject`` for organisation-wide (delegated) credentials
  2. OAuth 2.0 user tokens (type == "oauth")
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from slotwise.clients.calendar.base import BaseCalendarService, busy_from_mapping
from slotwise.clients.calendar.cache import BusyTimesCache, cache_key
from slotwise.core.exceptions import UpstreamFetchError
from slotwise.scheduling.types import (
    BusyInterval,
    BusyIntervalWithTimeZone,
    CalendarCredential,
    SelectedCalendar,
)

logger = logging.getLogger(__name__)

_SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
PRIMARY_CALENDAR = "primary"

# Shared by every service the default builder creates.
_default_cache = BusyTimesCache(max_size=1000, ttl_seconds=60)


def _load_key(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, str):
        return json.loads(raw)
    return dict(raw or {})


def build_calendar_api(key: Dict[str, Any]):
    """Build a Google Calendar API resource from a credential key.

    Detects credential type automatically:
      - {"type": "service_account", ...}  → service account flow
      - {"type": "oauth", ...}            → user OAuth token flow
    """
    from googleapiclient.discovery import build

    if key.get("type", "service_account") == "oauth":
        return build("calendar", "v3", credentials=_oauth_credentials(key), cache_discovery=False)

    from google.oauth2.service_account import Credentials

    creds = Credentials.from_service_account_info(key, scopes=_SCOPES)
    if key.get("subject"):
        creds = creds.with_subject(key["subject"])
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


def _oauth_credentials(key: Dict[str, Any]):
    """OAuth user credentials, refreshed if expired."""
    from google.oauth2.credentials import Credentials

    creds = Credentials(
        token=key.get("access_token"),
        refresh_token=key.get("refresh_token"),
        token_uri=key.get("token_uri", "https://oauth2.googleapis.com/token"),
        client_id=key.get("client_id"),
        client_secret=key.get("client_secret"),
        scopes=_SCOPES,
    )
    if creds.expired and creds.refresh_token:
        from google.auth.transport.requests import Request

        creds.refresh(Request())
        logger.info("Google OAuth: token refreshed")
    return creds


class GoogleCalendarService(BaseCalendarService):
    """Google Calendar busy times via the freebusy API."""

    def __init__(
        self,
        credential: CalendarCredential,
        *,
        api_factory: Callable[[Dict[str, Any]], Any] = build_calendar_api,
        cache: Optional[BusyTimesCache] = None,
    ) -> None:
        super().__init__(credential)
        self._key = _load_key(credential.key)
        self._api_factory = api_factory
        self._cache = cache

    @property
    def integration_type(self) -> str:
        return "google_calendar"

    @staticmethod
    def _calendar_ids(selected_calendars: Sequence[SelectedCalendar]) -> List[str]:
        return [sc.external_id for sc in selected_calendars] or [PRIMARY_CALENDAR]

    def _query_freebusy(self, api: Any, date_from: str, date_to: str, calendar_ids: List[str]) -> Dict[str, list]:
        body = {
            "timeMin": date_from,
            "timeMax": date_to,
            "items": [{"id": cal_id} for cal_id in calendar_ids],
        }
        result = api.freebusy().query(body=body).execute()
        calendars = result.get("calendars", {})
        busy: Dict[str, list] = {}
        for cal_id in calendar_ids:
            entry = calendars.get(cal_id, {})
            if entry.get("errors"):
                raise UpstreamFetchError(
                    "Google freebusy returned errors",
                    details={
                        "credential_id": self.credential.id,
                        "reasons": [e.get("reason") for e in entry["errors"]],
                    },
                )
            busy[cal_id] = entry.get("busy", [])
        return busy

    async def get_availability(
        self,
        date_from: str,
        date_to: str,
        selected_calendars: Sequence[SelectedCalendar],
        should_serve_cache: Optional[bool] = None,
    ) -> List[BusyInterval]:
        key = cache_key(self.credential.id, date_from, date_to, selected_calendars)
        if should_serve_cache and self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        calendar_ids = self._calendar_ids(selected_calendars)

        def _sync() -> Dict[str, list]:
            return self._query_freebusy(self._api_factory(self._key), date_from, date_to, calendar_ids)

        busy_by_calendar = await asyncio.get_running_loop().run_in_executor(None, _sync)
        intervals = [busy_from_mapping(item) for items in busy_by_calendar.values() for item in items]
        logger.debug(
            "Google freebusy for credential %s: %d calendars, %d busy ranges",
            self.credential.id, len(calendar_ids), len(intervals),
        )
        if self._cache is not None:
            self._cache.put(key, intervals)
        return intervals

    async def get_availability_with_time_zones(
        self,
        date_from: str,
        date_to: str,
        selected_calendars: Sequence[SelectedCalendar],
    ) -> List[BusyIntervalWithTimeZone]:
        calendar_ids = self._calendar_ids(selected_calendars)

        def _sync() -> List[BusyIntervalWithTimeZone]:
            api = self._api_factory(self._key)
            busy_by_calendar = self._query_freebusy(api, date_from, date_to, calendar_ids)
            out: List[BusyIntervalWithTimeZone] = []
            for cal_id, items in busy_by_calendar.items():
                if not items:
                    continue
                tz = api.calendars().get(calendarId=cal_id).execute().get("timeZone") or "UTC"
                out.extend(busy_from_mapping(item, time_zone=tz) for item in items)
            return out

        return await asyncio.get_running_loop().run_in_executor(None, _sync)


def google_builder(credential: CalendarCredential) -> GoogleCalendarService:
    return GoogleCalendarService(credential, cache=_default_cache)
