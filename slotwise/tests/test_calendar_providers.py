"""Unit tests for calendar providers, the provider registry and the busy-time cache."""
from __future__ import annotations

import asyncio
import datetime as dt
import unittest
from unittest.mock import MagicMock

import httpx

from slotwise.clients.calendar.base import busy_from_mapping, parse_instant
from slotwise.clients.calendar.cache import BusyTimesCache, cache_key
from slotwise.clients.calendar.providers.google import GoogleCalendarService
from slotwise.clients.calendar.providers.office365 import Office365CalendarService
from slotwise.clients.calendar.registry import CalendarRegistry, default_registry
from slotwise.core.exceptions import ConfigurationError, UpstreamFetchError
from slotwise.scheduling.types import BusyInterval, BusyIntervalWithTimeZone, CalendarCredential, SelectedCalendar

UTC = dt.timezone.utc
FROM = "2026-03-02T00:00:00Z"
TO = "2026-03-03T00:00:00Z"


def _run(coro):
    return asyncio.run(coro)


def _google_credential():
    return CalendarCredential(id=1, type="google_calendar", app_id="google-calendar", key={"type": "service_account"})


def _fake_google_api(calendars, time_zone="Europe/Paris"):
    api = MagicMock()
    api.freebusy.return_value.query.return_value.execute.return_value = {"calendars": calendars}
    api.calendars.return_value.get.return_value.execute.return_value = {"timeZone": time_zone}
    return api


class TestParsing(unittest.TestCase):
    def test_z_suffix(self):
        self.assertEqual(parse_instant("2026-03-02T10:00:00Z"), dt.datetime(2026, 3, 2, 10, tzinfo=UTC))

    def test_naive_is_utc(self):
        self.assertEqual(parse_instant("2026-03-02T10:00:00").tzinfo, UTC)

    def test_mapping_with_time_zone(self):
        interval = busy_from_mapping(
            {"start": "2026-03-02T10:00:00Z", "end": "2026-03-02T11:00:00Z"}, time_zone="Asia/Tokyo"
        )
        self.assertIsInstance(interval, BusyIntervalWithTimeZone)
        self.assertEqual(interval.time_zone, "Asia/Tokyo")


class TestGoogleCalendarService(unittest.TestCase):
    def test_freebusy_for_selected_calendars(self):
        api = _fake_google_api({
            "a@example.com": {"busy": [{"start": "2026-03-02T10:00:00Z", "end": "2026-03-02T10:30:00Z"}]},
            "b@example.com": {"busy": [{"start": "2026-03-02T14:00:00Z", "end": "2026-03-02T15:00:00Z"}]},
        })
        service = GoogleCalendarService(_google_credential(), api_factory=lambda key: api)
        selected = [SelectedCalendar("google_calendar", "a@example.com"), SelectedCalendar("google_calendar", "b@example.com")]
        intervals = _run(service.get_availability(FROM, TO, selected))
        self.assertEqual(sorted(i.start.hour for i in intervals), [10, 14])
        body = api.freebusy.return_value.query.call_args.kwargs["body"]
        self.assertEqual(body["items"], [{"id": "a@example.com"}, {"id": "b@example.com"}])
        self.assertEqual(body["timeMin"], FROM)

    def test_no_selection_queries_primary(self):
        api = _fake_google_api({"primary": {"busy": []}})
        service = GoogleCalendarService(_google_credential(), api_factory=lambda key: api)
        self.assertEqual(_run(service.get_availability(FROM, TO, [])), [])
        body = api.freebusy.return_value.query.call_args.kwargs["body"]
        self.assertEqual(body["items"], [{"id": "primary"}])

    def test_calendar_errors_raise_upstream_error(self):
        api = _fake_google_api({"primary": {"errors": [{"domain": "global", "reason": "notFound"}]}})
        service = GoogleCalendarService(_google_credential(), api_factory=lambda key: api)
        with self.assertRaises(UpstreamFetchError) as ctx:
            _run(service.get_availability(FROM, TO, []))
        self.assertEqual(ctx.exception.details["reasons"], ["notFound"])

    def test_cache_served_only_when_asked(self):
        api = _fake_google_api({"primary": {"busy": [{"start": "2026-03-02T09:00:00Z", "end": "2026-03-02T09:30:00Z"}]}})
        factory = MagicMock(return_value=api)
        service = GoogleCalendarService(_google_credential(), api_factory=factory, cache=BusyTimesCache())
        _run(service.get_availability(FROM, TO, []))
        _run(service.get_availability(FROM, TO, [], should_serve_cache=True))
        self.assertEqual(factory.call_count, 1)
        _run(service.get_availability(FROM, TO, []))
        self.assertEqual(factory.call_count, 2)

    def test_with_time_zones_annotates_intervals(self):
        api = _fake_google_api(
            {"a@example.com": {"busy": [{"start": "2026-03-02T10:00:00Z", "end": "2026-03-02T10:30:00Z"}]}},
            time_zone="America/Denver",
        )
        service = GoogleCalendarService(_google_credential(), api_factory=lambda key: api)
        intervals = _run(service.get_availability_with_time_zones(
            FROM, TO, [SelectedCalendar("google_calendar", "a@example.com")]
        ))
        self.assertEqual([i.time_zone for i in intervals], ["America/Denver"])
        api.calendars.return_value.get.assert_called_once_with(calendarId="a@example.com")


class TestOffice365CalendarService(unittest.TestCase):
    def _credential(self, token="token-123"):
        return CalendarCredential(id=2, type="office365_calendar", key={"access_token": token} if token else {})

    def test_pages_are_followed_and_free_events_skipped(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.params.get("$skip") == "1":
                return httpx.Response(200, json={"value": [
                    {"showAs": "busy", "start": {"dateTime": "2026-03-02T15:00:00.0000000"},
                     "end": {"dateTime": "2026-03-02T16:00:00.0000000"}},
                ]})
            return httpx.Response(200, json={
                "value": [
                    {"showAs": "busy", "start": {"dateTime": "2026-03-02T10:00:00.0000000"},
                     "end": {"dateTime": "2026-03-02T10:30:00.0000000"}},
                    {"showAs": "free", "start": {"dateTime": "2026-03-02T12:00:00.0000000"},
                     "end": {"dateTime": "2026-03-02T13:00:00.0000000"}},
                ],
                "@odata.nextLink": "https://graph.microsoft.com/v1.0/me/calendars/cal-1/calendarView?$skip=1",
            })

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                service = Office365CalendarService(self._credential(), http_client=client)
                return await service.get_availability(FROM, TO, [SelectedCalendar("office365_calendar", "cal-1")])

        intervals = _run(scenario())
        self.assertEqual([(i.start.hour, i.end.hour) for i in intervals], [(10, 10), (15, 16)])
        self.assertTrue(all(isinstance(i, BusyInterval) for i in intervals))
        self.assertEqual(len(seen), 2)
        self.assertEqual(seen[0].headers["Authorization"], "Bearer token-123")
        self.assertEqual(seen[0].url.params["startDateTime"], FROM)

    def test_http_error_propagates(self):
        def handler(request):
            return httpx.Response(503, json={"error": {"code": "ServiceUnavailable"}})

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                service = Office365CalendarService(self._credential(), http_client=client)
                await service.get_availability(FROM, TO, [])

        with self.assertRaises(httpx.HTTPStatusError):
            _run(scenario())

    def test_missing_token_is_configuration_error(self):
        service = Office365CalendarService(self._credential(token=None))
        with self.assertRaises(ConfigurationError):
            _run(service.get_availability(FROM, TO, []))


class TestRegistry(unittest.TestCase):
    def test_default_registry_has_builtin_providers(self):
        self.assertEqual(default_registry.integration_types, ["google_calendar", "office365_calendar"])

    def test_build_unknown_type(self):
        with self.assertRaises(KeyError):
            CalendarRegistry().build("exchange_calendar", _google_credential())

    def test_build_uses_registered_builder(self):
        registry = CalendarRegistry()
        sentinel = object()
        registry.register("google_calendar", lambda credential: sentinel)
        self.assertIs(registry.build("google_calendar", _google_credential()), sentinel)
        self.assertIsNotNone(registry.get("google_calendar"))
        self.assertIsNone(registry.get("office365_calendar"))


class TestBusyTimesCache(unittest.TestCase):
    def _interval(self):
        start = dt.datetime(2026, 3, 2, 9, tzinfo=UTC)
        return BusyInterval(start=start, end=start + dt.timedelta(minutes=30))

    def test_key_includes_calendars(self):
        a = cache_key(1, FROM, TO, [SelectedCalendar("google_calendar", "a")])
        b = cache_key(1, FROM, TO, [SelectedCalendar("google_calendar", "b")])
        self.assertNotEqual(a, b)

    def test_put_get_and_lru_eviction(self):
        cache = BusyTimesCache(max_size=2)
        for i in range(3):
            cache.put(cache_key(i, FROM, TO, []), [self._interval()])
        self.assertEqual(cache.size, 2)
        self.assertIsNone(cache.get(cache_key(0, FROM, TO, [])))
        self.assertEqual(len(cache.get(cache_key(2, FROM, TO, []))), 1)

    def test_expired_entry_is_dropped(self):
        cache = BusyTimesCache(ttl_seconds=-1)
        key = cache_key(1, FROM, TO, [])
        cache.put(key, [self._interval()])
        self.assertIsNone(cache.get(key))
        self.assertEqual(cache.size, 0)

    def test_clear(self):
        cache = BusyTimesCache()
        cache.put(cache_key(1, FROM, TO, []), [])
        cache.clear()
        self.assertEqual(cache.size, 0)
