"""
Calendar provider registry: map integration type -> build a calendar service from a credential.

Register your provider, then resolve stored credentials through the registry.
"""
from __future__ import annotations

from typing import Awaitable, Callable, Dict, List, Union

from slotwise.clients.calendar.base import BaseCalendarService
from slotwise.scheduling.types import CalendarCredential

CalendarBuilder = Callable[
    [CalendarCredential], Union[BaseCalendarService, Awaitable[BaseCalendarService]]
]


class CalendarRegistry:
    """Maps integration type to a builder taking a credential and returning a calendar service.

    Builders may be plain callables or coroutine functions (e.g. when they refresh tokens).
    """

    def __init__(self) -> None:
        self._builders: Dict[str, CalendarBuilder] = {}

    def register(self, integration_type: str, builder: CalendarBuilder) -> None:
        self._builders[integration_type] = builder

    def get(self, integration_type: str) -> CalendarBuilder | None:
        return self._builders.get(integration_type)

    def build(self, integration_type: str, credential: CalendarCredential):
        """Invoke the builder for this type. Raises KeyError if the type is unknown."""
        builder = self._builders.get(integration_type)
        if builder is None:
            raise KeyError(
                f"Unknown calendar integration: {integration_type!r}. Registered: {list(self._builders)}"
            )
        return builder(credential)

    @property
    def integration_types(self) -> List[str]:
        return sorted(self._builders)


# Default registry with the built-in providers pre-registered.
default_registry = CalendarRegistry()

from slotwise.clients.calendar.providers.google import google_builder  # noqa: E402
from slotwise.clients.calendar.providers.office365 import office365_builder  # noqa: E402

default_registry.register("google_calendar", google_builder)
default_registry.register("office365_calendar", office365_builder)
