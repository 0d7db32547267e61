"""
Calendar clients: capability interface, busy-time cache, provider registry.

Provider registration: default_registry.register(integration_type, builder).
Aggregation over many credentials: slotwise.scheduling.busy_times.
"""
from slotwise.clients.calendar.base import BaseCalendarService
from slotwise.clients.calendar.cache import BusyTimesCache
from slotwise.clients.calendar.registry import CalendarRegistry, default_registry

__all__ = [
    "BaseCalendarService",
    "BusyTimesCache",
    "CalendarRegistry",
    "default_registry",
]
