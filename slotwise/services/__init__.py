"""Service layer: busy times, availability and reservation services."""
from slotwise.services.availability_service import AvailabilityService
from slotwise.services.busy_times_service import BusyTimesService
from slotwise.services.reservation_service import ReservationService

__all__ = [
    "AvailabilityService",
    "BusyTimesService",
    "ReservationService",
]
