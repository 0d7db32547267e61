"""
slotwise exception system.

Usage:
    from slotwise.core.exceptions import ReservationConflictError, SlotwiseError

    try:
        await ledger.reserve(event_type_id, start, end, uid)
    except ReservationConflictError as exc:
        return {"error": exc.to_dict()}
"""
from slotwise.core.exceptions.base import SlotwiseError
from slotwise.core.exceptions.errors import (
    ConfigurationError,
    ConflictError,
    CredentialResolutionError,
    ExternalServiceError,
    InvalidScheduleError,
    NotFoundError,
    ReservationConflictError,
    UpstreamFetchError,
    ValidationError,
)

__all__ = [
    "SlotwiseError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    "InvalidScheduleError",
    "CredentialResolutionError",
    "UpstreamFetchError",
    "ReservationConflictError",
]
