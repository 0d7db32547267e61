"""
Built-in exception types for the availability core.
"""
from __future__ import annotations

from slotwise.core.exceptions.base import SlotwiseError


class ConfigurationError(SlotwiseError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(SlotwiseError):
    """Caller input failed validation (ranges, durations, ids)."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(SlotwiseError):
    """Requested schedule, credential or reservation not found."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class ConflictError(SlotwiseError):
    """Resource state conflict (e.g. duplicate, version mismatch)."""

    default_code = "CONFLICT"
    default_http_status = 409


class ExternalServiceError(SlotwiseError):
    """External calendar service failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502


class InvalidScheduleError(ValidationError):
    """A weekly schedule or date override cannot produce well-defined windows."""

    default_code = "INVALID_SCHEDULE"
    default_http_status = 400


class CredentialResolutionError(SlotwiseError):
    """No calendar service could be built for a stored credential."""

    default_code = "CREDENTIAL_RESOLUTION_ERROR"
    default_http_status = 500


class UpstreamFetchError(ExternalServiceError):
    """A calendar provider errored or timed out while fetching busy times."""

    default_code = "UPSTREAM_FETCH_ERROR"
    default_http_status = 502


class ReservationConflictError(ConflictError):
    """The slot is held by another booker; pick another slot."""

    default_code = "SLOT_NO_LONGER_AVAILABLE"
    default_http_status = 409
