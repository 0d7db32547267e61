"""Tests for the SlotwiseError family."""
import pytest

from slotwise.core.exceptions import (
    ConflictError,
    CredentialResolutionError,
    ExternalServiceError,
    InvalidScheduleError,
    ReservationConflictError,
    SlotwiseError,
    UpstreamFetchError,
    ValidationError,
)


@pytest.mark.parametrize(
    "cls, parent, status",
    [
        (InvalidScheduleError, ValidationError, 400),
        (ReservationConflictError, ConflictError, 409),
        (UpstreamFetchError, ExternalServiceError, 502),
        (CredentialResolutionError, SlotwiseError, None),
    ],
)
def test_hierarchy_and_status(cls, parent, status):
    err = cls("boom")
    assert isinstance(err, parent)
    if status is not None:
        assert err.http_status == status


def test_to_dict_includes_details_and_cause():
    cause = RuntimeError("socket closed")
    err = UpstreamFetchError("fetch failed", details={"credential_id": 3}, cause=cause)
    out = err.to_dict()
    assert out["message"] == "fetch failed"
    assert out["details"] == {"credential_id": 3}
    assert out["error"] == "UpstreamFetchError"
    assert out["cause"] == "RuntimeError: socket closed"
    assert "cause_traceback" in out
    assert "cause_traceback" not in err.to_dict(include_traceback=False)


def test_with_details_keeps_existing_keys():
    err = UpstreamFetchError("fetch failed", details={"credential_id": 3})
    err.with_details(credential_id=9, type="google_calendar")
    assert err.details == {"credential_id": 3, "type": "google_calendar"}


def test_code_override():
    err = ValidationError("bad", code="RANGE_TOO_LONG", http_status=422)
    assert (err.code, err.http_status) == ("RANGE_TOO_LONG", 422)
    assert str(err) == "bad"
    assert "RANGE_TOO_LONG" in repr(err)
