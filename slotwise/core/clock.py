"""Time source for expiry and notice checks. Pass a fixed clock in tests."""
from __future__ import annotations

import datetime as _dt
from typing import Callable

Clock = Callable[[], _dt.datetime]


def utc_now() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def fixed_clock(instant: _dt.datetime) -> Clock:
    """Clock frozen at *instant* (must be timezone-aware)."""
    if instant.tzinfo is None:
        raise ValueError("fixed_clock needs a timezone-aware datetime")
    return lambda: instant
