"""
Root of the slotwise error family.

Callers catch SlotwiseError at one seam and read ``code`` (stable slug) and
``http_status`` (suggested status for a wrapping API) instead of matching on
classes. ``details`` carries ids only: credential ids, slot instants, event
type ids. Never put credential secrets in it.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional


class SlotwiseError(Exception):
    """
    Attributes:
        message: Human-readable description.
        code: Slug; the class ``default_code`` unless overridden per instance.
        http_status: Suggested HTTP status; the class ``default_http_status`` by default.
        details: Extra context (ids, ranges).
        cause: The lower-level exception this one wraps, if any.
    """

    default_code: str = "SLOTWISE_ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_http_status
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    def with_details(self, **extra: Any) -> "SlotwiseError":
        """Add context keys that are not already set; returns self for chaining."""
        for key, value in extra.items():
            self.details.setdefault(key, value)
        return self

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, http_status={self.http_status})"

    def to_dict(self, *, include_traceback: bool = True) -> dict[str, Any]:
        """JSON-safe form for log records and error responses."""
        out: dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "http_status": self.http_status,
        }
        if self.details:
            out["details"] = self.details
        if self.cause is not None:
            out["cause"] = f"{type(self.cause).__name__}: {self.cause}"
            if include_traceback:
                out["cause_traceback"] = traceback.format_exception(
                    type(self.cause), self.cause, self.cause.__traceback__
                )
        return out
