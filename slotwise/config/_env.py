"""Shared env parsing and validators for config dataclasses."""
from __future__ import annotations

import os
from typing import Any, Mapping

_TRUTHY = ("1", "true", "yes")


def env_int(overrides: Mapping[str, Any], attr: str, var: str, default: int) -> int:
    value = overrides.get(attr)
    if value is not None:
        return int(value)
    return int(os.environ.get(var, default))


def env_bool(overrides: Mapping[str, Any], attr: str, var: str, default: bool) -> bool:
    value = overrides.get(attr)
    if value is not None:
        return str(value).lower() in _TRUTHY if isinstance(value, str) else bool(value)
    raw = os.environ.get(var, "").strip().lower()
    return raw in _TRUTHY if raw else default


def env_str(overrides: Mapping[str, Any], attr: str, var: str, default: str) -> str:
    value = overrides.get(attr)
    if value is not None:
        return str(value).strip()
    return os.environ.get(var, default).strip()


def require_int(value: int, name: str, min_val: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < min_val:
        raise ValueError(f"{name} must be an integer >= {min_val}, got {value!r}")
    return value
