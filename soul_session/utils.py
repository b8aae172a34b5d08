"""Small environment and value coercion helpers shared by config and engines."""
from __future__ import annotations

import os
from typing import Callable, Optional, TypeVar

Number = TypeVar("Number", int, float)


def parse_number_env(
    name: str,
    default: Number,
    *,
    cast: Callable[[str], Number] = int,
    min_value: Optional[Number] = None,
    max_value: Optional[Number] = None,
) -> Number:
    """Read a numeric env var; unparsable values fall back to default, then bounds apply."""
    raw = os.getenv(name)
    try:
        value = default if raw is None else cast(raw.strip())
    except ValueError:
        value = default
    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value
    return value


def parse_flag_env(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def clamp_volume(level) -> int:
    """Coerce a volume level into the 0..100 range."""
    try:
        value = int(round(float(level)))
    except (TypeError, ValueError):
        value = 0
    return max(0, min(100, value))
