"""Human duration literals used in flow documents.

Accepted forms: ``500ms``, ``3s``, ``2m``, ``1h``, ``1d``, combinations such
as ``1h 30m``, decimals (``1.5s``) and bare numbers, which are seconds.
"""

from __future__ import annotations

import math
import re
import threading

_UNIT_SECONDS: dict[str, float] = {
    "ms": 0.001,
    "msec": 0.001,
    "msecs": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": 1.0,
    "sec": 1.0,
    "secs": 1.0,
    "second": 1.0,
    "seconds": 1.0,
    "m": 60.0,
    "min": 60.0,
    "mins": 60.0,
    "minute": 60.0,
    "minutes": 60.0,
    "h": 3600.0,
    "hr": 3600.0,
    "hrs": 3600.0,
    "hour": 3600.0,
    "hours": 3600.0,
    "d": 86400.0,
    "day": 86400.0,
    "days": 86400.0,
}

_PART = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*")

# Longest sleep, retry interval or trigger interval: one year, and never more
# than a thread wait accepts.
MAX_DURATION_SECONDS = min(threading.TIMEOUT_MAX, 365 * 86400.0)


def _checked(seconds: float, value: object) -> float:
    if not math.isfinite(seconds):
        raise ValueError(f"duration must be finite: {value!r}")
    if seconds < 0:
        raise ValueError(f"duration must be non-negative: {value!r}")
    if seconds > MAX_DURATION_SECONDS:
        raise ValueError(f"duration is too long (max {MAX_DURATION_SECONDS:.0f}s): {value!r}")
    return seconds


def parse_duration(value: str | int | float) -> float:
    """Return the duration in seconds.

    Raises:
        ValueError: If the literal is empty, negative, not finite, longer than
            ``MAX_DURATION_SECONDS`` or uses an unknown unit.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, int | float):
        try:
            seconds = float(value)
        except OverflowError:
            raise ValueError(f"duration is too long: {value!r}") from None
        return _checked(seconds, value)

    if not isinstance(value, str):
        raise TypeError(f"duration must be a string or a number, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        return _checked(seconds, value)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration: {value!r}")
        amount, unit = match.groups()
        factor = _UNIT_SECONDS.get(unit.lower())
        if factor is None:
            raise ValueError(f"unknown duration unit {unit!r} in {value!r}")
        total += float(amount) * factor
        pos = match.end()
    return _checked(total, value)
