"""
Lease duration parsing.

Durations reach HakuDHCP as human-readable strings ("24 hours", "7 days")
or plain integers. This module is the single place that turns them into
integer seconds; request models, the lease manager and the Kea renderer all
go through it.

Rule: numeric magnitude x unit multiplier, rounded to whole seconds.
Decimal magnitudes ("1.5 hours") are allowed. A bare number is seconds.
Anything unparseable falls back to DEFAULT_DURATION_SECONDS (24 hours).
"""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import BeforeValidator

from kohakudhcp.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DURATION_SECONDS = 86400

UNIT_SECONDS = {
    "s": 1,
    "sec": 1,
    "second": 1,
    "m": 60,
    "min": 60,
    "minute": 60,
    "h": 3600,
    "hr": 3600,
    "hour": 3600,
    "d": 86400,
    "day": 86400,
    "w": 604800,
    "week": 604800,
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")


def parse_duration(
    value: int | str | None, default: int = DEFAULT_DURATION_SECONDS
) -> int:
    """
    Convert a duration to seconds.

    Args:
        value: Integer seconds, or text such as "24 hours", "1.5 days", "90m".
        default: Seconds returned when value is unparseable.

    Returns:
        Duration in whole seconds.

    Examples:
        >>> parse_duration("24 hours")
        86400
        >>> parse_duration("7 days")
        604800
        >>> parse_duration("soon")
        86400
    """
    if value is None:
        return default
    if isinstance(value, bool):
        logger.warning(f"Unparseable duration {value!r}, using {default}s")
        return default
    if isinstance(value, int):
        return value

    match = _DURATION_RE.match(str(value))
    if not match:
        logger.warning(f"Unparseable duration {value!r}, using {default}s")
        return default

    magnitude = float(match.group(1))
    unit = match.group(2).lower()
    if not unit:
        return round(magnitude)

    multiplier = UNIT_SECONDS.get(unit)
    if multiplier is None and unit.endswith("s"):
        multiplier = UNIT_SECONDS.get(unit[:-1])
    if multiplier is None:
        logger.warning(f"Unknown duration unit in {value!r}, using {default}s")
        return default

    return round(magnitude * multiplier)


def format_duration(seconds: int) -> str:
    """
    Render seconds in the largest whole unit.

    >>> format_duration(604800)
    '7 days'
    >>> format_duration(5400)
    '90 minutes'
    """
    for name, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size and seconds % size == 0:
            count = seconds // size
            return f"{count} {name}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


def _coerce_duration(value):
    if value is None:
        return None
    return parse_duration(value)


# Request-model field type: accepts "24 hours" or 86400, stores seconds
DurationSeconds = Annotated[int, BeforeValidator(_coerce_duration)]
