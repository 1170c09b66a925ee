"""Conversions between seconds, hours and days."""

from __future__ import annotations

from .consts import SECONDS_PER_DAY, SECONDS_PER_HOUR
from .fraction import Fraction

_U64_MAX = (1 << 64) - 1


def _checked_u64(value: int) -> int:
    if value < 0 or value > _U64_MAX:
        raise OverflowError("result does not fit in an unsigned 64-bit integer")
    return value


def to_days_fractional(secs: int) -> Fraction:
    """Number of days in a duration given in seconds."""
    return Fraction.from_num(secs) / SECONDS_PER_DAY


def from_days(days: int) -> int:
    """Number of seconds in the given number of days."""
    return _checked_u64(_checked_u64(days) * SECONDS_PER_DAY)


def from_hours(hours: int) -> int:
    """Number of seconds in the given number of hours."""
    return _checked_u64(_checked_u64(hours) * SECONDS_PER_HOUR)