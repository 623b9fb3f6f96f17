"""Civil-timezone clock utilities for whosfree.

All wall-clock derivations happen in one fixed civil timezone. Clock-of-day
values travel through the system as ``HH:MM:SS`` strings and are compared on
a minute-of-day scale in ``[0, 1440)``.
"""

from __future__ import annotations

import datetime
import logging
import math
import os
import re
import zoneinfo
from dataclasses import dataclass
from typing import Final

logger = logging.getLogger(__name__)

CIVIL_TIMEZONE: Final = "America/Chicago"
CIVIL_TZ: Final = zoneinfo.ZoneInfo(CIVIL_TIMEZONE)

# Business week on the 1-based Monday-origin scale (Mon=1 .. Sun=7)
WEEKDAY_MIN: Final = 1
WEEKDAY_MAX: Final = 5

MINUTES_PER_DAY: Final = 24 * 60

_CLOCK_PARAM_RE: Final = re.compile(r"([01]?[0-9]|2[0-3]):([0-5][0-9])(?::([0-5][0-9]))?")


@dataclass(frozen=True)
class ParsedClock:
    """A validated caller-supplied time of day."""

    minutes: float
    label: str


def to_civil(instant: datetime.datetime) -> datetime.datetime:
    """Convert an instant to the civil timezone.

    Naive datetimes are floating wall-clock values and are taken to already be
    civil time.
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=CIVIL_TZ)
    return instant.astimezone(CIVIL_TZ)


def weekday_of(instant: datetime.datetime) -> int:
    """Return the civil weekday of an instant (Mon=1 .. Sun=7).

    The conversion goes through zoneinfo so DST transitions are honoured.
    """
    return to_civil(instant).isoweekday()


def clock_of(instant: datetime.datetime) -> str:
    """Return the civil wall-clock time of an instant as ``HH:MM:00``."""
    local = to_civil(instant)
    return f"{local.hour:02d}:{local.minute:02d}:00"


def _safe_number(raw: str | None) -> float:
    """Parse one clock component; anything unusable counts as zero."""
    if raw is None:
        return 0.0
    text = raw.strip()
    if not text:
        return 0.0
    try:
        value = float(text)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def time_to_minutes(time_value: str) -> float:
    """Convert ``HH:MM[:SS]`` to minutes since midnight.

    Never fails: malformed or missing components count as zero.

    Examples:
        >>> time_to_minutes("13:30:00")
        810.0
        >>> time_to_minutes("09:00:30")
        540.5
    """
    parts = str(time_value).split(":")
    hours = _safe_number(parts[0] if len(parts) > 0 else None)
    minutes = _safe_number(parts[1] if len(parts) > 1 else None)
    seconds = _safe_number(parts[2] if len(parts) > 2 else None)
    return hours * 60 + minutes + seconds / 60


def format_display_time(time_value: str) -> str:
    """Format ``HH:MM[:SS]`` as a 12-hour label such as ``1:00pm``.

    Midnight renders as ``12:00am`` and noon as ``12:00pm``.
    """
    parts = str(time_value).split(":")
    hours = int(_safe_number(parts[0] if len(parts) > 0 else None))
    minutes = int(_safe_number(parts[1] if len(parts) > 1 else None))
    period = "pm" if hours >= 12 else "am"
    display_hours = ((hours + 11) % 12) + 1
    return f"{display_hours}:{minutes:02d}{period}"


def parse_clock_param(time_value: str | None) -> ParsedClock | None:
    """Validate a caller-supplied time of day.

    Accepts ``H:MM``, ``HH:MM`` or ``HH:MM:SS`` with hour 0-23, minute 0-59 and
    optional seconds 0-59.

    Returns:
        ParsedClock with minute offset and display label, or None when the
        value is absent or malformed.
    """
    if not time_value:
        return None

    match = _CLOCK_PARAM_RE.fullmatch(time_value)
    if match is None:
        return None

    hours, minutes, seconds = match.group(1), match.group(2), match.group(3) or "00"
    normalized = f"{hours}:{minutes}:{seconds}"
    return ParsedClock(
        minutes=time_to_minutes(normalized),
        label=format_display_time(normalized),
    )


def civil_weekday_and_minutes(instant: datetime.datetime) -> tuple[int, int]:
    """Return the civil weekday (Mon=1) and whole minute-of-day of an instant."""
    local = to_civil(instant)
    return local.isoweekday(), local.hour * 60 + local.minute


def is_business_day(weekday: int) -> bool:
    return WEEKDAY_MIN <= weekday <= WEEKDAY_MAX


class TimeProvider:
    """Provides current time with test time override support."""

    env_var = "WHOSFREE_TEST_TIME"

    def now_utc(self) -> datetime.datetime:
        """Return current UTC time with tzinfo.

        Can be overridden for testing via the WHOSFREE_TEST_TIME environment
        variable. Format: ISO 8601 datetime string
        (e.g., "2025-10-27T08:20:00-05:00"). Naive values are read as civil
        time.

        Returns:
            Current time in UTC with timezone info
        """
        test_time = os.environ.get(self.env_var)
        if test_time:
            try:
                from dateutil import parser as date_parser

                dt = date_parser.isoparse(test_time)
                return to_civil(dt).astimezone(datetime.timezone.utc)
            except (ValueError, OverflowError) as e:
                logger.warning("Failed to parse %s=%r: %s", self.env_var, test_time, e)

        return datetime.datetime.now(datetime.timezone.utc)


_time_provider = TimeProvider()


def now_utc() -> datetime.datetime:
    """Get current UTC time (convenience function)."""
    return _time_provider.now_utc()
