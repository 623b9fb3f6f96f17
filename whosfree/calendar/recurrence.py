"""Weekday resolution for raw calendar events.

Recurrence engines report BYDAY on a 0-based Monday-origin scale; the rest of
whosfree uses 1-based Monday-origin weekdays (Mon=1 .. Sun=7). This module is
the only place the two meet.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from whosfree.calendar.models import RawCalendarEvent
from whosfree.core.timezone_utils import weekday_of

logger = logging.getLogger(__name__)


def coerce_to_list(value: Any) -> list[Any]:
    """Wrap a scalar or single object in a list; pass lists and tuples through."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _weekday_code(entry: Any) -> Optional[int]:
    """Extract the 0-based weekday code from an int or weekday-bearing object."""
    # bool is an int subclass but never a weekday
    if isinstance(entry, bool):
        return None
    if isinstance(entry, int):
        return entry
    if isinstance(entry, dict):
        code = entry.get("weekday")
    else:
        code = getattr(entry, "weekday", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


def recurrence_weekdays(event: RawCalendarEvent) -> set[int]:
    """Return the 1-based weekdays named by the event's recurrence rule, if any."""
    if event.rrule is None:
        return set()

    weekdays: set[int] = set()
    for entry in coerce_to_list(event.rrule.byweekday):
        code = _weekday_code(entry)
        if code is None:
            logger.debug("Ignoring unrecognised BYDAY entry %r on event %s", entry, event.uid)
            continue
        weekdays.add(code + 1)
    return weekdays


def resolve_weekdays(event: RawCalendarEvent) -> set[int]:
    """Determine the weekdays on which an event's time-of-day window applies.

    Recurrence weekdays win when present; otherwise the event counts on the
    civil weekday its start instant falls on. An event with neither resolves
    to the empty set and contributes no busy blocks.
    """
    weekdays = recurrence_weekdays(event)
    if weekdays:
        return weekdays

    if event.start is not None:
        return {weekday_of(event.start)}

    return set()
