"""Calendar feed reading and normalization into weekly busy blocks."""

from whosfree.calendar.ics_reader import fetch_raw_calendar_events
from whosfree.calendar.models import (
    BusyBlock,
    BusyBlockInput,
    RawCalendarEvent,
    RecurrenceDescriptor,
)
from whosfree.calendar.normalizer import normalize_events, normalize_ics
from whosfree.calendar.recurrence import resolve_weekdays

__all__ = [
    "BusyBlock",
    "BusyBlockInput",
    "RawCalendarEvent",
    "RecurrenceDescriptor",
    "fetch_raw_calendar_events",
    "normalize_events",
    "normalize_ics",
    "resolve_weekdays",
]
