"""iCalendar reader for whosfree.

Turns feed text into ``RawCalendarEvent`` records using the icalendar library.
No filtering happens here beyond dropping series overrides; deciding which
events become busy blocks is the normalizer's job.
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from dateutil.rrule import weekday as rrule_weekday
from icalendar import Calendar

from whosfree.calendar.models import RawCalendarEvent, RecurrenceDescriptor
from whosfree.core.config import DEFAULT_MAX_ICS_BYTES
from whosfree.core.timezone_utils import CIVIL_TZ
from whosfree.exceptions import ICSContentTooLargeError, ICSParseError

logger = logging.getLogger(__name__)

_BYDAY_RE = re.compile(r"([+-]?\d{1,2})?(MO|TU|WE|TH|FR|SA|SU)")
_BYDAY_INDEX = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}


def _as_datetime(value: Any) -> Optional[datetime]:
    """Promote a DTSTART/DTEND value to datetime; dates become civil midnight."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=CIVIL_TZ)
    return None


def _first(prop: Any) -> Any:
    # Repeated properties (two RRULEs, say) come back as a list
    if isinstance(prop, list):
        return prop[0] if prop else None
    return prop


def _parse_byday_token(token: str) -> Optional[rrule_weekday]:
    match = _BYDAY_RE.fullmatch(str(token).strip().upper())
    if match is None:
        return None
    ordinal = int(match.group(1)) if match.group(1) else None
    return rrule_weekday(_BYDAY_INDEX[match.group(2)], ordinal or None)


def _parse_recurrence(rrule_prop: Any) -> Optional[RecurrenceDescriptor]:
    """Build a RecurrenceDescriptor from an icalendar vRecur property."""
    rrule_prop = _first(rrule_prop)
    if rrule_prop is None:
        return None

    freq_values = rrule_prop.get("FREQ") or []
    freq = str(_first(freq_values)) if freq_values else None

    byday = rrule_prop.get("BYDAY")
    if byday is None:
        return RecurrenceDescriptor(byweekday=None, freq=freq)

    tokens = byday if isinstance(byday, (list, tuple)) else [byday]
    parsed = [wd for wd in (_parse_byday_token(t) for t in tokens) if wd is not None]
    if not parsed:
        return RecurrenceDescriptor(byweekday=None, freq=freq)

    # Engines report a lone BYDAY as a scalar object rather than a list
    byweekday: Any = parsed[0] if len(parsed) == 1 else parsed
    return RecurrenceDescriptor(byweekday=byweekday, freq=freq)


def _component_to_raw_event(component: Any) -> Optional[RawCalendarEvent]:
    """Convert one icalendar component; None for series overrides."""
    if component.get("RECURRENCE-ID") is not None:
        logger.debug("Skipping recurrence override for %s", component.get("UID"))
        return None

    dtstart = component.get("DTSTART")
    start_value = getattr(dtstart, "dt", None)
    is_date_only = isinstance(start_value, date) and not isinstance(start_value, datetime)
    start = _as_datetime(start_value)

    end: Optional[datetime] = None
    dtend = component.get("DTEND")
    if dtend is not None:
        end = _as_datetime(getattr(dtend, "dt", None))
    elif start is not None:
        duration = getattr(component.get("DURATION"), "dt", None)
        if isinstance(duration, timedelta):
            end = start + duration

    uid = component.get("UID")
    summary = component.get("SUMMARY")
    return RawCalendarEvent(
        type=str(component.name or "").upper(),
        start=start,
        end=end,
        datetype="date" if is_date_only else "date-time",
        rrule=_parse_recurrence(component.get("RRULE")),
        uid=str(uid) if uid is not None else None,
        summary=str(summary) if summary is not None else None,
    )


def validate_ics_size(ics_content: str, max_bytes: int = DEFAULT_MAX_ICS_BYTES) -> None:
    """Raise ICSContentTooLargeError when content exceeds max_bytes."""
    size_bytes = len(ics_content.encode("utf-8"))
    if size_bytes > max_bytes:
        logger.error("ICS content too large: %s bytes exceeds %s limit", size_bytes, max_bytes)
        raise ICSContentTooLargeError(
            f"ICS content too large: {size_bytes} bytes exceeds {max_bytes} limit"
        )


def fetch_raw_calendar_events(
    ics_content: str,
    max_bytes: int = DEFAULT_MAX_ICS_BYTES,
) -> list[RawCalendarEvent]:
    """Parse feed text into raw event records.

    Every component of the calendar is returned (VEVENT, VTODO, VTIMEZONE,
    ...) tagged with its type. Components that cannot be read are logged and
    skipped.

    Raises:
        ICSContentTooLargeError: If the content exceeds max_bytes
        ICSParseError: If the content is empty or not an iCalendar document
    """
    if not ics_content or not ics_content.strip():
        raise ICSParseError("Empty ICS content")

    validate_ics_size(ics_content, max_bytes)

    try:
        calendar = Calendar.from_ical(ics_content)
    except Exception as e:
        raise ICSParseError(f"Invalid ICS content: {e}") from e

    events: list[RawCalendarEvent] = []
    for component in calendar.walk():
        try:
            raw = _component_to_raw_event(component)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Failed to read %s component: %s", component.name, e)
            continue
        if raw is not None:
            events.append(raw)

    logger.debug("Read %d components from ICS content", len(events))
    return events
