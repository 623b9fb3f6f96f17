"""Calendar normalization: raw events in, weekly busy blocks out.

A block is one (weekday, start_time, end_time) window in the civil timezone.
Recurring events yield one block per recurrence weekday, one-off events a
single block on the weekday they fall on. Only Monday to Friday is modelled.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from whosfree.calendar.ics_reader import fetch_raw_calendar_events
from whosfree.calendar.models import BusyBlockInput, RawCalendarEvent
from whosfree.calendar.recurrence import resolve_weekdays
from whosfree.core.config import DEFAULT_MAX_ICS_BYTES
from whosfree.core.timezone_utils import clock_of, is_business_day

logger = logging.getLogger(__name__)


@dataclass
class NormalizeStats:
    """Counters collected during one normalization pass."""

    events_seen: int = 0
    events_used: int = 0
    blocks_emitted: int = 0
    skipped: dict[str, int] = field(default_factory=dict)

    def skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1


def _skip_reason(event: RawCalendarEvent) -> str | None:
    """Return why an event cannot become busy blocks, or None if it can."""
    if event.type != "VEVENT":
        return "not_vevent"
    if event.start is None or event.end is None:
        return "missing_times"
    if event.is_all_day:
        return "all_day"
    try:
        if event.end <= event.start:
            return "non_positive_duration"
    except TypeError:
        # aware vs naive comparison
        return "incomparable_times"
    return None


def _event_blocks(event: RawCalendarEvent, stats: NormalizeStats) -> list[BusyBlockInput]:
    reason = _skip_reason(event)
    if reason is not None:
        stats.skip(reason)
        return []

    weekdays = resolve_weekdays(event)
    if not weekdays:
        stats.skip("no_weekday")
        return []

    # The same civil window is replicated onto every recurrence weekday
    start_time = clock_of(event.start)
    end_time = clock_of(event.end)
    if end_time <= start_time:
        # Spans civil midnight; blocks never cross it
        stats.skip("crosses_midnight")
        return []

    blocks = [
        BusyBlockInput(weekday=weekday, start_time=start_time, end_time=end_time)
        for weekday in sorted(weekdays)
        if is_business_day(weekday)
    ]
    if not blocks:
        stats.skip("weekend_only")
    return blocks


def normalize_events(
    events: Iterable[RawCalendarEvent],
    stats: NormalizeStats | None = None,
) -> list[BusyBlockInput]:
    """Turn raw events into busy blocks, silently skipping unusable events.

    Never raises on event content: a bad event costs only itself.
    """
    stats = stats if stats is not None else NormalizeStats()
    blocks: list[BusyBlockInput] = []

    for event in events:
        stats.events_seen += 1
        try:
            event_blocks = _event_blocks(event, stats)
        except (ValueError, TypeError, OverflowError) as e:
            logger.debug("Skipping event %s: %s", event.uid, e)
            stats.skip("error")
            continue
        if event_blocks:
            stats.events_used += 1
            blocks.extend(event_blocks)

    stats.blocks_emitted = len(blocks)
    logger.debug(
        "Normalized %d events into %d busy blocks (skipped: %s)",
        stats.events_seen,
        stats.blocks_emitted,
        stats.skipped or "none",
    )
    return blocks


def normalize_ics(ics_content: str, max_bytes: int = DEFAULT_MAX_ICS_BYTES) -> list[BusyBlockInput]:
    """Parse feed text and normalize it into busy blocks.

    Raises:
        ICSParseError: If the text is not an iCalendar document at all
    """
    return normalize_events(fetch_raw_calendar_events(ics_content, max_bytes))
