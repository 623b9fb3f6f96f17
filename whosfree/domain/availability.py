"""Free/busy/unknown classification of group members.

Works purely on values handed in by the caller: merged intervals for the
queried weekday, the set of users who have uploaded a calendar, and the
reference minute.
"""

from __future__ import annotations

import datetime
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

from whosfree.core.timezone_utils import (
    ParsedClock,
    civil_weekday_and_minutes,
    format_display_time,
)
from whosfree.domain.models import (
    AvailabilityReport,
    BusyMember,
    FreeMember,
    GroupMember,
    Interval,
    UnknownMember,
)


@dataclass(frozen=True)
class ReferenceTime:
    """The weekday and minute a group query is evaluated at."""

    weekday: int
    minutes: float
    checked_time: Optional[str]


def select_reference_time(
    now: datetime.datetime,
    parsed_time: Optional[ParsedClock] = None,
) -> ReferenceTime:
    """Pick the reference minute: the caller's time if given, else now.

    The weekday always comes from ``now``; a supplied time only replaces the
    minute of the day.
    """
    weekday, now_minutes = civil_weekday_and_minutes(now)
    if parsed_time is not None:
        return ReferenceTime(weekday, parsed_time.minutes, parsed_time.label)
    return ReferenceTime(weekday, now_minutes, None)


def _scan_intervals(
    intervals: Iterable[Interval],
    reference_minutes: float,
) -> tuple[Optional[Interval], Optional[Interval]]:
    """Return (interval containing the reference, first interval after it)."""
    containing: Optional[Interval] = None
    upcoming: Optional[Interval] = None

    for interval in intervals:
        if interval.start_minutes > reference_minutes:
            if upcoming is None or interval.start_minutes < upcoming.start_minutes:
                upcoming = interval
        if interval.contains(reference_minutes):
            if containing is None or interval.end_minutes > containing.end_minutes:
                containing = interval

    return containing, upcoming


def classify_members(
    members: Iterable[GroupMember],
    merged_by_user: Mapping[str, list[Interval]],
    uploaded_user_ids: Collection[str],
    reference_minutes: float,
    checked_time: Optional[str] = None,
) -> AvailabilityReport:
    """Sort members into free, busy and unknown at the reference minute.

    Members without an uploaded calendar are unknown no matter what blocks
    exist for them. A busy member is reported with the end of the interval
    they are in; a free member with the start of their next interval today,
    or no label when nothing else is scheduled.
    """
    report = AvailabilityReport(checked_time=checked_time)

    for member in members:
        name = member.resolved_name

        if member.user_id not in uploaded_user_ids:
            report.unknown.append(UnknownMember(user_id=member.user_id, display_name=name))
            continue

        containing, upcoming = _scan_intervals(
            merged_by_user.get(member.user_id, ()), reference_minutes
        )

        if containing is not None:
            report.busy.append(
                BusyMember(
                    user_id=member.user_id,
                    display_name=name,
                    busy_until=format_display_time(containing.end_time),
                )
            )
            continue

        report.free.append(
            FreeMember(
                user_id=member.user_id,
                display_name=name,
                free_until=format_display_time(upcoming.start_time) if upcoming else None,
            )
        )

    return report
