"""Coalescing of busy blocks into disjoint per-user intervals."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Protocol

from whosfree.core.timezone_utils import time_to_minutes
from whosfree.domain.models import Interval

logger = logging.getLogger(__name__)


class BusyBlockRow(Protocol):
    """Anything carrying a user id and a civil start/end clock time."""

    user_id: str
    start_time: str
    end_time: str


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge one user's intervals into a sorted, disjoint, non-adjacent list.

    Back-to-back windows (10:00-13:00 and 13:00-15:00) join into one, since
    walking straight from one commitment to the next leaves no free gap.
    """
    ordered = sorted(intervals, key=lambda i: (i.start_minutes, i.end_minutes))

    merged: list[Interval] = []
    for interval in ordered:
        if merged and interval.start_minutes <= merged[-1].end_minutes:
            last = merged[-1]
            if interval.end_minutes > last.end_minutes:
                last.end_minutes = interval.end_minutes
                last.end_time = interval.end_time
            continue
        merged.append(
            Interval(
                start_minutes=interval.start_minutes,
                end_minutes=interval.end_minutes,
                start_time=interval.start_time,
                end_time=interval.end_time,
            )
        )
    return merged


def merge_busy_intervals(blocks: Iterable[BusyBlockRow]) -> dict[str, list[Interval]]:
    """Group blocks by user and merge each user's windows.

    Blocks whose end is not after their start are discarded, as are blocks
    whose clock strings convert to a non-finite value.

    Returns:
        Mapping of user id to merged intervals; users whose every block was
        discarded do not appear.
    """
    grouped: dict[str, list[Interval]] = {}
    discarded = 0

    for block in blocks:
        start_minutes = time_to_minutes(block.start_time)
        end_minutes = time_to_minutes(block.end_time)

        if not (math.isfinite(start_minutes) and math.isfinite(end_minutes)):
            discarded += 1
            continue
        if end_minutes <= start_minutes:
            discarded += 1
            continue

        grouped.setdefault(block.user_id, []).append(
            Interval(
                start_minutes=start_minutes,
                end_minutes=end_minutes,
                start_time=block.start_time,
                end_time=block.end_time,
            )
        )

    if discarded:
        logger.debug("Discarded %d busy blocks with empty or inverted windows", discarded)

    return {user_id: merge_intervals(intervals) for user_id, intervals in grouped.items()}
