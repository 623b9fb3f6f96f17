"""Request-level orchestration around the availability engine.

The service performs the storage reads a group query needs, then hands the
results to the pure merge and classify steps.
"""

from __future__ import annotations

import datetime
import logging
from typing import Callable, Optional

import aiosqlite

from whosfree.calendar.models import BusyBlock, BusyBlockInput
from whosfree.calendar.normalizer import normalize_ics
from whosfree.core.config import DEFAULT_MAX_ICS_BYTES
from whosfree.core.timezone_utils import is_business_day, now_utc, parse_clock_param
from whosfree.domain.availability import classify_members, select_reference_time
from whosfree.domain.interval_merger import merge_busy_intervals
from whosfree.domain.models import AvailabilityReport
from whosfree.exceptions import DataAccessError, GroupAccessError, TimeParameterError
from whosfree.storage.database import BusyBlockStore

logger = logging.getLogger(__name__)

TimeSource = Callable[[], datetime.datetime]


class AvailabilityService:
    """Answers "who in this group is free right now" and accepts calendar uploads."""

    def __init__(
        self,
        store: BusyBlockStore,
        time_provider: TimeSource = now_utc,
        max_ics_bytes: int = DEFAULT_MAX_ICS_BYTES,
    ):
        self.store = store
        self.time_provider = time_provider
        self.max_ics_bytes = max_ics_bytes

    async def check_group_availability(
        self,
        group_id: str,
        requester_id: str,
        time_param: Optional[str] = None,
    ) -> AvailabilityReport:
        """Classify every member of a group as free, busy or unknown.

        Args:
            group_id: Group to report on
            requester_id: Authenticated user asking; must belong to the group
            time_param: Optional H:MM, HH:MM or HH:MM:SS; absent means now

        Raises:
            TimeParameterError: If time_param is present but malformed
            GroupAccessError: If the requester is not a group member
            DataAccessError: If any storage read fails
        """
        parsed_time = parse_clock_param(time_param)
        if time_param and parsed_time is None:
            raise TimeParameterError("Invalid time format. Use HH:MM.")
        checked_time = parsed_time.label if parsed_time else None

        try:
            is_member = await self.store.is_group_member(group_id, requester_id)
        except aiosqlite.Error as e:
            logger.exception("Membership lookup failed for group %s", group_id)
            raise DataAccessError("Failed to validate membership") from e
        if not is_member:
            raise GroupAccessError(f"User {requester_id} is not a member of group {group_id}")

        try:
            members = await self.store.fetch_group_members(group_id)
        except aiosqlite.Error as e:
            logger.exception("Member lookup failed for group %s", group_id)
            raise DataAccessError("Failed to load group members") from e

        if not members:
            return AvailabilityReport(checked_time=checked_time)

        user_ids = [member.user_id for member in members]

        try:
            uploaded = await self.store.fetch_uploaded_user_ids(user_ids)
        except aiosqlite.Error as e:
            logger.exception("Upload status lookup failed for group %s", group_id)
            raise DataAccessError("Failed to load calendar status") from e

        reference = select_reference_time(self.time_provider(), parsed_time)

        blocks: list[BusyBlock] = []
        if is_business_day(reference.weekday):
            try:
                blocks = await self.store.fetch_busy_blocks(reference.weekday, user_ids)
            except aiosqlite.Error as e:
                logger.exception("Busy block lookup failed for group %s", group_id)
                raise DataAccessError("Failed to load busy blocks") from e
        else:
            logger.debug("Weekday %d is outside the business week; no blocks fetched", reference.weekday)

        merged = merge_busy_intervals(blocks)
        report = classify_members(
            members, merged, uploaded, reference.minutes, checked_time=checked_time
        )
        logger.debug(
            "Group %s at weekday %d minute %.0f: %d free, %d busy, %d unknown",
            group_id,
            reference.weekday,
            reference.minutes,
            len(report.free),
            len(report.busy),
            len(report.unknown),
        )
        return report

    async def upload_calendar(self, user_id: str, ics_content: str) -> list[BusyBlockInput]:
        """Normalize a feed and replace the user's stored busy blocks with it.

        Raises:
            ICSParseError: If the content is not an iCalendar document
            DataAccessError: If the write fails
        """
        blocks = normalize_ics(ics_content, self.max_ics_bytes)
        try:
            await self.store.replace_busy_blocks(user_id, blocks)
        except aiosqlite.Error as e:
            logger.exception("Failed to store busy blocks for user %s", user_id)
            raise DataAccessError("Failed to save busy blocks") from e
        return blocks

    async def remove_calendar(self, user_id: str) -> bool:
        """Forget a user's calendar; they become unknown to every group."""
        try:
            return await self.store.delete_calendar(user_id)
        except aiosqlite.Error as e:
            logger.exception("Failed to remove calendar for user %s", user_id)
            raise DataAccessError("Failed to remove calendar") from e
