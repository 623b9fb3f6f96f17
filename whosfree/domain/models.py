"""Availability data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field


@dataclass
class Interval:
    """A merged busy window for one user on one weekday.

    Minutes are on the minute-of-day scale; the clock strings keep the
    original ``HH:MM:SS`` text for display.
    """

    start_minutes: float
    end_minutes: float
    start_time: str
    end_time: str

    def contains(self, minutes: float) -> bool:
        return self.start_minutes <= minutes < self.end_minutes


class GroupMember(BaseModel):
    """A group member joined with their profile."""

    user_id: str
    display_name: Optional[str] = None

    @property
    def resolved_name(self) -> str:
        """Trimmed profile name, or the user id when the name is blank."""
        name = (self.display_name or "").strip()
        return name or self.user_id


class UnknownMember(BaseModel):
    user_id: str
    display_name: str


class BusyMember(BaseModel):
    user_id: str
    display_name: str
    busy_until: str = Field(..., description="12-hour label, e.g. 1:00pm")


class FreeMember(BaseModel):
    user_id: str
    display_name: str
    free_until: Optional[str] = Field(
        default=None, description="Start of the next busy interval today, if any"
    )


class AvailabilityReport(BaseModel):
    """Free/busy/unknown partition of a group at one reference time."""

    free: list[FreeMember] = Field(default_factory=list)
    busy: list[BusyMember] = Field(default_factory=list)
    unknown: list[UnknownMember] = Field(default_factory=list)
    checked_time: Optional[str] = None
