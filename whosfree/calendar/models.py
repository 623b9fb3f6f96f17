"""Data models for calendar normalization."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from whosfree.core.timezone_utils import WEEKDAY_MAX, WEEKDAY_MIN

_CLOCK_RE = re.compile(r"([01][0-9]|2[0-3]):[0-5][0-9]:[0-5][0-9]")


@dataclass(frozen=True)
class RecurrenceDescriptor:
    """Weekday portion of an event's RRULE.

    ``byweekday`` mirrors what a recurrence engine reports, so it may be a
    single int (0=Monday), a single object with a ``weekday`` attribute such
    as ``dateutil.rrule.weekday``, a list mixing both, or None.
    """

    byweekday: Any = None
    freq: Optional[str] = None


@dataclass(frozen=True)
class RawCalendarEvent:
    """One component as yielded by the ICS reader, before any filtering."""

    type: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    datetype: str = "date-time"
    rrule: Optional[RecurrenceDescriptor] = None
    uid: Optional[str] = None
    summary: Optional[str] = None

    @property
    def is_all_day(self) -> bool:
        return self.datetype == "date"


class BusyBlockInput(BaseModel):
    """A canonical busy window, before the owning user is attached."""

    model_config = ConfigDict(frozen=True)

    weekday: int = Field(..., ge=WEEKDAY_MIN, le=WEEKDAY_MAX, description="Mon=1 .. Fri=5")
    start_time: str = Field(..., description="Civil clock time HH:MM:SS")
    end_time: str = Field(..., description="Civil clock time HH:MM:SS")

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        if not _CLOCK_RE.fullmatch(value):
            raise ValueError(f"expected HH:MM:SS, got {value!r}")
        return value


class BusyBlock(BusyBlockInput):
    """A persisted busy window owned by one user."""

    user_id: str
