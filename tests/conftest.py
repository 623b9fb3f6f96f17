"""Shared fixtures for whosfree tests.

Calendar fixtures use UTC instants in January 2024, when America/Chicago is
UTC-6. 2024-01-15 is a Monday.
"""

from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from whosfree.storage.database import BusyBlockStore


def ics_calendar(*events: str) -> str:
    """Wrap VEVENT bodies in a minimal VCALENDAR."""
    body = "\n".join(events)
    return f"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//whosfree Test//EN
CALSCALE:GREGORIAN
{body}
END:VCALENDAR
"""


def vevent(uid: str, *lines: str) -> str:
    """Build a VEVENT block from property lines."""
    props = "\n".join(lines)
    return f"""BEGIN:VEVENT
UID:{uid}
DTSTAMP:20240101T000000Z
SUMMARY:{uid}
{props}
END:VEVENT"""


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, Any, None]:
    """Keep WHOSFREE_TEST_TIME from leaking between tests."""
    monkeypatch.delenv("WHOSFREE_TEST_TIME", raising=False)
    yield
    monkeypatch.delenv("WHOSFREE_TEST_TIME", raising=False)


@pytest.fixture
def sample_ics_class_schedule() -> str:
    """
    Return a feed with a Tue/Thu recurring class and a one-off Wednesday event.

    Both run 10:00-11:30 civil time (16:00-17:30 UTC).
    """
    return ics_calendar(
        vevent(
            "class-001@whosfree.test",
            "DTSTART:20240116T160000Z",
            "DTEND:20240116T173000Z",
            "RRULE:FREQ=WEEKLY;BYDAY=TU,TH;COUNT=20",
        ),
        vevent(
            "oneoff-001@whosfree.test",
            "DTSTART:20240117T160000Z",
            "DTEND:20240117T173000Z",
        ),
    )


@pytest.fixture
def sample_ics_weekend_only() -> str:
    """Return a feed whose only event recurs on Saturday and Sunday."""
    return ics_calendar(
        vevent(
            "weekend-001@whosfree.test",
            "DTSTART:20240120T160000Z",
            "DTEND:20240120T180000Z",
            "RRULE:FREQ=WEEKLY;BYDAY=SA,SU",
        )
    )


@pytest.fixture
def fixed_time() -> Callable[[datetime], Callable[[], datetime]]:
    """Return a factory for frozen time providers."""

    def factory(instant: datetime) -> Callable[[], datetime]:
        return lambda: instant

    return factory


@pytest.fixture
def tuesday_10am_utc() -> datetime:
    """Tuesday 2024-01-16 10:00 civil time."""
    return datetime(2024, 1, 16, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def saturday_10am_utc() -> datetime:
    """Saturday 2024-01-20 10:00 civil time."""
    return datetime(2024, 1, 20, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
async def store(tmp_path: Path) -> BusyBlockStore:
    """Initialized store backed by a temporary SQLite file."""
    block_store = BusyBlockStore(tmp_path / "whosfree-test.db")
    await block_store.initialize()
    return block_store
