"""Unit tests for the iCalendar reader."""

from datetime import datetime, timedelta, timezone

import pytest

from tests.conftest import ics_calendar, vevent
from whosfree.calendar.ics_reader import fetch_raw_calendar_events, validate_ics_size
from whosfree.exceptions import ICSContentTooLargeError, ICSParseError

pytestmark = pytest.mark.unit


def _vevents(ics: str):
    return [e for e in fetch_raw_calendar_events(ics) if e.type == "VEVENT"]


class TestFetchRawCalendarEvents:
    """Reading components out of feed text."""

    def test_reads_timed_event(self):
        ics = ics_calendar(
            vevent("one", "DTSTART:20240116T160000Z", "DTEND:20240116T173000Z")
        )
        (event,) = _vevents(ics)
        assert event.uid == "one"
        assert event.summary == "one"
        assert event.start == datetime(2024, 1, 16, 16, 0, tzinfo=timezone.utc)
        assert event.end == datetime(2024, 1, 16, 17, 30, tzinfo=timezone.utc)
        assert event.datetype == "date-time"
        assert event.rrule is None

    def test_returns_non_event_components_too(self):
        ics = ics_calendar(vevent("one", "DTSTART:20240116T160000Z", "DTEND:20240116T173000Z"))
        types = [e.type for e in fetch_raw_calendar_events(ics)]
        assert "VCALENDAR" in types
        assert "VEVENT" in types

    def test_all_day_event_is_date_typed(self):
        ics = ics_calendar(vevent("allday", "DTSTART;VALUE=DATE:20240116", "DTEND;VALUE=DATE:20240117"))
        (event,) = _vevents(ics)
        assert event.is_all_day
        assert event.start is not None and event.start.hour == 0

    def test_duration_used_when_end_missing(self):
        ics = ics_calendar(vevent("dur", "DTSTART:20240116T160000Z", "DURATION:PT90M"))
        (event,) = _vevents(ics)
        assert event.end - event.start == timedelta(minutes=90)

    def test_missing_end_stays_none(self):
        ics = ics_calendar(vevent("open", "DTSTART:20240116T160000Z"))
        (event,) = _vevents(ics)
        assert event.end is None

    def test_multiple_byday_become_list(self):
        ics = ics_calendar(
            vevent(
                "weekly",
                "DTSTART:20240116T160000Z",
                "DTEND:20240116T173000Z",
                "RRULE:FREQ=WEEKLY;BYDAY=TU,TH",
            )
        )
        (event,) = _vevents(ics)
        assert event.rrule.freq == "WEEKLY"
        assert [wd.weekday for wd in event.rrule.byweekday] == [1, 3]

    def test_single_byday_is_scalar(self):
        ics = ics_calendar(
            vevent(
                "weekly",
                "DTSTART:20240119T160000Z",
                "DTEND:20240119T173000Z",
                "RRULE:FREQ=WEEKLY;BYDAY=FR",
            )
        )
        (event,) = _vevents(ics)
        assert event.rrule.byweekday.weekday == 4

    def test_ordinal_byday(self):
        ics = ics_calendar(
            vevent(
                "monthly",
                "DTSTART:20240108T160000Z",
                "DTEND:20240108T170000Z",
                "RRULE:FREQ=MONTHLY;BYDAY=2MO",
            )
        )
        (event,) = _vevents(ics)
        assert event.rrule.byweekday.weekday == 0
        assert event.rrule.byweekday.n == 2

    def test_rule_without_byday(self):
        ics = ics_calendar(
            vevent(
                "daily",
                "DTSTART:20240116T160000Z",
                "DTEND:20240116T170000Z",
                "RRULE:FREQ=DAILY;COUNT=5",
            )
        )
        (event,) = _vevents(ics)
        assert event.rrule.freq == "DAILY"
        assert event.rrule.byweekday is None

    def test_recurrence_overrides_are_dropped(self):
        ics = ics_calendar(
            vevent(
                "series",
                "DTSTART:20240116T160000Z",
                "DTEND:20240116T173000Z",
                "RRULE:FREQ=WEEKLY;BYDAY=TU",
            ),
            vevent(
                "series",
                "RECURRENCE-ID:20240123T160000Z",
                "DTSTART:20240123T180000Z",
                "DTEND:20240123T190000Z",
            ),
        )
        events = _vevents(ics)
        assert len(events) == 1
        assert events[0].rrule is not None

    def test_tzid_start_is_kept_aware(self):
        ics = ics_calendar(
            vevent(
                "local",
                "DTSTART;TZID=America/Chicago:20240116T100000",
                "DTEND;TZID=America/Chicago:20240116T113000",
            )
        )
        (event,) = _vevents(ics)
        assert event.start.utcoffset() == timedelta(hours=-6)


class TestFetchErrors:
    @pytest.mark.parametrize("content", ["", "   \n"])
    def test_empty_content(self, content):
        with pytest.raises(ICSParseError, match="Empty ICS content"):
            fetch_raw_calendar_events(content)

    def test_not_icalendar(self):
        with pytest.raises(ICSParseError):
            fetch_raw_calendar_events("this is not a calendar")

    def test_too_large(self):
        ics = ics_calendar(vevent("one", "DTSTART:20240116T160000Z", "DTEND:20240116T173000Z"))
        with pytest.raises(ICSContentTooLargeError):
            fetch_raw_calendar_events(ics, max_bytes=16)

    def test_too_large_is_a_parse_error(self):
        with pytest.raises(ICSParseError):
            validate_ics_size("x" * 32, max_bytes=16)

    def test_size_counts_encoded_bytes(self):
        validate_ics_size("é" * 8, max_bytes=16)
        with pytest.raises(ICSContentTooLargeError):
            validate_ics_size("é" * 9, max_bytes=16)
