"""Unit tests for weekday resolution."""

from datetime import datetime, timezone

import pytest
from dateutil.rrule import FR, MO, TH, TU

from whosfree.calendar.models import RawCalendarEvent, RecurrenceDescriptor
from whosfree.calendar.recurrence import coerce_to_list, recurrence_weekdays, resolve_weekdays

pytestmark = pytest.mark.unit

# Tuesday 10:00 civil
TUESDAY = datetime(2024, 1, 16, 16, 0, tzinfo=timezone.utc)


def _event(byweekday=None, start=TUESDAY, with_rule=True) -> RawCalendarEvent:
    rrule = RecurrenceDescriptor(byweekday=byweekday, freq="WEEKLY") if with_rule else None
    return RawCalendarEvent(type="VEVENT", start=start, end=None, rrule=rrule, uid="evt")


class TestCoerceToList:
    def test_none_is_empty(self):
        assert coerce_to_list(None) == []

    def test_scalar_is_wrapped(self):
        assert coerce_to_list(3) == [3]

    def test_list_and_tuple_pass_through(self):
        assert coerce_to_list([1, 2]) == [1, 2]
        assert coerce_to_list((1, 2)) == [1, 2]


class TestRecurrenceWeekdays:
    def test_integer_codes_shift_to_monday_one(self):
        assert recurrence_weekdays(_event([1, 3])) == {2, 4}

    def test_single_integer(self):
        assert recurrence_weekdays(_event(0)) == {1}

    def test_weekday_objects(self):
        assert recurrence_weekdays(_event([TU, TH])) == {2, 4}

    def test_single_weekday_object(self):
        assert recurrence_weekdays(_event(FR)) == {5}

    def test_ordinal_weekday_object(self):
        """Second Monday of the month still counts as Monday."""
        assert recurrence_weekdays(_event(MO(+2))) == {1}

    def test_mapping_entries(self):
        assert recurrence_weekdays(_event([{"weekday": 4}])) == {5}

    def test_mixed_entries(self):
        assert recurrence_weekdays(_event([0, TU, {"weekday": 4}])) == {1, 2, 5}

    def test_unrecognised_entries_are_ignored(self):
        assert recurrence_weekdays(_event(["TU", None, True, {"day": 1}, 2])) == {3}

    def test_no_rule(self):
        assert recurrence_weekdays(_event(with_rule=False)) == set()


class TestResolveWeekdays:
    def test_recurrence_wins_over_start(self):
        assert resolve_weekdays(_event([3])) == {4}

    def test_rule_without_weekdays_uses_start(self):
        assert resolve_weekdays(_event(None)) == {2}

    def test_empty_list_uses_start(self):
        assert resolve_weekdays(_event([])) == {2}

    def test_one_off_uses_civil_start_weekday(self):
        late_tuesday = datetime(2024, 1, 17, 3, 0, tzinfo=timezone.utc)
        assert resolve_weekdays(_event(start=late_tuesday, with_rule=False)) == {2}

    def test_no_start_and_no_rule(self):
        assert resolve_weekdays(_event(start=None, with_rule=False)) == set()
