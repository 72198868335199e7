"""Tests for cashflow date parsing and placement rules."""

import datetime as dt

import pytest
from hypothesis import given, strategies as st

from bond_master.core.exceptions import DateOrderingError, InvalidDateError
from bond_master.services.date_sequence import (
    ScheduledDate, parse_cashflow_date, validate_cashflow_date,
)


SCHEDULE = [
    ScheduledDate(1, dt.date(2025, 1, 1)),
    ScheduledDate(2, dt.date(2025, 2, 1)),
    ScheduledDate(3, dt.date(2025, 3, 1)),
]


def test_parse_iso_string():
    assert parse_cashflow_date("2025-01-01") == dt.date(2025, 1, 1)


def test_parse_string_with_time_part():
    assert parse_cashflow_date("2025-01-01T00:00:00.000Z") == dt.date(2025, 1, 1)


def test_parse_datetime_drops_time():
    assert parse_cashflow_date(dt.datetime(2025, 1, 1, 13, 30)) == dt.date(2025, 1, 1)


@pytest.mark.parametrize("value", [
    "2025-13-01",
    "not-a-date",
    "",
    None,
    20250101,
    "2025-01-01garbage",
    "2025-01-01 not a date",
    "2025-01-01T99:99",
])
def test_parse_rejects_malformed_dates(value):
    with pytest.raises(InvalidDateError):
        parse_cashflow_date(value)


def test_insert_into_empty_schedule():
    validate_cashflow_date([], dt.date(2025, 1, 1))


def test_insert_after_last_date():
    validate_cashflow_date(SCHEDULE, dt.date(2025, 3, 2))


@pytest.mark.parametrize("candidate", [
    dt.date(2025, 3, 1),    # same day as the last cashflow
    dt.date(2025, 2, 15),   # middle of the schedule
    dt.date(2024, 12, 31),  # before the first cashflow
])
def test_insert_is_append_only(candidate):
    with pytest.raises(DateOrderingError) as exc_info:
        validate_cashflow_date(SCHEDULE, candidate)
    assert exc_info.value.conflicting_date == dt.date(2025, 3, 1)


@given(offset=st.integers(min_value=1, max_value=27))
def test_edit_strictly_between_neighbours_succeeds(offset):
    validate_cashflow_date(SCHEDULE, dt.date(2025, 1, 1) + dt.timedelta(days=offset), exclude_id=2)


def test_edit_onto_preceding_date_fails():
    with pytest.raises(DateOrderingError) as exc_info:
        validate_cashflow_date(SCHEDULE, dt.date(2025, 1, 1), exclude_id=2)
    assert exc_info.value.conflicting_date == dt.date(2025, 1, 1)


def test_edit_onto_following_date_fails():
    with pytest.raises(DateOrderingError) as exc_info:
        validate_cashflow_date(SCHEDULE, dt.date(2025, 3, 1), exclude_id=2)
    assert exc_info.value.conflicting_date == dt.date(2025, 3, 1)


def test_edit_past_following_date_fails():
    with pytest.raises(DateOrderingError):
        validate_cashflow_date(SCHEDULE, dt.date(2025, 4, 1), exclude_id=2)


def test_edit_last_row_has_no_upper_bound():
    validate_cashflow_date(SCHEDULE, dt.date(2030, 1, 1), exclude_id=3)


def test_edit_first_row_has_no_lower_bound():
    validate_cashflow_date(SCHEDULE, dt.date(2020, 1, 1), exclude_id=1)


def test_edit_keeping_own_date():
    validate_cashflow_date(SCHEDULE, dt.date(2025, 2, 1), exclude_id=2)


def test_edit_unknown_row_is_rejected():
    with pytest.raises(ValueError):
        validate_cashflow_date(SCHEDULE, dt.date(2025, 2, 1), exclude_id=99)
