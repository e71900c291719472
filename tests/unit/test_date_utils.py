"""Unit tests for message date parsing"""

from datetime import datetime, timedelta

import pytest

from pesalog.domain.exceptions import InvalidDateError
from pesalog.utils.date_utils import (
    days_until_due,
    expand_two_digit_year,
    is_overdue,
    parse_clock,
    parse_due_date,
    parse_sms_date,
    parse_till_date,
    to_naive_local,
)


def test_expand_two_digit_year():
    assert expand_two_digit_year(26) == 2026
    assert expand_two_digit_year(49) == 2049
    assert expand_two_digit_year(75) == 1975
    assert expand_two_digit_year(2026) == 2026
    assert expand_two_digit_year(60, cutover=70) == 2060


@pytest.mark.parametrize(
    "text,expected",
    [
        ("5:34 AM", (5, 34)),
        ("07:41 PM", (19, 41)),
        ("12:15 AM", (0, 15)),
        ("12:30 PM", (12, 30)),
        ("16:30", (16, 30)),
        ("16:08pm", (16, 8)),  # meridiem ignored past noon
        ("", (0, 0)),
        (None, (0, 0)),
    ],
)
def test_parse_clock(text, expected):
    assert parse_clock(text) == expected


def test_parse_clock_rejects_garbage():
    with pytest.raises(InvalidDateError):
        parse_clock("half past five")


def test_parse_sms_date_day_first():
    """Ambiguous D/M is read day-first"""
    assert parse_sms_date("17/1/26", "5:34 AM") == datetime(2026, 1, 17, 5, 34)
    assert parse_sms_date("03/01/2026", "07:41 PM") == datetime(2026, 1, 3, 19, 41)
    assert parse_sms_date("2/1/26", "1:49 PM") == datetime(2026, 1, 2, 13, 49)


def test_parse_sms_date_month_first_when_unambiguous():
    assert parse_sms_date("01/15/2026") == datetime(2026, 1, 15)
    assert parse_sms_date("15/01/2026", "16:08pm") == datetime(2026, 1, 15, 16, 8)


def test_parse_sms_date_accepts_dashes():
    assert parse_sms_date("17-1-26", "6:06 PM") == datetime(2026, 1, 17, 18, 6)


@pytest.mark.parametrize("text", ["32/1/26", "17/13/26", "17/1", "aa/bb/cc"])
def test_parse_sms_date_rejects_invalid(text):
    with pytest.raises(InvalidDateError):
        parse_sms_date(text, "5:34 AM")


def test_parse_till_date():
    assert parse_till_date("03-01-2026", "16:30") == datetime(2026, 1, 3, 16, 30)
    with pytest.raises(InvalidDateError):
        parse_till_date("03-01-2026", "4:30 PM")


def test_parse_due_date_is_end_of_day():
    assert parse_due_date("17/02/26") == datetime(2026, 2, 17, 23, 59, 59)


def test_overdue_and_days_until_due():
    now = datetime(2026, 1, 10, 12, 0)
    assert is_overdue(datetime(2026, 1, 10, 11, 59), now)
    assert not is_overdue(datetime(2026, 1, 10, 23, 59, 59), now)
    assert days_until_due(now + timedelta(hours=36), now) == 2
    assert days_until_due(now - timedelta(days=3), now) == -3


def test_to_naive_local_leaves_naive_values_alone():
    value = datetime(2026, 1, 17, 5, 34)
    assert to_naive_local(value) is value
