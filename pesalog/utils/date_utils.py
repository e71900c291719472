"""Date parsing for message dialects and due-date arithmetic"""

import math
import re
from datetime import datetime
from typing import List, Tuple

from pesalog.config import settings
from pesalog.domain.exceptions import InvalidDateError

_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])?$")
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")


def _split_date(date_str: str, separators: str) -> List[int]:
    parts = re.split(f"[{re.escape(separators)}]", date_str.strip())
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise InvalidDateError(f"Invalid date format: {date_str!r}")
    return [int(p) for p in parts]


def expand_two_digit_year(year: int, cutover: int | None = None) -> int:
    """Resolve YY to a full year around the configured cutover"""
    if year >= 100:
        return year
    cutover = settings.two_digit_year_cutover if cutover is None else cutover
    return 2000 + year if year < cutover else 1900 + year


def parse_clock(time_str: str | None) -> Tuple[int, int]:
    """
    Parse "5:34 AM", "07:41 PM", "16:30" or "16:08pm" into (hour, minute).

    A meridiem suffix on an hour already past 12 is ignored ("16:08pm"
    is 16:08); card issuers print it that way.
    """
    if not time_str or not time_str.strip():
        return 0, 0

    match = _TIME_12H.match(time_str.strip())
    if not match:
        raise InvalidDateError(f"Invalid time format: {time_str!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    meridiem = (match.group(3) or "").upper()
    if hours <= 12:
        if meridiem == "PM" and hours != 12:
            hours += 12
        elif meridiem == "AM" and hours == 12:
            hours = 0
    return hours, minutes


def _build(year: int, month: int, day: int, hours: int = 0, minutes: int = 0, seconds: int = 0) -> datetime:
    try:
        return datetime(year, month, day, hours, minutes, seconds)
    except ValueError as e:
        raise InvalidDateError(str(e)) from e


def parse_sms_date(date_str: str, time_str: str | None = None) -> datetime:
    """
    Parse the slash-separated dates used by mobile money and bank dialects.

    Supports:
    - "17/1/26"    (D/M/YY, always day-first)
    - "15/01/2026" (DD/MM/YYYY)
    - "01/15/2026" (MM/DD/YYYY, only when the second group cannot be a month)

    When both leading groups are <= 12 the date is read day-first, the
    regional convention of the issuing institutions.
    """
    first, second, year = _split_date(date_str, "/-")

    if year >= 100 and first <= 12 and second > 12:
        month, day = first, second
    else:
        day, month = first, second

    hours, minutes = parse_clock(time_str)
    return _build(expand_two_digit_year(year), month, day, hours, minutes)


def parse_till_date(date_str: str, time_str: str | None = None) -> datetime:
    """Parse the till dialect's "DD-MM-YYYY" date with a 24-hour "HH:MM" time"""
    day, month, year = _split_date(date_str, "-")

    hours, minutes = 0, 0
    if time_str and time_str.strip():
        match = _TIME_24H.match(time_str.strip())
        if not match:
            raise InvalidDateError(f"Invalid till time: {time_str!r}")
        hours, minutes = int(match.group(1)), int(match.group(2))

    return _build(year, month, day, hours, minutes)


def parse_due_date(date_str: str) -> datetime:
    """Parse a facility due date "DD/MM/YY", pinned to end of day"""
    day, month, year = _split_date(date_str, "/")
    return _build(expand_two_digit_year(year), month, day, 23, 59, 59)


def to_naive_local(value: datetime) -> datetime:
    """Drop tzinfo after converting to local time; message dates are local wall-clock"""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def is_overdue(due_date: datetime, now: datetime | None = None) -> bool:
    """A debt is overdue once the current time passes its due date"""
    now = now or datetime.now()
    return due_date < now


def days_until_due(due_date: datetime, now: datetime | None = None) -> int:
    """Whole days until due, rounded up; negative once overdue"""
    now = now or datetime.now()
    return math.ceil((due_date - now).total_seconds() / 86400)
