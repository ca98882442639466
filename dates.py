# dates.py
"""
Calendar helpers for picking which weekly menus to scrape.

Date-keyed vendors publish one menu per Monday ('YYYY-MM-DD'); period-keyed
vendors publish one menu per Sunday-started week ('YYYY-Www').
"""
import re
import logging
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from errors import InvalidInputError
from menu_selectors import VENDOR_TIMEZONE

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')
PERIOD_PATTERN = re.compile(r'\d{4}-W\d{2}')

MONDAY = 0
SUNDAY = 6


def parse_date(date_str):
    """Returns a date for a strict 'YYYY-MM-DD' string, or None."""
    if not isinstance(date_str, str) or not DATE_PATTERN.fullmatch(date_str):
        return None
    try:
        return datetime.strptime(date_str, DATE_FORMAT).date()
    except ValueError:
        return None


def _weekdays_of_month(year, month, weekday):
    if not 1 <= month <= 12:
        raise InvalidInputError(f"Invalid month: {month}")
    current = date(year, month, 1)
    while current.weekday() != weekday:
        current += timedelta(days=1)
    days = []
    while current.month == month:
        days.append(current.strftime(DATE_FORMAT))
        current += timedelta(days=7)
    return days


def mondays_of_month(year, month):
    """All Mondays of a month (1-12) as 'YYYY-MM-DD', in calendar order."""
    return _weekdays_of_month(year, month, MONDAY)


def sundays_of_month(year, month):
    """All Sundays of a month (1-12) as 'YYYY-MM-DD', in calendar order."""
    return _weekdays_of_month(year, month, SUNDAY)


def is_valid_monday(date_str):
    parsed = parse_date(date_str)
    return parsed is not None and parsed.weekday() == MONDAY


def is_valid_period_key(key):
    if not isinstance(key, str) or not PERIOD_PATTERN.fullmatch(key):
        return False
    return 1 <= int(key[-2:]) <= 53


def _week_start(day):
    return day - timedelta(days=(day.weekday() + 1) % 7)


def closest_sunday(date_str):
    """Rounds a 'YYYY-MM-DD' date back to the most recent Sunday (itself if it is one)."""
    parsed = parse_date(date_str)
    if parsed is None:
        raise InvalidInputError(f"Invalid date: {date_str!r}")
    return _week_start(parsed).strftime(DATE_FORMAT)


def iso_week_key(value):
    """
    Returns the 'YYYY-Www' period key for a date or 'YYYY-MM-DD' string.

    Weeks run Sunday to Saturday and every day of a week gets the same key.
    A week belongs to the year its Saturday falls in, so the week holding
    January 1st is always week 01. The week number is the Saturday's
    day-of-year offset by January 1st's weekday (Sunday = 0), divided into
    7-day blocks, 1-based.
    """
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise InvalidInputError(f"Invalid date: {value!r}")
        value = parsed
    saturday = _week_start(value) + timedelta(days=6)
    jan_first_weekday = (date(saturday.year, 1, 1).weekday() + 1) % 7
    day_of_year = saturday.timetuple().tm_yday
    week = (day_of_year - 1 + jan_first_weekday) // 7 + 1
    return f"{saturday.year}-W{week:02d}"


def current_month(tz_name=VENDOR_TIMEZONE):
    """(year, month) of today in the vendors' local timezone."""
    today = datetime.now(ZoneInfo(tz_name)).date()
    return today.year, today.month


def parse_month(month_str):
    """Parses 'YYYY-MM' into (year, month)."""
    match = re.fullmatch(r'(\d{4})-(\d{2})', month_str or '')
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise InvalidInputError(f"Invalid month: {month_str!r} (expected YYYY-MM)")
    return int(match.group(1)), int(match.group(2))
