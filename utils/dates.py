"""Spreadsheet serial date helpers

Serial numbers follow the 1900 date system used by xlsx/xls workbooks
(serial 1 is 1900-01-01, including the phantom 1900-02-29).
"""

import re
from datetime import date, datetime, time
from typing import Any, Optional

import pandas as pd
from openpyxl.utils.datetime import from_excel, to_excel


MAX_SERIAL = 2958465  # 9999-12-31

_DMY = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def parse_dmy(text: str) -> Optional[date]:
    """Parse a strict DD/MM/YYYY string, rejecting impossible calendar dates"""
    match = _DMY.match(str(text).strip())
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_dmy(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def date_to_serial(value: date) -> int:
    """Calendar date to whole-day serial"""
    if isinstance(value, datetime):
        value = value.date()
    return int(to_excel(datetime.combine(value, time())))


def is_valid_serial(value: Any) -> bool:
    """Non-negative whole number within the representable range"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return 0 <= value <= MAX_SERIAL


def serial_to_date(value: Any) -> Optional[date]:
    """Whole-day serial to calendar date; serial 0 has no calendar date"""
    if not is_valid_serial(value) or value < 1:
        return None
    return from_excel(int(value)).date()


def coerce_date(value: Any) -> Optional[date]:
    """
    Best-effort conversion of a stored cell to a date

    Accepts serial numbers, date objects, DD/MM/YYYY strings and any other
    day-first form pandas understands.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return serial_to_date(value)

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return serial_to_date(int(text))

    parsed = parse_dmy(text)
    if parsed:
        return parsed

    dayfirst = not re.match(r"^\d{4}-", text)
    stamp = pd.to_datetime(text, dayfirst=dayfirst, errors="coerce")
    if pd.isna(stamp):
        return None
    return stamp.date()


def whole_years_between(born: date, today: date) -> int:
    """Age in completed years, never negative"""
    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1
    return max(0, years)
