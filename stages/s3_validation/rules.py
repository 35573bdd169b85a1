"""Field rules for worksheet rows"""

import re
from collections import Counter
from typing import Any, Dict, Iterable, Optional

from core.enums import ColumnRole
from utils.columns import ColumnRoles
from utils.dates import parse_dmy, is_valid_serial, serial_to_date, format_dmy
from utils.keys import is_blank, cell_text


AMBIGUOUS = "ambiguous"

MSG_NAME_REQUIRED = "Nama wajib diisi"
MSG_NIK_REQUIRED = "NIK wajib diisi"
MSG_NIK_NUMBER = "NIK harus berupa angka positif"
MSG_NIK_DUPLICATE = "NIK duplikat"
MSG_AGE_REQUIRED = "Umur wajib diisi"
MSG_AGE_NUMBER = "Umur harus berupa bilangan bulat"
MSG_AGE_RANGE = "Umur harus antara 0 dan 150"
MSG_GENDER_REQUIRED = "Jenis kelamin wajib diisi"
MSG_GENDER_VALUE = "Jenis kelamin harus L atau P"
MSG_DATE_FORMAT = "Format tanggal harus DD/MM/YYYY"
MSG_DATE_SERIAL = "Nomor tanggal di luar rentang"

# Roles whose failure puts the row in error
BLOCKING_ROLES = (ColumnRole.NAME, ColumnRole.IDENTIFIER, ColumnRole.AGE, ColumnRole.GENDER)

_DIGITS = re.compile(r"^\d+$")


def parse_integer(value: Any) -> Optional[int]:
    """Whole number from an int, an integral float or a numeric string"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if number != number or not number.is_integer():  # NaN
        return None
    return int(number)


def identifier_text(value: Any) -> str:
    """Comparable form of an identifier, so 111, 111.0 and "111" collide"""
    return cell_text(value)


def identifier_counts(values: Iterable[Any]) -> Counter:
    """Occurrences of every non-blank identifier"""
    return Counter(identifier_text(v) for v in values if not is_blank(v))


def check_identifier(value: Any, counts: Counter) -> Optional[str]:
    if is_blank(value):
        return MSG_NIK_REQUIRED
    text = identifier_text(value)
    if not _DIGITS.match(text) or int(text) <= 0:
        return MSG_NIK_NUMBER
    if counts.get(text, 0) > 1:
        return MSG_NIK_DUPLICATE
    return None


def check_age(value: Any) -> Optional[str]:
    if is_blank(value):
        return MSG_AGE_REQUIRED
    age = parse_integer(value)
    if age is None:
        return MSG_AGE_NUMBER
    if not 0 <= age <= 150:
        return MSG_AGE_RANGE
    return None


def gender_display(value: Any) -> Optional[str]:
    """
    Display token for a gender cell

    Substring match on the lowercased value: "l" is male, "p" is female;
    a value holding both letters is shown as ambiguous.
    """
    text = cell_text(value).lower()
    male, female = "l" in text, "p" in text
    if male and female:
        return AMBIGUOUS
    if male:
        return "L"
    if female:
        return "P"
    return None


def check_gender(value: Any) -> Optional[str]:
    if is_blank(value):
        return MSG_GENDER_REQUIRED
    if gender_display(value) is None:
        return MSG_GENDER_VALUE
    return None


def check_name(value: Any) -> Optional[str]:
    return MSG_NAME_REQUIRED if is_blank(value) else None


def check_date(value: Any) -> Optional[str]:
    """Optional DD/MM/YYYY string or whole-day serial number"""
    if is_blank(value):
        return None
    if isinstance(value, bool):
        return MSG_DATE_FORMAT
    if isinstance(value, (int, float)):
        return None if is_valid_serial(value) else MSG_DATE_SERIAL
    text = str(value).strip()
    if _DIGITS.match(text):
        # Text files carry serials as digit strings
        return None if is_valid_serial(int(text)) else MSG_DATE_SERIAL
    return None if parse_dmy(text) else MSG_DATE_FORMAT


def check_cell(key: str, value: Any, roles: ColumnRoles, counts: Counter) -> Optional[str]:
    """Message for a failing cell, or None"""
    role = roles.role_of(key)
    if role == ColumnRole.IDENTIFIER:
        return check_identifier(value, counts)
    if role == ColumnRole.AGE:
        return check_age(value)
    if role == ColumnRole.GENDER:
        return check_gender(value)
    if role == ColumnRole.NAME:
        return check_name(value)
    if roles.is_date(key):
        return check_date(value)
    return None


def row_messages(row: Dict[str, Any], roles: ColumnRoles, counts: Counter) -> Dict[str, str]:
    """Failing cells of one row, keyed by column"""
    messages = {}
    for key in roles.keys:
        message = check_cell(key, row.get(key), roles, counts)
        if message:
            messages[key] = message
    return messages


def is_blocking(key: str, roles: ColumnRoles) -> bool:
    return roles.role_of(key) in BLOCKING_ROLES


def display_cells(row: Dict[str, Any], roles: ColumnRoles) -> Dict[str, str]:
    """Preview text for date and gender cells"""
    shown = {}
    for key in roles.dates:
        value = row.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        day = serial_to_date(value)
        if day:
            shown[key] = format_dmy(day)
    if roles.gender and not is_blank(row.get(roles.gender)):
        token = gender_display(row.get(roles.gender))
        if token:
            shown[roles.gender] = token
    return shown