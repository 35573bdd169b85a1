"""Utility modules"""

from .encoding import detect_encoding
from .keys import header_key, unique_header_keys, is_blank, cell_text
from .columns import ColumnRoles, classify_columns
from .dates import parse_dmy, date_to_serial, serial_to_date, coerce_date

__all__ = [
    "detect_encoding",
    "header_key",
    "unique_header_keys",
    "is_blank",
    "cell_text",
    "ColumnRoles",
    "classify_columns",
    "parse_dmy",
    "date_to_serial",
    "serial_to_date",
    "coerce_date",
]
