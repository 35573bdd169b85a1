"""Base workbook parser"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time
from typing import Any

import pandas as pd
from openpyxl.utils.datetime import to_excel

from core.interfaces import SheetParser as ISheetParser
from core.models import RawWorkbook
from utils.dates import date_to_serial


class SheetParser(ISheetParser, ABC):
    """Abstract base class for workbook parsers"""

    @abstractmethod
    def parse(self, content: bytes, file_name: str) -> RawWorkbook:
        """Parse upload bytes and return RawWorkbook"""
        pass

    @staticmethod
    def clean_cell(value: Any):
        """Reduce a library cell value to str/int/float/bool/None"""
        if value is None:
            return None
        if not isinstance(value, (str, list, tuple)) and pd.isna(value):
            return None
        if isinstance(value, datetime):
            if value.time() == time():
                return date_to_serial(value)
            return float(to_excel(value.replace(tzinfo=None)))
        if isinstance(value, date):
            return date_to_serial(value)
        if isinstance(value, time):
            return value.strftime("%H:%M:%S")
        if hasattr(value, "item"):
            value = value.item()  # numpy scalar
        if isinstance(value, (str, int, float, bool)):
            return value
        return str(value)
