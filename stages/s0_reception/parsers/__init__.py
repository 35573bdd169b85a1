"""Workbook parsers"""

from .base import SheetParser
from .excel import ExcelParser
from .csv import CSVParser

__all__ = ["SheetParser", "ExcelParser", "CSVParser"]
