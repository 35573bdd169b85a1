"""Excel file parser"""

import io
from typing import List

import openpyxl
import pandas as pd

from core.models import RawWorkbook, RawSheet, MergeRange
from core.enums import FileType
from core.exceptions import IntakeError
from .base import SheetParser


class ExcelParser(SheetParser):
    """Parser for Excel files (.xlsx, .xlsm, .xls)"""

    @property
    def supported_extensions(self) -> List[str]:
        return [".xlsx", ".xlsm", ".xls"]

    def parse(self, content: bytes, file_name: str) -> RawWorkbook:
        """Parse Excel workbook"""
        is_legacy = file_name.lower().endswith(".xls")

        try:
            if is_legacy:
                sheets = self._read_xls(content)
            else:
                sheets = self._read_xlsx(content)
        except Exception as e:
            raise IntakeError(
                "File tidak dapat dibaca. Pastikan file Excel/CSV valid.",
                file_name
            ) from e

        return RawWorkbook(
            file_name=file_name,
            file_type=FileType.EXCEL_XLS if is_legacy else FileType.EXCEL_XLSX,
            file_size_bytes=len(content),
            sheets=sheets
        )

    def _read_xlsx(self, content: bytes) -> List[RawSheet]:
        """Read values and merged ranges with openpyxl"""
        # Merged ranges are not exposed in read-only mode
        workbook = openpyxl.load_workbook(io.BytesIO(content), data_only=True)
        sheets = []

        for sheet in workbook.worksheets:
            grid = [
                [self.clean_cell(value) for value in row]
                for row in sheet.iter_rows(values_only=True)
            ]
            merges = [
                MergeRange(
                    start_row=rng.min_row - 1,
                    start_col=rng.min_col - 1,
                    end_row=rng.max_row - 1,
                    end_col=rng.max_col - 1
                )
                for rng in sheet.merged_cells.ranges
            ]
            sheets.append(RawSheet(name=sheet.title, grid=grid, merges=merges))

        workbook.close()
        return sheets

    def _read_xls(self, content: bytes) -> List[RawSheet]:
        """Read legacy workbooks through pandas; merge metadata is not available"""
        excel_file = pd.ExcelFile(io.BytesIO(content))
        sheets = []

        for sheet_name in excel_file.sheet_names:
            df = pd.read_excel(
                excel_file,
                sheet_name=sheet_name,
                header=None,
                dtype=object
            )
            grid = [
                [self.clean_cell(value) for value in row]
                for row in df.itertuples(index=False, name=None)
            ]
            sheets.append(RawSheet(name=str(sheet_name), grid=grid))

        return sheets
