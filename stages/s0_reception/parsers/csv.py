"""CSV file parser"""

import csv
import io
from typing import List

from core.models import RawWorkbook, RawSheet
from core.enums import FileType
from core.exceptions import IntakeError
from .base import SheetParser
from utils.encoding import detect_encoding


class CSVParser(SheetParser):
    """Parser for CSV files"""

    @property
    def supported_extensions(self) -> List[str]:
        return [".csv"]

    def parse(self, content: bytes, file_name: str) -> RawWorkbook:
        """Parse CSV file as a single sheet"""
        try:
            encoding = detect_encoding(content)
            text = content.decode(encoding)
            delimiter = self._detect_delimiter(text)

            rows = list(csv.reader(io.StringIO(text), delimiter=delimiter))
        except Exception as e:
            raise IntakeError(
                "File tidak dapat dibaca. Pastikan file Excel/CSV valid.",
                file_name
            ) from e

        grid = [
            [None if value.strip() == "" else value for value in row]
            for row in rows
        ]

        return RawWorkbook(
            file_name=file_name,
            file_type=FileType.CSV,
            file_size_bytes=len(content),
            sheets=[RawSheet(name="Sheet1", grid=grid)] if grid else []
        )

    def _detect_delimiter(self, text: str) -> str:
        """Detect CSV delimiter"""
        delimiters = [',', ';', '\t', '|']
        lines = [line for line in text.splitlines()[:20] if line.strip()]

        scores = {}
        for delim in delimiters:
            counts = [line.count(delim) for line in lines]
            if counts and max(counts) > 0:
                scores[delim] = sum(counts) / len(counts)

        return max(scores, key=scores.get) if scores else ','
