"""Stage 0: Reception - Upload intake and workbook parsing"""

import logging

from core.interfaces import Stage
from core.models import UploadedFile, RawWorkbook
from core.exceptions import IntakeError, FileTooLargeError
from config import settings
from .parsers import ExcelParser, CSVParser


logger = logging.getLogger(__name__)


class Receiver(Stage[UploadedFile, RawWorkbook]):
    """Stage 0: Reception - Check and parse the uploaded workbook"""

    @property
    def name(self) -> str:
        return "Reception"

    @property
    def stage_number(self) -> int:
        return 0

    def __init__(self, max_bytes: int = None):
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
        self.parsers = {}
        for parser in (ExcelParser(), CSVParser()):
            for ext in parser.supported_extensions:
                self.parsers[ext] = parser

    def validate_input(self, input_data: UploadedFile) -> bool:
        """Validate upload size and extension"""
        if not isinstance(input_data, UploadedFile):
            return False
        return len(input_data.content) <= self.max_bytes and input_data.extension in self.parsers

    async def execute(self, input_data: UploadedFile) -> RawWorkbook:
        """Execute reception stage"""
        return self.receive(input_data)

    def receive(self, upload: UploadedFile) -> RawWorkbook:
        """Synchronous intake, usable from worker threads"""
        if len(upload.content) > self.max_bytes:
            logger.info(
                "Rejected %s: %d bytes exceeds %d", upload.file_name, len(upload.content), self.max_bytes
            )
            limit_mb = self.max_bytes // (1024 * 1024)
            raise FileTooLargeError(f"File terlalu besar. Maksimum {limit_mb}MB.", upload.file_name)

        ext = upload.extension
        if ext not in self.parsers:
            raise IntakeError(
                f"Format file tidak didukung: {ext or upload.file_name}. "
                f"Gunakan {', '.join(sorted(self.parsers))}.",
                upload.file_name
            )

        workbook = self.parsers[ext].parse(upload.content, upload.file_name)

        if not workbook.sheets:
            raise IntakeError("File tidak memiliki sheet yang dapat dibaca.", upload.file_name)

        logger.info(
            "Received %s (%s, %d bytes, %d sheet(s))",
            upload.file_name, workbook.file_type.value, workbook.file_size_bytes, len(workbook.sheets)
        )
        return workbook
