"""Custom exceptions for the elderly report service"""


class LansiaReportError(Exception):
    """Base exception for all service errors"""
    pass


class StageError(LansiaReportError):
    """Error in a specific pipeline stage"""
    def __init__(self, stage: int, message: str):
        super().__init__(f"Stage {stage}: {message}")
        self.stage = stage
        self.message = message


class IntakeError(LansiaReportError):
    """Uploaded file cannot be turned into a draft"""
    def __init__(self, message: str, file_name: str = None):
        super().__init__(message)
        self.file_name = file_name


class FileTooLargeError(IntakeError):
    """Upload exceeds the configured size cap"""
    pass


class ValidationError(LansiaReportError):
    """Draft still contains rows in error state"""
    def __init__(self, message: str, row_id: str = None, column: str = None):
        super().__init__(message)
        self.row_id = row_id
        self.column = column


class PayloadError(LansiaReportError):
    """Create-report request body is incomplete"""
    pass


class NotFoundError(LansiaReportError):
    """Unknown report or draft"""
    pass


class DatabaseError(LansiaReportError):
    """Database operation error"""
    pass


class ReportGenerationError(LansiaReportError):
    """Binary report could not be rendered"""
    pass
