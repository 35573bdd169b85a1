"""Abstract base classes for pipeline components"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class Stage(ABC, Generic[InputT, OutputT]):
    """Abstract base class for pipeline stages"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable stage name"""
        pass

    @property
    @abstractmethod
    def stage_number(self) -> int:
        """Stage number (0-6)"""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """Execute the stage"""
        pass

    @abstractmethod
    def validate_input(self, input_data: InputT) -> bool:
        """Validate input before processing"""
        pass


class SheetParser(ABC):
    """Abstract base class for workbook parsers"""

    @property
    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """List of supported file extensions"""
        pass

    @abstractmethod
    def parse(self, content: bytes, file_name: str) -> "RawWorkbook":
        """Parse raw upload bytes into a RawWorkbook"""
        pass


class ReportRepository(ABC):
    """Storage for persisted report bundles"""

    @property
    @abstractmethod
    def backend(self) -> str:
        """Storage backend name"""
        pass

    @abstractmethod
    async def create(self, bundle: "ReportBundle") -> "ReportBundle":
        """Store a new bundle and return it with id and timestamps"""
        pass

    @abstractmethod
    async def get(self, report_id: str) -> Optional["ReportBundle"]:
        """Fetch a bundle by id"""
        pass

    @abstractmethod
    async def list_recent(self, limit: int) -> list["ReportBundle"]:
        """Newest bundles first"""
        pass

    @abstractmethod
    async def set_generated_report(self, report_id: str, path: str) -> None:
        """Record the cached binary report location"""
        pass
