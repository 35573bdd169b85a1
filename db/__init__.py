"""Database layer"""

from .connection import DatabaseManager
from .schema import SchemaManager
from .repository import PostgresReportRepository, InMemoryReportRepository, create_repository

__all__ = [
    "DatabaseManager",
    "SchemaManager",
    "PostgresReportRepository",
    "InMemoryReportRepository",
    "create_repository",
]
