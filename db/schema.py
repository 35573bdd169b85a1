"""Schema bootstrap for stored report bundles"""

import logging

from core.exceptions import DatabaseError
from .connection import DatabaseManager


logger = logging.getLogger(__name__)

REPORTS_TABLE = "elderly_monthly_reports"

CREATE_REPORTS_SQL = f"""
CREATE TABLE IF NOT EXISTS {REPORTS_TABLE} (
    id TEXT PRIMARY KEY,
    file_name TEXT NOT NULL DEFAULT '',
    kabupaten TEXT NOT NULL,
    bulan_tahun TEXT NOT NULL,
    worksheets JSONB NOT NULL,
    status TEXT NOT NULL DEFAULT 'imported',
    created_by TEXT,
    generated_report_path TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_{REPORTS_TABLE}_created_at ON {REPORTS_TABLE} (created_at DESC);
"""


class SchemaManager:
    """PostgreSQL schema operations"""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    async def ensure_schema(self) -> None:
        """Create the reports table and its index when missing"""
        try:
            await self.db.execute_write(CREATE_REPORTS_SQL)
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to create table {REPORTS_TABLE}: {e}") from e
        logger.info("Schema ready (%s)", REPORTS_TABLE)
