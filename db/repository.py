"""Report bundle storage"""

import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import List, Optional

from core.interfaces import ReportRepository
from core.models import ReportBundle
from core.enums import ReportStatus
from core.exceptions import DatabaseError
from config import settings
from .connection import DatabaseManager
from .schema import SchemaManager, REPORTS_TABLE


logger = logging.getLogger(__name__)


def _dump_worksheets(bundle: ReportBundle) -> list:
    return [ws.model_dump(mode="json", by_alias=True) for ws in bundle.worksheets]


class PostgresReportRepository(ReportRepository):
    """Bundles stored as one row each, worksheets in a JSONB column"""

    COLUMNS = (
        "id, file_name, kabupaten, bulan_tahun, worksheets, status, "
        "created_by, generated_report_path, created_at"
    )

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.schema = SchemaManager(db_manager)
        self._schema_ready = False

    @property
    def backend(self) -> str:
        return "postgres"

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await self.schema.ensure_schema()
            self._schema_ready = True

    def _to_bundle(self, record) -> ReportBundle:
        return ReportBundle(
            id=record["id"],
            file_name=record["file_name"],
            kabupaten=record["kabupaten"],
            bulan_tahun=record["bulan_tahun"],
            worksheets=record["worksheets"] or [],
            status=ReportStatus(record["status"]),
            created_by=record["created_by"],
            generated_report_path=record["generated_report_path"],
            created_at=record["created_at"],
        )

    async def create(self, bundle: ReportBundle) -> ReportBundle:
        await self._ensure_schema()
        report_id = bundle.id or uuid.uuid4().hex
        query = f"""
            INSERT INTO {REPORTS_TABLE}
                (id, file_name, kabupaten, bulan_tahun, worksheets, status, created_by)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7)
            RETURNING {self.COLUMNS}
        """
        try:
            record = await self.db.execute_one(
                query,
                report_id,
                bundle.file_name,
                bundle.kabupaten,
                bundle.bulan_tahun,
                _dump_worksheets(bundle),
                bundle.status.value,
                bundle.created_by,
            )
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to store report: {e}") from e
        return self._to_bundle(record)

    async def get(self, report_id: str) -> Optional[ReportBundle]:
        await self._ensure_schema()
        query = f"SELECT {self.COLUMNS} FROM {REPORTS_TABLE} WHERE id = $1"
        try:
            record = await self.db.execute_one(query, report_id)
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to load report {report_id}: {e}") from e
        return self._to_bundle(record) if record else None

    async def list_recent(self, limit: int) -> List[ReportBundle]:
        await self._ensure_schema()
        query = f"SELECT {self.COLUMNS} FROM {REPORTS_TABLE} ORDER BY created_at DESC LIMIT $1"
        try:
            records = await self.db.execute(query, limit)
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to list reports: {e}") from e
        return [self._to_bundle(r) for r in records]

    async def set_generated_report(self, report_id: str, path: str) -> None:
        await self._ensure_schema()
        query = f"""
            UPDATE {REPORTS_TABLE}
            SET generated_report_path = $2, status = $3, updated_at = now()
            WHERE id = $1
        """
        try:
            await self.db.execute_write(query, report_id, path, ReportStatus.GENERATED.value)
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to update report {report_id}: {e}") from e


class InMemoryReportRepository(ReportRepository):
    """Process-local storage used when no database is configured"""

    def __init__(self):
        self._items: "OrderedDict[str, ReportBundle]" = OrderedDict()

    @property
    def backend(self) -> str:
        return "memory"

    async def create(self, bundle: ReportBundle) -> ReportBundle:
        stored = bundle.model_copy(deep=True, update={
            "id": bundle.id or uuid.uuid4().hex,
            "created_at": datetime.now(timezone.utc),
        })
        self._items[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get(self, report_id: str) -> Optional[ReportBundle]:
        item = self._items.get(report_id)
        return item.model_copy(deep=True) if item else None

    async def list_recent(self, limit: int) -> List[ReportBundle]:
        newest = list(reversed(self._items.values()))[:limit]
        return [item.model_copy(deep=True) for item in newest]

    async def set_generated_report(self, report_id: str, path: str) -> None:
        item = self._items.get(report_id)
        if item is not None:
            self._items[report_id] = item.model_copy(update={
                "generated_report_path": path,
                "status": ReportStatus.GENERATED,
            })


def create_repository(database_url: Optional[str] = None) -> ReportRepository:
    """Postgres when a connection string is configured, otherwise in-memory"""
    database_url = database_url or settings.DATABASE_URL
    if database_url:
        return PostgresReportRepository(DatabaseManager(database_url))
    logger.warning("DATABASE_URL not set, reports are kept in memory only")
    return InMemoryReportRepository()
