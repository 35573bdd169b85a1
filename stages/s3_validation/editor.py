"""Edit overlay over an immutable worksheet"""

from typing import Any, Dict, List

from core.enums import RowStatus
from core.exceptions import NotFoundError, PayloadError
from core.models import (
    WorksheetPayload, WorksheetValidation, ValidationSummary, CellIssue, ROW_ID_KEY
)
from utils.columns import classify_columns
from utils.dates import parse_dmy, date_to_serial
from utils.keys import is_blank
from . import rules


class EditSession:
    """
    Pending edits for one worksheet

    The worksheet rows are never mutated. Edits live in a sparse overlay
    keyed by row id and column key until committed or discarded, and every
    validation call recomputes from base rows plus overlay.
    """

    def __init__(self, payload: WorksheetPayload):
        self.payload = payload
        self.roles = classify_columns(payload.header_keys, payload.header_labels)
        self.overlay: Dict[str, Dict[str, Any]] = {}
        self._index = self._build_index()

    def _build_index(self) -> Dict[str, int]:
        return {self._row_id(row, i): i for i, row in enumerate(self.payload.row_data)}

    @staticmethod
    def _row_id(row: Dict[str, Any], position: int) -> str:
        value = row.get(ROW_ID_KEY)
        return str(value) if value is not None else str(position)

    @property
    def pending_edits(self) -> int:
        return sum(len(cells) for cells in self.overlay.values())

    def set_cell(self, row_id: str, key: str, value: Any) -> None:
        if row_id not in self._index:
            raise NotFoundError(f"Baris {row_id} tidak ditemukan")
        if key not in self.payload.header_keys:
            raise PayloadError(f"Kolom {key} tidak ditemukan")
        self.overlay.setdefault(row_id, {})[key] = value

    def effective_value(self, row_id: str, key: str) -> Any:
        edits = self.overlay.get(row_id, {})
        if key in edits:
            return edits[key]
        if row_id not in self._index:
            raise NotFoundError(f"Baris {row_id} tidak ditemukan")
        return self.payload.row_data[self._index[row_id]].get(key)

    def effective_rows(self) -> List[Dict[str, Any]]:
        rows = []
        for i, row in enumerate(self.payload.row_data):
            edits = self.overlay.get(self._row_id(row, i))
            rows.append({**row, **edits} if edits else row)
        return rows

    def discard(self) -> None:
        self.overlay = {}

    def commit(self) -> WorksheetPayload:
        """
        Apply the overlay and return the new base worksheet

        Edited date cells holding a valid DD/MM/YYYY string are stored as
        serial numbers; everything else is copied verbatim.
        """
        if not self.overlay:
            return self.payload

        rows = []
        for i, row in enumerate(self.payload.row_data):
            edits = self.overlay.get(self._row_id(row, i))
            if not edits:
                rows.append(row)
                continue
            updated = dict(row)
            for key, value in edits.items():
                updated[key] = self._stored_value(key, value)
            rows.append(updated)

        self.payload = self.payload.model_copy(update={"row_data": rows})
        self.overlay = {}
        return self.payload

    def _stored_value(self, key: str, value: Any) -> Any:
        if self.roles.is_date(key) and isinstance(value, str) and not is_blank(value):
            parsed = parse_dmy(value)
            serial = date_to_serial(parsed) if parsed else 0
            # Serials start at 1900-01-01; earlier dates stay as text
            if serial >= 1:
                return serial
        return value

    def validate(self) -> WorksheetValidation:
        """Issues, per-row status and counts for the effective rows"""
        rows = self.effective_rows()
        counts = rules.identifier_counts(
            row.get(self.roles.identifier) for row in rows
        ) if self.roles.identifier else {}

        issues = []
        row_status = {}
        display = {}
        valid = 0

        for i, row in enumerate(rows):
            row_id = self._row_id(row, i)
            messages = rules.row_messages(row, self.roles, counts)
            blocking = False
            for key, message in messages.items():
                is_blocking = rules.is_blocking(key, self.roles)
                blocking = blocking or is_blocking
                issues.append(CellIssue(row_id=row_id, column=key, message=message, blocking=is_blocking))

            row_status[row_id] = RowStatus.ERROR if blocking else RowStatus.VALID
            if not blocking:
                valid += 1

            shown = rules.display_cells(row, self.roles)
            if shown:
                display[row_id] = shown

        return WorksheetValidation(
            worksheet_name=self.payload.worksheet_name,
            summary=ValidationSummary(total=len(rows), valid=valid, error=len(rows) - valid),
            issues=issues,
            row_status=row_status,
            pending_edits=self.pending_edits,
            display=display,
        )

    def summary(self) -> ValidationSummary:
        return self.validate().summary
