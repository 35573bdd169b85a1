"""Process-local store of workbook drafts awaiting confirmation"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

from core.models import WorkbookDraft, WorksheetValidation
from core.exceptions import NotFoundError, PayloadError
from stages.s3_validation import EditSession
from config import settings


logger = logging.getLogger(__name__)


class DraftEntry:
    """A draft plus the edit session of its active worksheet"""

    def __init__(self, draft: WorkbookDraft):
        self.draft = draft
        self.session = EditSession(draft.worksheets[draft.active_worksheet_index])

    def set_active(self, index: int) -> None:
        """Switch worksheet; pending edits of the previous one are dropped"""
        if index < 0 or index >= len(self.draft.worksheets):
            raise PayloadError(f"Worksheet {index} tidak ada")
        self.draft = self.draft.model_copy(update={"active_worksheet_index": index})
        self.session = EditSession(self.draft.worksheets[index])

    def set_cell(self, row_id: str, key: str, value: Any) -> WorksheetValidation:
        self.session.set_cell(row_id, key, value)
        return self.session.validate()

    def commit(self) -> WorksheetValidation:
        payload = self.session.commit()
        worksheets = list(self.draft.worksheets)
        worksheets[self.draft.active_worksheet_index] = payload
        self.draft = self.draft.model_copy(update={"worksheets": worksheets})
        return self.session.validate()

    def discard(self) -> WorksheetValidation:
        self.session.discard()
        return self.session.validate()

    def validation(self) -> WorksheetValidation:
        return self.session.validate()


class DraftStore:
    """Bounded mapping of draft id to entry; the oldest draft is evicted first"""

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or settings.DRAFT_MAX_ENTRIES
        self._entries: "OrderedDict[str, DraftEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, draft: WorkbookDraft) -> DraftEntry:
        entry = DraftEntry(draft)
        with self._lock:
            self._entries[draft.draft_id] = entry
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.info("Draft %s evicted", evicted)
        return entry

    def get(self, draft_id: str) -> DraftEntry:
        with self._lock:
            entry = self._entries.get(draft_id)
            if entry is None:
                raise NotFoundError("Draft tidak ditemukan. Silakan unggah file kembali.")
            self._entries.move_to_end(draft_id)
            return entry

    def remove(self, draft_id: str) -> None:
        with self._lock:
            if self._entries.pop(draft_id, None) is None:
                raise NotFoundError("Draft tidak ditemukan. Silakan unggah file kembali.")
