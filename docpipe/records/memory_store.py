import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from docpipe.records.base import BaseFileRecordStore
from docpipe.records.exceptions import FileRecordNotFoundError
from docpipe.records.models import DeclaredType, FileRecord, FileStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryFileRecordStore(BaseFileRecordStore):
    """Process-local record store. Records are immutable snapshots swapped under a lock."""

    def __init__(self) -> None:
        self._records: dict[str, FileRecord] = {}
        self._lock = threading.Lock()

    def create_pending(
        self,
        owner_id: str,
        storage_path: str,
        declared_type: DeclaredType,
        *,
        original_name: str = "",
        mime_type: str = "",
        file_size_bytes: int = 0,
    ) -> str:
        file_id = str(uuid.uuid4())
        now = _utcnow()
        record = FileRecord(
            id=file_id,
            owner_id=owner_id,
            storage_path=storage_path,
            declared_type=declared_type,
            status=FileStatus.PENDING,
            original_name=original_name,
            mime_type=mime_type,
            file_size_bytes=file_size_bytes,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._records[file_id] = record
        return file_id

    def set_processing(self, file_id: str) -> bool:
        with self._lock:
            record = self._require(file_id)
            if record.status is FileStatus.COMPLETED:
                return False
            self._records[file_id] = replace(
                record,
                status=FileStatus.PROCESSING,
                extracted_result=None,
                error_detail=None,
                updated_at=_utcnow(),
            )
        return True

    def set_completed(
        self,
        file_id: str,
        result: dict[str, Any],
        duration_ms: int,
    ) -> None:
        now = _utcnow()
        with self._lock:
            record = self._require(file_id)
            self._records[file_id] = replace(
                record,
                status=FileStatus.COMPLETED,
                extracted_result=result,
                error_detail=None,
                processing_duration_ms=duration_ms,
                completed_at=now,
                updated_at=now,
            )

    def set_failed(self, file_id: str, error: str) -> bool:
        with self._lock:
            record = self._require(file_id)
            if record.status is FileStatus.COMPLETED:
                return False
            self._records[file_id] = replace(
                record,
                status=FileStatus.FAILED,
                extracted_result=None,
                error_detail=error,
                updated_at=_utcnow(),
            )
        return True

    def get(self, file_id: str) -> FileRecord:
        with self._lock:
            return self._require(file_id)

    def delete(self, file_id: str) -> None:
        with self._lock:
            self._records.pop(file_id, None)

    def list_by_owner(
        self,
        owner_id: str,
        status: FileStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[FileRecord]:
        with self._lock:
            records = [
                r
                for r in self._records.values()
                if r.owner_id == owner_id and (status is None or r.status is status)
            ]
        records.sort(key=lambda r: r.created_at or _utcnow(), reverse=True)
        return records[offset : offset + limit]

    def _require(self, file_id: str) -> FileRecord:
        record = self._records.get(file_id)
        if record is None:
            raise FileRecordNotFoundError(f"File record {file_id} not found")
        return record
