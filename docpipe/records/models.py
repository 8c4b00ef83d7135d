from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class DeclaredType(str, Enum):
    """Format of an uploaded file, fixed at ingestion time."""

    PDF = "pdf"
    IMAGE = "image"
    CSV = "csv"
    EXCEL = "excel"


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class FileRecord:
    """Snapshot of a row from the file_records table.

    extracted_result and error_detail are mutually exclusive: the former is
    set only when status is completed, the latter only when status is failed.
    """

    id: str
    owner_id: str
    storage_path: str
    declared_type: DeclaredType
    status: FileStatus
    original_name: str = ""
    mime_type: str = ""
    file_size_bytes: int = 0
    extracted_result: dict[str, Any] | None = None
    error_detail: str | None = None
    processing_duration_ms: int | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
