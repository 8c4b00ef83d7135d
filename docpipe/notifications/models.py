from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from docpipe.records.models import FileStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FileStatusEvent:
    """Status change pushed to every live connection of a file's owner.

    data carries the extracted result for completed, {"error": message} for
    failed, and nothing for processing.
    """

    file_id: str
    status: FileStatus
    data: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def processing(cls, file_id: str) -> "FileStatusEvent":
        return cls(file_id=file_id, status=FileStatus.PROCESSING)

    @classmethod
    def completed(cls, file_id: str, result: dict[str, Any]) -> "FileStatusEvent":
        return cls(file_id=file_id, status=FileStatus.COMPLETED, data=result)

    @classmethod
    def failed(cls, file_id: str, error: str) -> "FileStatusEvent":
        return cls(file_id=file_id, status=FileStatus.FAILED, data={"error": error})

    def to_payload(self) -> dict[str, Any]:
        return {
            "file_id": self.file_id,
            "status": self.status.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
