from abc import ABC, abstractmethod
from typing import Any

from docpipe.records.models import DeclaredType, FileRecord, FileStatus


class BaseFileRecordStore(ABC):
    """Contract for persisting file records and their status transitions."""

    @abstractmethod
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
        """Insert a new record with status=pending and return its id."""

    @abstractmethod
    def set_processing(self, file_id: str) -> bool:
        """Move a record to processing and clear any previous result or error.

        Returns:
            False if the record is already completed (left untouched).

        Raises:
            FileRecordNotFoundError: if no record with this id exists.
        """

    @abstractmethod
    def set_completed(
        self,
        file_id: str,
        result: dict[str, Any],
        duration_ms: int,
    ) -> None:
        """Persist status, result, duration and completion time in one write.

        Raises:
            FileRecordNotFoundError: if no record with this id exists.
        """

    @abstractmethod
    def set_failed(self, file_id: str, error: str) -> bool:
        """Persist status=failed with the error detail.

        Returns:
            False if the record is already completed (left untouched).

        Raises:
            FileRecordNotFoundError: if no record with this id exists.
        """

    @abstractmethod
    def get(self, file_id: str) -> FileRecord:
        """Raises FileRecordNotFoundError if no record with this id exists."""

    @abstractmethod
    def delete(self, file_id: str) -> None:
        """Remove a record. Missing records are ignored."""

    @abstractmethod
    def list_by_owner(
        self,
        owner_id: str,
        status: FileStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[FileRecord]:
        """Return an owner's records, newest first."""
