import re
import uuid
from pathlib import Path

from docpipe.ingestion.exceptions import IngestionError, InvalidOwnerError, UploadTooLargeError
from docpipe.ingestion.mime_types import (
    DEFAULT_EXTENSIONS,
    normalize_mime_type,
    resolve_declared_type,
)
from docpipe.logging.logger import Log
from docpipe.queue.base import BaseJobQueue
from docpipe.queue.models import Job
from docpipe.records.base import BaseFileRecordStore
from docpipe.records.exceptions import FileRecordNotFoundError
from docpipe.records.models import FileRecord, FileStatus

_OWNER_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.@-]+$")
_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,10}$")


def stored_file_path(files_root: Path, owner_id: str, file_name: str) -> Path:
    """Build path to a stored upload: {files_root}/{owner_id}/{file_name}"""
    if not _OWNER_SEGMENT_RE.match(owner_id) or owner_id in (".", ".."):
        raise InvalidOwnerError(f"Owner id '{owner_id}' is not a valid path segment")
    return files_root / owner_id / file_name


class IngestionService:
    """Accepts uploads: validates, stores bytes, creates the record and enqueues its job.

    Record creation and enqueue form one unit. If either fails, the record
    and the stored bytes are removed before the error is raised.
    """

    def __init__(
        self,
        store: BaseFileRecordStore,
        queue: BaseJobQueue,
        files_root: Path,
        max_upload_size_bytes: int,
    ) -> None:
        self._store = store
        self._queue = queue
        self._files_root = files_root
        self._max_upload_size_bytes = max_upload_size_bytes

    def ingest(
        self,
        owner_id: str,
        data: bytes,
        content_type: str,
        original_name: str = "",
    ) -> FileRecord:
        """Store an upload and queue it for extraction.

        Raises:
            UploadTooLargeError: if data exceeds the maximum upload size.
            UnsupportedMimeTypeError: if content_type is not supported.
            IngestionError: if storing, recording or enqueueing failed.
        """
        if len(data) > self._max_upload_size_bytes:
            raise UploadTooLargeError(
                f"File size {len(data)} bytes exceeds the maximum limit of "
                f"{self._max_upload_size_bytes} bytes"
            )
        declared_type = resolve_declared_type(content_type)
        mime_type = normalize_mime_type(content_type)

        extension = Path(original_name).suffix.lower()
        if not _EXTENSION_RE.match(extension):
            extension = DEFAULT_EXTENSIONS[mime_type]
        path = stored_file_path(self._files_root, owner_id, f"{uuid.uuid4()}{extension}")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise IngestionError(f"Failed to store file: {exc}") from exc

        file_id: str | None = None
        try:
            file_id = self._store.create_pending(
                owner_id,
                str(path),
                declared_type,
                original_name=original_name,
                mime_type=mime_type,
                file_size_bytes=len(data),
            )
            job_id = self._queue.enqueue(
                Job(
                    file_id=file_id,
                    storage_path=str(path),
                    declared_type=declared_type,
                    owner_id=owner_id,
                )
            )
        except Exception as exc:
            self._compensate(file_id, path)
            raise IngestionError(f"Failed to process file: {exc}") from exc

        Log.info(
            f"Ingested file {file_id} ({declared_type.value}, {len(data)} bytes) "
            f"for owner {owner_id} as job {job_id}"
        )
        return self._store.get(file_id)

    def get(self, owner_id: str, file_id: str) -> FileRecord:
        """Raises FileRecordNotFoundError if missing or owned by someone else."""
        record = self._store.get(file_id)
        if record.owner_id != owner_id:
            raise FileRecordNotFoundError(f"File record {file_id} not found")
        return record

    def list_files(
        self,
        owner_id: str,
        status: FileStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[FileRecord]:
        return self._store.list_by_owner(owner_id, status=status, limit=limit, offset=offset)

    def remove(self, owner_id: str, file_id: str) -> None:
        """Delete the stored bytes and the record."""
        record = self.get(owner_id, file_id)
        try:
            Path(record.storage_path).unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Error deleting file {record.storage_path}: {exc}")
        self._store.delete(file_id)
        Log.info(f"Removed file {file_id} for owner {owner_id}")

    def _compensate(self, file_id: str | None, path: Path) -> None:
        if file_id is not None:
            try:
                self._store.delete(file_id)
            except Exception:
                Log.exception(f"Could not delete stranded file record {file_id}")
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Failed to cleanup stored file {path}: {exc}")
