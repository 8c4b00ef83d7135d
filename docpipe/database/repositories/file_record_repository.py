from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docpipe.database.connection import get_connection
from docpipe.records.base import BaseFileRecordStore
from docpipe.records.exceptions import FileRecordNotFoundError, RecordStoreError
from docpipe.records.models import DeclaredType, FileRecord, FileStatus

_COLUMNS = """
    id, owner_id, storage_path, declared_type, status, original_name,
    mime_type, file_size_bytes, extracted_result, error_detail,
    processing_duration_ms, completed_at, created_at, updated_at
"""


class PostgresFileRecordStore(BaseFileRecordStore):
    """Database operations for the file_records table."""

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
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO file_records
                    (owner_id, storage_path, declared_type, status,
                     original_name, mime_type, file_size_bytes)
                    VALUES (%s, %s, %s, 'pending', %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        owner_id,
                        storage_path,
                        declared_type.value,
                        original_name,
                        mime_type,
                        file_size_bytes,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RecordStoreError(f"Insert of file record for owner {owner_id} returned no id")
        return str(row[0])

    def set_processing(self, file_id: str) -> bool:
        """Completed records are left untouched so a replay cannot regress them."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE file_records
                    SET status = 'processing', extracted_result = NULL,
                        error_detail = NULL, updated_at = NOW()
                    WHERE id = %s AND status <> 'completed'
                    """,
                    (file_id,),
                )
                updated = cur.rowcount
            conn.commit()
        if updated == 0:
            self._require_exists(file_id)
            return False
        return True

    def set_completed(
        self,
        file_id: str,
        result: dict[str, Any],
        duration_ms: int,
    ) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE file_records
                    SET status = 'completed', extracted_result = %s,
                        error_detail = NULL, processing_duration_ms = %s,
                        completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s
                    """,
                    (Jsonb(result), duration_ms, file_id),
                )
                if cur.rowcount == 0:
                    raise FileRecordNotFoundError(f"File record {file_id} not found")
            conn.commit()

    def set_failed(self, file_id: str, error: str) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE file_records
                    SET status = 'failed', extracted_result = NULL,
                        error_detail = %s, updated_at = NOW()
                    WHERE id = %s AND status <> 'completed'
                    """,
                    (error, file_id),
                )
                updated = cur.rowcount
            conn.commit()
        if updated == 0:
            self._require_exists(file_id)
            return False
        return True

    def get(self, file_id: str) -> FileRecord:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM file_records WHERE id = %s",
                    (file_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise FileRecordNotFoundError(f"File record {file_id} not found")
        return self._to_record(row)

    def delete(self, file_id: str) -> None:
        with get_connection() as conn:
            conn.execute("DELETE FROM file_records WHERE id = %s", (file_id,))
            conn.commit()

    def list_by_owner(
        self,
        owner_id: str,
        status: FileStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[FileRecord]:
        query = f"SELECT {_COLUMNS} FROM file_records WHERE owner_id = %s"
        params: list[object] = [owner_id]
        if status is not None:
            query += " AND status = %s"
            params.append(status.value)
        query += " ORDER BY created_at DESC LIMIT %s OFFSET %s"
        params.extend([limit, offset])

        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [self._to_record(row) for row in rows]

    def _require_exists(self, file_id: str) -> None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM file_records WHERE id = %s", (file_id,))
                if cur.fetchone() is None:
                    raise FileRecordNotFoundError(f"File record {file_id} not found")

    @staticmethod
    def _to_record(row: dict[str, Any]) -> FileRecord:
        return FileRecord(
            id=str(row["id"]),
            owner_id=row["owner_id"],
            storage_path=row["storage_path"],
            declared_type=DeclaredType(row["declared_type"]),
            status=FileStatus(row["status"]),
            original_name=row["original_name"] or "",
            mime_type=row["mime_type"] or "",
            file_size_bytes=row["file_size_bytes"] or 0,
            extracted_result=row["extracted_result"],
            error_detail=row["error_detail"],
            processing_duration_ms=row["processing_duration_ms"],
            completed_at=row["completed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
