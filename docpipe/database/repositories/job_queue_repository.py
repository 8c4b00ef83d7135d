import time
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docpipe.database.connection import get_connection
from docpipe.logging.logger import Log
from docpipe.queue.base import BaseJobQueue, JobDelivery
from docpipe.queue.exceptions import EnqueueError
from docpipe.queue.models import Job
from docpipe.records.models import DeclaredType


class PostgresJobQueue(BaseJobQueue):
    """Database-backed queue over the file_jobs table.

    Jobs are claimed with SELECT FOR UPDATE SKIP LOCKED so concurrent workers
    never receive the same row. A claimed row whose locked_at is older than
    the visibility timeout is treated as abandoned and claimed again.
    Ack and retry only touch a row still owned by the settling delivery,
    matched on its attempt count.
    """

    CLAIM_RETRY_INTERVAL_SECONDS = 1.0

    def enqueue(self, job: Job) -> str:
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO file_jobs
                        (file_id, storage_path, declared_type, owner_id,
                         status, attempts, available_at)
                        VALUES (%s, %s, %s, %s, 'pending', 0, NOW())
                        RETURNING id
                        """,
                        (
                            job.file_id,
                            job.storage_path,
                            job.declared_type.value,
                            job.owner_id,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except psycopg.Error as exc:
            raise EnqueueError(f"Failed to enqueue job for file {job.file_id}: {exc}") from exc
        if row is None:
            raise EnqueueError(f"Enqueue of job for file {job.file_id} returned no id")
        return str(row[0])

    def dequeue(self, timeout: float) -> JobDelivery | None:
        deadline = time.monotonic() + timeout
        while True:
            with get_connection() as conn:
                job = self.claim_next_job(conn)
            if job is not None:
                return JobDelivery(job=job, queue=self)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            time.sleep(min(self.CLAIM_RETRY_INTERVAL_SECONDS, remaining))

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> Job | None:
        """Claim the next available job and count the delivery as an attempt.

        An expired claim is redelivered while attempts <= max_attempts, so the
        consumer gets one delivery past the ceiling to abandon. Expired claims
        beyond that are deleted.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                DELETE FROM file_jobs
                WHERE status = 'processing'
                  AND locked_at < NOW() - make_interval(secs => %s)
                  AND attempts > %s
                RETURNING id, file_id, attempts
                """,
                (self._visibility_timeout_seconds, self._max_attempts),
            )
            for dropped in cur.fetchall():
                Log.error(
                    f"Job {dropped['id']} for file {dropped['file_id']} dropped unsettled "
                    f"after {dropped['attempts']} deliveries"
                )
            cur.execute(
                """
                SELECT id, file_id, storage_path, declared_type, owner_id,
                       attempts, last_error
                FROM file_jobs
                WHERE (status = 'pending' AND available_at <= NOW())
                   OR (status = 'processing'
                       AND locked_at < NOW() - make_interval(secs => %s)
                       AND attempts <= %s)
                ORDER BY available_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._visibility_timeout_seconds, self._max_attempts),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        conn.execute(
            """
            UPDATE file_jobs
            SET status = 'processing', attempts = attempts + 1,
                locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        return Job(
            id=str(row["id"]),
            file_id=str(row["file_id"]),
            storage_path=row["storage_path"],
            declared_type=DeclaredType(row["declared_type"]),
            owner_id=row["owner_id"],
            attempt_count=row["attempts"] + 1,
            last_error=row["last_error"],
        )

    def acknowledge(self, job: Job) -> None:
        """Delete the job if this delivery still owns the row."""
        with get_connection() as conn:
            cur = conn.execute(
                """
                DELETE FROM file_jobs
                WHERE id = %s AND status = 'processing' AND attempts = %s
                """,
                (job.id, job.attempt_count),
            )
            conn.commit()
        if cur.rowcount == 0:
            Log.warning(f"Ignored ack of job {job.id} from a superseded delivery")

    def _schedule_retry(self, job: Job, delay_seconds: float, error: str) -> None:
        with get_connection() as conn:
            cur = conn.execute(
                """
                UPDATE file_jobs
                SET status = 'pending', locked_at = NULL, last_error = %s,
                    available_at = NOW() + make_interval(secs => %s),
                    updated_at = NOW()
                WHERE id = %s AND status = 'processing' AND attempts = %s
                """,
                (error, delay_seconds, job.id, job.attempt_count),
            )
            conn.commit()
        if cur.rowcount == 0:
            Log.warning(f"Ignored retry of job {job.id} from a superseded delivery")

    def _drop(self, job: Job, error: str) -> None:
        Log.debug(f"Deleting job {job.id} from file_jobs: {error}")
        self.acknowledge(job)

    def find_by_id(self, job_id: str) -> Job | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, file_id, storage_path, declared_type, owner_id,
                           attempts, last_error
                    FROM file_jobs
                    WHERE id = %s
                    """,
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return Job(
            id=str(row["id"]),
            file_id=str(row["file_id"]),
            storage_path=row["storage_path"],
            declared_type=DeclaredType(row["declared_type"]),
            owner_id=row["owner_id"],
            attempt_count=row["attempts"],
            last_error=row["last_error"],
        )
