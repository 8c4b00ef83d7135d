import uuid

import pytest

from docpipe.database.connection import get_connection
from docpipe.database.repositories.job_queue_repository import PostgresJobQueue
from docpipe.queue.models import Job
from docpipe.records.models import DeclaredType


@pytest.fixture
def queue(clean_tables: None) -> PostgresJobQueue:
    return PostgresJobQueue(
        max_attempts=3, backoff_base_seconds=2.0, visibility_timeout_seconds=600
    )


def _make_job() -> Job:
    return Job(
        file_id=str(uuid.uuid4()),
        storage_path="/files/u1/a.csv",
        declared_type=DeclaredType.CSV,
        owner_id="u1",
    )


@pytest.mark.integration
class TestClaim:
    def test_dequeue_claims_and_counts_attempt(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())

        delivery = queue.dequeue(timeout=0)

        assert delivery is not None
        assert delivery.job.id == job_id
        assert delivery.job.attempt_count == 1
        with get_connection() as conn:
            row = conn.execute(
                "SELECT status, locked_at FROM file_jobs WHERE id = %s", (job_id,)
            ).fetchone()
        assert row is not None
        assert row[0] == "processing"
        assert row[1] is not None

    def test_claimed_job_is_not_delivered_twice(self, queue: PostgresJobQueue) -> None:
        queue.enqueue(_make_job())

        assert queue.dequeue(timeout=0) is not None
        assert queue.dequeue(timeout=0) is None

    def test_empty_queue_returns_none(self, queue: PostgresJobQueue) -> None:
        assert queue.dequeue(timeout=0) is None

    def test_abandoned_job_is_reclaimed(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())
        assert queue.dequeue(timeout=0) is not None
        with get_connection() as conn:
            conn.execute(
                "UPDATE file_jobs SET locked_at = NOW() - INTERVAL '1 hour' WHERE id = %s",
                (job_id,),
            )
            conn.commit()

        delivery = queue.dequeue(timeout=0)

        assert delivery is not None
        assert delivery.job.attempt_count == 2


@pytest.mark.integration
class TestSettle:
    def test_ack_removes_job(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None

        delivery.ack()

        assert queue.find_by_id(job_id) is None

    def test_fail_schedules_backoff(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None

        delivery.fail("busy")

        job = queue.find_by_id(job_id)
        assert job is not None
        assert job.attempt_count == 1
        assert job.last_error == "busy"
        with get_connection() as conn:
            row = conn.execute(
                "SELECT status, locked_at, available_at > NOW() FROM file_jobs WHERE id = %s",
                (job_id,),
            ).fetchone()
        assert row == ("pending", None, True)
        assert queue.dequeue(timeout=0) is None

    def test_fail_without_retry_drops_job(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None

        delivery.fail("bad csv", retry=False)

        assert queue.find_by_id(job_id) is None

    def test_fail_at_ceiling_drops_job(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())
        with get_connection() as conn:
            conn.execute("UPDATE file_jobs SET attempts = 2 WHERE id = %s", (job_id,))
            conn.commit()
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None
        assert delivery.job.attempt_count == 3

        delivery.fail("still busy")

        assert queue.find_by_id(job_id) is None


def _expire_claim(job_id: str) -> None:
    with get_connection() as conn:
        conn.execute(
            "UPDATE file_jobs SET locked_at = NOW() - INTERVAL '1 hour' WHERE id = %s",
            (job_id,),
        )
        conn.commit()


@pytest.mark.integration
class TestSupersededDelivery:
    def test_stale_fail_does_not_release_redelivered_job(
        self, queue: PostgresJobQueue
    ) -> None:
        job_id = queue.enqueue(_make_job())
        stale = queue.dequeue(timeout=0)
        assert stale is not None
        _expire_claim(job_id)
        fresh = queue.dequeue(timeout=0)
        assert fresh is not None

        stale.fail("late failure")

        assert queue.dequeue(timeout=0) is None
        with get_connection() as conn:
            row = conn.execute(
                "SELECT status, attempts, last_error FROM file_jobs WHERE id = %s", (job_id,)
            ).fetchone()
        assert row == ("processing", 2, None)

    def test_stale_ack_does_not_delete_redelivered_job(
        self, queue: PostgresJobQueue
    ) -> None:
        job_id = queue.enqueue(_make_job())
        stale = queue.dequeue(timeout=0)
        assert stale is not None
        _expire_claim(job_id)
        fresh = queue.dequeue(timeout=0)
        assert fresh is not None

        stale.ack()

        assert queue.find_by_id(job_id) is not None
        fresh.ack()
        assert queue.find_by_id(job_id) is None


@pytest.mark.integration
class TestRedeliveryCeiling:
    def test_unsettled_redelivery_is_bounded(self, queue: PostgresJobQueue) -> None:
        job_id = queue.enqueue(_make_job())

        attempts = []
        while (delivery := queue.dequeue(timeout=0)) is not None:
            attempts.append(delivery.job.attempt_count)
            _expire_claim(job_id)

        assert attempts == [1, 2, 3, 4]
        assert queue.find_by_id(job_id) is None
