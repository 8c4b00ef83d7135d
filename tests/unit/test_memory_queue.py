import threading
from typing import Any

import pytest

from docpipe.queue.exceptions import DeliveryAlreadySettledError
from docpipe.queue.memory_queue import InMemoryJobQueue
from docpipe.queue.models import Job
from docpipe.records.models import DeclaredType


def _make_job(file_id: str = "file-1") -> Job:
    return Job(
        file_id=file_id,
        storage_path=f"/files/u1/{file_id}.csv",
        declared_type=DeclaredType.CSV,
        owner_id="u1",
    )


def _make_queue(clock: Any, max_attempts: int = 3, visibility: float = 600) -> InMemoryJobQueue:
    return InMemoryJobQueue(
        max_attempts=max_attempts,
        backoff_base_seconds=2.0,
        visibility_timeout_seconds=visibility,
        clock=clock,
    )


class TestEnqueueDequeue:
    def test_delivery_counts_attempt(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        job_id = queue.enqueue(_make_job())

        delivery = queue.dequeue(timeout=0)

        assert delivery is not None
        assert delivery.job.id == job_id
        assert delivery.job.attempt_count == 1

    def test_fifo_order(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        queue.enqueue(_make_job("a"))
        queue.enqueue(_make_job("b"))

        first = queue.dequeue(timeout=0)
        second = queue.dequeue(timeout=0)

        assert first is not None and second is not None
        assert [first.job.file_id, second.job.file_id] == ["a", "b"]

    def test_empty_queue_returns_none(self, fake_clock: Any) -> None:
        assert _make_queue(fake_clock).dequeue(timeout=0) is None

    def test_in_flight_job_is_not_delivered_twice(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        queue.enqueue(_make_job())

        assert queue.dequeue(timeout=0) is not None
        assert queue.dequeue(timeout=0) is None

    def test_dequeue_wakes_on_enqueue(self) -> None:
        queue = InMemoryJobQueue(3, 2.0, 600)
        timer = threading.Timer(0.05, queue.enqueue, args=(_make_job(),))
        timer.start()
        try:
            delivery = queue.dequeue(timeout=5)
        finally:
            timer.cancel()
        assert delivery is not None


class TestAck:
    def test_ack_removes_job(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        queue.enqueue(_make_job())
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None

        delivery.ack()
        fake_clock.advance(10_000)

        assert queue.pending_count() == 0
        assert queue.dequeue(timeout=0) is None

    def test_settling_twice_raises(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        queue.enqueue(_make_job())
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None
        delivery.ack()

        with pytest.raises(DeliveryAlreadySettledError):
            delivery.fail("late")


class TestRetry:
    def test_redelivered_after_exponential_backoff(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        queue.enqueue(_make_job())

        first = queue.dequeue(timeout=0)
        assert first is not None
        first.fail("transient")

        fake_clock.advance(1.5)
        assert queue.dequeue(timeout=0) is None
        fake_clock.advance(0.5)
        second = queue.dequeue(timeout=0)
        assert second is not None
        assert second.job.attempt_count == 2
        assert second.job.last_error == "transient"

        second.fail("transient")
        fake_clock.advance(3.5)
        assert queue.dequeue(timeout=0) is None
        fake_clock.advance(0.5)
        third = queue.dequeue(timeout=0)
        assert third is not None
        assert third.job.attempt_count == 3

    def test_dropped_at_attempt_ceiling(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock, max_attempts=2)
        queue.enqueue(_make_job())

        for _ in range(2):
            delivery = queue.dequeue(timeout=0)
            assert delivery is not None
            delivery.fail("boom")
            fake_clock.advance(100)

        assert queue.dequeue(timeout=0) is None
        assert queue.pending_count() == 0

    def test_no_retry_drops_immediately(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)
        queue.enqueue(_make_job())
        delivery = queue.dequeue(timeout=0)
        assert delivery is not None

        delivery.fail("file missing", retry=False)

        assert queue.pending_count() == 0


class TestVisibilityTimeout:
    def test_unsettled_job_is_redelivered(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock, visibility=30)
        queue.enqueue(_make_job())
        assert queue.dequeue(timeout=0) is not None

        fake_clock.advance(29)
        assert queue.dequeue(timeout=0) is None
        fake_clock.advance(1)
        redelivered = queue.dequeue(timeout=0)

        assert redelivered is not None
        assert redelivered.job.attempt_count == 2

    def test_stale_fail_after_redelivery_is_ignored(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock, visibility=30)
        queue.enqueue(_make_job())
        stale = queue.dequeue(timeout=0)
        assert stale is not None
        fake_clock.advance(30)
        fresh = queue.dequeue(timeout=0)
        assert fresh is not None

        fresh.ack()
        stale.fail("late failure")
        fake_clock.advance(100)

        assert queue.dequeue(timeout=0) is None

    def test_stale_ack_after_redelivery_is_ignored(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock, visibility=30)
        queue.enqueue(_make_job())
        stale = queue.dequeue(timeout=0)
        assert stale is not None
        fake_clock.advance(30)
        fresh = queue.dequeue(timeout=0)
        assert fresh is not None

        stale.ack()
        assert queue.pending_count() == 1
        fresh.fail("transient")
        fake_clock.advance(100)

        retried = queue.dequeue(timeout=0)
        assert retried is not None
        assert retried.job.attempt_count == 3

    def test_unsettled_redelivery_is_bounded(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock, max_attempts=3, visibility=10)
        queue.enqueue(_make_job())

        attempts = []
        while (delivery := queue.dequeue(timeout=0)) is not None:
            attempts.append(delivery.job.attempt_count)
            fake_clock.advance(11)

        # one delivery past the ceiling so the consumer can abandon the job
        assert attempts == [1, 2, 3, 4]
        assert queue.pending_count() == 0


class TestUnenqueuedJob:
    def test_settling_a_job_without_id_raises(self, fake_clock: Any) -> None:
        queue = _make_queue(fake_clock)

        with pytest.raises(ValueError, match="never enqueued"):
            queue.acknowledge(_make_job())
