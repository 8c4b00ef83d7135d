import heapq
import itertools
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import replace

from docpipe.logging.logger import Log
from docpipe.queue.base import BaseJobQueue, JobDelivery
from docpipe.queue.models import Job


class InMemoryJobQueue(BaseJobQueue):
    """Process-local queue with the same delivery semantics as the Postgres queue.

    Jobs wait in a heap keyed by the time they become available. Delivered
    jobs sit in an in-flight table until settled or until their visibility
    deadline passes, at which point they return to the heap. Settling is
    ignored unless it comes from the current delivery. A job whose last
    allowed delivery expires unsettled is delivered once more for its
    consumer to abandon, then dropped if that one expires too.
    """

    def __init__(
        self,
        max_attempts: int,
        backoff_base_seconds: float,
        visibility_timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(max_attempts, backoff_base_seconds, visibility_timeout_seconds)
        self._clock = clock
        self._cond = threading.Condition()
        self._seq = itertools.count()
        self._ready: list[tuple[float, int, str]] = []
        self._jobs: dict[str, Job] = {}
        self._in_flight: dict[str, float] = {}

    def enqueue(self, job: Job) -> str:
        job_id = job.id or str(uuid.uuid4())
        with self._cond:
            self._jobs[job_id] = replace(job, id=job_id, attempt_count=0)
            self._push(job_id, self._clock())
            self._cond.notify()
        return job_id

    def dequeue(self, timeout: float) -> JobDelivery | None:
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                now = self._clock()
                self._reclaim_expired(now)
                if self._ready and self._ready[0][0] <= now:
                    _available_at, _seq, job_id = heapq.heappop(self._ready)
                    job = self._jobs.get(job_id)
                    if job is None or job_id in self._in_flight:
                        continue
                    job = replace(job, attempt_count=job.attempt_count + 1)
                    self._jobs[job_id] = job
                    self._in_flight[job_id] = now + self._visibility_timeout_seconds
                    return JobDelivery(job=job, queue=self)

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                wait = remaining
                if self._ready:
                    wait = min(wait, max(self._ready[0][0] - now, 0.0))
                if self._in_flight:
                    wait = min(wait, max(min(self._in_flight.values()) - now, 0.0))
                self._cond.wait(max(wait, 0.01))

    def acknowledge(self, job: Job) -> None:
        job_id = _require_id(job)
        with self._cond:
            if not self._owns(job_id, job):
                return
            self._in_flight.pop(job_id, None)
            self._jobs.pop(job_id, None)

    def pending_count(self) -> int:
        """Number of jobs not yet acknowledged or dropped."""
        with self._cond:
            return len(self._jobs)

    def _schedule_retry(self, job: Job, delay_seconds: float, error: str) -> None:
        job_id = _require_id(job)
        with self._cond:
            if not self._owns(job_id, job):
                return
            del self._in_flight[job_id]
            self._jobs[job_id] = replace(job, last_error=error)
            self._push(job_id, self._clock() + delay_seconds)
            self._cond.notify()

    def _drop(self, job: Job, error: str) -> None:
        self.acknowledge(job)

    def _owns(self, job_id: str, job: Job) -> bool:
        """True if job is the current in-flight delivery of job_id."""
        current = self._jobs.get(job_id)
        return (
            job_id in self._in_flight
            and current is not None
            and current.attempt_count == job.attempt_count
        )

    def _push(self, job_id: str, available_at: float) -> None:
        heapq.heappush(self._ready, (available_at, next(self._seq), job_id))

    def _reclaim_expired(self, now: float) -> None:
        expired = [job_id for job_id, until in self._in_flight.items() if until <= now]
        for job_id in expired:
            del self._in_flight[job_id]
            job = self._jobs[job_id]
            if job.attempt_count > self._max_attempts:
                del self._jobs[job_id]
                Log.error(
                    f"Job {job_id} for file {job.file_id} dropped unsettled after "
                    f"{job.attempt_count} deliveries"
                )
                continue
            self._push(job_id, now)


def _require_id(job: Job) -> str:
    if job.id is None:
        raise ValueError(f"Job for file {job.file_id} was never enqueued")
    return job.id
