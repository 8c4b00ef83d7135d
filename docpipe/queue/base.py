import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from docpipe.logging.logger import Log
from docpipe.queue.backoff import backoff_delay
from docpipe.queue.exceptions import DeliveryAlreadySettledError
from docpipe.queue.models import Job


@dataclass
class JobDelivery:
    """A job handed to one consumer, settled exactly once via ack() or fail()."""

    job: Job
    queue: "BaseJobQueue"
    delivered_at: float = field(default_factory=time.monotonic)
    _settled: bool = field(default=False, init=False)

    def ack(self) -> None:
        """Remove the job permanently."""
        self._settle()
        self.queue.acknowledge(self.job)

    def fail(self, error: str, retry: bool = True) -> None:
        """Schedule a backoff redelivery, or drop the job at the attempt ceiling."""
        self._settle()
        self.queue.reject(self.job, error, retry=retry)

    @property
    def settled(self) -> bool:
        return self._settled

    def _settle(self) -> None:
        if self._settled:
            raise DeliveryAlreadySettledError(
                f"Delivery of job {self.job.id} was already settled"
            )
        self._settled = True


class BaseJobQueue(ABC):
    """Contract for a durable, retrying, at-least-once work queue."""

    def __init__(
        self,
        max_attempts: int,
        backoff_base_seconds: float,
        visibility_timeout_seconds: float,
    ) -> None:
        self._max_attempts = max_attempts
        self._backoff_base_seconds = backoff_base_seconds
        self._visibility_timeout_seconds = visibility_timeout_seconds

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @abstractmethod
    def enqueue(self, job: Job) -> str:
        """Place a new job on the queue and return its id.

        Raises:
            EnqueueError: if the job could not be stored.
        """

    @abstractmethod
    def dequeue(self, timeout: float) -> JobDelivery | None:
        """Block up to `timeout` seconds for the next available job.

        A delivered job that is not settled within the visibility timeout
        becomes available again.
        """

    @abstractmethod
    def acknowledge(self, job: Job) -> None:
        """Remove a delivered job permanently."""

    def reject(self, job: Job, error: str, retry: bool = True) -> None:
        """Apply the retry policy to a failed delivery."""
        if retry and job.attempt_count < self._max_attempts:
            delay = backoff_delay(job.attempt_count, self._backoff_base_seconds)
            self._schedule_retry(job, delay, error)
            Log.warning(
                f"Job {job.id} for file {job.file_id} will be retried in {delay:.1f}s "
                f"(attempt {job.attempt_count} of {self._max_attempts})"
            )
            return
        self._drop(job, error)
        Log.error(
            f"Job {job.id} for file {job.file_id} dropped after "
            f"{job.attempt_count} attempt(s): {error}"
        )

    @abstractmethod
    def _schedule_retry(self, job: Job, delay_seconds: float, error: str) -> None:
        """Make the job available again after `delay_seconds`."""

    @abstractmethod
    def _drop(self, job: Job, error: str) -> None:
        """Remove a job that will not be retried."""
