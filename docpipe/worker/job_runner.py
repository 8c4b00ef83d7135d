from docpipe.logging.logger import Log
from docpipe.processor.processor import FileProcessor
from docpipe.queue.base import JobDelivery

INTERNAL_ERROR_MESSAGE = "Internal error while processing file"

ABANDONED_MESSAGE = "Processing abandoned after {attempts} attempts"


class JobRunner:
    """Run one delivery, then ack it or hand it back to the queue's retry policy."""

    def __init__(self, processor: FileProcessor) -> None:
        self._processor = processor

    def run(self, delivery: JobDelivery) -> None:
        """Execute a single job with error handling."""
        job = delivery.job
        Log.info("Running job", job_id=job.id, file_id=job.file_id, attempt=job.attempt_count)
        if job.attempt_count > delivery.queue.max_attempts:
            self._abandon(delivery)
            return
        try:
            outcome = self._processor.process(job, started_at=delivery.delivered_at)
        except Exception as exc:
            self._handle_failure(delivery, exc)
            return

        if outcome.error is None:
            self._settle(delivery, None)
            Log.info("Job completed", job_id=job.id, file_id=job.file_id)
        else:
            self._settle(delivery, outcome.error, retry=outcome.retryable)

    def _abandon(self, delivery: JobDelivery) -> None:
        """Redelivered past the ceiling after unsettled attempts: fail the record, drop the job."""
        job = delivery.job
        error = ABANDONED_MESSAGE.format(attempts=delivery.queue.max_attempts)
        try:
            self._processor.mark_failed(job, error)
        except Exception:
            Log.exception(f"Could not persist abandoned state for file {job.file_id}")
        self._settle(delivery, error, retry=False)

    def _handle_failure(self, delivery: JobDelivery, exc: Exception) -> None:
        """Infrastructure fault: escalate, try to leave the record failed, let the queue retry."""
        job = delivery.job
        Log.exception(f"Job {job.id} for file {job.file_id} hit an unexpected error: {exc}")
        try:
            self._processor.mark_failed(job, INTERNAL_ERROR_MESSAGE)
        except Exception:
            Log.exception(
                f"Could not persist failed state for file {job.file_id}; "
                "stored status is out of sync"
            )
        self._settle(delivery, str(exc), retry=True)

    def _settle(self, delivery: JobDelivery, error: str | None, retry: bool = True) -> None:
        """Ack on success, fail otherwise. Queue errors leave the job to redelivery."""
        try:
            if error is None:
                delivery.ack()
            else:
                delivery.fail(error, retry=retry)
        except Exception as exc:
            Log.error(f"Could not settle job {delivery.job.id}, it will be redelivered: {exc}")
