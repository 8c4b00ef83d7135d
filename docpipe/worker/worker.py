import threading

from docpipe.config.settings import Settings
from docpipe.logging.logger import Log
from docpipe.queue.base import BaseJobQueue, JobDelivery
from docpipe.worker.job_runner import JobRunner


class Worker:
    """Poll loop: dequeue -> dispatch, until stopped."""

    def __init__(
        self,
        queue: BaseJobQueue,
        job_runner: JobRunner,
        settings: Settings,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._queue = queue
        self._job_runner = job_runner
        self._settings = settings
        self._stop = stop_event if stop_event is not None else threading.Event()

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until stop() or interrupted.

        If max_jobs is set, stop after processing that many jobs (for testing).
        """
        Log.info("Worker started, polling for jobs")
        jobs_done = 0
        try:
            while not self._stop.is_set():
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                delivery = self._try_dequeue()
                if delivery:
                    self._job_runner.run(delivery)
                    jobs_done += 1
                else:
                    Log.debug("No jobs available")
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def stop(self) -> None:
        self._stop.set()

    def _try_dequeue(self) -> JobDelivery | None:
        """Wait for the next job. Gracefully handle queue errors."""
        try:
            return self._queue.dequeue(timeout=self._settings.job_poll_interval_seconds)
        except Exception as exc:
            Log.warning(f"Queue error, will retry: {exc}")
            self._stop.wait(self._settings.job_poll_interval_seconds)
            return None
