import threading

from docpipe.config.settings import Settings
from docpipe.logging.logger import Log
from docpipe.queue.base import BaseJobQueue
from docpipe.worker.job_runner import JobRunner
from docpipe.worker.worker import Worker


class WorkerPool:
    """Runs worker_concurrency workers on threads sharing one stop event."""

    def __init__(self, queue: BaseJobQueue, job_runner: JobRunner, settings: Settings) -> None:
        self._queue = queue
        self._job_runner = job_runner
        self._settings = settings
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def size(self) -> int:
        return len(self._threads)

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("Worker pool already started")
        self._stop.clear()
        for index in range(self._settings.worker_concurrency):
            worker = Worker(self._queue, self._job_runner, self._settings, self._stop)
            thread = threading.Thread(target=worker.run, name=f"worker-{index}")
            thread.start()
            self._threads.append(thread)
        Log.info(f"Started {len(self._threads)} worker(s)")

    def stop(self, timeout: float | None = None) -> None:
        """Signal every worker and wait for in-flight jobs to finish."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        Log.info("Worker pool stopped")
