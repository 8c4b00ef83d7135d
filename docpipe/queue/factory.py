from docpipe.config.settings import Settings
from docpipe.database.repositories.job_queue_repository import PostgresJobQueue
from docpipe.queue.base import BaseJobQueue
from docpipe.queue.memory_queue import InMemoryJobQueue


class JobQueueFactory:
    """Creates the configured job queue backend."""

    BACKENDS: dict[str, type[BaseJobQueue]] = {
        "postgres": PostgresJobQueue,
        "memory": InMemoryJobQueue,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseJobQueue:
        backend = settings.queue_backend.lower()
        queue_cls = cls.BACKENDS.get(backend)
        if queue_cls is None:
            raise ValueError(
                f"Unknown queue backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return queue_cls(
            max_attempts=settings.max_job_attempts,
            backoff_base_seconds=settings.job_backoff_base_seconds,
            visibility_timeout_seconds=settings.job_visibility_timeout_seconds,
        )
