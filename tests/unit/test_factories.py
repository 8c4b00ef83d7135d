from unittest.mock import MagicMock

import pytest

from docpipe.database.repositories.file_record_repository import PostgresFileRecordStore
from docpipe.database.repositories.job_queue_repository import PostgresJobQueue
from docpipe.notifications.factory import NotifierFactory
from docpipe.notifications.pg_channel import PgNotifySink
from docpipe.notifications.registry import InMemoryConnectionRegistry
from docpipe.notifications.sink import FanOutNotifier
from docpipe.queue.factory import JobQueueFactory
from docpipe.queue.memory_queue import InMemoryJobQueue
from docpipe.records.factory import FileRecordStoreFactory
from docpipe.records.memory_store import InMemoryFileRecordStore


def _settings(**overrides: object) -> MagicMock:
    values: dict[str, object] = {
        "store_backend": "memory",
        "queue_backend": "memory",
        "notification_backend": "local",
        "notification_channel": "file_status",
        "max_job_attempts": 3,
        "job_backoff_base_seconds": 2.0,
        "job_visibility_timeout_seconds": 600,
    }
    values.update(overrides)
    return MagicMock(**values)


class TestFileRecordStoreFactory:
    def test_memory(self) -> None:
        assert isinstance(FileRecordStoreFactory.create(_settings()), InMemoryFileRecordStore)

    def test_postgres(self) -> None:
        store = FileRecordStoreFactory.create(_settings(store_backend="Postgres"))
        assert isinstance(store, PostgresFileRecordStore)

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown store backend"):
            FileRecordStoreFactory.create(_settings(store_backend="redis"))


class TestJobQueueFactory:
    def test_memory_uses_settings(self) -> None:
        queue = JobQueueFactory.create(_settings(max_job_attempts=5))
        assert isinstance(queue, InMemoryJobQueue)
        assert queue.max_attempts == 5

    def test_postgres(self) -> None:
        assert isinstance(JobQueueFactory.create(_settings(queue_backend="postgres")), PostgresJobQueue)

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown queue backend"):
            JobQueueFactory.create(_settings(queue_backend="sqs"))


class TestNotifierFactory:
    def test_local(self) -> None:
        notifier = NotifierFactory.create(_settings(), InMemoryConnectionRegistry())
        assert isinstance(notifier, FanOutNotifier)

    def test_postgres(self) -> None:
        notifier = NotifierFactory.create(
            _settings(notification_backend="postgres"), InMemoryConnectionRegistry()
        )
        assert isinstance(notifier, PgNotifySink)

    def test_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown notification backend"):
            NotifierFactory.create(_settings(notification_backend="kafka"), InMemoryConnectionRegistry())
