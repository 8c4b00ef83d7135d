import uuid
from pathlib import Path

from docpipe.config.settings import Settings
from docpipe.database.connection import close_pool, init_pool
from docpipe.extraction.models import Extractor
from docpipe.ingestion.service import IngestionService
from docpipe.logging.logger import Log
from docpipe.notifications.connections import QueuedConnection
from docpipe.notifications.factory import NotifierFactory
from docpipe.notifications.heartbeat import HeartbeatMonitor
from docpipe.notifications.pg_channel import PgNotifyRelay
from docpipe.notifications.registry import ConnectionRegistry, InMemoryConnectionRegistry
from docpipe.processor.processor import build_processor
from docpipe.queue.base import BaseJobQueue
from docpipe.queue.factory import JobQueueFactory
from docpipe.records.base import BaseFileRecordStore
from docpipe.records.factory import FileRecordStoreFactory
from docpipe.records.models import DeclaredType
from docpipe.worker.job_runner import JobRunner
from docpipe.worker.pool import WorkerPool


def uses_postgres(settings: Settings) -> bool:
    return "postgres" in {
        settings.store_backend.lower(),
        settings.queue_backend.lower(),
        settings.notification_backend.lower(),
    }


class DocpipeService:
    """Owns every long-lived component and starts/stops them in order.

    The connection registry lives exactly as long as the service: it is
    created here, handed to the notifier and relay, and closed in stop().
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: BaseFileRecordStore | None = None,
        queue: BaseJobQueue | None = None,
        registry: ConnectionRegistry | None = None,
        extractors: dict[DeclaredType, Extractor] | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry if registry is not None else InMemoryConnectionRegistry()
        self.store = store if store is not None else FileRecordStoreFactory.create(settings)
        self.queue = queue if queue is not None else JobQueueFactory.create(settings)
        self.notifier = NotifierFactory.create(settings, self.registry)
        self.ingestion = IngestionService(
            store=self.store,
            queue=self.queue,
            files_root=Path(settings.files_root),
            max_upload_size_bytes=settings.max_upload_size_bytes,
        )
        processor = build_processor(settings, self.store, self.notifier, extractors)
        self.worker_pool = WorkerPool(self.queue, JobRunner(processor), settings)
        self.heartbeat_monitor = HeartbeatMonitor(
            self.registry,
            timeout_seconds=settings.heartbeat_timeout_seconds,
            sweep_interval_seconds=settings.heartbeat_sweep_interval_seconds,
        )
        self.relay = (
            PgNotifyRelay(settings, self.registry)
            if settings.notification_backend.lower() == "postgres"
            else None
        )
        self._owns_pool = False

    def start(self) -> None:
        if uses_postgres(self.settings):
            init_pool(self.settings)
            self._owns_pool = True
        self.heartbeat_monitor.start()
        if self.relay is not None:
            self.relay.start()
        self.worker_pool.start()
        Log.info(f"Service started ({self.settings.app_env})")

    def stop(self) -> None:
        self.worker_pool.stop()
        if self.relay is not None:
            self.relay.stop()
        self.heartbeat_monitor.stop()
        self.registry.close()
        if self._owns_pool:
            close_pool()
            self._owns_pool = False
        Log.info("Service stopped")

    def connect(self, owner_id: str, connection_id: str | None = None) -> QueuedConnection:
        """Register a new client connection for an authenticated owner."""
        connection = QueuedConnection(
            connection_id or str(uuid.uuid4()),
            maxsize=self.settings.connection_outbox_size,
        )
        self.registry.add(owner_id, connection)
        return connection

    def heartbeat(self, owner_id: str, connection_id: str) -> bool:
        return self.registry.touch(owner_id, connection_id)

    def disconnect(self, owner_id: str, connection_id: str) -> bool:
        return self.registry.remove(owner_id, connection_id)
