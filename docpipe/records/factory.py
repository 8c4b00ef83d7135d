from docpipe.config.settings import Settings
from docpipe.database.repositories.file_record_repository import PostgresFileRecordStore
from docpipe.records.base import BaseFileRecordStore
from docpipe.records.memory_store import InMemoryFileRecordStore


class FileRecordStoreFactory:
    """Creates the configured file record store."""

    BACKENDS: dict[str, type[BaseFileRecordStore]] = {
        "postgres": PostgresFileRecordStore,
        "memory": InMemoryFileRecordStore,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseFileRecordStore:
        backend = settings.store_backend.lower()
        store_cls = cls.BACKENDS.get(backend)
        if store_cls is None:
            raise ValueError(
                f"Unknown store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return store_cls()
