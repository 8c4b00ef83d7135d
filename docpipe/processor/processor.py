import time
from pathlib import Path

from docpipe.config.settings import Settings
from docpipe.extraction.dispatch import build_dispatch_table
from docpipe.extraction.models import (
    ExtractionFailure,
    ExtractionOutcome,
    Extractor,
)
from docpipe.logging.logger import Log
from docpipe.notifications.models import FileStatusEvent
from docpipe.notifications.sink import NotificationSink
from docpipe.processor.exceptions import PreconditionError, ProcessingTimeoutError
from docpipe.processor.file_loader import FileLoader
from docpipe.processor.models import ProcessingOutcome
from docpipe.processor.timeout import call_with_timeout
from docpipe.queue.models import Job
from docpipe.records.base import BaseFileRecordStore
from docpipe.records.models import DeclaredType


def _guarded(extractor: Extractor) -> Extractor:
    """Turn anything an extractor raises into an ExtractionFailure."""

    def run(path: Path) -> ExtractionOutcome:
        try:
            return extractor(path)
        except Exception as exc:
            Log.exception(f"Extractor raised for {path.name}")
            return ExtractionFailure(f"Unexpected extraction error: {exc}")

    return run


class FileProcessor:
    """Drives one file record through processing to completed or failed.

    Order per attempt: persist processing, notify processing, check the
    stored file, extract from a temporary copy, persist the terminal state,
    notify it. Persistence always happens before the matching notification
    and never depends on it.
    """

    def __init__(
        self,
        store: BaseFileRecordStore,
        notifier: NotificationSink,
        file_loader: FileLoader,
        extractors: dict[DeclaredType, Extractor],
        timeout_seconds: float,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._file_loader = file_loader
        self._extractors = extractors
        self._timeout_seconds = timeout_seconds

    def process(self, job: Job, started_at: float | None = None) -> ProcessingOutcome:
        """Run one attempt for the job's file record.

        Store errors propagate to the caller; everything else ends in a
        persisted terminal state.
        """
        started = started_at if started_at is not None else time.monotonic()
        Log.info("Processing file", file_id=job.file_id, type=job.declared_type.value)

        if not self._store.set_processing(job.file_id):
            Log.info(f"File {job.file_id} is already completed, skipping")
            return ProcessingOutcome.already_completed()
        self._notify(job.owner_id, FileStatusEvent.processing(job.file_id))

        try:
            source = self._file_loader.check(job.storage_path)
        except PreconditionError as exc:
            return self.mark_failed(job, str(exc))

        outcome = self._extract(job, source)
        if isinstance(outcome, ExtractionFailure):
            return self.mark_failed(job, outcome.message, retryable=outcome.transient)

        duration_ms = int((time.monotonic() - started) * 1000)
        self._store.set_completed(job.file_id, outcome.payload, duration_ms)
        Log.info("File processed", file_id=job.file_id, duration_ms=duration_ms)
        self._notify(job.owner_id, FileStatusEvent.completed(job.file_id, outcome.payload))
        return ProcessingOutcome.completed()

    def mark_failed(
        self,
        job: Job,
        error: str,
        retryable: bool = False,
    ) -> ProcessingOutcome:
        """Persist status=failed with error, then notify the owner."""
        Log.error(f"Error processing file {job.file_id}: {error}")
        if not self._store.set_failed(job.file_id, error):
            Log.warning(
                f"File {job.file_id} was completed by another attempt, keeping its result"
            )
            return ProcessingOutcome.already_completed()
        self._notify(job.owner_id, FileStatusEvent.failed(job.file_id, error))
        return ProcessingOutcome.failed(error, retryable=retryable)

    def _extract(self, job: Job, source: Path) -> ExtractionOutcome:
        extractor = self._extractors.get(job.declared_type)
        if extractor is None:
            return ExtractionFailure(f"No extractor for file type '{job.declared_type.value}'")

        try:
            with self._file_loader.stage(source) as local:
                return call_with_timeout(_guarded(extractor), local, self._timeout_seconds)
        except ProcessingTimeoutError as exc:
            return ExtractionFailure(str(exc), transient=True)
        except OSError as exc:
            return ExtractionFailure(f"Could not read file: {exc}")

    def _notify(self, owner_id: str, event: FileStatusEvent) -> None:
        try:
            self._notifier.publish(owner_id, event)
        except Exception as exc:
            Log.warning(f"Notification for file {event.file_id} failed: {exc}")


def build_processor(
    settings: Settings,
    store: BaseFileRecordStore,
    notifier: NotificationSink,
    extractors: dict[DeclaredType, Extractor] | None = None,
) -> FileProcessor:
    """Build a FileProcessor with the configured extractors."""
    return FileProcessor(
        store=store,
        notifier=notifier,
        file_loader=FileLoader(max_size_bytes=settings.max_upload_size_bytes),
        extractors=extractors if extractors is not None else build_dispatch_table(settings),
        timeout_seconds=settings.job_processing_timeout_seconds,
    )
