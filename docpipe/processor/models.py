from dataclasses import dataclass

from docpipe.records.models import FileStatus


@dataclass(frozen=True)
class ProcessingOutcome:
    """How one processing attempt ended, as seen by the job runner.

    skipped means the record was already completed and nothing was written.
    """

    status: FileStatus
    error: str | None = None
    retryable: bool = False
    skipped: bool = False

    @classmethod
    def completed(cls) -> "ProcessingOutcome":
        return cls(status=FileStatus.COMPLETED)

    @classmethod
    def failed(cls, error: str, retryable: bool = False) -> "ProcessingOutcome":
        return cls(status=FileStatus.FAILED, error=error, retryable=retryable)

    @classmethod
    def already_completed(cls) -> "ProcessingOutcome":
        return cls(status=FileStatus.COMPLETED, skipped=True)
