class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class PreconditionError(ProcessorError):
    """Raised when a stored file cannot be processed at all. Never retried."""


class SourceFileMissingError(PreconditionError):
    """Raised when the stored file no longer exists."""


class SourceFileTooLargeError(PreconditionError):
    """Raised when the stored file exceeds the configured maximum size."""


class ProcessingTimeoutError(ProcessorError):
    """Raised when extraction does not finish within the per-job timeout."""
