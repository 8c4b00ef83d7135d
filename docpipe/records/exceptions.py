class RecordStoreError(Exception):
    """Base exception for all file record store errors."""


class FileRecordNotFoundError(RecordStoreError):
    """Raised when a file record cannot be found."""
