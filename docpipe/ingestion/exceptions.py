class IngestionError(Exception):
    """Base exception for upload ingestion errors. Nothing is left stored when raised."""


class UnsupportedMimeTypeError(IngestionError):
    """Raised when the upload's content type has no extractor."""


class UploadTooLargeError(IngestionError):
    """Raised when the upload exceeds the configured maximum size."""


class InvalidOwnerError(IngestionError):
    """Raised when an owner id cannot be used as a storage path segment."""
