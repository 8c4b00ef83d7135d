from docpipe.ingestion.exceptions import UnsupportedMimeTypeError
from docpipe.records.models import DeclaredType

MIME_TYPES: dict[str, DeclaredType] = {
    "application/pdf": DeclaredType.PDF,
    "image/png": DeclaredType.IMAGE,
    "image/jpeg": DeclaredType.IMAGE,
    "image/webp": DeclaredType.IMAGE,
    "image/tiff": DeclaredType.IMAGE,
    "text/csv": DeclaredType.CSV,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DeclaredType.EXCEL,
}

# Used when the uploaded file name has no usable extension.
DEFAULT_EXTENSIONS: dict[str, str] = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/tiff": ".tiff",
    "text/csv": ".csv",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
}


def normalize_mime_type(content_type: str) -> str:
    """Drop parameters and case: 'Text/CSV; charset=utf-8' -> 'text/csv'."""
    return content_type.split(";", 1)[0].strip().lower()


def resolve_declared_type(content_type: str) -> DeclaredType:
    """Raises UnsupportedMimeTypeError for content types outside the table."""
    declared_type = MIME_TYPES.get(normalize_mime_type(content_type))
    if declared_type is None:
        raise UnsupportedMimeTypeError(f"Unsupported file type: {content_type}")
    return declared_type
