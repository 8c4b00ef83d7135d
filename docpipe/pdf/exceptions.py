class PdfExtractionError(Exception):
    """Raised when a PDF engine cannot extract content."""


class PdfPasswordProtectedError(PdfExtractionError):
    """Raised when a PDF cannot be opened without a password."""
