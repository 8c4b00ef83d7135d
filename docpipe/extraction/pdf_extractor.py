import re
from pathlib import Path

from docpipe.extraction.models import ExtractionFailure, ExtractionOutcome, ExtractionSuccess
from docpipe.logging.logger import Log
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError, PdfPasswordProtectedError

PDF_MAGIC = b"%PDF-"

CORRUPTED_FILE_MESSAGE = "File appears corrupted or unsupported - try re-uploading it"

PASSWORD_PROTECTED_MESSAGE = "Password-protected PDFs are not supported"

# Lower-cased fragments of errors raised by zlib/flate decoders on damaged streams.
CORRUPTION_SIGNATURES: tuple[str, ...] = (
    "bad compressed-stream marker",
    "incorrect header check",
    "invalid stored block lengths",
    "invalid block type",
    "bad fcheck",
    "zlib error",
)

_VERSION_RE = re.compile(rb"%PDF-(\d+\.\d+)")


def describe_pdf_error(exc: Exception) -> str:
    """Map an engine error to the message stored on the file record."""
    if isinstance(exc, PdfPasswordProtectedError):
        return PASSWORD_PROTECTED_MESSAGE
    lowered = str(exc).lower()
    if any(signature in lowered for signature in CORRUPTION_SIGNATURES):
        return CORRUPTED_FILE_MESSAGE
    return f"Failed to extract PDF content: {exc}"


def extract_pdf(path: Path, engine: BasePdfExtractor) -> ExtractionOutcome:
    """Extract text, page count, document info and header version from a PDF."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        return ExtractionFailure(f"Could not read file: {exc}")

    if not data.startswith(PDF_MAGIC):
        return ExtractionFailure("Invalid PDF file: missing %PDF- header")

    try:
        content = engine.extract(data)
    except PdfExtractionError as exc:
        Log.warning(f"PDF extraction failed for {path.name}: {exc}")
        return ExtractionFailure(describe_pdf_error(exc))

    match = _VERSION_RE.match(data)
    payload = {
        "text": content.text,
        "page_count": content.page_count,
        "metadata": content.metadata,
        "format_version": match.group(1).decode("ascii") if match else None,
    }
    if content.unreadable_pages:
        Log.warning(f"Skipped unreadable pages {content.unreadable_pages} in {path.name}")
        payload["unreadable_pages"] = content.unreadable_pages
    return ExtractionSuccess(payload)
