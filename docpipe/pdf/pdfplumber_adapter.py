import io

import pdfplumber

from docpipe.logging.logger import Log
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError, PdfPasswordProtectedError
from docpipe.pdf.models import PdfContent, join_pages, normalize_metadata


class PdfPlumberAdapter(BasePdfExtractor):
    name = "pdfplumber"

    def extract(self, pdf_bytes: bytes) -> PdfContent:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages: list[str | None] = []
                for number, page in enumerate(pdf.pages, start=1):
                    try:
                        pages.append(page.extract_text() or "")
                    except Exception as exc:
                        Log.warning(f"pdfplumber could not read page {number}: {exc}")
                        pages.append(None)
                text, unreadable = join_pages(pages)
                metadata = normalize_metadata(pdf.metadata)
        except Exception as exc:
            # pdfminer signals encryption with PDFPasswordIncorrect.
            if "password" in type(exc).__name__.lower():
                raise PdfPasswordProtectedError("PDF is password protected") from exc
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc

        return PdfContent(
            text=text,
            page_count=len(pages),
            metadata=metadata,
            unreadable_pages=unreadable,
        )
