import pymupdf

from docpipe.logging.logger import Log
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError, PdfPasswordProtectedError
from docpipe.pdf.models import PdfContent, join_pages, normalize_metadata


class PyMuPdfAdapter(BasePdfExtractor):
    name = "pymupdf"

    def extract(self, pdf_bytes: bytes) -> PdfContent:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if doc.needs_pass:
                    raise PdfPasswordProtectedError("PDF is password protected")
                pages: list[str | None] = []
                for page in doc:
                    try:
                        pages.append(page.get_text())
                    except Exception as exc:
                        Log.warning(f"pymupdf could not read page {page.number + 1}: {exc}")
                        pages.append(None)
                text, unreadable = join_pages(pages)
                metadata = normalize_metadata(doc.metadata)
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

        return PdfContent(
            text=text,
            page_count=len(pages),
            metadata=metadata,
            unreadable_pages=unreadable,
        )
