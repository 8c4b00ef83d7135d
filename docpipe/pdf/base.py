from abc import ABC, abstractmethod

from docpipe.pdf.models import PdfContent


class BasePdfExtractor(ABC):
    """Contract for the PDF engines behind the pdf extractor.

    Engines read page by page. A page that fails is recorded in
    PdfContent.unreadable_pages instead of failing the whole document.
    """

    name: str = ""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfContent:
        """Parse PDF bytes into text, page count and document info.

        Raises:
            PdfPasswordProtectedError: if the document is encrypted.
            PdfExtractionError: if the document cannot be parsed at all.
        """
