from docpipe.config.settings import Settings
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docpipe.pdf.pymupdf_adapter import PyMuPdfAdapter

ENGINES: tuple[type[BasePdfExtractor], ...] = (PdfPlumberAdapter, PyMuPdfAdapter)


class PdfExtractorFactory:
    """Resolves the pdf_engine setting to an engine instance."""

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {engine.name: engine for engine in ENGINES}

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        engine = settings.pdf_engine.strip().lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {sorted(cls.ADAPTERS)}"
            )
        return adapter_cls()
