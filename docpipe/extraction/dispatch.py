from functools import partial

from docpipe.config.settings import Settings
from docpipe.extraction.csv_extractor import extract_csv
from docpipe.extraction.excel_extractor import extract_excel
from docpipe.extraction.image_extractor import extract_image
from docpipe.extraction.models import Extractor
from docpipe.extraction.ocr import TesseractOcr
from docpipe.extraction.pdf_extractor import extract_pdf
from docpipe.pdf.factory import PdfExtractorFactory
from docpipe.records.models import DeclaredType

# Tesseract must be killed before the job timeout abandons the extraction thread.
OCR_TIMEOUT_SHARE = 0.8


def build_dispatch_table(settings: Settings) -> dict[DeclaredType, Extractor]:
    """One extractor per declared type, with engines bound from settings."""
    ocr = TesseractOcr(
        language=settings.ocr_language,
        max_concurrency=settings.ocr_max_concurrency,
        timeout_seconds=settings.job_processing_timeout_seconds * OCR_TIMEOUT_SHARE,
    )
    return {
        DeclaredType.PDF: partial(extract_pdf, engine=PdfExtractorFactory.create(settings)),
        DeclaredType.IMAGE: partial(extract_image, ocr=ocr),
        DeclaredType.CSV: extract_csv,
        DeclaredType.EXCEL: extract_excel,
    }
