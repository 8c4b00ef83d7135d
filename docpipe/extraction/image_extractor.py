from pathlib import Path

import pytesseract
from PIL import Image, UnidentifiedImageError

from docpipe.extraction.models import ExtractionFailure, ExtractionOutcome, ExtractionSuccess
from docpipe.extraction.ocr import OcrBusyError, OcrTimeoutError, TesseractOcr
from docpipe.logging.logger import Log

SUPPORTED_IMAGE_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "webp", "tiff")

NO_TEXT_MESSAGE = "No text detected in image"


def extract_image(path: Path, ocr: TesseractOcr) -> ExtractionOutcome:
    """OCR an image file into text, mean word confidence (0-100) and word blocks.

    Empty OCR output is reported as a failure rather than an empty success.
    """
    extension = path.suffix.lower().lstrip(".")
    if extension not in SUPPORTED_IMAGE_EXTENSIONS:
        return ExtractionFailure(
            f"Unsupported image format: .{extension or '<none>'}. "
            f"Supported formats: {', '.join(SUPPORTED_IMAGE_EXTENSIONS)}"
        )
    if not path.is_file():
        return ExtractionFailure(f"Image file not found: {path.name}")

    try:
        with ocr.session() as session, Image.open(path) as image:
            result = session.recognize(image)
    except (OcrBusyError, OcrTimeoutError) as exc:
        Log.warning(f"OCR of {path.name} did not finish: {exc}")
        return ExtractionFailure(str(exc), transient=True)
    except pytesseract.TesseractNotFoundError:
        Log.error("Tesseract binary is not installed or not on PATH")
        return ExtractionFailure("OCR engine is not available")
    except pytesseract.TesseractError as exc:
        return ExtractionFailure(f"OCR failed: {exc.message or exc}")
    except (UnidentifiedImageError, OSError) as exc:
        return ExtractionFailure(f"Could not read image: {exc}")

    if not result.text.strip():
        return ExtractionFailure(NO_TEXT_MESSAGE)

    return ExtractionSuccess(
        {
            "text": result.text,
            "confidence": result.confidence,
            "word_blocks": result.word_blocks,
        }
    )
