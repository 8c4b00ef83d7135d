import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import pytesseract
from PIL import Image


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float
    word_blocks: list[dict[str, Any]] = field(default_factory=list)


class OcrBusyError(Exception):
    """No engine slot became free within the OCR timeout."""


class OcrTimeoutError(Exception):
    """Tesseract overran the OCR timeout and was killed."""


# Message pytesseract puts on the RuntimeError it raises after killing tesseract.
TESSERACT_TIMEOUT_MESSAGE = "Tesseract process timeout"


class OcrSession:
    """A held tesseract engine slot. Only valid inside TesseractOcr.session()."""

    def __init__(self, language: str, timeout_seconds: float = 0) -> None:
        self._language = language
        self._timeout_seconds = timeout_seconds

    def recognize(self, image: Image.Image) -> OcrResult:
        """Run tesseract on the image.

        Raises:
            OcrTimeoutError: if tesseract did not finish within the timeout.
        """
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self._language,
                output_type=pytesseract.Output.DICT,
                timeout=self._timeout_seconds,
            )
        except RuntimeError as exc:
            if str(exc) != TESSERACT_TIMEOUT_MESSAGE:
                raise
            raise OcrTimeoutError(
                f"OCR timed out after {self._timeout_seconds:g} seconds"
            ) from exc
        words: list[dict[str, Any]] = []
        lines: dict[tuple[int, int, int], list[str]] = {}
        for i, raw_text in enumerate(data["text"]):
            text = str(raw_text).strip()
            confidence = float(data["conf"][i])
            if not text or confidence < 0:
                continue
            block, paragraph, line = (
                int(data["block_num"][i]),
                int(data["par_num"][i]),
                int(data["line_num"][i]),
            )
            lines.setdefault((block, paragraph, line), []).append(text)
            words.append(
                {
                    "text": text,
                    "confidence": round(confidence, 2),
                    "block": block,
                    "line": line,
                    "bbox": {
                        "left": int(data["left"][i]),
                        "top": int(data["top"][i]),
                        "width": int(data["width"][i]),
                        "height": int(data["height"][i]),
                    },
                }
            )

        confidences = [w["confidence"] for w in words]
        mean_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return OcrResult(
            text="\n".join(" ".join(parts) for parts in lines.values()),
            confidence=round(mean_confidence, 2),
            word_blocks=words,
        )


class TesseractOcr:
    """Bounds how many tesseract processes run at once in this process.

    timeout_seconds caps both the wait for a free slot and each tesseract
    run; pytesseract kills the process when it overruns. 0 means no limit.
    """

    def __init__(
        self,
        language: str = "eng",
        max_concurrency: int = 1,
        timeout_seconds: float = 0,
    ) -> None:
        self._language = language
        self._timeout_seconds = timeout_seconds
        self._slots = threading.BoundedSemaphore(max_concurrency)

    @contextmanager
    def session(self) -> Iterator[OcrSession]:
        """Acquire an engine slot; it is released however the block exits.

        Raises:
            OcrBusyError: if no slot frees up within the timeout.
        """
        if not self._slots.acquire(timeout=self._timeout_seconds or None):
            raise OcrBusyError(
                f"OCR engine busy for {self._timeout_seconds:g} seconds"
            )
        try:
            yield OcrSession(self._language, self._timeout_seconds)
        finally:
            self._slots.release()
