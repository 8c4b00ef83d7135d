from dataclasses import dataclass, field

# Document info keys as reported by pdfminer (CamelCase) and PyMuPDF
# (camelCase), lower-cased, mapped to the keys stored on the file record.
METADATA_KEYS: dict[str, str] = {
    "title": "title",
    "author": "author",
    "subject": "subject",
    "keywords": "keywords",
    "creator": "creator",
    "producer": "producer",
    "creationdate": "creation_date",
    "moddate": "modification_date",
}


@dataclass(frozen=True)
class PdfContent:
    """Engine-independent content of a parsed PDF."""

    text: str
    page_count: int
    metadata: dict[str, str] = field(default_factory=dict)
    unreadable_pages: list[int] = field(default_factory=list)


def normalize_metadata(raw: dict[object, object] | None) -> dict[str, str]:
    """Keep known document info fields under engine-independent keys."""
    normalized: dict[str, str] = {}
    for key, value in (raw or {}).items():
        name = METADATA_KEYS.get(str(key).lower())
        if name is None or value is None:
            continue
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        text = str(value).strip()
        if text:
            normalized[name] = text
    return normalized


def join_pages(pages: list[str | None]) -> tuple[str, list[int]]:
    """Join readable pages; return the text and 1-based numbers of unreadable ones.

    Raises:
        ValueError: if the document has pages but none could be read.
    """
    unreadable = [number for number, page in enumerate(pages, start=1) if page is None]
    if pages and len(unreadable) == len(pages):
        raise ValueError("no page could be read")
    text = "\n".join(page for page in pages if page is not None).strip()
    return text, unreadable
