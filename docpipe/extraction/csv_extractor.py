import csv
import io
from pathlib import Path

from docpipe.extraction.models import ExtractionFailure, ExtractionOutcome, ExtractionSuccess
from docpipe.logging.logger import Log


def decode_text(data: bytes) -> str:
    """Decode as UTF-8 (BOM tolerated), falling back to latin-1."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        Log.warning("UTF-8 decode failed, trying latin-1")
        return data.decode("latin-1")


def extract_csv(path: Path) -> ExtractionOutcome:
    """Parse a CSV into row objects keyed by the header row.

    Blank lines are skipped. Every remaining row must have as many fields as
    the header.
    """
    try:
        text = decode_text(path.read_bytes())
    except OSError as exc:
        return ExtractionFailure(f"Could not read file: {exc}")

    try:
        rows = [row for row in csv.reader(io.StringIO(text)) if row]
    except csv.Error as exc:
        return ExtractionFailure(f"Failed to parse CSV: {exc}")

    if not rows:
        return ExtractionSuccess({"records": []})

    header = [column.strip() for column in rows[0]]
    records: list[dict[str, str]] = []
    for number, row in enumerate(rows[1:], start=2):
        if len(row) != len(header):
            return ExtractionFailure(
                f"Invalid record length on row {number}: "
                f"expected {len(header)} fields, got {len(row)}"
            )
        records.append(dict(zip(header, row)))
    return ExtractionSuccess({"records": records})
