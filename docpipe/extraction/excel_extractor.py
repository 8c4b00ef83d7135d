import datetime as dt
import zipfile
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from docpipe.extraction.models import ExtractionFailure, ExtractionOutcome, ExtractionSuccess


def _column_keys(header: tuple[object, ...]) -> list[str]:
    keys: list[str] = []
    for index, cell in enumerate(header):
        if cell is None or str(cell).strip() == "":
            keys.append("__EMPTY" if index == 0 else f"__EMPTY_{index}")
        else:
            keys.append(str(cell).strip())
    return keys


def _json_value(value: object) -> object:
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, dt.timedelta):
        return str(value)
    return value


def extract_excel(path: Path) -> ExtractionOutcome:
    """Read the first worksheet of an xlsx workbook into row objects.

    The first non-empty row supplies the keys; empty cells are omitted and
    empty rows skipped.
    """
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        return ExtractionFailure(f"Failed to read Excel workbook: {exc}")

    try:
        if not workbook.worksheets:
            return ExtractionFailure("Excel workbook has no worksheets")
        rows = (
            row
            for row in workbook.worksheets[0].iter_rows(values_only=True)
            if any(cell is not None and cell != "" for cell in row)
        )
        header = next(rows, None)
        if header is None:
            return ExtractionSuccess({"records": []})
        keys = _column_keys(header)

        records: list[dict[str, object]] = []
        for row in rows:
            record = {
                key: _json_value(value)
                for key, value in zip(keys, row)
                if value is not None and value != ""
            }
            if record:
                records.append(record)
        return ExtractionSuccess({"records": records})
    finally:
        workbook.close()
