import io
from pathlib import Path

import pytest
from openpyxl import Workbook
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docpipe.notifications.models import FileStatusEvent
from docpipe.notifications.sink import NotificationSink


class RecordingNotifier(NotificationSink):
    """Captures published events in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, FileStatusEvent]] = []

    def publish(self, owner_id: str, event: FileStatusEvent) -> None:
        self.events.append((owner_id, event))

    @property
    def statuses(self) -> list[str]:
        return [event.status.value for _owner, event in self.events]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle("Quarterly Report")
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def png_path(tmp_path: Path) -> Path:
    """A small white PNG on disk."""
    path = tmp_path / "scan.png"
    Image.new("RGB", (40, 20), color="white").save(path, format="PNG")
    return path


@pytest.fixture()
def xlsx_path(tmp_path: Path) -> Path:
    """Workbook with data on the first sheet and a second sheet that must be ignored."""
    workbook = Workbook()
    first = workbook.active
    first.title = "People"
    first.append(["name", "age"])
    first.append(["John", 30])
    first.append([None, None])
    first.append(["Jane", None])
    second = workbook.create_sheet("Ignored")
    second.append(["other"])
    second.append(["value"])
    path = tmp_path / "people.xlsx"
    workbook.save(path)
    return path


@pytest.fixture()
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
