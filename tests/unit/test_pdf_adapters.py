from unittest.mock import MagicMock, patch

import pytest

from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError, PdfPasswordProtectedError
from docpipe.pdf.models import join_pages, normalize_metadata
from docpipe.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docpipe.pdf.pymupdf_adapter import PyMuPdfAdapter


@pytest.fixture(params=[PdfPlumberAdapter, PyMuPdfAdapter], ids=["pdfplumber", "pymupdf"])
def adapter(request: pytest.FixtureRequest) -> BasePdfExtractor:
    return request.param()


class TestPdfAdapters:
    def test_extract_returns_text(self, adapter: BasePdfExtractor, sample_pdf_bytes: bytes) -> None:
        content = adapter.extract(sample_pdf_bytes)
        assert "Hello PDF World" in content.text
        assert content.page_count == 1
        assert content.unreadable_pages == []

    def test_extract_multi_page(
        self, adapter: BasePdfExtractor, multi_page_pdf_bytes: bytes
    ) -> None:
        content = adapter.extract(multi_page_pdf_bytes)
        assert content.text.index("Page one content") < content.text.index("Page two content")
        assert content.page_count == 2

    def test_extract_empty_pdf_returns_empty_text(
        self, adapter: BasePdfExtractor, empty_pdf_bytes: bytes
    ) -> None:
        content = adapter.extract(empty_pdf_bytes)
        assert content.text == ""
        assert content.page_count == 1

    def test_metadata_keys_match_across_engines(
        self, adapter: BasePdfExtractor, sample_pdf_bytes: bytes
    ) -> None:
        content = adapter.extract(sample_pdf_bytes)
        assert content.metadata["title"] == "Quarterly Report"
        assert set(content.metadata) <= {
            "title",
            "author",
            "subject",
            "keywords",
            "creator",
            "producer",
            "creation_date",
            "modification_date",
        }

    def test_extract_raises_on_invalid_bytes(self, adapter: BasePdfExtractor) -> None:
        with pytest.raises(PdfExtractionError):
            adapter.extract(b"not a pdf")


class TestPyMuPdfPassword:
    def test_encrypted_document(self) -> None:
        doc = MagicMock(needs_pass=True)
        doc.__enter__.return_value = doc
        with patch("docpipe.pdf.pymupdf_adapter.pymupdf.open", return_value=doc):
            with pytest.raises(PdfPasswordProtectedError):
                PyMuPdfAdapter().extract(b"%PDF-1.7")


class TestPdfPlumberPages:
    def test_unreadable_page_is_skipped(self) -> None:
        good, bad = MagicMock(), MagicMock()
        good.extract_text.return_value = "readable"
        bad.extract_text.side_effect = RuntimeError("broken content stream")
        pdf = MagicMock(pages=[bad, good], metadata={"Title": "T"})
        pdf.__enter__.return_value = pdf
        with patch("docpipe.pdf.pdfplumber_adapter.pdfplumber.open", return_value=pdf):
            content = PdfPlumberAdapter().extract(b"%PDF-1.7")

        assert content.text == "readable"
        assert content.page_count == 2
        assert content.unreadable_pages == [1]
        assert content.metadata == {"title": "T"}

    def test_all_pages_unreadable_fails(self) -> None:
        bad = MagicMock()
        bad.extract_text.side_effect = RuntimeError("broken content stream")
        pdf = MagicMock(pages=[bad], metadata={})
        pdf.__enter__.return_value = pdf
        with patch("docpipe.pdf.pdfplumber_adapter.pdfplumber.open", return_value=pdf):
            with pytest.raises(PdfExtractionError, match="no page could be read"):
                PdfPlumberAdapter().extract(b"%PDF-1.7")


class TestNormalizeMetadata:
    def test_maps_engine_keys(self) -> None:
        assert normalize_metadata({"CreationDate": "D:2024", "modDate": "D:2025"}) == {
            "creation_date": "D:2024",
            "modification_date": "D:2025",
        }

    def test_drops_empty_and_unknown_values(self) -> None:
        raw = {"Title": "", "Author": None, "Creator": "x", "format": "PDF 1.4"}
        assert normalize_metadata(raw) == {"creator": "x"}

    def test_decodes_bytes(self) -> None:
        assert normalize_metadata({"Title": b"Report"}) == {"title": "Report"}

    def test_handles_none(self) -> None:
        assert normalize_metadata(None) == {}


class TestJoinPages:
    def test_no_pages(self) -> None:
        assert join_pages([]) == ("", [])

    def test_reports_unreadable_page_numbers(self) -> None:
        assert join_pages(["a", None, "b"]) == ("a\nb", [2])
