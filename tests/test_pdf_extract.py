"""Tests for PDF text extraction."""

from pathlib import Path

import pytest

from aceprep import pdf_extract
from aceprep.chunker import chunk
from aceprep.errors import MaterialError

HOMEWORK_PDF = Path(__file__).parent / "fixtures" / "homework.pdf"


def test_garbage_bytes_are_unreadable():
    with pytest.raises(MaterialError) as excinfo:
        pdf_extract.extract_pdf_text(b"definitely not a pdf")

    assert excinfo.value.error_code == "PDF_UNREADABLE"
    assert excinfo.value.status_code == 400


class TestMaterialFromPdf:

    def test_extracted_text_wins(self, monkeypatch):
        monkeypatch.setattr(pdf_extract, "extract_pdf_text", lambda data: "x" * 250)
        assert pdf_extract.material_from_pdf(b"%PDF", notes="pasted notes", min_chars=200) == "x" * 250

    def test_notes_used_when_pdf_has_no_text(self, monkeypatch):
        monkeypatch.setattr(pdf_extract, "extract_pdf_text", lambda data: "")
        notes = "Some pasted notes. " * 20
        assert pdf_extract.material_from_pdf(b"%PDF", notes=notes, min_chars=200) == notes.strip()

    def test_too_little_text(self, monkeypatch):
        monkeypatch.setattr(pdf_extract, "extract_pdf_text", lambda data: "scan page 1")

        with pytest.raises(MaterialError) as excinfo:
            pdf_extract.material_from_pdf(b"%PDF", min_chars=200)

        assert excinfo.value.error_code == "PDF_TOO_LITTLE_TEXT"
        assert "couldn't extract enough readable text" in excinfo.value.message


class TestTextLayerPdf:

    def test_extracts_page_text(self):
        text = pdf_extract.extract_pdf_text(HOMEWORK_PDF.read_bytes())

        assert "Homework 4" in text
        assert "product rule" in text
        assert "maximum height" in text

    def test_passes_material_threshold(self):
        material = pdf_extract.material_from_pdf(HOMEWORK_PDF.read_bytes(), notes="", min_chars=200)

        assert "Evaluate the derivative" in material
        assert material == material.strip()

    def test_extracted_text_chunks_into_problems(self):
        material = pdf_extract.material_from_pdf(HOMEWORK_PDF.read_bytes(), min_chars=200)

        paths = [u.ordinal_path for u in chunk(material)]

        assert paths == [(1, "a"), (1, "b"), (2, "a")]
