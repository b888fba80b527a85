"""Tests for PDF text extraction (pdfplumber patched, no fixtures on disk)."""

from unittest.mock import MagicMock, patch

import pytest

from quickai.core.errors import ValidationError
from quickai.features.generation.documents import PdfTextExtractor


def fake_pdf(*page_texts):
    pdf = MagicMock()
    pdf.pages = [MagicMock(**{"extract_text.return_value": text}) for text in page_texts]
    pdf.__enter__.return_value = pdf
    return pdf


def test_pages_joined():
    with patch("quickai.features.generation.documents.pdfplumber.open", return_value=fake_pdf("Jane Doe", None, " Python ")):
        assert PdfTextExtractor().extract_text(b"%PDF") == "Jane Doe\nPython"


def test_unparseable_document_is_validation_error():
    with patch("quickai.features.generation.documents.pdfplumber.open", side_effect=Exception("No /Root object")):
        with pytest.raises(ValidationError, match="could not be parsed"):
            PdfTextExtractor().extract_text(b"not a pdf")


def test_document_without_text_is_validation_error():
    with patch("quickai.features.generation.documents.pdfplumber.open", return_value=fake_pdf("", "  ")):
        with pytest.raises(ValidationError, match="no extractable text"):
            PdfTextExtractor().extract_text(b"%PDF")
