"""PDF text extraction for document review."""

import io
import logging

import pdfplumber

from quickai.core.errors import ValidationError

logger = logging.getLogger(__name__)


class PdfTextExtractor:
    """DocumentExtractor that reads PDF pages with pdfplumber."""

    def extract_text(self, data: bytes) -> str:
        """Extract text from each PDF page and join pages with newlines."""
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            logger.info("[documents] unreadable upload", extra={"exc_type": type(e).__name__})
            raise ValidationError("Document could not be parsed as a PDF") from e

        text = "\n".join(p.strip() for p in pages if p.strip())
        if not text:
            raise ValidationError("Document contains no extractable text")
        return text
