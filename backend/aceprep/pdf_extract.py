from __future__ import annotations
import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .chunker import content_size
from .errors import MaterialError

logger = logging.getLogger(__name__)

UNREADABLE_PDF_MESSAGE = (
    "I couldn't extract enough readable text from that PDF. "
    "Try another PDF or paste the text content."
)


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Plain text of every page, pages separated by a blank line. May be empty."""
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        texts = []
        for page in reader.pages:
            t = page.extract_text()
            if t:
                texts.append(t.strip())
    except (PdfReadError, ValueError, KeyError, TypeError) as e:
        logger.warning("PDF extraction failed: %s", e)
        raise MaterialError(UNREADABLE_PDF_MESSAGE, error_code="PDF_UNREADABLE") from e
    return "\n\n".join(texts).strip()


def material_from_pdf(pdf_bytes: bytes, notes: str = "", min_chars: int = 200) -> str:
    """
    Material for a request that uploaded a PDF.

    Extracted text wins over pasted notes; the notes are used when the PDF has
    no text layer. Either way the result must carry ``min_chars``
    non-whitespace characters, which rejects scans and image-only files.
    """
    text = extract_pdf_text(pdf_bytes) or (notes or "").strip()
    if content_size(text) < min_chars:
        raise MaterialError(UNREADABLE_PDF_MESSAGE, error_code="PDF_TOO_LITTLE_TEXT")
    return text
