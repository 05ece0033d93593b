"""
DocumentParser: first pipeline stage.

Validates the media type of the source document and extracts plain
text from it (pypdf for PDF, python-docx for DOCX, Tesseract OCR for
images). The text is cleaned, truncated and scrubbed of lines that
try to instruct the model.
"""

import asyncio
import base64
import binascii
import io
from dataclasses import dataclass
from typing import Any, Dict, Optional

import docx
import pytesseract
from PIL import Image
from pypdf import PdfReader

from draftdesk.errors import UnsupportedInputError
from draftdesk.utils.logging import pipeline_logger as logger
from draftdesk.utils.text import (
    clean_text,
    count_words,
    sanitize_document_text,
    truncate_text,
)


PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIMES = ("text/plain", "text/markdown")
IMAGE_MIMES = ("image/jpeg", "image/png")

SUPPORTED_MIME_TYPES = TEXT_MIMES + (PDF_MIME, DOCX_MIME) + IMAGE_MIMES


def is_supported_mime_type(mime_type: str) -> bool:
    return mime_type in SUPPORTED_MIME_TYPES


@dataclass
class ParsedDocument:
    """Output of the parse stage."""
    text: str
    word_count: int
    redactions: int = 0
    mime_type: Optional[str] = None
    page_count: Optional[int] = None


class DocumentParser:
    """Parse stage. Raises UnsupportedInputError for disallowed or unreadable documents."""

    def __init__(self, max_chars: int = 8000, ocr_languages: str = "eng"):
        self.max_chars = max_chars
        self.ocr_languages = ocr_languages

    async def parse(self, input_payload: Dict[str, Any]) -> ParsedDocument:
        mime_type = input_payload.get("mime_type") or "text/plain"
        document_text = input_payload.get("document_text")
        document_base64 = input_payload.get("document_base64")

        if (document_text or document_base64) and not is_supported_mime_type(mime_type):
            raise UnsupportedInputError(
                f"Unsupported document type: {mime_type}. "
                f"Supported types: {', '.join(SUPPORTED_MIME_TYPES)}"
            )

        page_count = None
        if document_text:
            raw_text = document_text
        elif document_base64:
            data = self._decode(document_base64)
            logger.info("Parsing document", mime_type=mime_type, size=len(data))
            raw_text, page_count = await asyncio.to_thread(self._extract, data, mime_type)
        else:
            # Instructions-only request
            return ParsedDocument(text="", word_count=0, mime_type=None)

        text = clean_text(raw_text)
        if not text:
            raise UnsupportedInputError(f"Document ({mime_type}) contains no extractable text")

        text = truncate_text(text, self.max_chars)
        text, redactions = sanitize_document_text(text)
        if redactions:
            logger.warning("Redacted instruction-like lines from document", redactions=redactions)

        return ParsedDocument(
            text=text,
            word_count=count_words(text),
            redactions=redactions,
            mime_type=mime_type,
            page_count=page_count
        )

    @staticmethod
    def _decode(document_base64: str) -> bytes:
        try:
            return base64.b64decode(document_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UnsupportedInputError(f"Document is not valid base64: {e}") from e

    def _extract(self, data: bytes, mime_type: str):
        """Blocking extraction, run in a worker thread. Returns (text, page_count)."""
        if mime_type in TEXT_MIMES:
            return data.decode("utf-8", errors="replace"), None
        if mime_type == PDF_MIME:
            return self._extract_pdf(data)
        if mime_type == DOCX_MIME:
            return self._extract_docx(data), None
        if mime_type in IMAGE_MIMES:
            return self._extract_image(data), None
        raise UnsupportedInputError(f"Unsupported document type: {mime_type}")

    @staticmethod
    def _extract_pdf(data: bytes):
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = []
            for page in reader.pages:
                page_text = (page.extract_text() or "").strip()
                if page_text:
                    pages.append(page_text)
        except Exception as e:
            raise UnsupportedInputError(f"Failed to parse PDF: {e}") from e

        if not pages:
            raise UnsupportedInputError(
                "PDF appears to be scanned/image-based; OCR of PDF pages is not supported"
            )
        return "\n\n".join(pages), len(reader.pages)

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as e:
            raise UnsupportedInputError(f"Failed to parse DOCX: {e}") from e
        return "\n".join(p.text for p in document.paragraphs)

    def _extract_image(self, data: bytes) -> str:
        try:
            image = Image.open(io.BytesIO(data))
            return pytesseract.image_to_string(image, lang=self.ocr_languages)
        except pytesseract.TesseractNotFoundError as e:
            raise UnsupportedInputError("OCR is unavailable: tesseract is not installed") from e
        except Exception as e:
            raise UnsupportedInputError(f"Failed to extract text from image: {e}") from e
