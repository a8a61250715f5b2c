import io
import re
import time
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import PyPDF2

from pdf_tutor.core.config import settings

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
UPLOAD_SUBDIR = "pdf-uploads"
TRUNCATION_MARKER = "\n\n[Document truncated for performance...]"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n\r\t]")


@dataclass
class ExtractionResult:
    text: str
    success: bool
    method: str
    page_count: Optional[int] = None


class DocumentService:
    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOADS_DIR)
        self.pdf_dir = self.upload_dir / UPLOAD_SUBDIR
        self.pdf_dir.mkdir(parents=True, exist_ok=True)

    def make_stored_filename(self, original_name: str) -> str:
        """Millisecond prefix keeps repeated uploads of one file apart."""
        safe_name = _UNSAFE_FILENAME_CHARS.sub("_", Path(original_name).name) or "document.pdf"
        return f"{int(time.time() * 1000)}-{safe_name}"

    async def save_uploaded_file(self, file_content: bytes, stored_filename: str) -> str:
        """Write the upload and return its public path under /uploads."""
        file_path = self.pdf_dir / stored_filename

        async with aiofiles.open(file_path, 'wb') as f:
            await f.write(file_content)

        logger.info(f"Stored upload {stored_filename} ({len(file_content)} bytes)")
        return f"/uploads/{UPLOAD_SUBDIR}/{stored_filename}"

    @staticmethod
    def normalize_text(raw: str) -> str:
        text = re.sub(r"\s+", " ", raw or "")
        text = _NON_PRINTABLE.sub("", text).strip()
        if len(text) > settings.EXTRACTED_TEXT_MAX_CHARS:
            text = text[: settings.EXTRACTED_TEXT_MAX_CHARS] + TRUNCATION_MARKER
        return text

    @staticmethod
    def generate_context(filename: str, file_size: int) -> str:
        """Stand-in context when the PDF could not be parsed at all."""
        return (
            f'This is a PDF document titled "{filename}" ({round(file_size / 1024)}KB). '
            "I can help analyze structure, summarize, and extract insights."
        )

    def extract_text_from_pdf(self, file_content: bytes, filename: str) -> ExtractionResult:
        """Extract text from the first pages of a PDF held in memory."""
        try:
            reader = PyPDF2.PdfReader(io.BytesIO(file_content))
            page_count = len(reader.pages)
            parts = []
            for page in reader.pages[: settings.PDF_MAX_PARSE_PAGES]:
                parts.append(page.extract_text() or "")
            text = self.normalize_text("\n".join(parts))
        except Exception as e:
            logger.error(f"Error extracting text from PDF {filename}: {e}")
            return ExtractionResult(
                text=self.generate_context(filename, len(file_content)),
                success=False,
                method="generated-context",
            )

        if len(text) > settings.EXTRACTED_TEXT_MIN_CHARS:
            return ExtractionResult(text=text, success=True, method="pypdf2", page_count=page_count)

        logger.info(f"PDF {filename} yielded too little text ({len(text)} chars)")
        return ExtractionResult(text="", success=False, method="none", page_count=page_count)
