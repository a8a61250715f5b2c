import io

import pytest
from PyPDF2 import PdfWriter

from pdf_tutor.core.config import settings
from pdf_tutor.services.document_service import TRUNCATION_MARKER, DocumentService


@pytest.fixture
def service(tmp_path):
    return DocumentService(upload_dir=str(tmp_path))


def blank_pdf(pages=3) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_normalize_collapses_whitespace():
    assert DocumentService.normalize_text("  Chapter 1\n\n\tIntro   text  ") == "Chapter 1 Intro text"


def test_normalize_strips_non_printable():
    assert DocumentService.normalize_text("café\x00 ok") == "caf ok"


def test_normalize_truncates_long_text():
    text = DocumentService.normalize_text("a" * (settings.EXTRACTED_TEXT_MAX_CHARS + 10))
    assert text.endswith(TRUNCATION_MARKER)
    assert len(text) == settings.EXTRACTED_TEXT_MAX_CHARS + len(TRUNCATION_MARKER)


def test_unparseable_pdf_gets_generated_context(service):
    result = service.extract_text_from_pdf(b"definitely not a pdf", "broken.pdf")
    assert not result.success
    assert result.method == "generated-context"
    assert '"broken.pdf"' in result.text
    assert result.page_count is None


def test_pdf_without_text(service):
    result = service.extract_text_from_pdf(blank_pdf(3), "blank.pdf")
    assert not result.success
    assert result.method == "none"
    assert result.text == ""
    assert result.page_count == 3


def test_stored_filename_is_sanitized(service):
    name = service.make_stored_filename("../My Notes (final).pdf")
    prefix, _, rest = name.partition("-")
    assert prefix.isdigit()
    assert rest == "My_Notes_final_.pdf"


@pytest.mark.asyncio
async def test_save_uploaded_file(service, tmp_path):
    path = await service.save_uploaded_file(b"%PDF-1.4", "123-notes.pdf")
    assert path == "/uploads/pdf-uploads/123-notes.pdf"
    assert (tmp_path / "pdf-uploads" / "123-notes.pdf").read_bytes() == b"%PDF-1.4"
