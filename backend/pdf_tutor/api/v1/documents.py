"""
Document API - PDF upload with text extraction, document listing and an extraction debug view.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status, UploadFile, File
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from pdf_tutor.api.deps import get_current_user
from pdf_tutor.core.config import settings
from pdf_tutor.core.rate_limiter import upload_limit
from pdf_tutor.database import get_db
from pdf_tutor.models.chat import Chat
from pdf_tutor.models.document import Document
from pdf_tutor.models.user import User
from pdf_tutor.schemas.document import (
    ChatSummary,
    DocumentDebugInfo,
    DocumentList,
    DocumentResponse,
    UploadResponse,
    UploadedDocument,
)
from pdf_tutor.services.document_service import DocumentService, PDF_MIME_TYPE

logger = logging.getLogger(__name__)

router = APIRouter()

_document_service = None


def get_document_service() -> DocumentService:
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service


@router.post("/pdf/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
@upload_limit
async def upload_pdf(
    request: Request,
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    document_service: DocumentService = Depends(get_document_service),
):
    """Upload a PDF, extract its text and open a chat about it."""
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")

    if file.content_type != PDF_MIME_TYPE:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only PDF files are allowed")

    file_content = await file.read()
    if len(file_content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File too large")

    original_name = file.filename or "document.pdf"
    logger.info(f"Upload from user {current_user.id}: {original_name} ({len(file_content)} bytes)")

    stored_filename = document_service.make_stored_filename(original_name)
    upload_path = await document_service.save_uploaded_file(file_content, stored_filename)

    extraction = await asyncio.to_thread(document_service.extract_text_from_pdf, file_content, original_name)
    logger.info(
        f"Extraction for {original_name}: method={extraction.method}, chars={len(extraction.text)}"
    )

    document = Document(
        filename=stored_filename,
        original_name=original_name,
        file_size=len(file_content),
        mime_type=file.content_type,
        upload_path=upload_path,
        extracted_text=extraction.text,
        extraction_method=extraction.method,
        page_count=extraction.page_count,
        owner_id=current_user.id,
    )

    try:
        db.add(document)
        db.flush()
        chat = Chat(
            title=f"Chat about {original_name}",
            user_id=current_user.id,
            document_id=document.id,
        )
        db.add(chat)
        db.commit()
        db.refresh(document)
        db.refresh(chat)
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=503, detail="Database unavailable")

    return UploadResponse(
        document=UploadedDocument(
            id=document.id,
            original_name=document.original_name,
            upload_path=document.upload_path,
            page_count=document.page_count,
            has_extracted_text=extraction.success,
            text_length=len(extraction.text),
            extraction_method=extraction.method,
        ),
        chat=ChatSummary.model_validate(chat),
    )


@router.get("/documents", response_model=DocumentList)
def list_documents(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The user's documents, newest first, each with its most recent chats."""
    documents = (
        db.query(Document)
        .filter(Document.owner_id == current_user.id)
        .order_by(Document.created_at.desc())
        .all()
    )

    items = []
    for doc in documents:
        recent_chats = (
            db.query(Chat)
            .filter(Chat.document_id == doc.id)
            .order_by(Chat.updated_at.desc())
            .limit(settings.RECENT_CHATS_PER_DOCUMENT)
            .all()
        )
        item = DocumentResponse.model_validate(doc).model_copy(
            update={"chats": [ChatSummary.model_validate(c) for c in recent_chats]}
        )
        items.append(item)

    return DocumentList(documents=items, total=len(items))


@router.get("/debug/pdf", response_model=DocumentDebugInfo)
def debug_latest_pdf(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Extraction summary of the user's latest upload."""
    document = (
        db.query(Document)
        .filter(Document.owner_id == current_user.id)
        .order_by(Document.created_at.desc())
        .first()
    )
    if not document:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No documents found")

    text = document.extracted_text or ""
    return DocumentDebugInfo(
        id=document.id,
        name=document.original_name,
        file_size=document.file_size,
        uploaded_at=document.created_at,
        has_extracted_text=bool(text),
        text_length=len(text),
        text_preview=text[:500] or "No text available",
        is_generated_context=document.extraction_method == "generated-context",
    )
