from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID


class ChatSummary(BaseModel):
    id: UUID
    title: str
    document_id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentResponse(BaseModel):
    id: UUID
    original_name: str
    filename: str
    upload_path: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    page_count: Optional[int] = None
    created_at: datetime
    chats: List[ChatSummary] = []

    class Config:
        from_attributes = True


class DocumentList(BaseModel):
    documents: List[DocumentResponse]
    total: int


class UploadedDocument(BaseModel):
    id: UUID
    original_name: str
    upload_path: str
    page_count: Optional[int] = None
    has_extracted_text: bool
    text_length: int
    extraction_method: str


class UploadResponse(BaseModel):
    document: UploadedDocument
    chat: ChatSummary


class DocumentDebugInfo(BaseModel):
    id: UUID
    name: str
    file_size: Optional[int] = None
    uploaded_at: datetime
    has_extracted_text: bool
    text_length: int
    text_preview: str
    is_generated_context: bool
