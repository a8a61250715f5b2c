from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID

from pdf_tutor.annotations.models import normalize_annotations
from pdf_tutor.annotations.render import OverlayShape
from pdf_tutor.schemas.document import ChatSummary, DocumentResponse


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    chat_id: UUID
    current_page: int = Field(default=1, ge=1)


class ChatMessageResponse(BaseModel):
    id: UUID
    content: str
    role: str
    timestamp: datetime = Field(validation_alias="created_at")
    page_number: Optional[int] = None
    annotations: List[Dict[str, Any]] = []

    model_config = ConfigDict(from_attributes=True)

    @field_validator("annotations", mode="before")
    @classmethod
    def annotations_as_list(cls, v):
        return normalize_annotations(v)


class ChatReply(BaseModel):
    response: str
    action: Optional[Dict[str, Any]] = None
    annotations: List[Dict[str, Any]] = []
    current_page: int
    action_status: Optional[Dict[str, Any]] = None


class ChatDetail(BaseModel):
    chat: ChatSummary
    document: DocumentResponse
    messages: List[ChatMessageResponse]


class ActionResult(BaseModel):
    status: str
    current_page: int
    annotation: Optional[Dict[str, Any]] = None


class PageChange(BaseModel):
    page_number: int = Field(..., ge=1)


class SessionState(BaseModel):
    chat_id: UUID
    current_page: int
    page_count: Optional[int] = None
    annotations: List[Dict[str, Any]] = []


class OverlayResponse(BaseModel):
    page_number: int
    page_width: float
    page_height: float
    shapes: List[OverlayShape]
