from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship
from pdf_tutor.database import Base
from datetime import datetime, timezone
import uuid


def _utcnow():
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # File information
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_size = Column(Integer)  # in bytes
    mime_type = Column(String(100))
    upload_path = Column(String(500), nullable=False)

    # Content extraction
    extracted_text = Column(Text)
    extraction_method = Column(String(50))
    page_count = Column(Integer)

    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    owner = relationship("User", back_populates="documents")
    chats = relationship("Chat", back_populates="document", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Document(id={self.id}, original_name='{self.original_name}')>"
