"""
Pytest configuration and fixtures.

API tests run against an in-memory SQLite database and a stubbed tutor so no
network access or PostgreSQL instance is needed.
"""

import os
import sys
import tempfile
import uuid
from typing import Any, Callable, Dict, Generator, List, Optional

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="pdf-tutor-uploads-"))

from sqlalchemy.orm import Session

from pdf_tutor.core.rate_limiter import limiter
from pdf_tutor.database import Base, SessionLocal, engine
from pdf_tutor import models  # noqa: F401
from pdf_tutor.services.tutor_service import TutorReply

limiter.enabled = False


class FakeHandle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock standing in for the event loop's ``call_later``."""

    def __init__(self):
        self.now = 0.0
        self.handles: List[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = sorted((h for h in self.pending if h.when <= self.now), key=lambda h: h.when)
        for handle in due:
            self.handles.remove(handle)
            handle.callback(*handle.args)


class FakeTutor:
    """Returns queued replies and records what it was asked."""

    def __init__(self):
        self.replies: List[TutorReply] = []
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    def queue(self, response: str, action: Optional[Dict[str, Any]] = None) -> None:
        self.replies.append(TutorReply(response=response, action=action))

    def generate_reply(self, message, document_context=None, history=None, current_page=1):
        self.calls.append(
            {
                "message": message,
                "document_context": document_context,
                "history": history,
                "current_page": current_page,
            }
        )
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return TutorReply(response="Here is an explanation.")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema and a database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def fake_tutor() -> FakeTutor:
    return FakeTutor()


@pytest.fixture
def client(db, fake_tutor):
    from fastapi.testclient import TestClient

    from pdf_tutor.api.deps import get_tutor_service
    from pdf_tutor.main import app

    app.dependency_overrides[get_tutor_service] = lambda: fake_tutor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client) -> Dict[str, str]:
    email = f"student_{uuid.uuid4().hex[:8]}@example.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "secret123", "name": "Test Student"},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def current_user_id(client, auth_headers) -> uuid.UUID:
    resp = client.get("/api/v1/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    return uuid.UUID(resp.json()["id"])


@pytest.fixture
def seeded_chat(db: Session, current_user_id):
    """A document with extracted text and its chat, owned by the current user."""
    from pdf_tutor.models.chat import Chat
    from pdf_tutor.models.document import Document

    document = Document(
        filename="1700000000000-notes.pdf",
        original_name="notes.pdf",
        file_size=2048,
        mime_type="application/pdf",
        upload_path="/uploads/pdf-uploads/1700000000000-notes.pdf",
        extracted_text="Photosynthesis converts light energy into chemical energy. " * 5,
        extraction_method="pypdf2",
        page_count=5,
        owner_id=current_user_id,
    )
    db.add(document)
    db.flush()
    chat = Chat(title="Chat about notes.pdf", user_id=current_user_id, document_id=document.id)
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return chat
