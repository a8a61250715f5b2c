"""
Chat API - tutor conversation about a document, plus the live annotation session of each chat.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from pdf_tutor.annotations.actions import ActionRejected, AnnotateOutcome, NavigateOutcome
from pdf_tutor.annotations.render import render_page_overlay
from pdf_tutor.annotations.session import SessionRegistry, TutorSession, describe_outcome
from pdf_tutor.api.deps import get_current_user, get_session_registry, get_tutor_service
from pdf_tutor.core.config import settings
from pdf_tutor.core.rate_limiter import chat_limit
from pdf_tutor.database import get_db
from pdf_tutor.models.chat import Chat, Message
from pdf_tutor.models.user import User
from pdf_tutor.schemas.chat import (
    ActionResult,
    ChatDetail,
    ChatMessageResponse,
    ChatReply,
    ChatRequest,
    OverlayResponse,
    PageChange,
    SessionState,
)
from pdf_tutor.schemas.document import ChatSummary, DocumentResponse
from pdf_tutor.services.tutor_service import (
    TutorService,
    TutorUnavailableError,
    build_document_context,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_owned_chat(db: Session, chat_id: UUID, user: User) -> Chat:
    try:
        chat = db.query(Chat).filter(Chat.id == chat_id).first()
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Database unavailable")
    if not chat or chat.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    return chat


def _session_for(registry: SessionRegistry, chat: Chat) -> TutorSession:
    return registry.get_or_create(str(chat.id), page_count=chat.document.page_count)


def _history(db: Session, chat_id: UUID) -> List[Dict[str, str]]:
    messages = (
        db.query(Message)
        .filter(Message.chat_id == chat_id)
        .order_by(Message.created_at.desc())
        .limit(settings.CHAT_HISTORY_LIMIT)
        .all()
    )
    return [
        {"role": m.role, "content": m.content}
        for m in reversed(messages)
        if m.role in ("user", "assistant")
    ]


@router.post("/chat", response_model=ChatReply)
@chat_limit
async def send_message(
    request: Request,
    data: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    tutor: TutorService = Depends(get_tutor_service),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Ask the tutor a question and apply the action it proposes to the chat's session."""
    chat = _get_owned_chat(db, data.chat_id, current_user)
    document = chat.document

    history = _history(db, chat.id)
    document_context = build_document_context(document.original_name, document.extracted_text)
    logger.info(
        f"Chat {chat.id}: question on page {data.current_page} "
        f"(document text {len(document.extracted_text or '')} chars)"
    )

    try:
        reply = await asyncio.to_thread(
            tutor.generate_reply, data.message, document_context, history, data.current_page
        )
    except TutorUnavailableError as e:
        logger.error(f"Chat {chat.id}: tutor unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to generate tutor response")

    session = _session_for(registry, chat)
    annotations: List[Dict[str, Any]] = []
    action_status: Optional[Dict[str, Any]] = None
    action_page: Optional[int] = None
    outcome = None
    if reply.action is not None:
        # Decode only; the session changes after the messages are stored
        outcome = session.decode(reply.action, current_page=data.current_page)
        action_status = describe_outcome(outcome)
        if isinstance(outcome, AnnotateOutcome):
            annotations.append(outcome.annotation.to_payload())
            action_page = outcome.annotation.page_number
        elif isinstance(outcome, NavigateOutcome):
            action_page = outcome.page_number

    try:
        db.add(Message(chat_id=chat.id, user_id=current_user.id, role="user", content=data.message))
        db.add(
            Message(
                chat_id=chat.id,
                user_id=current_user.id,
                role="assistant",
                content=reply.response,
                page_number=action_page,
                annotations=annotations or None,
            )
        )
        chat.updated_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=503, detail="Database unavailable")

    if outcome is not None:
        session.apply_outcome(outcome, current_page=data.current_page)
    else:
        session.go_to_page(data.current_page)

    return ChatReply(
        response=reply.response,
        action=reply.action,
        annotations=annotations,
        current_page=session.current_page,
        action_status=action_status,
    )


@router.get("/chat/{chat_id}", response_model=ChatDetail)
def get_chat(
    chat_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Chat with its document and full message history."""
    chat = _get_owned_chat(db, chat_id, current_user)
    return ChatDetail(
        chat=ChatSummary.model_validate(chat),
        document=DocumentResponse.model_validate(chat.document).model_copy(update={"chats": []}),
        messages=[ChatMessageResponse.model_validate(m) for m in chat.messages],
    )


@router.get("/chat/{chat_id}/session", response_model=SessionState)
async def get_session_state(
    chat_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Current page and live annotations of the chat's viewer session."""
    chat = _get_owned_chat(db, chat_id, current_user)
    session = _session_for(registry, chat)
    return SessionState(
        chat_id=chat.id,
        current_page=session.current_page,
        page_count=session.page_count,
        annotations=[a.to_payload() for a in session.store.all()],
    )


@router.post("/chat/{chat_id}/actions", response_model=ActionResult)
async def trigger_action(
    chat_id: UUID,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Apply an action by hand, through the same validation as tutor actions."""
    chat = _get_owned_chat(db, chat_id, current_user)
    session = _session_for(registry, chat)

    outcome = session.apply_action(payload)
    if isinstance(outcome, ActionRejected):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": outcome.code, "message": outcome.message},
        )

    annotation = outcome.annotation.to_payload() if isinstance(outcome, AnnotateOutcome) else None
    return ActionResult(
        status=describe_outcome(outcome)["status"],
        current_page=session.current_page,
        annotation=annotation,
    )


@router.put("/chat/{chat_id}/page", response_model=SessionState)
async def change_page(
    chat_id: UUID,
    data: PageChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Record the page the user navigated to."""
    chat = _get_owned_chat(db, chat_id, current_user)
    session = _session_for(registry, chat)
    session.go_to_page(data.page_number)
    return SessionState(
        chat_id=chat.id,
        current_page=session.current_page,
        page_count=session.page_count,
        annotations=[a.to_payload() for a in session.store.all()],
    )


@router.get("/chat/{chat_id}/overlay", response_model=OverlayResponse)
async def get_overlay(
    chat_id: UUID,
    page_width: float = Query(..., gt=0),
    page_height: float = Query(..., gt=0),
    page: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Draw instructions for the annotations on the page shown, or on ``page`` when given."""
    chat = _get_owned_chat(db, chat_id, current_user)
    session = _session_for(registry, chat)
    if page is None or page == session.current_page:
        page_number = session.current_page
        shapes = session.overlay(page_width, page_height).shapes
    else:
        page_number = page
        shapes = render_page_overlay(session.store.list_for_page(page), page, page_width, page_height)
    return OverlayResponse(
        page_number=page_number,
        page_width=page_width,
        page_height=page_height,
        shapes=shapes,
    )


@router.delete("/chat/{chat_id}/session", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    chat_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Discard the chat's viewer session and cancel its pending annotation timers."""
    chat = _get_owned_chat(db, chat_id, current_user)
    registry.discard(str(chat.id))
