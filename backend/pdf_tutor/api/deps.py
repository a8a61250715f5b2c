import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from pdf_tutor.annotations.session import SessionRegistry
from pdf_tutor.core.config import settings
from pdf_tutor.core.security import verify_token
from pdf_tutor.database import get_db
from pdf_tutor.models.user import User
from pdf_tutor.services.tutor_service import TutorService

# Bearer header is optional; browsers send the auth cookie instead
security = HTTPBearer(auto_error=False)

session_registry = SessionRegistry(
    display_seconds=settings.ANNOTATION_DISPLAY_SECONDS,
    idle_seconds=settings.SESSION_IDLE_SECONDS,
)

_tutor_service: Optional[TutorService] = None


def get_tutor_service() -> TutorService:
    global _tutor_service
    if _tutor_service is None:
        _tutor_service = TutorService()
    return _tutor_service


def get_session_registry() -> SessionRegistry:
    return session_registry


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from the bearer token or the auth cookie."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = credentials.credentials if credentials else request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)
    subject = verify_token(token or "")
    if subject is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(subject)
    except ValueError:
        raise credentials_exception

    try:
        user = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable while validating credentials"
        )

    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    return user
