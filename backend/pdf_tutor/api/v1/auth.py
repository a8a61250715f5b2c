from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import timedelta
import logging

from pdf_tutor.database import get_db
from pdf_tutor.models.user import User
from pdf_tutor.schemas.user import UserCreate, Token, User as UserSchema, UserLogin
from pdf_tutor.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    validate_password,
)
from pdf_tutor.api.deps import get_current_user
from pdf_tutor.core.config import settings
from pdf_tutor.core.rate_limiter import auth_limit, register_limit

logger = logging.getLogger(__name__)

ACCESS_COOKIE_NAME = settings.ACCESS_TOKEN_COOKIE_NAME
COOKIE_DOMAIN = settings.COOKIE_DOMAIN
COOKIE_SECURE = not settings.DEBUG
COOKIE_SAMESITE = "lax"
ACCESS_COOKIE_MAX_AGE = settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 60 * 60


def set_access_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=ACCESS_COOKIE_NAME,
        value=access_token,
        max_age=ACCESS_COOKIE_MAX_AGE,
        secure=COOKIE_SECURE,
        httponly=True,
        samesite=COOKIE_SAMESITE,
        domain=COOKIE_DOMAIN,
        path="/",
    )


def clear_access_cookie(response: Response) -> None:
    response.delete_cookie(
        key=ACCESS_COOKIE_NAME,
        domain=COOKIE_DOMAIN,
        path="/",
    )


def _issue_token(user: User, response: Response) -> dict:
    access_token = create_access_token(
        str(user.id), expires_delta=timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    )
    set_access_cookie(response, access_token)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": ACCESS_COOKIE_MAX_AGE,
        "user": user,
    }


router = APIRouter()


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
@register_limit
async def register(request: Request, user_data: UserCreate, response: Response, db: Session = Depends(get_db)):
    """Register a new user and sign them in."""
    is_valid, errors = validate_password(user_data.password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Password does not meet requirements", "errors": errors},
        )

    try:
        existing_user = db.query(User).filter(User.email == user_data.email).first()
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Database unavailable")
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    db_user = User(
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        name=user_data.name,
    )

    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=503, detail="Database unavailable")

    logger.info("Registered user %s", db_user.id)
    return _issue_token(db_user, response)


@router.post("/login", response_model=Token)
@auth_limit
async def login(request: Request, login_data: UserLogin, response: Response, db: Session = Depends(get_db)):
    """Login user, set the auth cookie and return the access token."""
    try:
        user = db.query(User).filter(User.email == login_data.email).first()
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Database unavailable")
    if not user or not verify_password(login_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    return _issue_token(user, response)


@router.get("/me", response_model=UserSchema)
async def read_users_me(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout():
    """Clear the auth cookie."""
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_access_cookie(response)
    return response
