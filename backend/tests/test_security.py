import uuid
from datetime import timedelta

from jose import jwt

from pdf_tutor.core.config import settings
from pdf_tutor.core.security import (
    create_access_token,
    get_password_hash,
    validate_email,
    validate_password,
    verify_password,
    verify_token,
)


def test_password_hash_round_trip():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_token_subject_is_user_id():
    user_id = str(uuid.uuid4())
    token = create_access_token(user_id)
    assert verify_token(token) == user_id

    claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert claims["iss"] == settings.PROJECT_NAME
    assert claims["exp"] > claims["iat"]


def test_expired_token_is_rejected():
    token = create_access_token(str(uuid.uuid4()), expires_delta=timedelta(seconds=-5))
    assert verify_token(token) is None


def test_tampered_token_is_rejected():
    token = jwt.encode({"sub": str(uuid.uuid4())}, "not-the-secret", algorithm=settings.ALGORITHM)
    assert verify_token(token) is None
    assert verify_token("") is None


def test_validate_password():
    assert validate_password("secret123") == (True, [])

    ok, errors = validate_password("ABC")
    assert not ok
    assert len(errors) == 3


def test_validate_email():
    assert validate_email("student@example.com")
    assert not validate_email("student@example")
    assert not validate_email("")
